from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any

PROGRESS_MIN = 0
PROGRESS_MAX = 100
ZOOM_MIN = 10
ZOOM_MAX = 100
DEFAULT_ZOOM = 50

class TaskStatus(Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    DONE = "done"

class Priority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

class ProjectStatus(Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"

class LinkKind(Enum):
    FINISH_TO_START = "finish_to_start"
    START_TO_START = "start_to_start"
    FINISH_TO_FINISH = "finish_to_finish"
    START_TO_FINISH = "start_to_finish"

class ViewType(Enum):
    GANTT = "gantt"
    BOARD = "board"
    CALENDAR = "calendar"
    LIST = "list"

def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))

def naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps carrying an offset are converted to UTC and stored without tzinfo."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)

class CamelModel(BaseModel):
    """Base for everything that crosses the persisted/action boundary in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class Project(CamelModel):
    id: str = Field(description="Unique identifier for the project")
    name: str = Field(description="Display name of the project")
    color: str = Field(description="Color used for the project's bars and badges")
    status: ProjectStatus = Field(default=ProjectStatus.ACTIVE, description="Lifecycle status of the project")
    description: Optional[str] = Field(default=None, description="Free-form description")
    start: Optional[datetime] = Field(default=None, description="Planned start of the project")
    end: Optional[datetime] = Field(default=None, description="Planned end of the project")

    @field_validator('start', 'end')
    @classmethod
    def normalize_dates(cls, v):
        return naive_utc(v)

    def has_valid_range(self) -> bool:
        return self.start is None or self.end is None or self.start <= self.end

class Section(CamelModel):
    id: str = Field(description="Unique identifier for the section")
    project_id: str = Field(description="The owning project")
    name: str = Field(description="Display name of the section")
    color: str = Field(description="Color used for the section header")

class Task(CamelModel):
    id: str = Field(description="Unique identifier for the task")
    name: str = Field(description="The human readable name of the task")
    description: Optional[str] = Field(default=None, description="Free-form description")
    start: datetime = Field(description="When the task starts")
    end: datetime = Field(description="When the task ends")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="Board column of the task")
    priority: Priority = Field(default=Priority.MEDIUM, description="Priority of the task")
    progress: int = Field(default=0, description="Completion percentage, clamped into 0-100")
    project_id: Optional[str] = Field(default=None, description="The owning project, if any")
    section_id: Optional[str] = Field(default=None, description="The owning section, if any")
    assignees: List[str] = Field(default_factory=list, description="Ids of assigned team members")
    color: Optional[str] = Field(default=None, description="Bar color override")

    @field_validator('start', 'end')
    @classmethod
    def normalize_dates(cls, v):
        return naive_utc(v)

    @field_validator('progress', mode='before')
    @classmethod
    def clamp_progress(cls, v):
        if v is None:
            return PROGRESS_MIN
        return clamp(int(v), PROGRESS_MIN, PROGRESS_MAX)

    def has_valid_range(self) -> bool:
        return self.start <= self.end

class Link(CamelModel):
    id: str = Field(description="Unique identifier for the link")
    source_task_id: str = Field(description="The task the dependency starts from")
    target_task_id: str = Field(description="The task that depends on the source")
    kind: LinkKind = Field(default=LinkKind.FINISH_TO_START, description="Dependency type")

    def touches(self, task_ids) -> bool:
        return self.source_task_id in task_ids or self.target_task_id in task_ids

class User(CamelModel):
    id: str = Field(description="Unique identifier for the team member")
    name: str = Field(description="Display name of the team member")
    color: str = Field(description="Color used for the member's avatar")
    avatar: Optional[str] = Field(default=None, description="Avatar reference (url or asset id)")
    role: Optional[str] = Field(default=None, description="Role within the team")

class GanttState(CamelModel):
    """The full snapshot: every entity plus the selection shared by all views."""

    _schema_scope: str = "user"
    _schema_filename: str = "ganttstate"

    tasks: List[Task] = Field(default_factory=list, description="All tasks")
    links: List[Link] = Field(default_factory=list, description="Dependency links between tasks")
    projects: List[Project] = Field(default_factory=list, description="All projects")
    sections: List[Section] = Field(default_factory=list, description="All sections")
    users: List[User] = Field(default_factory=list, description="Team members")
    selected_task_id: Optional[str] = Field(default=None, description="Task open in the detail view")
    selected_project_id: Optional[str] = Field(default=None, description="Project focused in the sidebar")
    selected_section_id: Optional[str] = Field(default=None, description="Section focused in the sidebar")
    selected_date: datetime = Field(default_factory=datetime.now, description="Date the calendar is centred on")
    zoom_level: int = Field(default=DEFAULT_ZOOM, description="Timeline zoom, clamped into 10-100")
    current_view: ViewType = Field(default=ViewType.GANTT, description="Which of the four views is showing")

    @field_validator('zoom_level', mode='before')
    @classmethod
    def clamp_zoom(cls, v):
        if v is None:
            return DEFAULT_ZOOM
        return clamp(int(v), ZOOM_MIN, ZOOM_MAX)

    @field_validator('selected_date')
    @classmethod
    def normalize_selected_date(cls, v):
        return naive_utc(v)

    def find_task(self, task_id: str) -> Optional[Task]:
        return next((t for t in self.tasks if t.id == task_id), None)

    def find_project(self, project_id: str) -> Optional[Project]:
        return next((p for p in self.projects if p.id == project_id), None)

    def find_section(self, section_id: str) -> Optional[Section]:
        return next((s for s in self.sections if s.id == section_id), None)

    def find_link(self, link_id: str) -> Optional[Link]:
        return next((link for link in self.links if link.id == link_id), None)

    def find_user(self, user_id: str) -> Optional[User]:
        return next((u for u in self.users if u.id == user_id), None)

    def scheduling_data(self) -> Dict[str, Any]:
        """The four cross-cutting collections published with every data update."""
        return {
            'tasks': self.tasks,
            'links': self.links,
            'projects': self.projects,
            'sections': self.sections,
        }

class TaskPatch(CamelModel):
    """Partial task used by UPDATE_TASK; only the fields that were set are merged."""

    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    status: Optional[TaskStatus] = None
    priority: Optional[Priority] = None
    progress: Optional[int] = None
    project_id: Optional[str] = None
    section_id: Optional[str] = None
    assignees: Optional[List[str]] = None
    color: Optional[str] = None

    @field_validator('start', 'end')
    @classmethod
    def normalize_dates(cls, v):
        return naive_utc(v)

class ProjectPatch(CamelModel):
    id: str
    name: Optional[str] = None
    color: Optional[str] = None
    status: Optional[ProjectStatus] = None
    description: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @field_validator('start', 'end')
    @classmethod
    def normalize_dates(cls, v):
        return naive_utc(v)

class SectionPatch(CamelModel):
    id: str
    project_id: Optional[str] = None
    name: Optional[str] = None
    color: Optional[str] = None

class StatePatch(CamelModel):
    """Partial snapshot used by SET_STATE."""

    tasks: Optional[List[Task]] = None
    links: Optional[List[Link]] = None
    projects: Optional[List[Project]] = None
    sections: Optional[List[Section]] = None
    users: Optional[List[User]] = None
    selected_task_id: Optional[str] = None
    selected_project_id: Optional[str] = None
    selected_section_id: Optional[str] = None
    selected_date: Optional[datetime] = None
    zoom_level: Optional[int] = None
    current_view: Optional[ViewType] = None

    @field_validator('selected_date')
    @classmethod
    def normalize_selected_date(cls, v):
        return naive_utc(v)

class StatusChange(CamelModel):
    task_id: str
    status: TaskStatus

class DateChange(CamelModel):
    task_id: str
    start: datetime
    end: datetime

    @field_validator('start', 'end')
    @classmethod
    def normalize_dates(cls, v):
        return naive_utc(v)
