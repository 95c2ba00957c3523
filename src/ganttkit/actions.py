"""
Action messages accepted by the transition function.

Every action is ``{"type": <NAME>, "payload": <entity | partial | id>}``.
Dialogs and other producers build these (already typed, dates already parsed)
and hand them to :meth:`ganttkit.engine.GanttEngine.dispatch`.
"""
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from ganttkit.models import (
    Task, Project, Section, Link, User, ViewType, naive_utc,
    TaskPatch, ProjectPatch, SectionPatch, StatePatch, StatusChange, DateChange,
)
from ganttkit.recovery import ActionParseError

# Bulk replace
class SetState(BaseModel):
    type: Literal["SET_STATE"] = "SET_STATE"
    payload: StatePatch

class SetTasks(BaseModel):
    type: Literal["SET_TASKS"] = "SET_TASKS"
    payload: List[Task]

class SetLinks(BaseModel):
    type: Literal["SET_LINKS"] = "SET_LINKS"
    payload: List[Link]

class SetProjects(BaseModel):
    type: Literal["SET_PROJECTS"] = "SET_PROJECTS"
    payload: List[Project]

class SetSections(BaseModel):
    type: Literal["SET_SECTIONS"] = "SET_SECTIONS"
    payload: List[Section]

class SetUsers(BaseModel):
    type: Literal["SET_USERS"] = "SET_USERS"
    payload: List[User]

# Add
class AddTask(BaseModel):
    type: Literal["ADD_TASK"] = "ADD_TASK"
    payload: Task

class AddProject(BaseModel):
    type: Literal["ADD_PROJECT"] = "ADD_PROJECT"
    payload: Project

class AddSection(BaseModel):
    type: Literal["ADD_SECTION"] = "ADD_SECTION"
    payload: Section

class AddLink(BaseModel):
    type: Literal["ADD_LINK"] = "ADD_LINK"
    payload: Link

# Update
class UpdateTask(BaseModel):
    type: Literal["UPDATE_TASK"] = "UPDATE_TASK"
    payload: TaskPatch

class UpdateProject(BaseModel):
    type: Literal["UPDATE_PROJECT"] = "UPDATE_PROJECT"
    payload: ProjectPatch

class UpdateSection(BaseModel):
    type: Literal["UPDATE_SECTION"] = "UPDATE_SECTION"
    payload: SectionPatch

class UpdateTaskStatus(BaseModel):
    type: Literal["UPDATE_TASK_STATUS"] = "UPDATE_TASK_STATUS"
    payload: StatusChange

class UpdateTaskDates(BaseModel):
    type: Literal["UPDATE_TASK_DATES"] = "UPDATE_TASK_DATES"
    payload: DateChange

# Delete
class DeleteTask(BaseModel):
    type: Literal["DELETE_TASK"] = "DELETE_TASK"
    payload: str

class DeleteProject(BaseModel):
    type: Literal["DELETE_PROJECT"] = "DELETE_PROJECT"
    payload: str

class DeleteSection(BaseModel):
    type: Literal["DELETE_SECTION"] = "DELETE_SECTION"
    payload: str

class DeleteLink(BaseModel):
    type: Literal["DELETE_LINK"] = "DELETE_LINK"
    payload: str

class DeleteUser(BaseModel):
    type: Literal["DELETE_USER"] = "DELETE_USER"
    payload: str

# Selection / view
class SelectTask(BaseModel):
    type: Literal["SELECT_TASK"] = "SELECT_TASK"
    payload: Optional[str] = None

class SelectProject(BaseModel):
    type: Literal["SELECT_PROJECT"] = "SELECT_PROJECT"
    payload: Optional[str] = None

class SelectSection(BaseModel):
    type: Literal["SELECT_SECTION"] = "SELECT_SECTION"
    payload: Optional[str] = None

class SetView(BaseModel):
    type: Literal["SET_VIEW"] = "SET_VIEW"
    payload: ViewType

class SetZoom(BaseModel):
    type: Literal["SET_ZOOM"] = "SET_ZOOM"
    payload: int

class SetSelectedDate(BaseModel):
    type: Literal["SET_SELECTED_DATE"] = "SET_SELECTED_DATE"
    payload: datetime

    @field_validator('payload')
    @classmethod
    def normalize_payload(cls, v):
        return naive_utc(v)

Action = Annotated[
    Union[
        SetState, SetTasks, SetLinks, SetProjects, SetSections, SetUsers,
        AddTask, AddProject, AddSection, AddLink,
        UpdateTask, UpdateProject, UpdateSection, UpdateTaskStatus, UpdateTaskDates,
        DeleteTask, DeleteProject, DeleteSection, DeleteLink, DeleteUser,
        SelectTask, SelectProject, SelectSection, SetView, SetZoom, SetSelectedDate,
    ],
    Field(discriminator="type"),
]

_action_adapter = TypeAdapter(Action)

def parse_action(raw: Dict[str, Any]) -> Action:
    """Parse a raw ``{"type", "payload"}`` message into its typed action."""
    try:
        return _action_adapter.validate_python(raw)
    except ValidationError as e:
        action_type = raw.get("type") if isinstance(raw, dict) else None
        raise ActionParseError(f"Malformed action {action_type!r}: {e}") from e
