"""
Read-only projections backing the four views (gantt, board, calendar, list).

Everything here is a pure function of a snapshot; nothing mutates state.
"""
from collections import OrderedDict
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, Field

from ganttkit.models import GanttState, Priority, Project, Section, Task, TaskStatus

BOARD_COLUMNS = (TaskStatus.TODO, TaskStatus.IN_PROGRESS, TaskStatus.REVIEW, TaskStatus.DONE)

_PRIORITY_RANK = {Priority.LOW: 0, Priority.MEDIUM: 1, Priority.HIGH: 2}

SORT_FIELDS = ("start", "end", "name", "progress", "priority")

def filter_tasks(tasks: Sequence[Task], search: Optional[str] = None, assignee: Optional[str] = None) -> List[Task]:
    """Tasks matching the search text (name or description, case-insensitive) and assignee."""
    filtered = list(tasks)
    if search:
        query = search.lower()
        filtered = [
            t for t in filtered
            if query in t.name.lower() or (t.description and query in t.description.lower())
        ]
    if assignee:
        filtered = [t for t in filtered if assignee in t.assignees]
    return filtered

def board_columns(tasks: Sequence[Task]) -> "OrderedDict[TaskStatus, List[Task]]":
    columns = OrderedDict((status, []) for status in BOARD_COLUMNS)
    for task in tasks:
        columns[task.status].append(task)
    return columns

def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value

def tasks_on_date(tasks: Sequence[Task], day: Union[date, datetime]) -> List[Task]:
    """Tasks active on a calendar day; start and end days are inclusive."""
    day = _as_date(day)
    return [t for t in tasks if _as_date(t.start) <= day <= _as_date(t.end)]

def sorted_tasks(tasks: Sequence[Task], field: str = "start", descending: bool = False) -> List[Task]:
    if field not in SORT_FIELDS:
        raise ValueError(f"Cannot sort tasks by {field!r}; expected one of {', '.join(SORT_FIELDS)}")
    if field == "priority":
        key = lambda t: _PRIORITY_RANK[t.priority]
    elif field == "name":
        key = lambda t: t.name.lower()
    else:
        key = lambda t: getattr(t, field)
    return sorted(tasks, key=key, reverse=descending)

class SectionRow(BaseModel):
    section: Optional[Section] = Field(default=None, description="None for the project's unsectioned bucket")
    tasks: List[Task] = Field(default_factory=list)

class ProjectRow(BaseModel):
    project: Optional[Project] = Field(default=None, description="None for tasks without a project")
    sections: List[SectionRow] = Field(default_factory=list)

    def task_count(self) -> int:
        return sum(len(row.tasks) for row in self.sections)

def gantt_rows(state: GanttState, tasks: Optional[Sequence[Task]] = None) -> List[ProjectRow]:
    """
    Group tasks project -> section for the timeline.

    Each project gets one row per section (in snapshot order) followed by an
    unsectioned bucket; tasks without a project end up in a trailing row.
    """
    tasks = list(state.tasks if tasks is None else tasks)
    rows = []
    for project in state.projects:
        project_tasks = [t for t in tasks if t.project_id == project.id]
        section_rows = []
        for section in state.sections:
            if section.project_id != project.id:
                continue
            section_rows.append(SectionRow(
                section=section,
                tasks=sorted_tasks([t for t in project_tasks if t.section_id == section.id]),
            ))
        known_sections = {row.section.id for row in section_rows}
        loose = [t for t in project_tasks if t.section_id not in known_sections]
        section_rows.append(SectionRow(tasks=sorted_tasks(loose)))
        rows.append(ProjectRow(project=project, sections=section_rows))

    known_projects = {p.id for p in state.projects}
    orphans = [t for t in tasks if t.project_id not in known_projects]
    if orphans:
        rows.append(ProjectRow(sections=[SectionRow(tasks=sorted_tasks(orphans))]))
    return rows

def project_progress(state: GanttState, project_id: str) -> Optional[float]:
    """Average progress of a project's tasks, None when it has none."""
    values = [t.progress for t in state.tasks if t.project_id == project_id]
    if not values:
        return None
    return sum(values) / len(values)

def status_counts(tasks: Sequence[Task]) -> Dict[TaskStatus, int]:
    return {status: len(column) for status, column in board_columns(tasks).items()}

def selected_task(state: GanttState) -> Optional[Task]:
    if state.selected_task_id is None:
        return None
    return state.find_task(state.selected_task_id)
