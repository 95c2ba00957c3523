"""
Transition function for the planner snapshot.

``apply(state, action) -> TransitionResult`` is pure: it never performs I/O,
never publishes notifications and never mutates the snapshot it is given.
Every mutation of the entity graph goes through here.

Three outcomes are possible:

* applied     - ``result.state`` is a new snapshot, ``result.changed`` names
                the parts of it that differ from the input.
* rejected    - validation failed; ``result.state`` is the input snapshot and
                ``result.error`` carries a :class:`ValidationFailure`.
* no-op       - the action referenced an id that does not exist (or changed
                nothing); ``result.state`` is the input snapshot, no error.

Cascades (project -> sections -> tasks -> links) are resolved against the
snapshot as it was before the transition, then every collection is filtered
once.
"""
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterable, Optional, Set

from pydantic import ValidationError

from ganttkit.models import (
    GanttState, Task, Project, Section, Link,
    ZOOM_MIN, ZOOM_MAX, clamp,
)

# Validation failure codes
EMPTY_NAME = "empty_name"
INVALID_DATE_RANGE = "invalid_date_range"
DUPLICATE_ID = "duplicate_id"
UNKNOWN_PROJECT = "unknown_project"
UNKNOWN_SECTION = "unknown_section"
UNKNOWN_TASK = "unknown_task"
SECTION_PROJECT_MISMATCH = "section_project_mismatch"
INVALID_LINK = "invalid_link"
INVALID_PATCH = "invalid_patch"

# Names used in TransitionResult.changed
SCHEDULING_COLLECTIONS = frozenset({"tasks", "links", "projects", "sections"})
SELECTION = "selection"
VIEW = "view"

@dataclass(frozen=True)
class ValidationFailure:
    code: str
    message: str

    def __str__(self) -> str:
        return self.message

@dataclass(frozen=True)
class TransitionResult:
    state: GanttState
    applied: bool = False
    changed: FrozenSet[str] = field(default_factory=frozenset)
    error: Optional[ValidationFailure] = None

    @property
    def ok(self) -> bool:
        """True unless the action was rejected by validation."""
        return self.error is None

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def apply(state: GanttState, action) -> TransitionResult:
    """Apply one action to the snapshot and return the outcome."""
    handler = _HANDLERS.get(action.type)
    if handler is None:
        return _noop(state)
    return handler(state, action.payload)

def replay(state: GanttState, actions: Iterable) -> GanttState:
    """Fold a sequence of actions over a snapshot, skipping rejected ones."""
    for action in actions:
        state = apply(state, action).state
    return state

# ---------------------------------------------------------------------------
# Result helpers
# ---------------------------------------------------------------------------

def _ok(state: GanttState, *changed: str) -> TransitionResult:
    return TransitionResult(state=state, applied=True, changed=frozenset(changed))

def _noop(state: GanttState) -> TransitionResult:
    return TransitionResult(state=state)

def _reject(state: GanttState, code: str, message: str) -> TransitionResult:
    return TransitionResult(state=state, error=ValidationFailure(code, message))

def _replace(items, updated):
    return [updated if item.id == updated.id else item for item in items]

def _patch_values(patch) -> dict:
    # Only fields the caller actually set take part in the shallow merge
    return {name: getattr(patch, name) for name in patch.model_fields_set if name != "id"}

# ---------------------------------------------------------------------------
# Validation guards
# ---------------------------------------------------------------------------

def _check_task(state: GanttState, task: Task):
    """Validate a task against the snapshot.

    Returns ``(task, failure)``. The returned task may differ from the input:
    a task placed in a section without a project inherits the section's project.
    """
    if not task.name or not task.name.strip():
        return task, ValidationFailure(EMPTY_NAME, "Task name cannot be empty")
    if not task.has_valid_range():
        return task, ValidationFailure(INVALID_DATE_RANGE, "Invalid date range: start is after end")

    if task.section_id is not None:
        section = state.find_section(task.section_id)
        if section is None:
            return task, ValidationFailure(UNKNOWN_SECTION, f"Section {task.section_id!r} does not exist")
        if task.project_id is None:
            task = task.model_copy(update={"project_id": section.project_id})
        elif task.project_id != section.project_id:
            return task, ValidationFailure(
                SECTION_PROJECT_MISMATCH,
                f"Section {section.id!r} belongs to project {section.project_id!r}, not {task.project_id!r}",
            )

    if task.project_id is not None and state.find_project(task.project_id) is None:
        return task, ValidationFailure(UNKNOWN_PROJECT, f"Project {task.project_id!r} does not exist")

    return task, None

def _check_project(project: Project) -> Optional[ValidationFailure]:
    if not project.has_valid_range():
        return ValidationFailure(INVALID_DATE_RANGE, "Invalid date range: start is after end")
    return None

def _check_section(state: GanttState, section: Section) -> Optional[ValidationFailure]:
    if state.find_project(section.project_id) is None:
        return ValidationFailure(UNKNOWN_PROJECT, f"Project {section.project_id!r} does not exist")
    return None

# ---------------------------------------------------------------------------
# Cascade helpers
# ---------------------------------------------------------------------------

def _without_tasks(state: GanttState, removed: Set[str], **update) -> GanttState:
    """Drop the given tasks, every link touching them and any selection pointing at them."""
    update["tasks"] = [t for t in state.tasks if t.id not in removed]
    update["links"] = [link for link in state.links if not link.touches(removed)]
    if state.selected_task_id in removed:
        update["selected_task_id"] = None
    return state.model_copy(update=update)

def _links_changed(state: GanttState, removed: Set[str]) -> bool:
    return any(link.touches(removed) for link in state.links)

# ---------------------------------------------------------------------------
# Bulk replace (trusted, no validation beyond the payload's shape)
# ---------------------------------------------------------------------------

_NULLABLE_STATE_FIELDS = {"selected_task_id", "selected_project_id", "selected_section_id"}

def _set_state(state: GanttState, patch) -> TransitionResult:
    update = {}
    for name in patch.model_fields_set:
        value = getattr(patch, name)
        if value is None and name not in _NULLABLE_STATE_FIELDS:
            continue
        update[name] = value
    if not update:
        return _noop(state)
    if "zoom_level" in update:
        update["zoom_level"] = clamp(update["zoom_level"], ZOOM_MIN, ZOOM_MAX)

    changed = {name for name in update if name in SCHEDULING_COLLECTIONS or name == "users"}
    if _NULLABLE_STATE_FIELDS & update.keys() or "selected_date" in update:
        changed.add(SELECTION)
    if {"zoom_level", "current_view"} & update.keys():
        changed.add(VIEW)
    return _ok(state.model_copy(update=update), *changed)

def _set_collection(name: str) -> Callable:
    def handler(state: GanttState, items) -> TransitionResult:
        return _ok(state.model_copy(update={name: list(items)}), name)
    return handler

# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

def _add_task(state: GanttState, task: Task) -> TransitionResult:
    if state.find_task(task.id) is not None:
        return _reject(state, DUPLICATE_ID, f"Task {task.id!r} already exists")
    task, failure = _check_task(state, task)
    if failure:
        return _reject(state, failure.code, failure.message)
    return _ok(state.model_copy(update={"tasks": [*state.tasks, task]}), "tasks")

def _update_task(state: GanttState, patch) -> TransitionResult:
    existing = state.find_task(patch.id)
    if existing is None:
        return _noop(state)
    try:
        merged = Task.model_validate({**existing.model_dump(), **_patch_values(patch)})
    except ValidationError as e:
        return _reject(state, INVALID_PATCH, f"Invalid task update: {e.error_count()} field error(s)")
    merged, failure = _check_task(state, merged)
    if failure:
        return _reject(state, failure.code, failure.message)
    if merged == existing:
        return _noop(state)
    return _ok(state.model_copy(update={"tasks": _replace(state.tasks, merged)}), "tasks")

def _update_task_status(state: GanttState, change) -> TransitionResult:
    existing = state.find_task(change.task_id)
    if existing is None or existing.status == change.status:
        return _noop(state)
    updated = existing.model_copy(update={"status": change.status})
    return _ok(state.model_copy(update={"tasks": _replace(state.tasks, updated)}), "tasks")

def _update_task_dates(state: GanttState, change) -> TransitionResult:
    existing = state.find_task(change.task_id)
    if existing is None:
        return _noop(state)
    if change.start > change.end:
        return _reject(state, INVALID_DATE_RANGE, "Invalid date range: start is after end")
    updated = existing.model_copy(update={"start": change.start, "end": change.end})
    return _ok(state.model_copy(update={"tasks": _replace(state.tasks, updated)}), "tasks")

def _delete_task(state: GanttState, task_id: str) -> TransitionResult:
    if state.find_task(task_id) is None:
        return _noop(state)
    removed = {task_id}
    changed = ["tasks"]
    if _links_changed(state, removed):
        changed.append("links")
    if state.selected_task_id == task_id:
        changed.append(SELECTION)
    return _ok(_without_tasks(state, removed), *changed)

# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

def _add_project(state: GanttState, project: Project) -> TransitionResult:
    if state.find_project(project.id) is not None:
        return _reject(state, DUPLICATE_ID, f"Project {project.id!r} already exists")
    failure = _check_project(project)
    if failure:
        return _reject(state, failure.code, failure.message)
    return _ok(state.model_copy(update={"projects": [*state.projects, project]}), "projects")

def _update_project(state: GanttState, patch) -> TransitionResult:
    existing = state.find_project(patch.id)
    if existing is None:
        return _noop(state)
    try:
        merged = Project.model_validate({**existing.model_dump(), **_patch_values(patch)})
    except ValidationError as e:
        return _reject(state, INVALID_PATCH, f"Invalid project update: {e.error_count()} field error(s)")
    failure = _check_project(merged)
    if failure:
        return _reject(state, failure.code, failure.message)
    if merged == existing:
        return _noop(state)
    return _ok(state.model_copy(update={"projects": _replace(state.projects, merged)}), "projects")

def _delete_project(state: GanttState, project_id: str) -> TransitionResult:
    if state.find_project(project_id) is None:
        return _noop(state)

    # Cascade membership comes from the snapshot before anything is removed
    removed_sections = {s.id for s in state.sections if s.project_id == project_id}
    removed_tasks = {t.id for t in state.tasks if t.project_id == project_id}

    update = {
        "projects": [p for p in state.projects if p.id != project_id],
        "sections": [s for s in state.sections if s.id not in removed_sections],
    }
    changed = ["projects"]
    if removed_sections:
        changed.append("sections")
    if removed_tasks:
        changed.append("tasks")
    if _links_changed(state, removed_tasks):
        changed.append("links")
    if state.selected_project_id == project_id:
        update["selected_project_id"] = None
    if state.selected_section_id in removed_sections:
        update["selected_section_id"] = None
    if "selected_project_id" in update or "selected_section_id" in update or state.selected_task_id in removed_tasks:
        changed.append(SELECTION)
    return _ok(_without_tasks(state, removed_tasks, **update), *changed)

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

def _add_section(state: GanttState, section: Section) -> TransitionResult:
    if state.find_section(section.id) is not None:
        return _reject(state, DUPLICATE_ID, f"Section {section.id!r} already exists")
    failure = _check_section(state, section)
    if failure:
        return _reject(state, failure.code, failure.message)
    return _ok(state.model_copy(update={"sections": [*state.sections, section]}), "sections")

def _update_section(state: GanttState, patch) -> TransitionResult:
    existing = state.find_section(patch.id)
    if existing is None:
        return _noop(state)
    try:
        merged = Section.model_validate({**existing.model_dump(), **_patch_values(patch)})
    except ValidationError as e:
        return _reject(state, INVALID_PATCH, f"Invalid section update: {e.error_count()} field error(s)")
    failure = _check_section(state, merged)
    if failure:
        return _reject(state, failure.code, failure.message)
    if merged == existing:
        return _noop(state)

    update = {"sections": _replace(state.sections, merged)}
    changed = ["sections"]
    if merged.project_id != existing.project_id:
        # Tasks travel with their section so task/section/project stay consistent
        update["tasks"] = [
            t.model_copy(update={"project_id": merged.project_id}) if t.section_id == merged.id else t
            for t in state.tasks
        ]
        if any(t.section_id == merged.id for t in state.tasks):
            changed.append("tasks")
    return _ok(state.model_copy(update=update), *changed)

def _delete_section(state: GanttState, section_id: str) -> TransitionResult:
    if state.find_section(section_id) is None:
        return _noop(state)
    removed_tasks = {t.id for t in state.tasks if t.section_id == section_id}
    update = {"sections": [s for s in state.sections if s.id != section_id]}
    changed = ["sections"]
    if removed_tasks:
        changed.append("tasks")
    if _links_changed(state, removed_tasks):
        changed.append("links")
    if state.selected_section_id == section_id:
        update["selected_section_id"] = None
    if "selected_section_id" in update or state.selected_task_id in removed_tasks:
        changed.append(SELECTION)
    return _ok(_without_tasks(state, removed_tasks, **update), *changed)

# ---------------------------------------------------------------------------
# Links and team members
# ---------------------------------------------------------------------------

def _add_link(state: GanttState, link: Link) -> TransitionResult:
    if state.find_link(link.id) is not None:
        return _reject(state, DUPLICATE_ID, f"Link {link.id!r} already exists")
    for task_id in (link.source_task_id, link.target_task_id):
        if state.find_task(task_id) is None:
            return _reject(state, UNKNOWN_TASK, f"Task {task_id!r} does not exist")
    if link.source_task_id == link.target_task_id:
        return _reject(state, INVALID_LINK, "A task cannot depend on itself")
    return _ok(state.model_copy(update={"links": [*state.links, link]}), "links")

def _delete_link(state: GanttState, link_id: str) -> TransitionResult:
    if state.find_link(link_id) is None:
        return _noop(state)
    links = [link for link in state.links if link.id != link_id]
    return _ok(state.model_copy(update={"links": links}), "links")

def _delete_user(state: GanttState, user_id: str) -> TransitionResult:
    if state.find_user(user_id) is None:
        return _noop(state)
    update = {"users": [u for u in state.users if u.id != user_id]}
    changed = ["users"]
    if any(user_id in t.assignees for t in state.tasks):
        update["tasks"] = [
            t.model_copy(update={"assignees": [a for a in t.assignees if a != user_id]})
            if user_id in t.assignees else t
            for t in state.tasks
        ]
        changed.append("tasks")
    return _ok(state.model_copy(update=update), *changed)

# ---------------------------------------------------------------------------
# Selection and view
# ---------------------------------------------------------------------------

def _select(field_name: str, finder: str) -> Callable:
    def handler(state: GanttState, entity_id: Optional[str]) -> TransitionResult:
        if entity_id is not None and getattr(state, finder)(entity_id) is None:
            return _noop(state)
        if getattr(state, field_name) == entity_id:
            return _noop(state)
        return _ok(state.model_copy(update={field_name: entity_id}), SELECTION)
    return handler

def _set_view(state: GanttState, view) -> TransitionResult:
    if state.current_view == view:
        return _noop(state)
    return _ok(state.model_copy(update={"current_view": view}), VIEW)

def _set_zoom(state: GanttState, zoom: int) -> TransitionResult:
    zoom = clamp(zoom, ZOOM_MIN, ZOOM_MAX)
    if state.zoom_level == zoom:
        return _noop(state)
    return _ok(state.model_copy(update={"zoom_level": zoom}), VIEW)

def _set_selected_date(state: GanttState, date) -> TransitionResult:
    if state.selected_date == date:
        return _noop(state)
    return _ok(state.model_copy(update={"selected_date": date}), SELECTION)

_HANDLERS: Dict[str, Callable] = {
    "SET_STATE": _set_state,
    "SET_TASKS": _set_collection("tasks"),
    "SET_LINKS": _set_collection("links"),
    "SET_PROJECTS": _set_collection("projects"),
    "SET_SECTIONS": _set_collection("sections"),
    "SET_USERS": _set_collection("users"),
    "ADD_TASK": _add_task,
    "ADD_PROJECT": _add_project,
    "ADD_SECTION": _add_section,
    "ADD_LINK": _add_link,
    "UPDATE_TASK": _update_task,
    "UPDATE_PROJECT": _update_project,
    "UPDATE_SECTION": _update_section,
    "UPDATE_TASK_STATUS": _update_task_status,
    "UPDATE_TASK_DATES": _update_task_dates,
    "DELETE_TASK": _delete_task,
    "DELETE_PROJECT": _delete_project,
    "DELETE_SECTION": _delete_section,
    "DELETE_LINK": _delete_link,
    "DELETE_USER": _delete_user,
    "SELECT_TASK": _select("selected_task_id", "find_task"),
    "SELECT_PROJECT": _select("selected_project_id", "find_project"),
    "SELECT_SECTION": _select("selected_section_id", "find_section"),
    "SET_VIEW": _set_view,
    "SET_ZOOM": _set_zoom,
    "SET_SELECTED_DATE": _set_selected_date,
}
