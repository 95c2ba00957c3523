"""
ganttkit - a scheduling state engine for projects, sections, tasks and dependencies.

One authoritative snapshot is changed only through action messages applied by
a pure transition function; the engine persists every committed snapshot and
publishes change notifications so gantt, board, calendar and list views stay
consistent.
"""

from .version import VERSION, SNAPSHOT_SCHEMA_VERSION
from .models import (
    TaskStatus,
    Priority,
    ProjectStatus,
    LinkKind,
    ViewType,
    Task,
    Project,
    Section,
    Link,
    User,
    GanttState,
)
from .reducer import apply, TransitionResult, ValidationFailure
from .actions import parse_action
from .events import EventBus, STATE_CHANGED, DATA_UPDATED
from .engine import GanttEngine

__version__ = VERSION

__all__ = [
    "VERSION",
    "SNAPSHOT_SCHEMA_VERSION",
    "TaskStatus",
    "Priority",
    "ProjectStatus",
    "LinkKind",
    "ViewType",
    "Task",
    "Project",
    "Section",
    "Link",
    "User",
    "GanttState",
    "apply",
    "TransitionResult",
    "ValidationFailure",
    "parse_action",
    "EventBus",
    "STATE_CHANGED",
    "DATA_UPDATED",
    "GanttEngine",
]
