"""Shared fixtures for the ganttkit test suite."""

import os
import tempfile

# Keep the import-time log file out of the user's home directory
os.environ.setdefault("GANTTKIT_LOG_DIR", tempfile.mkdtemp(prefix="ganttkit-logs-"))

from datetime import datetime

import pytest

from ganttkit.actions import AddProject, AddSection, AddTask, AddLink
from ganttkit.data import MemoryStore, SnapshotStore
from ganttkit.engine import GanttEngine
from ganttkit.models import GanttState, Project, Section, Task, Link
from ganttkit.reducer import apply
from ganttkit.recovery import StoreWriteError


class FailingStore(MemoryStore):
    """Store whose writes always fail, like a full disk or a revoked quota."""

    def set(self, key, value):
        raise StoreWriteError(f"quota exceeded for {key}")


def make_task(task_id="t1", name="Task", start=datetime(2024, 1, 1), end=datetime(2024, 1, 5), **kwargs):
    return Task(id=task_id, name=name, start=start, end=end, **kwargs)


def build(state, *actions):
    """Apply actions one after another, failing loudly on any rejection."""
    for action in actions:
        result = apply(state, action)
        assert result.error is None, result.error
        state = result.state
    return state


@pytest.fixture
def empty_state():
    return GanttState(selected_date=datetime(2024, 1, 1))


@pytest.fixture
def planned_state(empty_state):
    """P1 with section S1 holding T1 and T2 (linked), plus P2 with T3 linked from T1."""
    return build(
        empty_state,
        AddProject(payload=Project(id="p1", name="P1", color="#f00")),
        AddProject(payload=Project(id="p2", name="P2", color="#0f0")),
        AddSection(payload=Section(id="s1", project_id="p1", name="S1", color="#00f")),
        AddSection(payload=Section(id="s2", project_id="p2", name="S2", color="#00f")),
        AddTask(payload=make_task("t1", "T1", project_id="p1", section_id="s1")),
        AddTask(payload=make_task("t2", "T2", project_id="p1", section_id="s1")),
        AddTask(payload=make_task("t3", "T3", project_id="p2")),
        AddLink(payload=Link(id="l1", source_task_id="t1", target_task_id="t2")),
        AddLink(payload=Link(id="l2", source_task_id="t1", target_task_id="t3")),
        AddLink(payload=Link(id="l3", source_task_id="t3", target_task_id="t2")),
    )


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def engine(memory_store):
    return GanttEngine(SnapshotStore(memory_store))
