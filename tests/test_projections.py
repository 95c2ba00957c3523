"""Tests for the read-only view projections."""

import pytest
from datetime import date, datetime, timezone

from conftest import make_task, build
from ganttkit.actions import SelectTask, UpdateTask, AddTask
from ganttkit.models import Task, TaskStatus, TaskPatch
from ganttkit import projections


class TestFilter:
    """Test search and assignee filtering."""

    def test_search_name_and_description(self):
        tasks = [
            make_task("a", "Write API docs"),
            make_task("b", "Deploy", description="ship the api gateway"),
            make_task("c", "Retro"),
        ]
        assert [t.id for t in projections.filter_tasks(tasks, search="API")] == ["a", "b"]

    def test_assignee(self):
        tasks = [make_task("a", "A", assignees=["u1"]), make_task("b", "B", assignees=["u2"])]
        assert [t.id for t in projections.filter_tasks(tasks, assignee="u2")] == ["b"]

    def test_no_filters(self):
        tasks = [make_task("a", "A")]
        assert projections.filter_tasks(tasks) == tasks


class TestBoard:
    """Test the status columns."""

    def test_columns_in_order(self):
        tasks = [
            make_task("a", "A", status="done"),
            make_task("b", "B"),
            make_task("c", "C", status="in-progress"),
        ]
        columns = projections.board_columns(tasks)
        assert list(columns) == [TaskStatus.TODO, TaskStatus.IN_PROGRESS, TaskStatus.REVIEW, TaskStatus.DONE]
        assert [t.id for t in columns[TaskStatus.DONE]] == ["a"]
        assert columns[TaskStatus.REVIEW] == []

    def test_status_counts(self):
        tasks = [make_task("a", "A"), make_task("b", "B"), make_task("c", "C", status="review")]
        assert projections.status_counts(tasks) == {
            TaskStatus.TODO: 2, TaskStatus.IN_PROGRESS: 0, TaskStatus.REVIEW: 1, TaskStatus.DONE: 0,
        }


class TestCalendar:
    """Test which tasks show on a calendar day."""

    @pytest.mark.parametrize("day,expected", [
        (date(2024, 1, 1), True),
        (date(2024, 1, 3), True),
        (date(2024, 1, 5), True),
        (date(2024, 1, 6), False),
        (date(2023, 12, 31), False),
    ])
    def test_inclusive_bounds(self, day, expected):
        task = make_task(start=datetime(2024, 1, 1, 9), end=datetime(2024, 1, 5, 17))
        assert (projections.tasks_on_date([task], day) == [task]) is expected

    def test_accepts_datetime(self):
        task = make_task(start=datetime(2024, 1, 1, 9), end=datetime(2024, 1, 1, 10))
        assert projections.tasks_on_date([task], datetime(2024, 1, 1, 23, 59)) == [task]


class TestSorting:
    """Test list view sorting."""

    def test_priority_rank(self):
        tasks = [
            make_task("h", "H", priority="high"),
            make_task("l", "L", priority="low"),
            make_task("m", "M"),
        ]
        assert [t.id for t in projections.sorted_tasks(tasks, "priority")] == ["l", "m", "h"]
        assert [t.id for t in projections.sorted_tasks(tasks, "priority", descending=True)] == ["h", "m", "l"]

    def test_name_is_case_insensitive(self):
        tasks = [make_task("1", "beta"), make_task("2", "Alpha")]
        assert [t.name for t in projections.sorted_tasks(tasks, "name")] == ["Alpha", "beta"]

    def test_by_end_and_progress(self):
        tasks = [
            make_task("a", "A", end=datetime(2024, 1, 9), progress=90),
            make_task("b", "B", end=datetime(2024, 1, 2), progress=10),
        ]
        assert [t.id for t in projections.sorted_tasks(tasks, "end")] == ["b", "a"]
        assert [t.id for t in projections.sorted_tasks(tasks, "progress", descending=True)] == ["a", "b"]

    def test_offset_and_naive_starts(self):
        tasks = [
            make_task("late", "Late", start=datetime(2024, 1, 3)),
            Task.model_validate({"id": "early", "name": "Early", "start": "2024-01-02T00:00:00.000Z",
                                 "end": "2024-01-05T00:00:00.000Z"}),
            make_task("mid", "Mid", start=datetime(2024, 1, 2, 12, tzinfo=timezone.utc)),
        ]
        assert [t.id for t in projections.sorted_tasks(tasks, "start")] == ["early", "mid", "late"]
        assert [t.id for t in projections.tasks_on_date(tasks, date(2024, 1, 2))] == ["early", "mid"]

    def test_unknown_field(self):
        with pytest.raises(ValueError):
            projections.sorted_tasks([], "color")


class TestGanttRows:
    """Test project -> section grouping for the timeline."""

    def test_grouping(self, planned_state):
        rows = projections.gantt_rows(planned_state)
        assert [row.project.id for row in rows] == ["p1", "p2"]

        p1, p2 = rows
        assert [r.section.id if r.section else None for r in p1.sections] == ["s1", None]
        assert [t.id for t in p1.sections[0].tasks] == ["t1", "t2"]
        assert p1.sections[1].tasks == []
        assert [t.id for t in p2.sections[1].tasks] == ["t3"]
        assert p1.task_count() == 2

    def test_tasks_without_project(self, planned_state):
        state = build(planned_state, AddTask(payload=make_task("loose", "Loose")))
        rows = projections.gantt_rows(state)
        assert rows[-1].project is None
        assert [t.id for t in rows[-1].sections[0].tasks] == ["loose"]

    def test_offset_timestamps_in_rows(self, planned_state):
        task = make_task("utc", "Utc", start=datetime(2023, 12, 31, 22, tzinfo=timezone.utc), project_id="p2")
        state = build(planned_state, AddTask(payload=task))
        assert [t.id for t in projections.gantt_rows(state)[1].sections[1].tasks] == ["utc", "t3"]

    def test_filtered_subset(self, planned_state):
        subset = projections.filter_tasks(planned_state.tasks, search="T3")
        rows = projections.gantt_rows(planned_state, subset)
        assert rows[0].task_count() == 0
        assert rows[1].task_count() == 1


class TestSummaries:
    """Test small derived values."""

    def test_project_progress(self, planned_state):
        state = build(
            planned_state,
            UpdateTask(payload=TaskPatch(id="t1", progress=40)),
            UpdateTask(payload=TaskPatch(id="t2", progress=80)),
        )
        assert projections.project_progress(state, "p1") == 60
        assert projections.project_progress(state, "nope") is None

    def test_selected_task(self, planned_state):
        assert projections.selected_task(planned_state) is None
        state = build(planned_state, SelectTask(payload="t2"))
        assert projections.selected_task(state).id == "t2"
