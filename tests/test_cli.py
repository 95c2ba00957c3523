"""End-to-end tests for the click command line."""

import re
import pytest
from click.testing import CliRunner

from ganttkit.cli import main
from ganttkit.data import FileStore, SnapshotStore
from ganttkit.models import TaskStatus

ID_PATTERN = re.compile(r"\(([^()]+)\)\s*$")


@pytest.fixture
def cli(tmp_path):
    runner = CliRunner()

    def invoke(*args, expect=0):
        result = runner.invoke(main, ["--data-dir", str(tmp_path), *args])
        assert result.exit_code == expect, result.output
        return result

    return invoke


def _created_id(result) -> str:
    return ID_PATTERN.search(result.output.strip().splitlines()[-1]).group(1)


def _saved_state(tmp_path):
    return SnapshotStore(FileStore(tmp_path)).load()


@pytest.fixture
def seeded(cli):
    """A project with one section and one task, created through the CLI."""
    project_id = _created_id(cli("project", "add", "Launch"))
    section_id = _created_id(cli("section", "add", project_id, "Build"))
    task_id = _created_id(cli("task", "add", "Write code", "--start", "2024-01-01", "--end", "2024-01-05",
                              "--project", project_id, "--section", section_id))
    return project_id, section_id, task_id


class TestCommands:
    """Test the command groups against a real data directory."""

    def test_version(self, cli):
        assert "ganttkit" in cli("--version").output

    def test_status_on_empty_dir(self, cli):
        output = cli("status").output
        assert "Projects: 0" in output
        assert "View: gantt" in output

    def test_create_and_persist(self, cli, tmp_path, seeded):
        project_id, section_id, task_id = seeded
        state = _saved_state(tmp_path)
        task = state.find_task(task_id)
        assert task.project_id == project_id
        assert task.section_id == section_id
        assert "Write code" in cli("task", "list").output

    def test_rejected_task_exits_nonzero(self, cli, tmp_path):
        result = cli("task", "add", "Backwards", "--start", "2024-02-10", "--end", "2024-02-01", expect=1)
        assert "Invalid date range" in result.output
        assert _saved_state(tmp_path).tasks == []

    def test_status_and_progress(self, cli, tmp_path, seeded):
        task_id = seeded[2]
        cli("task", "status", task_id, "done")
        cli("task", "progress", task_id, "250")
        task = _saved_state(tmp_path).find_task(task_id)
        assert task.status == TaskStatus.DONE
        assert task.progress == 100

    def test_unknown_id_is_reported(self, cli):
        assert "Nothing to change" in cli("task", "delete", "ghost").output

    def test_delete_project_cascades(self, cli, tmp_path, seeded):
        project_id, _, task_id = seeded
        other = _created_id(cli("task", "add", "Other", "--start", "2024-01-01", "--end", "2024-01-02"))
        cli("link", "add", task_id, other)
        cli("project", "delete", project_id, "--yes")
        state = _saved_state(tmp_path)
        assert state.projects == [] and state.sections == []
        assert [t.id for t in state.tasks] == [other]
        assert state.links == []

    def test_team(self, cli, tmp_path, seeded):
        task_id = seeded[2]
        user_id = _created_id(cli("team", "add", "Ada", "--role", "dev"))
        cli("task", "assign", task_id, user_id)
        assert "Ada - dev" in cli("team", "list").output
        cli("team", "remove", user_id)
        state = _saved_state(tmp_path)
        assert state.users == []
        assert state.find_task(task_id).assignees == []

    def test_views(self, cli, tmp_path, seeded):
        board = cli("view", "board").output
        assert "== todo (1)" in board
        assert "== done (0)" in board
        assert "1 task(s)" in cli("view", "calendar", "2024-01-03").output
        gantt = cli("view", "gantt").output
        assert "▸ Launch" in gantt and "▸ Build" in gantt
        assert _saved_state(tmp_path).current_view.value == "gantt"

    def test_list_view(self, cli, tmp_path, seeded):
        cli("task", "add", "Alpha", "--start", "2024-01-02", "--end", "2024-01-03", "--priority", "high")
        output = cli("view", "list", "--sort", "priority", "--desc").output
        lines = [line for line in output.splitlines() if line.startswith("  [")]
        assert "Alpha" in lines[0] and "Write code" in lines[1]
        assert _saved_state(tmp_path).current_view.value == "list"

    def test_check(self, cli):
        assert "No integrity issues" in cli("check").output

    def test_backup_and_restore(self, cli, tmp_path, seeded):
        cli("backup", "create", "--name", "snap")
        backup_id = cli("backup", "list").output.split()[0]
        cli("task", "delete", seeded[2])
        assert _saved_state(tmp_path).tasks == []
        cli("backup", "restore", backup_id)
        assert [t.id for t in _saved_state(tmp_path).tasks] == [seeded[2]]

    def test_restore_unknown_backup(self, cli):
        assert "❌" in cli("backup", "restore", "nope", expect=1).output

    def test_export_import(self, cli, tmp_path, seeded):
        export_path = tmp_path / "exports" / "plan.yml"
        cli("export", str(export_path))
        cli("project", "delete", seeded[0], "--yes")
        cli("import", str(export_path))
        assert [t.id for t in _saved_state(tmp_path).tasks] == [seeded[2]]
