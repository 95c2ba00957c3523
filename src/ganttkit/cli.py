"""
Command Line Interface for ganttkit.
"""

import uuid
from datetime import datetime
from pathlib import Path

import click

from .version import VERSION
from .config import load_settings
from .data import SnapshotStore, BackupManager, export_snapshot, import_snapshot
from .engine import GanttEngine
from .integrity import check_integrity, repair
from .models import Task, Project, Section, Link, User, TaskStatus, Priority, LinkKind, ViewType, StatusChange, DateChange, TaskPatch
from .actions import (
    AddTask, AddProject, AddSection, AddLink, SetUsers, DeleteUser,
    DeleteTask, DeleteProject, DeleteSection, DeleteLink,
    UpdateTask, UpdateTaskStatus, UpdateTaskDates, SetView,
)
from .projections import filter_tasks, sorted_tasks, board_columns, tasks_on_date, gantt_rows, SORT_FIELDS
from .recovery import GanttError

DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M"]

def _new_id() -> str:
    return uuid.uuid4().hex[:8]

def _engine(ctx) -> GanttEngine:
    if 'engine' not in ctx.obj:
        ctx.obj['engine'] = GanttEngine(SnapshotStore.from_settings(ctx.obj['settings']))
    return ctx.obj['engine']

def _report(ctx, result, success: str):
    """Echo the outcome of a dispatch; rejected actions exit with status 1."""
    if result.error is not None:
        click.echo(f"❌ {result.error.message}")
        ctx.exit(1)
    elif not result.applied:
        click.echo("ℹ️  Nothing to change (unknown id or same value)")
    else:
        click.echo(f"✅ {success}")

def _format_task(task: Task) -> str:
    who = f" @{','.join(task.assignees)}" if task.assignees else ""
    return (f"[{task.id}] {task.name} ({task.status.value}, {task.priority.value}, {task.progress}%) "
            f"{task.start:%Y-%m-%d} → {task.end:%Y-%m-%d}{who}")

@click.group()
@click.version_option(version=VERSION, prog_name="ganttkit")
@click.option('--data-dir', type=click.Path(file_okay=False, path_type=Path), default=None,
              help='Directory holding the persisted snapshot')
@click.pass_context
def main(ctx, data_dir):
    """
    ganttkit - projects, sections, tasks and dependencies in one planner state.
    """
    settings = load_settings()
    if data_dir is not None:
        settings = settings.model_copy(update={'data_dir': data_dir, 'backup_dir': data_dir / 'backups'})
    ctx.ensure_object(dict)
    ctx.obj['settings'] = settings

@main.command()
@click.pass_context
def status(ctx):
    """Show what the planner currently holds."""
    state = _engine(ctx).state
    click.echo("🔧 ganttkit")
    click.echo(f"📦 Version: {VERSION}")
    click.echo(f"📁 Data: {ctx.obj['settings'].data_dir}")
    click.echo(f"📋 Projects: {len(state.projects)}  Sections: {len(state.sections)}  "
               f"Tasks: {len(state.tasks)}  Links: {len(state.links)}  Team: {len(state.users)}")
    click.echo(f"👁️  View: {state.current_view.value} (zoom {state.zoom_level})")

# --- Projects ---

@main.group()
def project():
    """Manage projects."""

@project.command('add')
@click.argument('name')
@click.option('--color', default='#3b82f6', show_default=True)
@click.option('--description', default=None)
@click.option('--start', type=click.DateTime(DATE_FORMATS), default=None)
@click.option('--end', type=click.DateTime(DATE_FORMATS), default=None)
@click.pass_context
def project_add(ctx, name, color, description, start, end):
    """Create a project."""
    new = Project(id=_new_id(), name=name, color=color, description=description, start=start, end=end)
    _report(ctx, _engine(ctx).dispatch(AddProject(payload=new)), f"Project {name!r} created ({new.id})")

@project.command('list')
@click.pass_context
def project_list(ctx):
    """List projects with their sections."""
    state = _engine(ctx).state
    if not state.projects:
        click.echo("No projects yet")
        return
    for p in state.projects:
        click.echo(f"[{p.id}] {p.name} ({p.status.value})")
        for s in state.sections:
            if s.project_id == p.id:
                click.echo(f"    [{s.id}] {s.name}")

@project.command('delete')
@click.argument('project_id')
@click.confirmation_option(prompt='Delete the project with all its sections and tasks?')
@click.pass_context
def project_delete(ctx, project_id):
    """Delete a project, its sections, tasks and their links."""
    _report(ctx, _engine(ctx).dispatch(DeleteProject(payload=project_id)), "Project and all associated items deleted")

# --- Sections ---

@main.group()
def section():
    """Manage sections."""

@section.command('add')
@click.argument('project_id')
@click.argument('name')
@click.option('--color', default='#64748b', show_default=True)
@click.pass_context
def section_add(ctx, project_id, name, color):
    """Create a section inside a project."""
    new = Section(id=_new_id(), project_id=project_id, name=name, color=color)
    _report(ctx, _engine(ctx).dispatch(AddSection(payload=new)), f"Section {name!r} created ({new.id})")

@section.command('delete')
@click.argument('section_id')
@click.confirmation_option(prompt='Delete the section and all tasks within it?')
@click.pass_context
def section_delete(ctx, section_id):
    """Delete a section and its tasks."""
    _report(ctx, _engine(ctx).dispatch(DeleteSection(payload=section_id)), "Section and its tasks deleted")

# --- Tasks ---

@main.group()
def task():
    """Manage tasks."""

@task.command('add')
@click.argument('name')
@click.option('--start', type=click.DateTime(DATE_FORMATS), required=True)
@click.option('--end', type=click.DateTime(DATE_FORMATS), required=True)
@click.option('--project', 'project_id', default=None)
@click.option('--section', 'section_id', default=None)
@click.option('--priority', type=click.Choice([p.value for p in Priority]), default='medium', show_default=True)
@click.option('--assignee', 'assignees', multiple=True)
@click.option('--description', default=None)
@click.pass_context
def task_add(ctx, name, start, end, project_id, section_id, priority, assignees, description):
    """Create a task."""
    new = Task(id=_new_id(), name=name, start=start, end=end, project_id=project_id, section_id=section_id,
               priority=priority, assignees=list(assignees), description=description)
    _report(ctx, _engine(ctx).dispatch(AddTask(payload=new)), f"Task {name!r} created ({new.id})")

@task.command('list')
@click.option('--search', default=None, help='Match name or description')
@click.option('--assignee', default=None, help='Only tasks assigned to this member id')
@click.option('--sort', 'sort_field', type=click.Choice(SORT_FIELDS), default='start', show_default=True)
@click.option('--desc', is_flag=True, default=False)
@click.pass_context
def task_list(ctx, search, assignee, sort_field, desc):
    """List tasks (the list view)."""
    tasks = sorted_tasks(filter_tasks(_engine(ctx).state.tasks, search, assignee), sort_field, desc)
    if not tasks:
        click.echo("No matching tasks")
    for t in tasks:
        click.echo(_format_task(t))

@task.command('status')
@click.argument('task_id')
@click.argument('new_status', type=click.Choice([s.value for s in TaskStatus]))
@click.pass_context
def task_status(ctx, task_id, new_status):
    """Move a task to another board column."""
    action = UpdateTaskStatus(payload=StatusChange(task_id=task_id, status=new_status))
    _report(ctx, _engine(ctx).dispatch(action), f"Task moved to {new_status}")

@task.command('dates')
@click.argument('task_id')
@click.argument('start', type=click.DateTime(DATE_FORMATS))
@click.argument('end', type=click.DateTime(DATE_FORMATS))
@click.pass_context
def task_dates(ctx, task_id, start, end):
    """Reschedule a task."""
    action = UpdateTaskDates(payload=DateChange(task_id=task_id, start=start, end=end))
    _report(ctx, _engine(ctx).dispatch(action), "Task rescheduled")

@task.command('progress')
@click.argument('task_id')
@click.argument('value', type=int)
@click.pass_context
def task_progress(ctx, task_id, value):
    """Set completion percentage (clamped into 0-100)."""
    _report(ctx, _engine(ctx).dispatch(UpdateTask(payload=TaskPatch(id=task_id, progress=value))), "Progress updated")

@task.command('assign')
@click.argument('task_id')
@click.argument('user_ids', nargs=-1)
@click.pass_context
def task_assign(ctx, task_id, user_ids):
    """Replace a task's assignees."""
    patch = TaskPatch(id=task_id, assignees=list(user_ids))
    _report(ctx, _engine(ctx).dispatch(UpdateTask(payload=patch)), "Assignees updated")

@task.command('delete')
@click.argument('task_id')
@click.pass_context
def task_delete(ctx, task_id):
    """Delete a task and its links."""
    _report(ctx, _engine(ctx).dispatch(DeleteTask(payload=task_id)), "Task deleted")

# --- Links ---

@main.group()
def link():
    """Manage dependencies between tasks."""

@link.command('add')
@click.argument('source_task_id')
@click.argument('target_task_id')
@click.option('--kind', type=click.Choice([k.value for k in LinkKind]), default='finish_to_start', show_default=True)
@click.pass_context
def link_add(ctx, source_task_id, target_task_id, kind):
    """Make TARGET depend on SOURCE."""
    new = Link(id=_new_id(), source_task_id=source_task_id, target_task_id=target_task_id, kind=kind)
    _report(ctx, _engine(ctx).dispatch(AddLink(payload=new)), f"Link created ({new.id})")

@link.command('delete')
@click.argument('link_id')
@click.pass_context
def link_delete(ctx, link_id):
    """Remove a dependency."""
    _report(ctx, _engine(ctx).dispatch(DeleteLink(payload=link_id)), "Link deleted")

# --- Team ---

@main.group()
def team():
    """Manage team members."""

@team.command('add')
@click.argument('name')
@click.option('--color', default='#10b981', show_default=True)
@click.option('--role', default=None)
@click.pass_context
def team_add(ctx, name, color, role):
    """Add a team member."""
    engine = _engine(ctx)
    member = User(id=f"user-{_new_id()}", name=name, color=color, role=role)
    _report(ctx, engine.dispatch(SetUsers(payload=[*engine.state.users, member])), f"Added {name!r} ({member.id})")

@team.command('list')
@click.pass_context
def team_list(ctx):
    """List team members."""
    for u in _engine(ctx).state.users:
        click.echo(f"[{u.id}] {u.name}" + (f" - {u.role}" if u.role else ""))

@team.command('remove')
@click.argument('user_id')
@click.pass_context
def team_remove(ctx, user_id):
    """Remove a team member and unassign them from every task."""
    _report(ctx, _engine(ctx).dispatch(DeleteUser(payload=user_id)), "Team member removed")

# --- Views ---

@main.group()
def view():
    """Show the planner through one of its views."""

@view.command('board')
@click.option('--search', default=None)
@click.option('--assignee', default=None)
@click.pass_context
def view_board(ctx, search, assignee):
    """Kanban board grouped by status."""
    engine = _engine(ctx)
    engine.dispatch(SetView(payload=ViewType.BOARD))
    for status_, tasks in board_columns(filter_tasks(engine.state.tasks, search, assignee)).items():
        click.echo(f"== {status_.value} ({len(tasks)})")
        for t in tasks:
            click.echo(f"  {_format_task(t)}")

@view.command('calendar')
@click.argument('day', type=click.DateTime(DATE_FORMATS), required=False)
@click.pass_context
def view_calendar(ctx, day):
    """Tasks active on a day (defaults to today)."""
    engine = _engine(ctx)
    engine.dispatch(SetView(payload=ViewType.CALENDAR))
    day = day or datetime.now()
    tasks = tasks_on_date(engine.state.tasks, day)
    click.echo(f"📅 {day:%Y-%m-%d}: {len(tasks)} task(s)")
    for t in tasks:
        click.echo(f"  {_format_task(t)}")

@view.command('list')
@click.option('--search', default=None)
@click.option('--assignee', default=None)
@click.option('--sort', 'sort_field', type=click.Choice(SORT_FIELDS), default='start', show_default=True)
@click.option('--desc', is_flag=True, default=False)
@click.pass_context
def view_list(ctx, search, assignee, sort_field, desc):
    """Sortable task table."""
    engine = _engine(ctx)
    engine.dispatch(SetView(payload=ViewType.LIST))
    tasks = sorted_tasks(filter_tasks(engine.state.tasks, search, assignee), sort_field, desc)
    click.echo(f"📋 {len(tasks)} task(s) sorted by {sort_field}{' (desc)' if desc else ''}")
    for t in tasks:
        click.echo(f"  {_format_task(t)}")

@view.command('gantt')
@click.pass_context
def view_gantt(ctx):
    """Timeline rows grouped by project and section."""
    engine = _engine(ctx)
    engine.dispatch(SetView(payload=ViewType.GANTT))
    for row in gantt_rows(engine.state):
        click.echo(f"▸ {row.project.name if row.project else 'No project'}")
        for section_row in row.sections:
            if section_row.section is None and not section_row.tasks:
                continue
            click.echo(f"  ▸ {section_row.section.name if section_row.section else 'Unsectioned'}")
            for t in section_row.tasks:
                click.echo(f"    {_format_task(t)}")

# --- Maintenance ---

@main.command()
@click.option('--repair', 'do_repair', is_flag=True, default=False, help='Fix the issues that were found')
@click.pass_context
def check(ctx, do_repair):
    """Check the snapshot for dangling references and broken invariants."""
    engine = _engine(ctx)
    if do_repair:
        repaired, report = repair(engine.state)
        if not report.ok:
            engine.restore(repaired)
        for fix in report.fixed:
            click.echo(f"🔧 {fix}")
    else:
        report = check_integrity(engine.state)
    if report.ok:
        click.echo("✅ No integrity issues found")
        return
    for issue in report.issues:
        click.echo(f"⚠️  {issue.kind}: {issue.message}")
    if not do_repair:
        ctx.exit(1)

@main.group()
def backup():
    """Create and restore snapshot backups."""

def _backups(ctx) -> BackupManager:
    return BackupManager(ctx.obj['settings'].backup_dir)

@backup.command('create')
@click.option('--name', default=None)
@click.pass_context
def backup_create(ctx, name):
    """Back up the current snapshot."""
    path = _backups(ctx).create_backup(_engine(ctx).state, name)
    click.echo(f"💾 Backup written to {path}")

@backup.command('list')
@click.pass_context
def backup_list(ctx):
    """List backups, newest first."""
    backups = _backups(ctx).list_backups()
    if not backups:
        click.echo("No backups yet")
    for b in backups:
        counts = b.get('counts', {})
        click.echo(f"{b['backup_id']}  {b.get('created_at')}  tasks={counts.get('tasks', '?')}")

@backup.command('restore')
@click.argument('backup_id')
@click.pass_context
def backup_restore(ctx, backup_id):
    """Restore a backup (a safety backup of the current state is taken first)."""
    engine = _engine(ctx)
    try:
        restored = _backups(ctx).restore_backup(backup_id, current=engine.state)
    except (FileNotFoundError, GanttError) as e:
        click.echo(f"❌ {e}")
        ctx.exit(1)
    engine.restore(restored)
    click.echo(f"✅ Restored {backup_id}")

@backup.command('cleanup')
@click.option('--keep', type=int, default=None, help='How many backups to keep')
@click.pass_context
def backup_cleanup(ctx, keep):
    """Delete all but the most recent backups."""
    keep = keep or ctx.obj['settings'].backup_keep
    deleted = _backups(ctx).cleanup_old_backups(keep)
    click.echo(f"🧹 Deleted {deleted} backup(s)")

@main.command('export')
@click.argument('path', type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def export_cmd(ctx, path):
    """Export the snapshot to a JSON or YAML file."""
    export_snapshot(_engine(ctx).state, path)
    click.echo(f"📤 Exported to {path}")

@main.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_cmd(ctx, path):
    """Replace the snapshot with one from a JSON or YAML file."""
    try:
        imported = import_snapshot(path)
    except GanttError as e:
        click.echo(f"❌ {e}")
        ctx.exit(1)
    _engine(ctx).restore(imported)
    click.echo(f"📥 Imported {len(imported.tasks)} task(s) from {path}")

if __name__ == '__main__':
    main()
