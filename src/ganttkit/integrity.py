"""
Integrity diagnostics for snapshots that entered through trusted bulk paths
(SET_* actions, imports, hand-edited store files) and so skipped validation.
"""
from collections import Counter
from typing import List, Tuple

from pydantic import BaseModel, Field

from ganttkit.logs import get_logger
from ganttkit.models import GanttState

log = get_logger("integrity")

class IntegrityIssue(BaseModel):
    kind: str = Field(description="Machine readable issue type")
    entity_id: str = Field(description="Id of the offending entity")
    message: str = Field(description="Human readable explanation")

class IntegrityReport(BaseModel):
    issues: List[IntegrityIssue] = Field(default_factory=list)
    fixed: List[str] = Field(default_factory=list, description="Descriptions of repairs that were made")

    @property
    def ok(self) -> bool:
        return not self.issues

    def of_kind(self, kind: str) -> List[IntegrityIssue]:
        return [issue for issue in self.issues if issue.kind == kind]

def _duplicates(ids) -> List[str]:
    return [entity_id for entity_id, count in Counter(ids).items() if count > 1]

def check_integrity(state: GanttState) -> IntegrityReport:
    report = IntegrityReport()

    def issue(kind, entity_id, message):
        report.issues.append(IntegrityIssue(kind=kind, entity_id=entity_id, message=message))

    for collection in ("projects", "sections", "tasks", "links", "users"):
        for entity_id in _duplicates(e.id for e in getattr(state, collection)):
            issue("duplicate_id", entity_id, f"Id {entity_id!r} appears more than once in {collection}")

    project_ids = {p.id for p in state.projects}
    sections = {s.id: s for s in state.sections}
    task_ids = {t.id for t in state.tasks}
    user_ids = {u.id for u in state.users}

    for section in state.sections:
        if section.project_id not in project_ids:
            issue("orphan_section", section.id, f"Section {section.name!r} references missing project {section.project_id!r}")

    for task in state.tasks:
        if task.project_id is not None and task.project_id not in project_ids:
            issue("orphan_task", task.id, f"Task {task.name!r} references missing project {task.project_id!r}")
        if task.section_id is not None:
            section = sections.get(task.section_id)
            if section is None:
                issue("unknown_section", task.id, f"Task {task.name!r} references missing section {task.section_id!r}")
            elif section.project_id != task.project_id:
                issue("section_project_mismatch", task.id,
                      f"Task {task.name!r} is in section {section.id!r} of another project")
        if not task.has_valid_range():
            issue("invalid_date_range", task.id, f"Task {task.name!r} starts after it ends")
        for assignee in task.assignees:
            if assignee not in user_ids:
                issue("dangling_assignee", task.id, f"Task {task.name!r} is assigned to unknown member {assignee!r}")

    for project in state.projects:
        if not project.has_valid_range():
            issue("invalid_date_range", project.id, f"Project {project.name!r} starts after it ends")

    for link in state.links:
        if link.source_task_id not in task_ids or link.target_task_id not in task_ids:
            issue("dangling_link", link.id, f"Link {link.id!r} points at a missing task")

    if report.issues:
        log.warning(f"Integrity check found {len(report.issues)} issue(s)")
    return report

def _first_of_each(items) -> list:
    seen = set()
    kept = []
    for item in items:
        if item.id not in seen:
            seen.add(item.id)
            kept.append(item)
    return kept

def repair(state: GanttState) -> Tuple[GanttState, IntegrityReport]:
    """
    Return a repaired copy of the snapshot and the report of what was wrong.

    Duplicates keep their first occurrence, orphaned sections and tasks are
    dropped, unknown section ids are detached (a mismatched section moves the
    task to the section's project), inverted date ranges are swapped, dangling
    assignees and links are pruned.
    """
    report = check_integrity(state)
    if report.ok:
        return state, report

    projects = _first_of_each(state.projects)
    project_ids = {p.id for p in projects}
    sections = [s for s in _first_of_each(state.sections) if s.project_id in project_ids]
    section_by_id = {s.id: s for s in sections}
    user_ids = {u.id for u in state.users}

    projects = [p if p.has_valid_range() else p.model_copy(update={"start": p.end, "end": p.start}) for p in projects]

    tasks = []
    for task in _first_of_each(state.tasks):
        update = {}
        if task.section_id is not None:
            section = section_by_id.get(task.section_id)
            if section is None:
                update["section_id"] = None
            elif section.project_id != task.project_id:
                update["project_id"] = section.project_id
        project_id = update.get("project_id", task.project_id)
        if project_id is not None and project_id not in project_ids:
            report.fixed.append(f"dropped orphan task {task.id}")
            continue
        if not task.has_valid_range():
            update["start"], update["end"] = task.end, task.start
        assignees = [a for a in task.assignees if a in user_ids]
        if assignees != task.assignees:
            update["assignees"] = assignees
        if update:
            report.fixed.append(f"repaired task {task.id}: {', '.join(sorted(update))}")
            task = task.model_copy(update=update)
        tasks.append(task)

    task_ids = {t.id for t in tasks}
    links = [
        link for link in _first_of_each(state.links)
        if link.source_task_id in task_ids and link.target_task_id in task_ids
    ]

    dropped_sections = len(state.sections) - len(sections)
    if dropped_sections:
        report.fixed.append(f"dropped {dropped_sections} section(s)")
    dropped_links = len(state.links) - len(links)
    if dropped_links:
        report.fixed.append(f"dropped {dropped_links} link(s)")

    repaired = state.model_copy(update={
        "projects": projects,
        "sections": sections,
        "tasks": tasks,
        "links": links,
        "users": _first_of_each(state.users),
        "selected_task_id": state.selected_task_id if state.selected_task_id in task_ids else None,
        "selected_project_id": state.selected_project_id if state.selected_project_id in project_ids else None,
        "selected_section_id": state.selected_section_id if state.selected_section_id in section_by_id else None,
    })
    log.info(f"Repair made {len(report.fixed)} fix(es)")
    return repaired, report
