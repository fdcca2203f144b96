"""Read tasks from Asana and normalize them for Taskwarrior."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from itertools import islice
from typing import Iterator

import structlog

from asanawarrior.client import API_BASE, Connection, get_various, run_getter
from asanawarrior.errors import InvariantViolationError, TimestampParseError
from asanawarrior.models import (
    BasicRecord,
    NormalizedTask,
    RemoteTask,
    parse_stamp,
    task_data,
)

# Fields to request for every project's task list
TASK_FIELDS = ("assignee", "name", "tags", "completed_at", "modified_at", "created_at")

log = structlog.get_logger("asanawarrior.asana_reader")


@dataclass(frozen=True)
class ReferenceMaps:
    """Lookups used to turn nested ids into display values."""

    tags: dict[int, str] = field(default_factory=dict)
    users: dict[int, str] = field(default_factory=dict)

    def tag_name(self, tag_id: int) -> str:
        return self.tags.get(tag_id, "")

    def user_handle(self, user_id: int) -> str:
        return self.users.get(user_id, "")


def local_handle(email: str) -> str:
    """``jane@example.com`` -> ``jane``."""
    return email.split("@", 1)[0]


def build_reference_maps(conn: Connection) -> ReferenceMaps:
    """Fetch all tags and users and index them by id."""
    alltags = get_various(conn, "tags")
    allusers = get_various(conn, "users", "email")

    maps = ReferenceMaps(
        tags={t.id: t.name for t in alltags},
        users={u.id: local_handle(u.email) for u in allusers},
    )
    log.debug("reference_maps_built", tags=len(maps.tags), users=len(maps.users))
    return maps


def section_label(name: str) -> str:
    """Keep only ASCII letters and digits: ``"Sub-tasks:"`` -> ``"Subtasks"``."""
    return "".join(
        c for c in name if "A" <= c <= "Z" or "a" <= c <= "z" or "0" <= c <= "9"
    )


def is_section_header(name: str) -> bool:
    return name.endswith(":")


@dataclass
class SectionState:
    """The section label carried from header tasks onto the tasks after them."""

    label: str = ""

    def enter(self, header: str) -> None:
        self.label = section_label(header)
        log.debug("section_changed", section=self.label)

    def reset(self) -> None:
        self.label = ""


def _stamp(value: str, field_name: str) -> datetime:
    try:
        return parse_stamp(value)
    except ValueError as e:
        raise TimestampParseError(field_name, value, str(e)) from e


def _completed_stamp(value: str) -> datetime | None:
    if value:
        return _stamp(value, "completed at")
    return None


def normalize_task(
    task: RemoteTask,
    project: BasicRecord,
    maps: ReferenceMaps,
    section: str,
) -> NormalizedTask:
    """Build the local record for a regular (non-header, named) task."""
    modified = _stamp(task.modified_at, "modified at")
    created = _stamp(task.created_at, "created at")
    completed = _completed_stamp(task.completed_at)
    if not task.completed_at and completed is not None:
        raise InvariantViolationError(
            f"task {task.id}: completion time set without a completed_at value"
        )

    return NormalizedTask(
        name=task.name,
        project=project.name,
        remote_id=task.id,
        assignee=maps.user_handle(task.assignee.id),
        tags=[maps.tag_name(t.id) for t in task.tags],
        created=created,
        modified=modified,
        completed=completed,
        section=section,
    )


def iter_tasks(conn: Connection, *, carry_sections: bool = True) -> Iterator[NormalizedTask]:
    """Lazily yield normalized tasks, project by project.

    Nothing is fetched until the first task is requested, and a project's
    tasks are only fetched once every task of the previous project has been
    consumed. With ``carry_sections`` the current section survives project
    boundaries.
    """
    maps = build_reference_maps(conn)
    projects = get_various(conn, "projects")
    log.debug("projects_fetched", count=len(projects))

    section = SectionState()
    for proj in projects:
        if not carry_sections:
            section.reset()
        tasks = run_getter(conn, task_data, f"projects/{proj.id}/tasks", *TASK_FIELDS)
        for tsk in tasks:
            if not tsk.name:
                # Don't sync unnamed tasks.
                continue
            if is_section_header(tsk.name):
                section.enter(tsk.name)
                continue
            yield normalize_task(tsk, proj, maps, section.label)


def get_tasks(
    conn: Connection, max_tasks: int, *, carry_sections: bool = True
) -> list[NormalizedTask]:
    """Return at most ``max_tasks`` normalized tasks in discovery order."""
    if max_tasks < 1:
        raise ValueError(f"max_tasks must be a positive integer, got {max_tasks}")

    stream = iter_tasks(conn, carry_sections=carry_sections)
    try:
        result = list(islice(stream, max_tasks))
    finally:
        stream.close()

    if len(result) == max_tasks:
        # later tasks, if any, were never fetched
        log.info("task_cap_filled", max_tasks=max_tasks)
    return result


def fetch_asana_tasks(
    config: dict, *, token: str | None = None, max_tasks: int | None = None
) -> list[NormalizedTask]:
    """Fetch tasks using the ``[asana]`` and ``[sync]`` config sections."""
    asana_cfg = config.get("asana", {})
    sync_cfg = config.get("sync", {})

    token = token or asana_cfg.get("personal_access_token", "")
    if not token or token == "YOUR_TOKEN_HERE":
        raise RuntimeError(
            "Asana personal access token not configured. "
            "Run 'asanawarrior setup', set ASANA_TOKEN, "
            "or edit ~/.config/asanawarrior/config.toml"
        )

    conn = Connection(
        token=token,
        base_url=asana_cfg.get("base_url") or API_BASE,
        timeout=asana_cfg.get("timeout"),
    )
    if max_tasks is None:
        max_tasks = int(sync_cfg.get("max_tasks", 1000))
    return get_tasks(conn, max_tasks, carry_sections=sync_cfg.get("carry_sections", True))
