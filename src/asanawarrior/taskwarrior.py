"""Taskwarrior integration: UDA setup, task upsert, and duplicate detection."""

from __future__ import annotations

from tasklib import Task, TaskWarrior

from asanawarrior.models import NormalizedTask

EXTERNAL_ID_FIELD = "asana_id"

# UDAs that must exist in Taskwarrior config for sync to work
REQUIRED_UDAS = {
    EXTERNAL_ID_FIELD: {"type": "string", "label": "Asana ID"},
    "asana_section": {"type": "string", "label": "Asana section"},
    "asana_assignee": {"type": "string", "label": "Asana assignee"},
    "source": {"type": "string", "label": "Sync source"},
}

# Fields build_task_data leaves out when Asana has no value for them
CLEARABLE_FIELDS = ("project", "asana_section", "asana_assignee")


def missing_udas(tw: TaskWarrior) -> list[str]:
    return [name for name in REQUIRED_UDAS if f"uda.{name}.type" not in tw.config]


def ensure_udas(tw: TaskWarrior) -> list[str]:
    """Declare the Asana UDAs in the user's taskrc. Returns the names added."""
    added = missing_udas(tw)
    for name in added:
        for attr, value in REQUIRED_UDAS[name].items():
            tw.execute_command(
                ["config", f"uda.{name}.{attr}", value],
                config_override={"confirmation": "off"},
                allow_failure=False,
            )
    return added


def get_tw() -> TaskWarrior:
    return TaskWarrior(create=True)


def find_by_external_id(tw: TaskWarrior, value: str) -> Task | None:
    """Find a task by its Asana ID, preferring open tasks over completed ones."""
    for status in ("pending", "waiting", "completed"):
        tasks = tw.tasks.filter(status=status, **{EXTERNAL_ID_FIELD: value})
        if tasks:
            return tasks[0]
    return None


def build_task_data(task: NormalizedTask, *, source_tag: str = "asana") -> dict:
    """Map a normalized Asana task onto Taskwarrior fields."""
    task_tags = [t for t in task.tags if t]
    if source_tag not in task_tags:
        task_tags.append(source_tag)

    data = {
        "description": task.name,
        EXTERNAL_ID_FIELD: str(task.remote_id),
        "source": "asana",
        "tags": task_tags,
    }
    if task.project:
        data["project"] = task.project
    if task.section:
        data["asana_section"] = task.section
    if task.assignee:
        data["asana_assignee"] = task.assignee
    return data


def upsert_task(
    tw: TaskWarrior,
    task: NormalizedTask,
    *,
    source_tag: str = "asana",
) -> tuple[str, Task | None]:
    """Create, update or complete the Taskwarrior copy of an Asana task.

    Returns ("created" | "updated" | "completed" | "skipped", task).
    Tasks already completed in Asana are never imported fresh.
    """
    task_data = build_task_data(task, source_tag=source_tag)
    existing = find_by_external_id(tw, task_data[EXTERNAL_ID_FIELD])

    if existing is None:
        if task.completed is not None:
            return "skipped", None
        new = Task(tw, **task_data)
        new.save()
        return "created", new

    changed = False
    for key, val in task_data.items():
        current = existing[key] if key in existing else None
        if key == "tags":
            same = set(current or []) == set(val)
        else:
            same = current == val
        if not same:
            existing[key] = val
            changed = True
    for key in CLEARABLE_FIELDS:
        if key not in task_data and key in existing and existing[key]:
            existing[key] = None
            changed = True
    if changed:
        existing.save()

    if task.completed is not None and existing["status"] != "completed":
        existing.done()
        return "completed", existing
    if changed:
        return "updated", existing
    return "skipped", existing
