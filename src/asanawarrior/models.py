"""Typed shapes for Asana responses and the normalized task record."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from asanawarrior.errors import DecodeError

# 2006-01-02T15:04:05.999Z; the fraction is optional and may carry up to 9 digits
_STAMP_RE = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d{1,9}))?Z",
    re.ASCII,
)


def parse_stamp(value: str) -> datetime:
    """Parse an Asana timestamp into an aware UTC datetime.

    Raises ValueError when the string does not match the format or names
    an impossible calendar instant.
    """
    m = _STAMP_RE.fullmatch(value)
    if not m:
        raise ValueError(f"Invalid timestamp: {value!r}")
    year, month, day, hour, minute, second = (int(g) for g in m.groups()[:6])
    fraction = m.group(7) or ""
    micro = int(fraction[:6].ljust(6, "0")) if fraction else 0
    return datetime(year, month, day, hour, minute, second, micro, tzinfo=timezone.utc)


def _get(obj: dict, key: str, kind: type, default: Any) -> Any:
    val = obj.get(key)
    if val is None:
        return default
    # bool is an int subclass but never a valid id
    if not isinstance(val, kind) or isinstance(val, bool):
        raise DecodeError(
            f"field {key!r}: expected {kind.__name__}, got {type(val).__name__}"
        )
    return val


def _require_object(value: Any, what: str) -> dict:
    if not isinstance(value, dict):
        raise DecodeError(f"{what}: expected object, got {type(value).__name__}")
    return value


def _list_of(value: Any, what: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise DecodeError(f"{what}: expected array, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class BasicRecord:
    """The id/name/email shape shared by projects, tags and users."""

    id: int = 0
    name: str = ""
    email: str = ""

    @classmethod
    def from_json(cls, value: Any) -> BasicRecord:
        if value is None:
            return cls()
        obj = _require_object(value, "record")
        rid = _get(obj, "id", int, 0)
        if rid < 0:
            raise DecodeError(f"field 'id': expected unsigned integer, got {rid}")
        return cls(
            id=rid,
            name=_get(obj, "name", str, ""),
            email=_get(obj, "email", str, ""),
        )


@dataclass(frozen=True)
class RemoteTask:
    """A task as returned by ``projects/<id>/tasks``."""

    id: int = 0
    name: str = ""
    assignee: BasicRecord = field(default_factory=BasicRecord)
    tags: list[BasicRecord] = field(default_factory=list)
    completed_at: str = ""
    modified_at: str = ""
    created_at: str = ""

    @classmethod
    def from_json(cls, value: Any) -> RemoteTask:
        obj = _require_object(value, "task")
        basic = BasicRecord.from_json(obj)
        return cls(
            id=basic.id,
            name=basic.name,
            assignee=BasicRecord.from_json(obj.get("assignee")),
            tags=[BasicRecord.from_json(t) for t in _list_of(obj.get("tags"), "tags")],
            completed_at=_get(obj, "completed_at", str, ""),
            modified_at=_get(obj, "modified_at", str, ""),
            created_at=_get(obj, "created_at", str, ""),
        )


def basic_data(value: Any) -> list[BasicRecord]:
    """Decode a ``{"data": [...]}`` envelope of basic records."""
    obj = _require_object(value, "envelope")
    return [BasicRecord.from_json(r) for r in _list_of(obj.get("data"), "data")]


def task_data(value: Any) -> list[RemoteTask]:
    """Decode a ``{"data": [...]}`` envelope of tasks."""
    obj = _require_object(value, "envelope")
    return [RemoteTask.from_json(t) for t in _list_of(obj.get("data"), "data")]


@dataclass
class NormalizedTask:
    name: str
    project: str
    remote_id: int
    created: datetime
    modified: datetime
    assignee: str = ""
    tags: list[str] = field(default_factory=list)
    completed: datetime | None = None
    section: str = ""

    def to_dict(self) -> dict:
        """JSON-friendly view, timestamps as ISO 8601 strings."""
        return {
            "name": self.name,
            "project": self.project,
            "remote_id": self.remote_id,
            "assignee": self.assignee,
            "tags": list(self.tags),
            "created": self.created.isoformat(),
            "modified": self.modified.isoformat(),
            "completed": self.completed.isoformat() if self.completed else None,
            "section": self.section,
        }
