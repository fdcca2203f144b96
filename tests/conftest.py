"""Shared fixtures: a fake Asana API served through a patched urlopen."""

from __future__ import annotations

import json
from urllib.error import HTTPError
from urllib.parse import parse_qs, urlsplit

import pytest

from asanawarrior.client import Connection

STAMP = "2024-03-01T10:00:00.000Z"


def make_task(tid, name, *, assignee=None, tags=(), created=STAMP, modified=STAMP, completed=""):
    return {
        "id": tid,
        "name": name,
        "assignee": {"id": assignee} if assignee is not None else None,
        "tags": [{"id": t} for t in tags],
        "created_at": created,
        "modified_at": modified,
        "completed_at": completed,
    }


class FakeResponse:
    def __init__(self, body: bytes, status: int = 200):
        self.body = body
        self.status = status

    def read(self):
        return self.body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeAsana:
    """Routes requests by path suffix to canned payloads and records them."""

    prefix = "/api/1.0/"

    def __init__(self):
        self.routes = {"tags": {"data": []}, "users": {"data": []}, "projects": {"data": []}}
        self.requests = []
        self.timeouts = []

    def route(self, suffix, payload):
        self.routes[suffix] = payload

    def add_project(self, pid, name, tasks):
        self.routes["projects"]["data"].append({"id": pid, "name": name})
        self.routes[f"projects/{pid}/tasks"] = {"data": list(tasks)}

    @property
    def suffixes(self):
        return [urlsplit(r.full_url).path[len(self.prefix):] for r in self.requests]

    def fields_for(self, suffix):
        for r in self.requests:
            parts = urlsplit(r.full_url)
            if parts.path[len(self.prefix):] == suffix:
                return parse_qs(parts.query, keep_blank_values=True)["opt_fields"][0]
        raise AssertionError(f"{suffix} was never requested")

    def __call__(self, req, timeout=None):
        self.requests.append(req)
        self.timeouts.append(timeout)
        suffix = urlsplit(req.full_url).path[len(self.prefix):]
        if suffix not in self.routes:
            raise HTTPError(req.full_url, 404, "Not Found", {}, None)
        payload = self.routes[suffix]
        if isinstance(payload, BaseException):
            raise payload
        if isinstance(payload, bytes):
            return FakeResponse(payload)
        return FakeResponse(json.dumps(payload).encode())


@pytest.fixture
def asana(monkeypatch):
    fake = FakeAsana()
    monkeypatch.setattr("asanawarrior.client.urlopen", fake)
    return fake


@pytest.fixture
def conn():
    return Connection(token="secret-token")
