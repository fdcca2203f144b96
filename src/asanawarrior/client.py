"""Authenticated JSON GETs against the Asana REST API."""

from __future__ import annotations

import http.client
import json
import time
from dataclasses import dataclass
from typing import Callable, TypeVar
from urllib.error import HTTPError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

import structlog

from asanawarrior.errors import (
    DecodeError,
    RequestConstructionError,
    TransportError,
)
from asanawarrior.models import BasicRecord, basic_data

API_BASE = "https://app.asana.com/api/1.0"

log = structlog.get_logger("asanawarrior.client")

T = TypeVar("T")


@dataclass(frozen=True)
class Connection:
    """Where and as whom to talk to Asana. Passed explicitly to every fetch."""

    token: str
    base_url: str = API_BASE
    timeout: float | None = None


def build_url(base_url: str, suffix: str, fields: tuple[str, ...] = ()) -> str:
    query = urlencode({"opt_fields": ",".join(fields)}, safe=",")
    return f"{base_url.rstrip('/')}/{suffix.lstrip('/')}?{query}"


def _build_request(conn: Connection, url: str) -> Request:
    if not conn.token:
        raise RequestConstructionError("Asana token is empty.")
    try:
        return Request(
            url,
            headers={
                "Authorization": f"Bearer {conn.token}",
                "Accept": "application/json",
            },
            method="GET",
        )
    except ValueError as e:
        raise RequestConstructionError(f"Cannot build request for {url}: {e}") from e


def run_getter(
    conn: Connection,
    shape: Callable[[object], T],
    suffix: str,
    *fields: str,
) -> T:
    """GET ``<base>/<suffix>?opt_fields=<fields>`` and decode the body via ``shape``.

    ``shape`` receives the parsed JSON and returns the typed value, raising
    DecodeError when the document does not fit.
    """
    url = build_url(conn.base_url, suffix, fields)
    req = _build_request(conn, url)

    started = time.monotonic()
    try:
        if conn.timeout is None:
            resp = urlopen(req)
        else:
            resp = urlopen(req, timeout=conn.timeout)
        with resp:
            status = resp.status
            body = resp.read()
    except HTTPError as e:
        raise TransportError(
            f"Asana returned HTTP {e.code} for {suffix}: {e.reason}", status=e.code
        ) from e
    except (OSError, http.client.HTTPException) as e:
        raise TransportError(f"Cannot reach Asana at {conn.base_url}: {e}") from e

    log.debug(
        "asana_request",
        suffix=suffix,
        fields=list(fields),
        status=status,
        bytes=len(body),
        elapsed_ms=round((time.monotonic() - started) * 1000, 1),
    )

    if status is not None and not 200 <= status < 300:
        raise TransportError(f"Asana returned HTTP {status} for {suffix}", status=status)

    try:
        decoded = json.loads(body)
    except ValueError as e:
        raise DecodeError(f"Invalid JSON from {suffix}: {e}") from e
    try:
        return shape(decoded)
    except DecodeError as e:
        raise DecodeError(f"Unexpected response shape from {suffix}: {e}") from e


def get_various(conn: Connection, suffix: str, *opts: str) -> list[BasicRecord]:
    """Fetch a collection of basic records, in the order Asana returns them."""
    return run_getter(conn, basic_data, suffix, *opts)
