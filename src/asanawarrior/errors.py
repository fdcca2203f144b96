"""Errors raised while reading tasks from Asana."""

from __future__ import annotations


class AsanaError(RuntimeError):
    """Base class for every failure of an Asana fetch."""


class RequestConstructionError(AsanaError):
    """The request URL or headers could not be built."""


class TransportError(AsanaError):
    """The HTTP round-trip failed or returned a non-2xx status."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class DecodeError(AsanaError):
    """The response body is not JSON of the expected shape."""


class TimestampParseError(AsanaError):
    """A task timestamp field could not be parsed."""

    def __init__(self, field: str, value: str, reason: str = "") -> None:
        message = f"asana {field}: cannot parse {value!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.field = field
        self.value = value


class InvariantViolationError(AsanaError):
    """Internal state that should be impossible was observed."""
