"""
Dockwatch Errors.

Exception hierarchy shared by the rule loader, the Docker event source
and the delivery path. Only ConfigError is fatal; the dispatch loop
catches and logs everything else.
"""

from __future__ import annotations


class DockwatchError(Exception):
    """Base exception for dockwatch."""

    pass


class ConfigError(DockwatchError):
    """Raised when the rule file or process settings are invalid."""

    def __init__(self, message: str, location: str | None = None):
        self.location = location
        if location:
            message = f"{location}: {message}"
        super().__init__(message)


class StreamError(DockwatchError):
    """Raised when the Docker event stream fails or cannot be opened."""

    pass


class EventDecodeError(StreamError):
    """Raised when one item of the event stream cannot be decoded."""

    def __init__(self, reason: str, line: str | None = None):
        self.reason = reason
        self.line = line
        super().__init__(f"Undecodable event: {reason}")


class DeliveryError(DockwatchError):
    """Raised when a notification cannot be built or sent."""

    pass


class MissingFieldError(DeliveryError):
    """Raised when a matched event lacks a field the payload needs."""

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Missing field '{field_name}' on event")
