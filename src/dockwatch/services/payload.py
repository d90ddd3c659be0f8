"""
Notification payload construction.
"""

from __future__ import annotations

import html
import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..errors import MissingFieldError
from ..models import BodyFormat, NotifyType, ObservedEvent

if TYPE_CHECKING:
    from ..subscriptions import Target


@dataclass(frozen=True)
class NotificationPayload:
    """Body of one Apprise API notify request."""

    body: str
    title: str | None = None
    message_type: NotifyType | None = None
    tag: str | None = None
    body_format: BodyFormat = BodyFormat.TEXT

    def to_dict(self) -> dict[str, Any]:
        """Apprise API JSON, omitting unset optional keys."""
        result: dict[str, Any] = {"body": self.body, "format": self.body_format.value}
        if self.title is not None:
            result["title"] = self.title
        if self.message_type is not None:
            result["type"] = self.message_type.value
        if self.tag is not None:
            result["tag"] = self.tag
        return result


def build_title(event: ObservedEvent) -> str:
    """
    Title such as "container start (web-1)".

    Raises:
        MissingFieldError: If the event has no type or no action
    """
    if event.subject_type is None:
        raise MissingFieldError("type")
    if event.action is None:
        raise MissingFieldError("action")

    title = f"{event.subject_type.value} {event.action}"
    if event.actor_name:
        title += f" ({event.actor_name})"
    return title


def build_body(event: ObservedEvent, body_format: BodyFormat = BodyFormat.TEXT) -> str:
    """Serialized copy of the raw event."""
    text = json.dumps(dict(event.raw), indent=2, sort_keys=True, default=str)
    if body_format is BodyFormat.MARKDOWN:
        return f"```json\n{text}\n```"
    if body_format is BodyFormat.HTML:
        return f"<pre>{html.escape(text)}</pre>"
    return text


def build_payload(
    target: Target,
    event: ObservedEvent,
    body_format: BodyFormat = BodyFormat.TEXT,
) -> NotificationPayload:
    """
    Build the notification for one triggered target.

    Raises:
        MissingFieldError: If the event lacks the fields needed for the title
    """
    return NotificationPayload(
        body=build_body(event, body_format),
        title=build_title(event),
        message_type=target.message_type,
        tag=target.tag,
        body_format=body_format,
    )
