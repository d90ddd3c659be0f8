"""
Dockwatch services: Docker event source, Apprise gateway client,
payload construction and the dispatch loop.
"""

from .apprise_client import AppriseClient, SendResult
from .dispatcher import DeliveryOutcome, Dispatcher, DispatcherMetrics, DispatcherState
from .docker_events import DockerEventSource, decode_event
from .payload import NotificationPayload, build_payload

__all__ = [
    "AppriseClient",
    "DeliveryOutcome",
    "Dispatcher",
    "DispatcherMetrics",
    "DispatcherState",
    "DockerEventSource",
    "NotificationPayload",
    "SendResult",
    "build_payload",
    "decode_event",
]
