"""
Dockwatch - Docker event notifier

Watches the Docker daemon event stream, matches each event against
subscription rules, and forwards matches to an Apprise API server.

Usage as CLI:
    python -m dockwatch run --rules rules.yaml --apprise-url http://apprise:8000
    python -m dockwatch check --rules rules.yaml
    python -m dockwatch match event.json --rules rules.yaml

Package structure:
    dockwatch/
    ├── core/           # Settings and logging
    ├── matching/       # Optional criteria, actor and event rules
    ├── services/       # Event source, gateway client, dispatch loop
    ├── models.py       # Docker event model and enums
    └── subscriptions.py # Subscription model and rule file loader
"""

__version__ = "1.0.0"

from .errors import (
    ConfigError,
    DeliveryError,
    DockwatchError,
    EventDecodeError,
    MissingFieldError,
    StreamError,
)
from .models import Actor, ObservedEvent, Scope, SubjectType
from .subscriptions import Subscription, Target, load_subscriptions

__all__ = [
    "__version__",
    "Actor",
    "ConfigError",
    "DeliveryError",
    "DockwatchError",
    "EventDecodeError",
    "MissingFieldError",
    "ObservedEvent",
    "Scope",
    "StreamError",
    "SubjectType",
    "Subscription",
    "Target",
    "load_subscriptions",
]
