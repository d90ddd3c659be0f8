"""
Dockwatch CLI Commands.

run   - watch the Docker daemon and send notifications (foreground)
check - validate a rule file
match - show which subscriptions a single event would trigger
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from datetime import datetime, timezone
from pathlib import Path

from .core.config import get_settings
from .core.logging import get_logger, set_log_level
from .errors import EventDecodeError, MissingFieldError
from .models import BodyFormat, ObservedEvent
from .services.apprise_client import AppriseClient
from .services.dispatcher import Dispatcher
from .services.docker_events import DockerEventSource, decode_event
from .services.payload import build_title
from .subscriptions import Subscription, load_subscriptions

logger = get_logger(__name__)


def get_utc_timestamp() -> str:
    """Current UTC time in ISO 8601 format."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _rules_path(args: argparse.Namespace) -> Path:
    return Path(args.rules) if args.rules else get_settings().rules_file


# =============================================================================
# run
# =============================================================================


async def run_service(dispatcher: Dispatcher) -> dict:
    """Run the dispatcher until SIGINT/SIGTERM, then shut down cleanly."""
    stop_event = asyncio.Event()

    def signal_handler():
        logger.info("Shutdown signal received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    task = dispatcher.start()
    stopper = asyncio.create_task(stop_event.wait())
    try:
        await asyncio.wait({task, stopper}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stopper.cancel()
        await dispatcher.stop()

    return dispatcher.get_status()


def cmd_run(args: argparse.Namespace) -> dict:
    """
    Watch Docker events and notify triggered subscriptions.

    Runs as a foreground process. Use Ctrl+C to stop.

    Raises:
        ConfigError: If the rule file or docker host is invalid
    """
    settings = get_settings()

    subscriptions = load_subscriptions(_rules_path(args))

    apprise_url = args.apprise_url or settings.apprise_url
    docker_host = args.docker_host or settings.docker_host
    reconnect_delay = (
        args.reconnect_delay if args.reconnect_delay is not None else settings.reconnect_delay_seconds
    )
    max_concurrent = (
        args.max_concurrent if args.max_concurrent is not None else settings.max_concurrent_deliveries
    )

    source = DockerEventSource(docker_host=docker_host)
    gateway = AppriseClient(base_url=apprise_url, timeout=settings.request_timeout_seconds)
    dispatcher = Dispatcher(
        subscriptions=subscriptions,
        source=source,
        gateway=gateway,
        reconnect_delay=reconnect_delay,
        max_concurrent_deliveries=max_concurrent,
        body_format=BodyFormat(settings.body_format),
    )

    logger.info("Watching %s, notifying via %s", docker_host, apprise_url)

    async def main() -> dict:
        try:
            return await run_service(dispatcher)
        finally:
            await source.close()
            await gateway.close()

    status = asyncio.run(main())
    status["gateway"] = gateway.get_metrics()
    status["query_timestamp"] = get_utc_timestamp()
    return status


# =============================================================================
# check
# =============================================================================


def cmd_check(args: argparse.Namespace) -> dict:
    """
    Validate a rule file and summarize it.

    Raises:
        ConfigError: If the rule file is invalid
    """
    path = _rules_path(args)
    subscriptions = load_subscriptions(path)

    result = {
        "rules_file": str(path),
        "valid": True,
        "subscription_count": len(subscriptions),
        "subscriptions": [
            {"key": s.key, "rule_count": len(s.rules)} for s in subscriptions
        ],
        "query_timestamp": get_utc_timestamp(),
    }
    if args.show_rules:
        result["subscriptions"] = [s.to_dict() for s in subscriptions]
    return result


# =============================================================================
# match
# =============================================================================


def _describe_match(subscription: Subscription, event: ObservedEvent) -> dict:
    entry = {"key": subscription.key}
    try:
        entry["title"] = build_title(event)
    except MissingFieldError as e:
        entry["error"] = str(e)
    return entry


def cmd_match(args: argparse.Namespace) -> dict:
    """
    Evaluate one Docker event (JSON) against the rule file.

    Raises:
        ConfigError: If the rule file is invalid
    """
    subscriptions = load_subscriptions(_rules_path(args))

    if args.event == "-":
        text = sys.stdin.read()
    else:
        try:
            text = Path(args.event).read_text()
        except OSError as e:
            return {
                "error": "event_unreadable",
                "message": f"Cannot read event file {args.event}: {e}",
                "query_timestamp": get_utc_timestamp(),
            }

    try:
        event = decode_event(text)
    except EventDecodeError as e:
        return {
            "error": "invalid_event",
            "message": str(e),
            "query_timestamp": get_utc_timestamp(),
        }

    triggered = [s for s in subscriptions if s.is_triggered_by(event)]

    return {
        "event": {
            "type": event.subject_type.value if event.subject_type else None,
            "action": event.action,
            "actor_id": event.actor.id if event.actor else None,
            "scope": event.scope.value if event.scope else None,
        },
        "triggered": [_describe_match(s, event) for s in triggered],
        "query_timestamp": get_utc_timestamp(),
    }


# =============================================================================
# Parser Registration
# =============================================================================


def _add_rules_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--rules",
        metavar="PATH",
        help="Rule file (default: DOCKWATCH_RULES_FILE or rules.yaml)",
    )


def register_parsers(subparsers) -> None:
    """Register dockwatch command parsers."""

    run_parser = subparsers.add_parser(
        "run",
        help="Watch Docker events and send notifications",
    )
    _add_rules_option(run_parser)
    run_parser.add_argument("--apprise-url", help="Apprise API base URL")
    run_parser.add_argument("--docker-host", help="Docker daemon address (unix:// or tcp://)")
    run_parser.add_argument(
        "--reconnect-delay",
        type=float,
        metavar="SECONDS",
        help="Wait before reopening a lost event stream",
    )
    run_parser.add_argument(
        "--max-concurrent",
        type=int,
        metavar="N",
        help="Maximum notifications in flight",
    )
    run_parser.set_defaults(func=cmd_run)

    check_parser = subparsers.add_parser(
        "check",
        help="Validate a rule file",
    )
    _add_rules_option(check_parser)
    check_parser.add_argument(
        "--show-rules",
        action="store_true",
        help="Include the parsed rules in the output",
    )
    check_parser.set_defaults(func=cmd_check)

    match_parser = subparsers.add_parser(
        "match",
        help="Show which subscriptions an event would trigger",
    )
    match_parser.add_argument("event", help="Docker event JSON file, or - for stdin")
    _add_rules_option(match_parser)
    match_parser.set_defaults(func=cmd_match)


def apply_verbosity(args: argparse.Namespace) -> None:
    if getattr(args, "verbose", False):
        set_log_level(logging.DEBUG)
