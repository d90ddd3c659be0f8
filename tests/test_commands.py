"""
Tests for the dockwatch CLI.

Covers argument parsing, the check and match commands, and JSON error output.
"""

from __future__ import annotations

import argparse
import asyncio
import io
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from dockwatch.__main__ import build_parser, main
from dockwatch.commands import cmd_check, cmd_match, cmd_run, run_service


@pytest.fixture
def rules_file(tmp_path, sample_rules_yaml):
    path = tmp_path / "rules.yaml"
    path.write_text(sample_rules_yaml)
    return path


@pytest.fixture
def event_file(tmp_path, event_dict_factory):
    def write(**kwargs):
        path = tmp_path / "event.json"
        path.write_text(json.dumps(event_dict_factory(**kwargs)))
        return path

    return write


class TestParser:
    """Argument parsing."""

    def test_subcommands_registered(self):
        parser = build_parser()
        for argv in (["run"], ["check"], ["match", "-"]):
            args = parser.parse_args(argv)
            assert callable(args.func)

    def test_run_options(self):
        args = build_parser().parse_args(
            ["run", "--rules", "r.yaml", "--reconnect-delay", "0.5", "--max-concurrent", "3"]
        )
        assert args.rules == "r.yaml"
        assert args.reconnect_delay == 0.5
        assert args.max_concurrent == 3
        assert args.apprise_url is None

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out


class TestCmdCheck:
    """dockwatch check."""

    def test_summary(self, rules_file):
        args = argparse.Namespace(rules=str(rules_file), show_rules=False)
        result = cmd_check(args)

        assert result["valid"] is True
        assert result["subscription_count"] == 2
        assert result["subscriptions"] == [
            {"key": "ops", "rule_count": 2},
            {"key": "audit", "rule_count": 1},
        ]

    def test_show_rules(self, rules_file):
        args = argparse.Namespace(rules=str(rules_file), show_rules=True)
        result = cmd_check(args)

        ops = result["subscriptions"][0]
        assert ops["target"]["key"] == "ops"
        assert ops["rules"][0]["action"] == ["die", "oom"]

    def test_main_prints_json(self, rules_file, capsys):
        assert main(["check", "--rules", str(rules_file)]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["subscription_count"] == 2

    def test_invalid_rule_file_exits(self, tmp_path, capsys):
        path = tmp_path / "rules.yaml"
        path.write_text("- target: {key: ops}\n  rules:\n    - colour: red\n")

        with pytest.raises(SystemExit) as exc_info:
            main(["check", "--rules", str(path)])

        assert exc_info.value.code == 1
        data = json.loads(capsys.readouterr().out)
        assert data["error"] == "config_error"
        assert data["command"] == "check"
        assert "colour" in data["message"]

    def test_missing_rule_file_exits(self, tmp_path, capsys):
        with pytest.raises(SystemExit):
            main(["check", "--rules", str(tmp_path / "absent.yaml")])
        assert "not found" in json.loads(capsys.readouterr().out)["message"]


class TestCmdMatch:
    """dockwatch match."""

    def test_triggered_subscriptions(self, rules_file, event_file):
        path = event_file(action="start", attributes={"name": "web-1"})
        result = cmd_match(argparse.Namespace(rules=str(rules_file), event=str(path)))

        assert result["event"] == {
            "type": "container",
            "action": "start",
            "actor_id": "abc123",
            "scope": "local",
        }
        assert result["triggered"] == [{"key": "audit", "title": "container start (web-1)"}]

    def test_die_triggers_ops(self, rules_file, event_file):
        path = event_file(action="die", scope="swarm")
        result = cmd_match(argparse.Namespace(rules=str(rules_file), event=str(path)))

        assert [t["key"] for t in result["triggered"]] == ["ops"]

    def test_nothing_triggered(self, rules_file, event_file):
        path = event_file(type_="network", action="connect", scope="swarm")
        result = cmd_match(argparse.Namespace(rules=str(rules_file), event=str(path)))
        assert result["triggered"] == []

    def test_untitled_event_reports_error(self, tmp_path, event_file):
        """A subscription without a type rule can match an event that has no title."""
        rules = tmp_path / "catchall.yaml"
        rules.write_text("- target: {key: all}\n  rules:\n    - scope: local\n")
        path = event_file(type_=None, action="start")

        result = cmd_match(argparse.Namespace(rules=str(rules), event=str(path)))

        assert result["event"]["type"] is None
        assert result["triggered"] == [{"key": "all", "error": "Missing field 'type' on event"}]

    def test_stdin(self, rules_file, event_dict_factory):
        stdin = io.StringIO(json.dumps(event_dict_factory(action="start")))
        with patch("sys.stdin", stdin):
            result = cmd_match(argparse.Namespace(rules=str(rules_file), event="-"))
        assert result["triggered"][0]["key"] == "audit"

    def test_invalid_event(self, rules_file, tmp_path):
        path = tmp_path / "event.json"
        path.write_text("not json")
        result = cmd_match(argparse.Namespace(rules=str(rules_file), event=str(path)))
        assert result["error"] == "invalid_event"

    def test_unreadable_event(self, rules_file, tmp_path):
        result = cmd_match(
            argparse.Namespace(rules=str(rules_file), event=str(tmp_path / "missing.json"))
        )
        assert result["error"] == "event_unreadable"

    def test_main_returns_one_on_error_result(self, rules_file, tmp_path, capsys):
        path = tmp_path / "event.json"
        path.write_text("[]")
        assert main(["match", str(path), "--rules", str(rules_file)]) == 1
        assert json.loads(capsys.readouterr().out)["error"] == "invalid_event"


class TestRunService:
    """Foreground service lifecycle."""

    @pytest.mark.asyncio
    async def test_stops_when_dispatcher_finishes(self):
        async def finished():
            return None

        dispatcher = MagicMock()
        dispatcher.start = MagicMock(side_effect=lambda: asyncio.ensure_future(finished()))
        dispatcher.stop = AsyncMock()
        dispatcher.get_status = MagicMock(return_value={"state": "stopped"})

        status = await run_service(dispatcher)

        assert status == {"state": "stopped"}
        dispatcher.stop.assert_awaited_once()

    def test_cmd_run_wires_components(self, rules_file):
        args = build_parser().parse_args(
            [
                "run",
                "--rules",
                str(rules_file),
                "--apprise-url",
                "http://apprise:8000",
                "--docker-host",
                "tcp://docker:2375",
                "--max-concurrent",
                "2",
            ]
        )

        source = MagicMock()
        source.close = AsyncMock()
        gateway = MagicMock()
        gateway.close = AsyncMock()
        gateway.get_metrics = MagicMock(return_value={"total_sent": 0})

        with (
            patch("dockwatch.commands.DockerEventSource", return_value=source) as source_cls,
            patch("dockwatch.commands.AppriseClient", return_value=gateway) as gateway_cls,
            patch("dockwatch.commands.Dispatcher") as dispatcher_cls,
            patch(
                "dockwatch.commands.run_service",
                AsyncMock(return_value={"state": "stopped"}),
            ),
        ):
            result = cmd_run(args)

        source_cls.assert_called_once_with(docker_host="tcp://docker:2375")
        assert gateway_cls.call_args.kwargs["base_url"] == "http://apprise:8000"
        kwargs = dispatcher_cls.call_args.kwargs
        assert kwargs["max_concurrent_deliveries"] == 2
        assert [s.key for s in kwargs["subscriptions"]] == ["ops", "audit"]
        source.close.assert_awaited_once()
        gateway.close.assert_awaited_once()
        assert result["state"] == "stopped"
        assert result["gateway"] == {"total_sent": 0}
