"""Unit tests for flowdbg prompt commands."""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Optional
from unittest.mock import MagicMock

import pytest

from rpaflow.flowdbg import Breakpoint, BridgeState, NotPausedError, PausedFrame, TransportError
from rpaflow.flowdbg_cli.commands import Command, CommandRegistry, build_registry
from rpaflow.flowdbg_cli.commands.breakpoints import BreakpointCommand
from rpaflow.flowdbg_cli.commands.control import ContinueCommand, ExitCommand, NextCommand
from rpaflow.flowdbg_cli.commands.inspect import EvalCommand, PropsCommand, ScopesCommand
from rpaflow.flowdbg_cli.commands.status import StatusCommand
from rpaflow.flowdbg_cli.context import DebuggerContext
from rpaflow.flowdbg_cli.parser import CommandParseError, join_continuation, parse_command
from rpaflow.flowdbg_cli.repl import dispatch_line


def _paused_frame(line: int = 4) -> PausedFrame:
    return PausedFrame(
        call_frame_id="cf-1",
        script_id="7",
        line_number=line,
        column_number=0,
        scope_chain=[
            {"type": "local", "object": {"objectId": "scope-local"}},
            {"type": "closure", "name": "run", "object": {"objectId": "scope-closure"}},
        ],
    )


class StubContext(DebuggerContext):
    def __init__(self, *, json_output: bool = False, paused: Optional[PausedFrame] = None):
        super().__init__(url="ws://fake", json_output=json_output)
        bridge = MagicMock()
        bridge.state = BridgeState.PAUSED if paused else BridgeState.READY
        bridge.breakpoints = []
        bridge.registry = []
        bridge.context = MagicMock()
        bridge.context.paused = paused
        bridge.context.script_count = 1
        if paused:
            bridge.context.require_paused.return_value = paused
        else:
            bridge.context.require_paused.side_effect = NotPausedError("no paused call frame")
        self.stub_bridge = bridge
        self.disconnected = False

    def ensure_bridge(self):  # type: ignore[override]
        return self.stub_bridge

    @property
    def bridge(self):  # type: ignore[override]
        return self.stub_bridge

    def disconnect(self) -> None:  # type: ignore[override]
        self.disconnected = True


def test_break_add_arms_through_bridge(capsys):
    ctx = StubContext()
    ctx.stub_bridge.add_breakpoint.return_value = Breakpoint("flow.js", 3, id="bp-1")
    rc = BreakpointCommand().run(ctx, ["add", "flow.js", "3"])
    assert rc == 0
    ctx.stub_bridge.add_breakpoint.assert_called_once_with("flow.js", 3)
    assert "Breakpoint set at flow.js:3" in capsys.readouterr().out


def test_break_remove_unknown_is_not_an_error(capsys):
    ctx = StubContext()
    ctx.stub_bridge.remove_breakpoint.return_value = False
    rc = BreakpointCommand().run(ctx, ["remove", "flow.js", "8"])
    assert rc == 0
    assert "No breakpoint at flow.js:8" in capsys.readouterr().out


def test_break_list_json(capsys):
    ctx = StubContext(json_output=True)
    ctx.stub_bridge.breakpoints = [Breakpoint("flow.js", 1, id="a"), Breakpoint("flow.js", 2)]
    rc = BreakpointCommand().run(ctx, ["list"])
    assert rc == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["result"]["breakpoints"] == [
        {"url": "flow.js", "line": 1, "id": "a"},
        {"url": "flow.js", "line": 2},
    ]


def test_break_rejects_bad_arguments():
    ctx = StubContext()
    assert BreakpointCommand().run(ctx, ["add", "flow.js", "x"]) == 1
    assert BreakpointCommand().run(ctx, []) == 1


def test_break_transport_failure_returns_2(capsys):
    ctx = StubContext()
    ctx.stub_bridge.add_breakpoint.side_effect = TransportError("not connected")
    assert BreakpointCommand().run(ctx, ["add", "flow.js", "3"]) == 2
    assert "not connected" in capsys.readouterr().out


def test_continue_and_next_require_pause(capsys):
    ctx = StubContext()
    assert ContinueCommand().run(ctx, []) == 1
    assert NextCommand().run(ctx, []) == 1
    ctx.stub_bridge.resume.assert_not_called()
    assert "not paused" in capsys.readouterr().out


def test_continue_and_next_when_paused(capsys):
    ctx = StubContext(paused=_paused_frame())
    assert ContinueCommand().run(ctx, []) == 0
    ctx.stub_bridge.resume.assert_called_once_with()
    assert NextCommand().run(ctx, []) == 0
    ctx.stub_bridge.step_over.assert_called_once_with()
    out = capsys.readouterr().out
    assert "Resumed" in out and "Stepping" in out


def test_eval_prints_remote_value(capsys):
    ctx = StubContext(paused=_paused_frame())
    ctx.stub_bridge.run_js.return_value = {"result": {"type": "string", "value": "ok"}}
    rc = EvalCommand().run(ctx, ["order.status"])
    assert rc == 0
    ctx.stub_bridge.run_js.assert_called_once_with("order.status")
    assert capsys.readouterr().out.strip() == '"ok"'


def test_eval_reports_exception_details(capsys):
    ctx = StubContext(paused=_paused_frame())
    ctx.stub_bridge.run_js.return_value = {
        "result": {"type": "object", "description": "ReferenceError: nope is not defined"},
        "exceptionDetails": {"text": "Uncaught"},
    }
    assert EvalCommand().run(ctx, ["nope"]) == 1
    assert "ReferenceError" in capsys.readouterr().out


def test_eval_without_pause(capsys):
    ctx = StubContext()
    ctx.stub_bridge.run_js.side_effect = NotPausedError("no paused call frame")
    assert EvalCommand().run(ctx, ["1"]) == 1
    assert "no paused call frame" in capsys.readouterr().out
    assert EvalCommand().run(ctx, []) == 1


def test_props_lists_descriptors(capsys):
    ctx = StubContext(paused=_paused_frame())
    ctx.stub_bridge.get_properties.return_value = [
        {"name": "total", "value": {"type": "number", "value": 3}},
        {"name": "items", "value": {"type": "object", "description": "Array(2)", "objectId": "obj-9"}},
        {"name": "getter"},
    ]
    assert PropsCommand().run(ctx, ["scope-local"]) == 0
    out = capsys.readouterr().out
    assert "total" in out and "3" in out
    assert "Array(2)" in out and "[obj-9]" in out
    assert "<accessor>" in out


def test_scopes_lists_chain(capsys):
    ctx = StubContext(paused=_paused_frame(line=9))
    assert ScopesCommand().run(ctx, []) == 0
    out = capsys.readouterr().out
    assert "scopes at line 9" in out
    assert "scope-local" in out
    assert "closure run" in out


def test_scopes_without_pause(capsys):
    ctx = StubContext()
    assert ScopesCommand().run(ctx, []) == 1


def test_status_reports_state(capsys):
    ctx = StubContext(json_output=True, paused=_paused_frame(line=2))
    assert StatusCommand().run(ctx, []) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["result"]["state"] == "paused"
    assert payload["result"]["paused_line"] == 2


def test_status_without_bridge(capsys):
    ctx = DebuggerContext(url="ws://nowhere")
    assert StatusCommand().run(ctx, []) == 0
    assert "not connected" in capsys.readouterr().out


def test_exit_disconnects():
    ctx = StubContext()
    with pytest.raises(SystemExit):
        ExitCommand().run(ctx, [])
    assert ctx.disconnected


def test_registry_resolves_aliases_and_help(capsys):
    registry = build_registry()
    assert registry.get("c") is registry.get("continue")
    assert registry.get("n") is registry.get("next")
    assert registry.get("bp") is registry.get("break")
    ctx = StubContext()
    assert registry.get("help").run(ctx, []) == 0
    out = capsys.readouterr().out
    for name in ("break", "continue", "next", "eval", "props", "scopes", "status", "exit"):
        assert name in out
    assert registry.get("help").run(ctx, ["c"]) == 0
    detail = capsys.readouterr().out
    assert "usage: continue" in detail
    assert "aliases: c, cont, resume" in detail
    assert registry.get("help").run(ctx, ["eval"]) == 0
    assert "usage: eval EXPRESSION" in capsys.readouterr().out
    assert registry.get("help").run(ctx, ["nope"]) == 1


def test_dispatch_line_routes_to_command(capsys):
    ctx = StubContext(paused=_paused_frame())
    ctx.stub_bridge.run_js.return_value = {"result": {"type": "number", "value": 5}}
    registry = build_registry()
    assert dispatch_line(ctx, registry, 'p items.filter(x => x.name === "a b").length') == 0
    ctx.stub_bridge.run_js.assert_called_once_with('items.filter(x => x.name === "a b").length')
    assert dispatch_line(ctx, registry, "frobnicate") == 1
    assert dispatch_line(ctx, registry, "   ") == 0
    assert "Unknown command: frobnicate" in capsys.readouterr().out


def test_dispatch_line_maps_transport_errors(capsys):
    ctx = StubContext(paused=_paused_frame())
    ctx.stub_bridge.get_properties.side_effect = TransportError("connection closed")
    assert dispatch_line(ctx, build_registry(), "props obj-1") == 2


def test_parse_command_and_continuations():
    assert parse_command("break add 'my flow.js' 3") == ("break", ["add", "my flow.js", "3"])
    assert parse_command("") is None
    with pytest.raises(CommandParseError):
        parse_command("break add 'unterminated")
    buffer: list = []
    assert join_continuation(buffer, "eval a +\\") is None
    assert join_continuation(buffer, " b") == "eval a +  b"
    assert buffer == []


def test_context_subscribe_replaces_previous_handler():
    ctx = DebuggerContext()
    first, second = [], []
    ctx.subscribe(first.append)
    ctx.subscribe(second.append)
    event = SimpleNamespace(category="closed")
    ctx.bus.publish(event)
    ctx.bus.pump()
    assert first == [] and second == [event]


def test_registry_rejects_alias_collisions():
    registry = CommandRegistry([ContinueCommand()])
    with pytest.raises(ValueError, match="already taken"):
        registry.register(Command("cont", "clashes with continue"))
    assert "cont" in registry.names()
    assert [command.name for command in registry] == ["continue"]
