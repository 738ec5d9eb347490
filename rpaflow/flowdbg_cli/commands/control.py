"""Execution control commands (continue, next, exit)."""

from __future__ import annotations

from typing import List

from rpaflow.flowdbg import BridgeState, TransportError

from .base import Command
from ..context import DebuggerContext
from ..output import emit_error, emit_result


class ContinueCommand(Command):
    def __init__(self) -> None:
        super().__init__("continue", "Resume the paused flow", aliases=("c", "cont", "resume"))

    def run(self, ctx: DebuggerContext, argv: List[str]) -> int:
        bridge = ctx.ensure_bridge()
        if bridge.state != BridgeState.PAUSED:
            emit_error(ctx, message="flow is not paused")
            return 1
        try:
            bridge.resume()
        except TransportError as exc:
            emit_error(ctx, message=f"continue failed: {exc}")
            return 2
        emit_result(ctx, message="Resumed", data={"result": "resumed"})
        return 0


class NextCommand(Command):
    def __init__(self) -> None:
        super().__init__("next", "Step over the current statement", aliases=("n", "step"))

    def run(self, ctx: DebuggerContext, argv: List[str]) -> int:
        bridge = ctx.ensure_bridge()
        if bridge.state != BridgeState.PAUSED:
            emit_error(ctx, message="flow is not paused")
            return 1
        try:
            bridge.step_over()
        except TransportError as exc:
            emit_error(ctx, message=f"next failed: {exc}")
            return 2
        emit_result(ctx, message="Stepping", data={"result": "stepping"})
        return 0


class ExitCommand(Command):
    def __init__(self) -> None:
        super().__init__("exit", "Stop the bridge and leave the debugger", aliases=("quit", "q"))

    def run(self, ctx: DebuggerContext, argv: List[str]) -> int:
        ctx.disconnect()
        raise SystemExit(0)
