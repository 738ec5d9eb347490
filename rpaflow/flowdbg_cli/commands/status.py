"""Bridge status command."""

from __future__ import annotations

from typing import List

from .base import Command
from ..context import DebuggerContext
from ..output import emit_result


class StatusCommand(Command):
    def __init__(self) -> None:
        super().__init__("status", "Show bridge state and paused location", aliases=("info",))

    def run(self, ctx: DebuggerContext, argv: List[str]) -> int:
        bridge = ctx.bridge
        if bridge is None:
            emit_result(ctx, message=f"not connected ({ctx.url})", data={"url": ctx.url, "state": "disconnected"})
            return 0
        paused = bridge.context.paused
        data = {
            "url": ctx.url,
            "state": bridge.state.value,
            "breakpoints": len(bridge.registry),
            "scripts": bridge.context.script_count,
            "paused_line": paused.line_number if paused else None,
        }
        message = f"{bridge.state.value} {ctx.url} breakpoints={data['breakpoints']} scripts={data['scripts']}"
        if paused:
            message += f" paused_line={paused.line_number}"
        emit_result(ctx, message=message, data=data)
        return 0
