"""Paused-frame inspection commands (eval/props/scopes)."""

from __future__ import annotations

from typing import List

from rpaflow.flowdbg import NotPausedError, TransportError

from .base import Command
from ..context import DebuggerContext
from ..output import emit_error, emit_result, format_remote_object, render_properties


class EvalCommand(Command):
    def __init__(self) -> None:
        super().__init__("eval", "Evaluate an expression in the paused frame", aliases=("p", "print"), usage="EXPRESSION")

    def run(self, ctx: DebuggerContext, argv: List[str]) -> int:
        if not argv:
            emit_error(ctx, message="usage: eval EXPRESSION")
            return 1
        expression = " ".join(argv)
        bridge = ctx.ensure_bridge()
        try:
            result = bridge.run_js(expression)
        except NotPausedError as exc:
            emit_error(ctx, message=str(exc))
            return 1
        except TransportError as exc:
            emit_error(ctx, message=f"eval failed: {exc}")
            return 2
        details = result.get("exceptionDetails")
        remote = result.get("result") or {}
        if details:
            emit_error(ctx, message=f"{format_remote_object(remote)}", data=result)
            return 1
        emit_result(ctx, message=format_remote_object(remote), data=result)
        return 0


class PropsCommand(Command):
    def __init__(self) -> None:
        super().__init__("props", "List properties of a remote object id", aliases=("inspect",), usage="OBJECT_ID")

    def run(self, ctx: DebuggerContext, argv: List[str]) -> int:
        if len(argv) != 1:
            emit_error(ctx, message="usage: props OBJECT_ID")
            return 1
        bridge = ctx.ensure_bridge()
        try:
            props = bridge.get_properties(argv[0])
        except TransportError as exc:
            emit_error(ctx, message=f"props failed: {exc}")
            return 2
        if ctx.json_output:
            emit_result(ctx, message="properties", data={"properties": props})
        else:
            render_properties(props)
        return 0


class ScopesCommand(Command):
    def __init__(self) -> None:
        super().__init__("scopes", "Show the scope chain of the paused frame")

    def run(self, ctx: DebuggerContext, argv: List[str]) -> int:
        bridge = ctx.ensure_bridge()
        try:
            frame = bridge.context.require_paused()
        except NotPausedError as exc:
            emit_error(ctx, message=str(exc))
            return 1
        rows = []
        for scope in frame.scope_chain:
            obj = scope.get("object") or {}
            rows.append({"type": scope.get("type"), "name": scope.get("name"), "objectId": obj.get("objectId")})
        if ctx.json_output:
            emit_result(ctx, message="scopes", data={"line": frame.line_number, "scopes": rows})
            return 0
        print(f"scopes at line {frame.line_number}:")
        for row in rows:
            label = row["type"] if not row["name"] else f"{row['type']} {row['name']}"
            print(f"  {label:<24} {row['objectId'] or '-'}")
        return 0
