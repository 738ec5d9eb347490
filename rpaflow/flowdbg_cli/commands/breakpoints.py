"""Breakpoint management command."""

from __future__ import annotations

import argparse
from typing import List

from rpaflow.flowdbg import TransportError

from .base import Command
from ..context import DebuggerContext
from ..output import emit_error, emit_result


class BreakpointCommand(Command):
    def __init__(self) -> None:
        super().__init__(
            "break",
            "Manage breakpoints",
            aliases=("bp", "b"),
            usage="add URL LINE | remove URL LINE | list",
        )
        parser = argparse.ArgumentParser(prog="break", add_help=False)
        sub = parser.add_subparsers(dest="subcmd")
        sub.required = True

        add = sub.add_parser("add")
        add.add_argument("url")
        add.add_argument("line", type=int)

        remove = sub.add_parser("remove", aliases=["clear", "delete"])
        remove.add_argument("url")
        remove.add_argument("line", type=int)

        sub.add_parser("list")

        self._parser = parser

    def run(self, ctx: DebuggerContext, argv: List[str]) -> int:
        try:
            args = self._parser.parse_args(argv)
        except SystemExit:
            return 1
        action = args.subcmd
        if action == "add":
            return self._handle_add(ctx, args.url, args.line)
        if action in ("remove", "clear", "delete"):
            return self._handle_remove(ctx, args.url, args.line)
        if action == "list":
            return self._handle_list(ctx)
        return 1

    def _handle_add(self, ctx: DebuggerContext, url: str, line: int) -> int:
        bridge = ctx.ensure_bridge()
        try:
            bp = bridge.add_breakpoint(url, line)
        except TransportError as exc:
            emit_error(ctx, message=f"break add failed: {exc}")
            return 2
        emit_result(ctx, message=f"Breakpoint set at {url}:{line} (id={bp.id})", data=bp.to_dict())
        return 0

    def _handle_remove(self, ctx: DebuggerContext, url: str, line: int) -> int:
        bridge = ctx.ensure_bridge()
        try:
            removed = bridge.remove_breakpoint(url, line)
        except TransportError as exc:
            emit_error(ctx, message=f"break remove failed: {exc}")
            return 2
        if not removed:
            emit_result(ctx, message=f"No breakpoint at {url}:{line}", data={"removed": False})
            return 0
        emit_result(ctx, message=f"Breakpoint removed at {url}:{line}", data={"removed": True})
        return 0

    def _handle_list(self, ctx: DebuggerContext) -> int:
        bridge = ctx.ensure_bridge()
        rows = [bp.to_dict() for bp in bridge.breakpoints]
        if ctx.json_output:
            emit_result(ctx, message="breakpoints", data={"breakpoints": rows})
            return 0
        print("breakpoints:")
        if not rows:
            print("  (none)")
        for idx, row in enumerate(rows, start=1):
            armed = row.get("id") or "(not armed)"
            print(f"  #{idx:<3} {row['url']}:{row['line']}  {armed}")
        return 0
