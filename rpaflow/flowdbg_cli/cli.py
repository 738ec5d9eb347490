"""flowdbg CLI entry point."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List

from rpaflow.flowc import CatalogError, CompileError, DirectiveCatalog, DirectiveCompiler
from rpaflow.flowdbg import Breakpoint, TransportError

from .commands import build_registry
from .context import DebuggerContext
from .output import emit_error
from .repl import DebuggerREPL, dispatch_line

LOG = logging.getLogger("flowdbg_cli.cli")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _breakpoint_arg(value: str) -> Breakpoint:
    try:
        return Breakpoint.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="flowdbg", description="Flow compiler and remote debugger")
    parser.add_argument(
        "--log-level",
        default=os.environ.get("FLOWDBG_LOG", "INFO"),
        help="Logging level (default INFO, env FLOWDBG_LOG)",
    )
    sub = parser.add_subparsers(dest="action")
    sub.required = True

    compile_p = sub.add_parser("compile", help="Compile a flow document to script text")
    compile_p.add_argument("flow", type=Path, help="Flow JSON document")
    compile_p.add_argument("--catalog", type=Path, help="Directive catalog JSON")
    compile_p.add_argument("-o", "--output", type=Path, help="Write the script here (default stdout)")
    compile_p.add_argument("--blocks", type=Path, help="Write the line to block table here")
    compile_p.add_argument(
        "--line-offset",
        type=int,
        default=0,
        help="Zero-based line the first statement lands on in the final script",
    )

    attach_p = sub.add_parser("attach", help="Attach to a running script host")
    attach_p.add_argument("url", help="Remote-debugging websocket URL")
    attach_p.add_argument(
        "--break",
        dest="breakpoints",
        action="append",
        type=_breakpoint_arg,
        default=[],
        metavar="URL:LINE",
        help="Breakpoint to arm on attach (repeatable)",
    )
    attach_p.add_argument("--blocks", type=Path, help="Block table written by 'compile --blocks'")
    attach_p.add_argument("--marker", default="flow.js", help="URL substring identifying flow scripts")
    attach_p.add_argument("--timeout", type=float, default=10.0, help="Per-command timeout in seconds")
    attach_p.add_argument("--json", action="store_true", help="Emit JSON output when supported")
    attach_p.add_argument(
        "-c",
        "--command",
        help="Execute a single command non-interactively (quote the command string)",
    )
    attach_p.add_argument(
        "--history",
        type=Path,
        default=Path.home() / ".flowdbg-history",
        help="Path to command history file",
    )
    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)
    if args.action == "compile":
        return _run_compile(args)
    return _run_attach(args)


def _run_compile(args: argparse.Namespace) -> int:
    try:
        flow_doc = json.loads(args.flow.read_text(encoding="utf-8"))
        catalog = DirectiveCatalog.from_file(args.catalog) if args.catalog else None
        compiled = DirectiveCompiler(catalog).compile_flow(flow_doc, line_offset=args.line_offset)
    except (OSError, json.JSONDecodeError, CatalogError, CompileError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    if args.output:
        args.output.write_text(compiled.source + "\n", encoding="utf-8")
        LOG.info("wrote %s", args.output)
    else:
        print(compiled.source)
    if args.blocks:
        compiled.blocks.write(args.blocks)
        LOG.info("wrote %d blocks to %s", len(compiled.blocks), args.blocks)
    return 0


def _run_attach(args: argparse.Namespace) -> int:
    ctx = DebuggerContext(
        url=args.url,
        json_output=args.json,
        flow_script_marker=args.marker,
        command_timeout=args.timeout,
        initial_breakpoints=list(args.breakpoints),
        block_path=args.blocks,
    )
    registry = build_registry()
    try:
        if args.command:
            return _run_single_command(ctx, registry, args.command)
        repl = DebuggerREPL(ctx, registry, history_path=str(args.history))
        return repl.run()
    except SystemExit as exc:
        return int(exc.code or 0)
    except KeyboardInterrupt:
        print()
        return 0
    finally:
        ctx.disconnect()


def _run_single_command(ctx: DebuggerContext, registry, command_line: str) -> int:
    try:
        ctx.ensure_bridge()
    except TransportError as exc:
        emit_error(ctx, message=f"attach failed: {exc}")
        return 2
    return dispatch_line(ctx, registry, command_line)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
