"""Interactive REPL for flowdbg."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import FileHistory, InMemoryHistory
from prompt_toolkit.patch_stdout import patch_stdout

from rpaflow.flowdbg import BridgeState, TransportError

from .commands import CommandRegistry
from .context import DebuggerContext
from .output import emit_error, render_event
from .parser import CommandParseError, join_continuation, parse_command

LOGGER = logging.getLogger("flowdbg_cli.repl")


def dispatch_line(ctx: DebuggerContext, registry: CommandRegistry, line: str) -> int:
    """Run one prompt line and return the command's exit code."""
    try:
        parsed = parse_command(line)
    except CommandParseError as exc:
        print(f"Parse error: {exc}")
        return 1
    if parsed is None:
        return 0
    command = registry.get(parsed.name)
    if not command:
        print(f"Unknown command: {parsed.name}")
        return 1
    try:
        return command.run(ctx, parsed.args)
    except SystemExit:
        raise
    except TransportError as exc:
        emit_error(ctx, message=f"{parsed.name}: {exc}")
        return 2
    except Exception as exc:  # pragma: no cover - keep the prompt alive
        LOGGER.exception("command failed")
        print(f"Command '{parsed.name}' failed: {exc}")
        return 1


class DebuggerREPL:
    """prompt_toolkit REPL that prints bridge events between prompts."""

    def __init__(
        self,
        ctx: DebuggerContext,
        registry: CommandRegistry,
        *,
        history_path: Optional[str] = None,
    ) -> None:
        self.ctx = ctx
        self.registry = registry
        self.history_path = history_path

    def _history(self):
        if not self.history_path:
            return InMemoryHistory()
        try:
            Path(self.history_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
            return FileHistory(str(Path(self.history_path).expanduser()))
        except OSError as exc:
            LOGGER.warning("history file unavailable (%s); using in-memory history", exc)
            return InMemoryHistory()

    def prompt_text(self) -> str:
        bridge = self.ctx.bridge
        if bridge is not None and bridge.state == BridgeState.PAUSED:
            return "(paused) > "
        return "> "

    def run(self) -> int:
        self.ctx.subscribe(lambda event: render_event(self.ctx, event))
        self.ctx.bus.start()
        try:
            self.ctx.ensure_bridge()
        except TransportError as exc:
            emit_error(self.ctx, message=f"attach failed: {exc}")
            self.ctx.bus.stop()
            return 2
        completer = WordCompleter(self.registry.names(), ignore_case=True)
        session = PromptSession(history=self._history(), completer=completer)
        buffer: list[str] = []
        try:
            while True:
                try:
                    with patch_stdout():
                        line = session.prompt(self.prompt_text)
                except (EOFError, KeyboardInterrupt):
                    print()
                    return 0
                payload = join_continuation(buffer, line)
                if payload is None:
                    continue
                dispatch_line(self.ctx, self.registry, payload)
        finally:
            self.ctx.bus.stop()
