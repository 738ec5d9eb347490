"""Help text for the prompt commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from .base import Command
from ..context import DebuggerContext
from ..output import emit_error

if TYPE_CHECKING:  # pragma: no cover
    from . import CommandRegistry


class HelpCommand(Command):
    def __init__(self) -> None:
        super().__init__("help", "List commands, or show one command's usage", aliases=("?", "h"), usage="[COMMAND]")
        self._registry: Optional["CommandRegistry"] = None

    def bind(self, registry: "CommandRegistry") -> None:
        self._registry = registry

    def run(self, ctx: DebuggerContext, argv: List[str]) -> int:
        registry = self._registry
        if registry is None:
            return 1
        if not argv:
            for command in registry:
                print(command.format_help())
            return 0
        command = registry.get(argv[0])
        if command is None:
            emit_error(ctx, message=f"Unknown command: {argv[0]}")
            return 1
        print(command.format_usage())
        print(f"  {command.description}")
        if command.aliases:
            print(f"  aliases: {', '.join(command.aliases)}")
        return 0
