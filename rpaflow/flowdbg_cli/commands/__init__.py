"""Prompt commands and their name/alias registry."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional

from .base import Command
from .breakpoints import BreakpointCommand
from .control import ContinueCommand, ExitCommand, NextCommand
from .help import HelpCommand
from .inspect import EvalCommand, PropsCommand, ScopesCommand
from .status import StatusCommand


class CommandRegistry:
    """Commands in registration order, reachable by name or alias."""

    def __init__(self, commands: Iterable[Command] = ()) -> None:
        self._by_name: Dict[str, Command] = {}
        self._commands: List[Command] = []
        for command in commands:
            self.register(command)

    def register(self, command: Command) -> None:
        keys = (command.name, *command.aliases)
        for key in keys:
            owner = self._by_name.get(key)
            if owner is not None and owner is not command:
                raise ValueError(f"command name {key!r} already taken by {owner.name!r}")
        self._commands.append(command)
        for key in keys:
            self._by_name[key] = command
        bind = getattr(command, "bind", None)
        if callable(bind):
            bind(self)

    def get(self, name: str) -> Optional[Command]:
        return self._by_name.get(name)

    def names(self) -> List[str]:
        """Every name and alias, for prompt completion."""
        return sorted(self._by_name)

    def __iter__(self) -> Iterator[Command]:
        return iter(self._commands)


def build_registry() -> CommandRegistry:
    return CommandRegistry(
        [
            HelpCommand(),
            StatusCommand(),
            BreakpointCommand(),
            ContinueCommand(),
            NextCommand(),
            EvalCommand(),
            PropsCommand(),
            ScopesCommand(),
            ExitCommand(),
        ]
    )


__all__ = ["Command", "CommandRegistry", "build_registry"]
