"""Command base class for the flow debugger."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from ..context import DebuggerContext


@dataclass
class Command:
    """A named prompt command; ``usage`` lists its arguments for ``help NAME``."""

    name: str
    description: str
    aliases: Sequence[str] = field(default_factory=tuple)
    usage: str = ""

    def run(self, ctx: DebuggerContext, argv: List[str]) -> int:
        raise NotImplementedError(f"{type(self).__name__} must implement run()")

    def format_help(self) -> str:
        return f"{self.name:<12} {self.description}"

    def format_usage(self) -> str:
        return f"usage: {self.name} {self.usage}".rstrip()
