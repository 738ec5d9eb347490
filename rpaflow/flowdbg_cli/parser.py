"""Command-line tokenizing for the flow debugger prompt."""

from __future__ import annotations

import shlex
from typing import List, NamedTuple, Optional


class CommandParseError(ValueError):
    """Raised when a prompt line cannot be tokenized."""


class CommandLine(NamedTuple):
    name: str
    args: List[str]


def parse_command(line: str) -> Optional[CommandLine]:
    """Tokenize *line* with shell quoting rules.

    Returns ``None`` for blank input.  ``eval`` keeps the remainder of the
    line verbatim so expressions with quotes survive untouched.
    """
    stripped = (line or "").strip()
    if not stripped:
        return None
    head, _, rest = stripped.partition(" ")
    if head in ("eval", "p", "print"):
        rest = rest.strip()
        return CommandLine(head, [rest] if rest else [])
    try:
        tokens = shlex.split(stripped, comments=False, posix=True)
    except ValueError as exc:
        raise CommandParseError(str(exc)) from exc
    if not tokens:
        return None
    return CommandLine(tokens[0], tokens[1:])


def join_continuation(buffer: List[str], line: str) -> Optional[str]:
    """Accumulate backslash-continued lines; return the full line when complete."""
    stripped = line.rstrip()
    if stripped.endswith("\\"):
        buffer.append(stripped[:-1])
        return None
    if buffer:
        buffer.append(stripped)
        payload = " ".join(buffer)
        buffer.clear()
        return payload
    return line


__all__ = ["CommandLine", "CommandParseError", "join_continuation", "parse_command"]
