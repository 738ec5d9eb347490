"""Breakpoint registry shared by every connection of a debug session."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional


@dataclass
class Breakpoint:
    url: str
    line: int
    id: Optional[str] = None
    call_frame: Optional[Dict[str, Any]] = None
    scope_chain: Optional[List[Dict[str, Any]]] = None

    def matches(self, url: str, line: int) -> bool:
        return self.url == url and self.line == int(line)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"url": self.url, "line": self.line}
        if self.id is not None:
            payload["id"] = self.id
        return payload

    @classmethod
    def parse(cls, text: str) -> "Breakpoint":
        """Parse ``URL:LINE`` (the line is the last colon-separated field)."""
        url, sep, line_text = text.rpartition(":")
        if not sep or not url:
            raise ValueError(f"breakpoint must be URL:LINE, got {text!r}")
        try:
            line = int(line_text)
        except ValueError:
            raise ValueError(f"invalid breakpoint line in {text!r}") from None
        return cls(url=url, line=line)


class BreakpointRegistry:
    """
    Ordered breakpoint intent, looked up by ``(url, line)`` equality.

    The registry outlives any single connection; protocol ids are cleared on
    reconnect and re-assigned when the breakpoints are armed again.  The
    re-entrant ``lock`` is held by the bridge while arming so that add/remove
    calls cannot interleave with an id back-fill.  Reads and writes of the item
    list take a separate short-lived guard, so ``find_by_id`` never waits on
    an arming batch.
    """

    def __init__(self, breakpoints: Optional[Iterable[Breakpoint]] = None) -> None:
        self.lock = threading.RLock()
        self._guard = threading.Lock()
        self._items: List[Breakpoint] = []
        for bp in breakpoints or ():
            self.add(bp)

    def add(self, breakpoint: Breakpoint) -> Breakpoint:
        with self._guard:
            for existing in self._items:
                if existing.matches(breakpoint.url, breakpoint.line):
                    return existing
            self._items.append(breakpoint)
            return breakpoint

    def find(self, url: str, line: int) -> Optional[Breakpoint]:
        with self._guard:
            for bp in self._items:
                if bp.matches(url, line):
                    return bp
        return None

    def find_by_id(self, breakpoint_id: str) -> Optional[Breakpoint]:
        with self._guard:
            for bp in self._items:
                if bp.id == breakpoint_id:
                    return bp
        return None

    def remove(self, url: str, line: int) -> Optional[Breakpoint]:
        with self._guard:
            for idx, bp in enumerate(self._items):
                if bp.matches(url, line):
                    return self._items.pop(idx)
        return None

    def clear_ids(self) -> None:
        with self._guard:
            for bp in self._items:
                bp.id = None

    def snapshot(self) -> List[Breakpoint]:
        with self._guard:
            return list(self._items)

    def __len__(self) -> int:
        with self._guard:
            return len(self._items)

    def __iter__(self) -> Iterator[Breakpoint]:
        return iter(self.snapshot())


__all__ = ["Breakpoint", "BreakpointRegistry"]
