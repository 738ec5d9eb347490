from __future__ import annotations

import bisect
import json
import re
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .model import Block

_JS_STRING = r'"(?:[^"\\]|\\.)*"'


def _block_pattern(factory: str) -> re.Pattern:
    strings = r"\s*,\s*".join([f"({_JS_STRING})"] * 5)
    return re.compile(
        rf"{re.escape(factory)}\(\s*(\d+)\s*,\s*{strings}\s*,\s*(-?\d+)\s*,\s*(-?\d+)\s*\)"
    )


class BlockTable:
    """
    Maps 0-based script lines to the block record emitted at that line.

    A statement may span several lines, so lookups resolve to the nearest
    block starting at or before the requested line.
    """

    def __init__(self, entries: Optional[Iterable[Tuple[int, Block]]] = None) -> None:
        self._lines: List[int] = []
        self._blocks: Dict[int, Block] = {}
        for line, block in entries or ():
            self.add(line, block)

    def add(self, line: int, block: Block) -> None:
        line = int(line)
        if line not in self._blocks:
            bisect.insort(self._lines, line)
        self._blocks[line] = block

    def lookup(self, line: Optional[int]) -> Optional[Block]:
        if line is None or not self._lines:
            return None
        idx = bisect.bisect_right(self._lines, int(line)) - 1
        if idx < 0:
            return None
        return self._blocks[self._lines[idx]]

    def start_line(self, block_line: int) -> Optional[int]:
        """Script line where the directive with ``block_line`` begins."""
        for line in self._lines:
            if self._blocks[line].block_line == block_line:
                return line
        return None

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[Tuple[int, Block]]:
        for line in self._lines:
            yield line, self._blocks[line]

    def to_dict(self) -> Dict[str, object]:
        return {
            "version": 1,
            "blocks": [dict(block.to_dict(), scriptLine=line) for line, block in self],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "BlockTable":
        entries = []
        for raw in data.get("blocks", []) or []:  # type: ignore[union-attr]
            if not isinstance(raw, dict) or "scriptLine" not in raw:
                continue
            entries.append((int(raw["scriptLine"]), Block.from_dict(raw)))
        return cls(entries)

    @classmethod
    def from_file(cls, path: Path) -> "BlockTable":
        return cls.from_dict(json.loads(Path(path).read_text(encoding="utf-8")))

    def write(self, path: Path) -> None:
        Path(path).write_text(json.dumps(self.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")

    @classmethod
    def from_source(cls, source: str, *, factory: str = "generateBlock") -> "BlockTable":
        """Rebuild the table by scanning emitted script text for block calls."""
        pattern = _block_pattern(factory)
        table = cls()
        for line_no, text in enumerate(source.splitlines()):
            match = pattern.search(text)
            if not match:
                continue
            groups = match.groups()
            table.add(
                line_no,
                Block(
                    block_line=int(groups[0]),
                    flow_name=json.loads(groups[1]),
                    flow_alias_name=json.loads(groups[2]),
                    directive_name=json.loads(groups[3]),
                    directive_display_name=json.loads(groups[4]),
                    failure_strategy=json.loads(groups[5]),
                    interval_time=int(groups[6]),
                    retry_count=int(groups[7]),
                ),
            )
        return table


__all__ = ["BlockTable"]
