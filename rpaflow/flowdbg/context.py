"""Script records and paused-frame state for the bridge."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .events import ScriptParsed


class NotPausedError(RuntimeError):
    """Raised when a frame-scoped operation is attempted while the script runs."""


@dataclass
class ScriptRecord:
    script_id: str
    url: str
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PausedFrame:
    call_frame_id: str
    script_id: str
    line_number: int
    column_number: int
    scope_chain: List[Dict[str, Any]] = field(default_factory=list)
    call_frame: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_call_frame(cls, frame: Dict[str, Any]) -> "PausedFrame":
        location = frame.get("location") or {}
        return cls(
            call_frame_id=str(frame.get("callFrameId") or ""),
            script_id=str(location.get("scriptId") or ""),
            line_number=int(location.get("lineNumber") or 0),
            column_number=int(location.get("columnNumber") or 0),
            scope_chain=list(frame.get("scopeChain") or []),
            call_frame=frame,
        )


class ExecutionContextTracker:
    """Connection-scoped cache of parsed scripts plus the current paused frame."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._scripts: Dict[str, ScriptRecord] = {}
        self._paused: Optional[PausedFrame] = None

    def reset(self) -> None:
        with self._lock:
            self._scripts.clear()
            self._paused = None

    def record_script(self, event: ScriptParsed) -> ScriptRecord:
        record = ScriptRecord(script_id=event.script_id, url=event.url, params=dict(event.params))
        with self._lock:
            self._scripts[record.script_id] = record
        return record

    def script(self, script_id: Optional[str]) -> Optional[ScriptRecord]:
        if script_id is None:
            return None
        with self._lock:
            return self._scripts.get(str(script_id))

    def script_url(self, script_id: Optional[str]) -> Optional[str]:
        record = self.script(script_id)
        return record.url if record else None

    @property
    def script_count(self) -> int:
        with self._lock:
            return len(self._scripts)

    def capture(self, frame: Dict[str, Any]) -> PausedFrame:
        paused = PausedFrame.from_call_frame(frame)
        with self._lock:
            self._paused = paused
        return paused

    def clear_pause(self) -> None:
        with self._lock:
            self._paused = None

    @property
    def paused(self) -> Optional[PausedFrame]:
        with self._lock:
            return self._paused

    def require_paused(self) -> PausedFrame:
        paused = self.paused
        if paused is None or not paused.call_frame_id:
            raise NotPausedError("no paused call frame; wait for a breakpoint hit first")
        return paused


__all__ = ["ExecutionContextTracker", "NotPausedError", "PausedFrame", "ScriptRecord"]
