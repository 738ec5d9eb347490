"""Protocol notification parsing, outward event records and the event bus."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, List, Optional


EventHandler = Callable[[Any], None]


def _to_int(value: Any) -> Optional[int]:
    try:
        if value is None:
            return None
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_float(value: Any) -> float:
    try:
        if value is None:
            return 0.0
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _ensure_dict_list(value: Any) -> List[Dict[str, Any]]:
    if isinstance(value, (list, tuple)):
        return [item for item in value if isinstance(item, dict)]
    return []


#
# Inbound protocol notifications
#
@dataclass
class Notification:
    method: str
    params: Dict[str, Any] = field(default_factory=dict)

    category: ClassVar[str] = "notification"


@dataclass
class ScriptParsed(Notification):
    script_id: str = ""
    url: str = ""


@dataclass
class Paused(Notification):
    call_frames: List[Dict[str, Any]] = field(default_factory=list)
    reason: Optional[str] = None

    category: ClassVar[str] = "paused"

    @property
    def top_frame(self) -> Optional[Dict[str, Any]]:
        return self.call_frames[0] if self.call_frames else None


@dataclass
class Resumed(Notification):
    pass


@dataclass
class ExceptionThrown(Notification):
    details: Dict[str, Any] = field(default_factory=dict)
    description: str = ""
    line_number: Optional[int] = None
    column_number: Optional[int] = None
    script_id: Optional[str] = None
    url: Optional[str] = None
    stack_frames: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class ConsoleApiCalled(Notification):
    """Console output from the script host, forwarded as received."""

    type: str = "log"
    args: List[Dict[str, Any]] = field(default_factory=list)
    execution_context_id: Optional[int] = None
    timestamp: float = 0.0
    stack_trace: Optional[Dict[str, Any]] = None

    category: ClassVar[str] = "console"

    def text(self) -> str:
        parts = []
        for arg in self.args:
            if "value" in arg:
                parts.append(str(arg["value"]))
            else:
                parts.append(str(arg.get("description") or arg.get("type") or ""))
        return " ".join(parts)


def _exception_description(details: Dict[str, Any]) -> str:
    exception = details.get("exception")
    if isinstance(exception, dict):
        description = exception.get("description")
        if description:
            return str(description)
        if "value" in exception:
            return str(exception["value"])
    return str(details.get("text") or "")


def parse_notification(message: Dict[str, Any]) -> Notification:
    """Convert a raw ``{method, params}`` envelope into a typed notification."""

    method = str(message.get("method") or "")
    params = message.get("params") or {}

    if method == "Debugger.scriptParsed":
        return ScriptParsed(
            method=method,
            params=params,
            script_id=str(params.get("scriptId") or ""),
            url=str(params.get("url") or ""),
        )
    if method == "Debugger.paused":
        return Paused(
            method=method,
            params=params,
            call_frames=_ensure_dict_list(params.get("callFrames")),
            reason=params.get("reason"),
        )
    if method == "Debugger.resumed":
        return Resumed(method=method, params=params)
    if method == "Runtime.exceptionThrown":
        details = params.get("exceptionDetails") or {}
        stack = details.get("stackTrace") or {}
        return ExceptionThrown(
            method=method,
            params=params,
            details=details,
            description=_exception_description(details),
            line_number=_to_int(details.get("lineNumber")),
            column_number=_to_int(details.get("columnNumber")),
            script_id=details.get("scriptId"),
            url=details.get("url"),
            stack_frames=_ensure_dict_list(stack.get("callFrames")),
        )
    if method == "Runtime.consoleAPICalled":
        return ConsoleApiCalled(
            method=method,
            params=params,
            type=str(params.get("type") or "log"),
            args=_ensure_dict_list(params.get("args")),
            execution_context_id=_to_int(params.get("executionContextId")),
            timestamp=_to_float(params.get("timestamp")),
            stack_trace=params.get("stackTrace"),
        )
    return Notification(method=method, params=params)


#
# Outward events
#
@dataclass
class BreakpointHit:
    scope_chain: List[Dict[str, Any]]
    call_frame: Dict[str, Any]
    url: str
    line: int

    category: ClassVar[str] = "breakpoint"


@dataclass
class ExceptionReport:
    """Uncaught exception, attributed to the flow block that raised it when known."""

    description: str
    block_line: int = 0
    flow_name: str = ""
    directive_name: str = ""
    directive_display_name: str = ""
    failure_strategy: str = ""

    category: ClassVar[str] = "exception"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "blockLine": self.block_line,
            "flowName": self.flow_name,
            "directiveName": self.directive_name,
            "directiveDisplayName": self.directive_display_name,
            "failureStrategy": self.failure_strategy,
        }


@dataclass
class BridgeClosed:
    reason: str = "closed"

    category: ClassVar[str] = "closed"


@dataclass
class EventSubscription:
    categories: Optional[List[str]] = None
    queue_size: int = 256
    handler: EventHandler = lambda event: None
    _queue: queue.Queue = field(init=False)

    def __post_init__(self) -> None:
        self._queue = queue.Queue(maxsize=self.queue_size)

    def push(self, event: Any) -> None:
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            # Drop oldest event to keep bus responsive
            try:
                self._queue.get_nowait()
            except queue.Empty:
                pass
            self._queue.put_nowait(event)

    def dispatch(self) -> None:
        while True:
            try:
                event = self._queue.get_nowait()
            except queue.Empty:
                break
            self.handler(event)


class EventBus:
    """Queue bridge events and fan them out to subscribers on the caller's thread."""

    def __init__(self) -> None:
        self._subs: Dict[int, EventSubscription] = {}
        self._lock = threading.Lock()
        self._next_token = 1
        self._worker: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._interval = 0.01

    def subscribe(self, sub: EventSubscription) -> int:
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._subs[token] = sub
            return token

    def unsubscribe(self, token: int) -> None:
        with self._lock:
            self._subs.pop(token, None)

    def publish(self, event: Any) -> None:
        category = getattr(event, "category", None)
        with self._lock:
            subscriptions = list(self._subs.values())
        for sub in subscriptions:
            if not sub.categories or category in sub.categories:
                sub.push(event)

    def pump(self) -> None:
        """Dispatch queued events on all subscriptions."""
        with self._lock:
            tokens = list(self._subs.keys())
        for token in tokens:
            sub = self._subs.get(token)
            if sub:
                sub.dispatch()

    def start(self, interval: float = 0.01) -> None:
        """Start background dispatcher that periodically pumps the bus."""

        self._interval = interval
        if self._worker and self._worker.is_alive():
            return
        self._stop_event.clear()
        self._worker = threading.Thread(target=self._run, daemon=True)
        self._worker.start()

    def stop(self) -> None:
        self._stop_event.set()
        worker = self._worker
        if worker and worker.is_alive():
            worker.join(timeout=0.5)
        self._worker = None

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            self.pump()
        self.pump()
