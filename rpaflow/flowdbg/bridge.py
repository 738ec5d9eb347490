"""Remote debug bridge built on top of the CDP transport."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from rpaflow.flowc.blocks import BlockTable

from .breakpoints import Breakpoint, BreakpointRegistry
from .context import ExecutionContextTracker
from .events import (
    BreakpointHit,
    BridgeClosed,
    ConsoleApiCalled,
    ExceptionReport,
    ExceptionThrown,
    Paused,
    Resumed,
    ScriptParsed,
    parse_notification,
)
from .transport import CDPTransport, ProtocolError, TransportConfig, TransportError


logger = logging.getLogger(__name__)

BreakpointListener = Callable[[BreakpointHit], None]
ConsoleListener = Callable[[ConsoleApiCalled], None]
ExceptionListener = Callable[[ExceptionReport], None]
CloseListener = Callable[[BridgeClosed], None]


class BridgeState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"
    PAUSED = "paused"
    CLOSED = "closed"


@dataclass
class BridgeConfig:
    flow_script_marker: str = "flow.js"
    connect_timeout: float = 5.0
    command_timeout: float = 10.0
    block_factory: str = "generateBlock"


class DebugBridge:
    """
    Attach to a script host's debugging endpoint and translate its events.

    Listener callbacks run on the transport's reader thread.  They must not
    issue blocking commands (``run_js``, ``get_properties``, breakpoint
    changes); hand the event to another thread (e.g. an ``EventBus``) first.
    """

    def __init__(
        self,
        url: str,
        breakpoints: Union[BreakpointRegistry, Iterable[Breakpoint], None] = None,
        *,
        config: Optional[BridgeConfig] = None,
        block_table: Optional[BlockTable] = None,
        transport: Optional[CDPTransport] = None,
        on_breakpoint: Iterable[BreakpointListener] = (),
        on_console: Iterable[ConsoleListener] = (),
        on_exception: Iterable[ExceptionListener] = (),
        on_close: Iterable[CloseListener] = (),
    ) -> None:
        self.url = url
        self.config = config or BridgeConfig()
        if isinstance(breakpoints, BreakpointRegistry):
            self.registry = breakpoints
        else:
            self.registry = BreakpointRegistry(breakpoints)
        self.block_table = block_table
        self.transport = transport or CDPTransport(
            TransportConfig(
                url=url,
                connect_timeout=self.config.connect_timeout,
                command_timeout=self.config.command_timeout,
            )
        )
        self.transport.set_event_handler(self._handle_notification)
        self.transport.register_on_disconnect(self._handle_disconnect)
        self.context = ExecutionContextTracker()

        self._breakpoint_listeners: List[BreakpointListener] = list(on_breakpoint)
        self._console_listeners: List[ConsoleListener] = list(on_console)
        self._exception_listeners: List[ExceptionListener] = list(on_exception)
        self._close_listeners: List[CloseListener] = list(on_close)
        self._state = BridgeState.DISCONNECTED
        self._state_lock = threading.Lock()
        self._stopped = False
        self._source_tables: Dict[str, BlockTable] = {}
        self._source_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Listener registration
    # ------------------------------------------------------------------
    def on_breakpoint(self, callback: BreakpointListener) -> None:
        self._breakpoint_listeners.append(callback)

    def on_console(self, callback: ConsoleListener) -> None:
        self._console_listeners.append(callback)

    def on_exception(self, callback: ExceptionListener) -> None:
        self._exception_listeners.append(callback)

    def on_close(self, callback: CloseListener) -> None:
        self._close_listeners.append(callback)

    def set_block_table(self, table: Optional[BlockTable]) -> None:
        self.block_table = table

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def state(self) -> BridgeState:
        with self._state_lock:
            return self._state

    @property
    def breakpoints(self) -> List[Breakpoint]:
        return self.registry.snapshot()

    def start(self) -> None:
        """Connect, enable the debugging domains and arm every registered breakpoint."""
        if self._stopped:
            raise TransportError("bridge closed")
        self._set_state(BridgeState.CONNECTING)
        self.context.reset()
        with self._source_lock:
            self._source_tables.clear()
        self.registry.clear_ids()
        try:
            self.transport.connect()
            self.transport.send_command("Debugger.enable", {})
            self.transport.send_command("Runtime.enable", {})
            self.arm_breakpoints()
        except TransportError:
            if self.state == BridgeState.CONNECTING:
                self._set_state(BridgeState.DISCONNECTED)
            raise
        with self._state_lock:
            if self._state == BridgeState.CONNECTING:
                self._state = BridgeState.READY
        logger.info("bridge ready on %s (%d breakpoints)", self.url, len(self.registry))

    def stop(self) -> None:
        self._stopped = True
        self.transport.close()
        self._set_state(BridgeState.CLOSED)

    def close(self) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Breakpoints
    # ------------------------------------------------------------------
    def arm_breakpoints(self) -> List[Breakpoint]:
        """Submit every registered breakpoint at once, then back-fill ids in submission order."""
        with self.registry.lock:
            items = self.registry.snapshot()
            pending = [
                self.transport.submit("Debugger.setBreakpointByUrl", {"url": bp.url, "lineNumber": bp.line})
                for bp in items
            ]
            results: List[Optional[Dict[str, Any]]] = []
            for cmd in pending:
                try:
                    results.append(self.transport.wait(cmd))
                except ProtocolError as exc:
                    logger.warning("breakpoint arm failed: %s", exc)
                    results.append(None)
            for bp, result in zip(items, results):
                bp.id = result.get("breakpointId") if result else None
            return items

    def add_breakpoint(self, url: str, line: int) -> Breakpoint:
        with self.registry.lock:
            bp = self.registry.add(Breakpoint(url=url, line=int(line)))
            if bp.id is None and self._is_live():
                result = self.transport.send_command(
                    "Debugger.setBreakpointByUrl",
                    {"url": bp.url, "lineNumber": bp.line},
                )
                bp.id = result.get("breakpointId")
            return bp

    def remove_breakpoint(self, url: str, line: int) -> bool:
        """Disarm and evict a breakpoint; unknown breakpoints are ignored."""
        with self.registry.lock:
            bp = self.registry.find(url, int(line))
            if bp is None:
                return False
            if bp.id is not None and self._is_live():
                self.transport.send_command("Debugger.removeBreakpoint", {"breakpointId": bp.id})
            self.registry.remove(url, int(line))
            return True

    # ------------------------------------------------------------------
    # Execution control
    # ------------------------------------------------------------------
    def resume(self) -> None:
        self._leave_pause()
        self.transport.notify("Debugger.resume", {"terminateOnResume": False})

    def step_over(self) -> None:
        self._leave_pause()
        self.transport.notify("Debugger.stepOver", {})

    def run_js(self, code: str) -> Dict[str, Any]:
        """
        Evaluate ``code`` on the paused call frame.

        Requires a preceding breakpoint hit; raises ``NotPausedError`` otherwise.
        """
        frame = self.context.require_paused()
        return self.transport.send_command(
            "Debugger.evaluateOnCallFrame",
            {"expression": code, "callFrameId": frame.call_frame_id},
        )

    def get_properties(self, object_id: str) -> List[Dict[str, Any]]:
        result = self.transport.send_command(
            "Runtime.getProperties",
            {
                "objectId": object_id,
                "ownProperties": False,
                "accessorPropertiesOnly": False,
                "nonIndexedPropertiesOnly": False,
                "generatePreview": True,
            },
        )
        return list(result.get("result") or [])

    # ------------------------------------------------------------------
    # Notification handling
    # ------------------------------------------------------------------
    def is_flow_script(self, url: Optional[str]) -> bool:
        return bool(url) and self.config.flow_script_marker in str(url)

    def describe_exception(self, event: ExceptionThrown, table: Optional[BlockTable] = None) -> ExceptionReport:
        report = ExceptionReport(description=event.description)
        table = table if table is not None else self.block_table
        _script_id, line = self._flow_location(event)
        block = table.lookup(line) if table is not None else None
        if block is None:
            return report
        report.block_line = block.block_line
        report.flow_name = block.flow_name
        report.directive_name = block.directive_name
        report.directive_display_name = block.directive_display_name
        report.failure_strategy = block.failure_strategy
        return report

    def _flow_location(self, event: ExceptionThrown) -> Tuple[Optional[str], Optional[int]]:
        for frame in event.stack_frames:
            url = frame.get("url") or self.context.script_url(frame.get("scriptId"))
            if self.is_flow_script(url):
                return frame.get("scriptId"), frame.get("lineNumber")
        url = event.url or self.context.script_url(event.script_id)
        if self.is_flow_script(url):
            return event.script_id, event.line_number
        return None, None

    def _report_exception(self, event: ExceptionThrown) -> None:
        """
        Publish an enriched exception report.

        Without an injected block table the flow script's source is fetched
        once per scriptId and scanned for block calls.  The fetch completes on
        the reader thread through a future callback, so nothing here blocks.
        """
        script_id, _line = self._flow_location(event)
        if self.block_table is not None or not script_id:
            self._publish_exception(self.describe_exception(event))
            return
        script_id = str(script_id)
        with self._source_lock:
            cached = self._source_tables.get(script_id)
        if cached is not None:
            self._publish_exception(self.describe_exception(event, cached))
            return
        try:
            pending = self.transport.submit("Debugger.getScriptSource", {"scriptId": script_id})
        except TransportError as exc:
            logger.warning("cannot fetch flow script %s: %s", script_id, exc)
            self._publish_exception(self.describe_exception(event))
            return
        pending.add_done_callback(lambda future: self._on_script_source(future, script_id, event))

    def _on_script_source(self, future: Future, script_id: str, event: ExceptionThrown) -> None:
        table: Optional[BlockTable] = None
        try:
            result = future.result()
        except TransportError as exc:
            logger.warning("flow script %s source unavailable: %s", script_id, exc)
        else:
            table = BlockTable.from_source(str(result.get("scriptSource") or ""), factory=self.config.block_factory)
            with self._source_lock:
                self._source_tables[script_id] = table
            logger.debug("rebuilt %d blocks from flow script %s", len(table), script_id)
        self._publish_exception(self.describe_exception(event, table))

    def _publish_exception(self, report: ExceptionReport) -> None:
        logger.info("uncaught exception at block %s: %s", report.block_line, report.description)
        self._emit(self._exception_listeners, report)

    def _handle_notification(self, message: Dict[str, Any]) -> None:
        event = parse_notification(message)
        if isinstance(event, ScriptParsed):
            self.context.record_script(event)
        elif isinstance(event, Paused):
            self._handle_paused(event)
        elif isinstance(event, Resumed):
            self._leave_pause()
        elif isinstance(event, ExceptionThrown):
            self._report_exception(event)
        elif isinstance(event, ConsoleApiCalled):
            logger.debug("console.%s %s", event.type, event.text())
            self._emit(self._console_listeners, event)

    def _handle_paused(self, event: Paused) -> None:
        frame = event.top_frame
        if frame is None:
            self.resume()
            return
        location = frame.get("location") or {}
        url = self.context.script_url(location.get("scriptId"))
        if not self.is_flow_script(url):
            logger.debug("skipping pause outside the flow script (%s)", url)
            self.resume()
            return
        paused = self.context.capture(frame)
        for breakpoint_id in event.params.get("hitBreakpoints") or ():
            bp = self.registry.find_by_id(breakpoint_id)
            if bp is not None:
                bp.call_frame = frame
                bp.scope_chain = paused.scope_chain
        self._set_state(BridgeState.PAUSED)
        logger.debug("paused at %s:%d", url, paused.line_number)
        hit = BreakpointHit(
            scope_chain=paused.scope_chain,
            call_frame=frame,
            url=str(url),
            line=paused.line_number,
        )
        self._emit(self._breakpoint_listeners, hit)

    def _handle_disconnect(self, _state: str) -> None:
        self.context.clear_pause()
        self._set_state(BridgeState.CLOSED)
        reason = "stopped" if self._stopped else "connection closed"
        self._emit(self._close_listeners, BridgeClosed(reason=reason))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _is_live(self) -> bool:
        return self.state in (BridgeState.CONNECTING, BridgeState.READY, BridgeState.PAUSED)

    def _leave_pause(self) -> None:
        self.context.clear_pause()
        with self._state_lock:
            if self._state == BridgeState.PAUSED:
                self._state = BridgeState.READY

    def _set_state(self, state: BridgeState) -> None:
        with self._state_lock:
            self._state = state

    def _emit(self, listeners: List[Callable[[Any], None]], payload: Any) -> None:
        for callback in list(listeners):
            try:
                callback(payload)
            except Exception:
                logger.exception("%s listener failed", getattr(payload, "category", "event"))


__all__ = ["BridgeConfig", "BridgeState", "DebugBridge"]
