"""
Transport layer for flowdbg.

Responsibilities:
    * Own the websocket connection to a remote-debugging endpoint.
    * Frame commands as ``{id, method, params}`` envelopes with monotonically
      increasing ids and correlate replies through a pending-request table.
    * Route notifications (envelopes carrying ``method`` but no ``id``) to a
      single event handler.
    * Surface connection state changes to callers.
"""

from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import websocket

logger = logging.getLogger(__name__)


class TransportError(RuntimeError):
    """Raised when the transport cannot complete an operation."""


class CommandTimeout(TransportError):
    """The protocol endpoint did not answer a command in time."""


class ProtocolError(TransportError):
    """The endpoint answered a command with an error envelope."""

    def __init__(self, method: str, error: Dict[str, Any]) -> None:
        self.method = method
        self.code = error.get("code")
        self.data = error.get("data")
        super().__init__(f"{method} failed: {error.get('message', 'unknown error')} (code={self.code})")


class PendingCommand(Future):
    """Future for one in-flight command."""

    def __init__(self, request_id: int, method: str) -> None:
        super().__init__()
        self.request_id = request_id
        self.method = method


@dataclass
class TransportConfig:
    url: str = "ws://127.0.0.1:9229"
    connect_timeout: float = 5.0
    command_timeout: float = 10.0
    connection_factory: Optional[Callable[..., Any]] = None


@dataclass
class CDPTransport:
    """Threaded JSON-over-websocket command channel."""

    config: TransportConfig = field(default_factory=TransportConfig)

    _ws: Any = field(init=False, default=None)
    _lock: threading.Lock = field(init=False, default_factory=threading.Lock)
    _send_lock: threading.Lock = field(init=False, default_factory=threading.Lock)
    _connect_lock: threading.Lock = field(init=False, default_factory=threading.Lock)
    _state_lock: threading.Lock = field(init=False, default_factory=threading.Lock)
    _state: str = field(init=False, default="disconnected")
    _shutdown: bool = field(init=False, default=False)
    _next_id: int = field(init=False, default=1)
    _reader_thread: Optional[threading.Thread] = field(init=False, default=None)
    _pending: Dict[int, PendingCommand] = field(init=False, default_factory=dict)
    _event_handler: Optional[Callable[[Dict[str, Any]], None]] = field(init=False, default=None)
    _on_connect: list[Callable[[str], None]] = field(init=False, default_factory=list)
    _on_disconnect: list[Callable[[str], None]] = field(init=False, default_factory=list)

    #
    # Connection lifecycle helpers
    #
    @property
    def state(self) -> str:
        with self._state_lock:
            return self._state

    @property
    def connected(self) -> bool:
        return self.state == "connected"

    def register_on_connect(self, callback: Callable[[str], None]) -> None:
        self._on_connect.append(callback)

    def register_on_disconnect(self, callback: Callable[[str], None]) -> None:
        self._on_disconnect.append(callback)

    def set_event_handler(self, handler: Optional[Callable[[Dict[str, Any]], None]]) -> None:
        self._event_handler = handler

    def connect(self) -> None:
        """Open the websocket and start the reader thread."""
        with self._connect_lock:
            if self._ws is not None:
                return
            if self._shutdown:
                raise TransportError("transport closed")
            self._set_state("connecting")
            factory = self.config.connection_factory or websocket.create_connection
            try:
                ws = factory(self.config.url, timeout=self.config.connect_timeout)
                ws.settimeout(None)
            except (OSError, websocket.WebSocketException) as exc:
                self._set_state("disconnected")
                raise TransportError(f"connect failed: {exc}") from exc
            self._ws = ws
            logger.info("connected to %s", self.config.url)
            self._set_state("connected")
            self._reader_thread = threading.Thread(
                target=self._reader_loop, args=(ws,), name="flowdbg-reader", daemon=True
            )
            self._reader_thread.start()

    def close(self) -> None:
        self._shutdown = True
        self._handle_disconnect()
        thread = self._reader_thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=0.5)

    #
    # Command helpers
    #
    def submit(self, method: str, params: Optional[Dict[str, Any]] = None) -> PendingCommand:
        """Send a command and return a future for its reply without blocking."""
        request_id = self._next_seq()
        pending = PendingCommand(request_id, method)
        with self._lock:
            self._pending[request_id] = pending
        try:
            self._send({"id": request_id, "method": method, "params": params or {}})
        except TransportError:
            with self._lock:
                self._pending.pop(request_id, None)
            raise
        return pending

    def wait(self, pending: PendingCommand, timeout: Optional[float] = None) -> Dict[str, Any]:
        try:
            return pending.result(timeout=timeout or self.config.command_timeout)
        except FutureTimeout:
            with self._lock:
                self._pending.pop(pending.request_id, None)
            raise CommandTimeout(f"{pending.method}: protocol endpoint unresponsive") from None

    def send_command(
        self,
        method: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Send a command and block until its reply arrives."""
        return self.wait(self.submit(method, params), timeout=timeout)

    def notify(self, method: str, params: Optional[Dict[str, Any]] = None) -> int:
        """Fire-and-forget command; its reply is dropped on arrival."""
        request_id = self._next_seq()
        self._send({"id": request_id, "method": method, "params": params or {}})
        return request_id

    #
    # Internal helpers
    #
    def _next_seq(self) -> int:
        with self._lock:
            seq = self._next_id
            self._next_id += 1
            return seq

    def _send(self, envelope: Dict[str, Any]) -> None:
        if self._shutdown:
            raise TransportError("transport closed")
        ws = self._ws
        if ws is None:
            raise TransportError("not connected")
        data = json.dumps(envelope)
        logger.debug("send %s", data)
        try:
            with self._send_lock:
                ws.send(data)
        except (OSError, websocket.WebSocketException) as exc:
            self._handle_disconnect(exc, owner=ws)
            raise TransportError(f"send failed: {exc}") from exc

    def _reader_loop(self, ws: Any) -> None:
        error: Optional[BaseException] = None
        while not self._shutdown and self._ws is ws:
            try:
                raw = ws.recv()
            except (OSError, websocket.WebSocketException) as exc:
                if not self._shutdown:
                    logger.warning("connection error: %s", exc)
                error = exc
                break
            if not raw:
                break
            try:
                message = json.loads(raw)
            except (TypeError, ValueError):
                logger.debug("dropping non-JSON frame: %r", raw)
                continue
            if isinstance(message, dict):
                self._dispatch(message)
        self._handle_disconnect(error, owner=ws)

    def _dispatch(self, message: Dict[str, Any]) -> None:
        if "id" in message and "method" not in message:
            self._handle_response(message)
            return
        if "method" in message:
            self._dispatch_event(message)

    def _handle_response(self, message: Dict[str, Any]) -> None:
        with self._lock:
            pending = self._pending.pop(message.get("id"), None)
        if pending is None:
            logger.debug("dropping unmatched response id=%s", message.get("id"))
            return
        logger.debug("recv %s", message)
        error = message.get("error")
        if isinstance(error, dict):
            pending.set_exception(ProtocolError(pending.method, error))
        else:
            pending.set_result(message.get("result") or {})

    def _dispatch_event(self, message: Dict[str, Any]) -> None:
        handler = self._event_handler
        if not handler:
            return
        try:
            handler(message)
        except Exception:
            logger.exception("event handler failed for %s", message.get("method"))

    def _handle_disconnect(self, exc: Optional[BaseException] = None, owner: Any = None) -> None:
        """Tear down the current socket; a stale ``owner`` leaves a newer one alone."""
        with self._lock:
            ws = self._ws
            if owner is not None and ws is not owner:
                return
            self._ws = None
        if ws is not None:
            try:
                ws.close()
            except (OSError, websocket.WebSocketException):
                pass
            logger.info("connection to %s closed", self.config.url)
        with self._lock:
            pending = list(self._pending.values())
            self._pending.clear()
        for item in pending:
            if not item.done():
                item.set_exception(TransportError("connection closed"))
        self._set_state("disconnected")

    def _set_state(self, new_state: str) -> None:
        with self._state_lock:
            previous = self._state
            if previous == new_state:
                return
            self._state = new_state
        callbacks: list[Callable[[str], None]]
        if new_state == "connected":
            callbacks = list(self._on_connect)
        elif new_state == "disconnected" and previous == "connected":
            callbacks = list(self._on_disconnect)
        else:
            callbacks = []
        for callback in callbacks:
            try:
                callback(new_state)
            except Exception:
                logger.exception("state callback failed for %s", new_state)
