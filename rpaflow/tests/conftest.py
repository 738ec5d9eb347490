"""
Pytest fixtures for the flow compiler and debug bridge tests.
"""
from __future__ import annotations

import json
import queue
import threading
from typing import Any, Callable, Dict, List, Optional

import pytest
import websocket

Responder = Callable[["FakeWebSocket", Dict[str, Any]], None]


class FakeWebSocket:
    """In-process stand-in for a websocket-client connection.

    Sent envelopes are recorded; ``responder`` is invoked for each of them
    and may push replies or notifications back with :meth:`push`.
    """

    def __init__(self, responder: Optional[Responder] = None) -> None:
        self.sent: List[Dict[str, Any]] = []
        self.responder = responder
        self.timeout: Optional[float] = None
        self.closed = False
        self._inbox: "queue.Queue[Optional[str]]" = queue.Queue()
        self._lock = threading.Lock()

    # websocket-client surface
    def settimeout(self, timeout: Optional[float]) -> None:
        self.timeout = timeout

    def send(self, data: str) -> None:
        if self.closed:
            raise websocket.WebSocketConnectionClosedException("socket is already closed.")
        envelope = json.loads(data)
        with self._lock:
            self.sent.append(envelope)
        if self.responder is not None:
            self.responder(self, envelope)

    def recv(self) -> str:
        item = self._inbox.get()
        if item is None:
            return ""
        return item

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._inbox.put(None)

    # test helpers
    def push(self, message: Dict[str, Any]) -> None:
        self._inbox.put(json.dumps(message))

    def reply(self, envelope: Dict[str, Any], result: Optional[Dict[str, Any]] = None) -> None:
        self.push({"id": envelope["id"], "result": result or {}})

    def ack(self, envelope: Dict[str, Any]) -> None:
        """Default reply: breakpoints get a deterministic id, everything else an empty result."""
        if envelope["method"] == "Debugger.setBreakpointByUrl":
            params = envelope["params"]
            self.reply(envelope, {"breakpointId": f"bp:{params['url']}:{params['lineNumber']}"})
        else:
            self.reply(envelope)

    def drop_connection(self) -> None:
        self._inbox.put(None)

    def methods(self) -> List[str]:
        with self._lock:
            return [item["method"] for item in self.sent]


def ack_everything(ws: FakeWebSocket, envelope: Dict[str, Any]) -> None:
    ws.ack(envelope)


@pytest.fixture
def fake_ws_factory():
    """Return ``(factory, sockets)``; the factory plugs into ``TransportConfig``."""
    sockets: List[FakeWebSocket] = []

    def make(responder: Optional[Responder] = ack_everything):
        def factory(url: str, timeout: Optional[float] = None) -> FakeWebSocket:
            ws = FakeWebSocket(responder)
            sockets.append(ws)
            return ws

        return factory

    yield make, sockets
    for ws in sockets:
        ws.close()
