"""
flowdbg - remote debug bridge for compiled automation flows.

Attaches to a live script host over its remote-debugging websocket, arms
breakpoints, and turns protocol notifications into flow-level events:

    transport.py    → websocket connection, id-correlated commands
    events.py       → notification parsing, outward events, event bus
    breakpoints.py  → breakpoint registry
    context.py      → parsed-script cache and paused call frame
    bridge.py       → lifecycle, pause filtering, evaluation, exceptions
"""

from .transport import (  # noqa: F401
    CDPTransport,
    CommandTimeout,
    ProtocolError,
    TransportConfig,
    TransportError,
)
from .events import (  # noqa: F401
    BreakpointHit,
    BridgeClosed,
    ConsoleApiCalled,
    EventBus,
    EventSubscription,
    ExceptionReport,
    ExceptionThrown,
    Notification,
    Paused,
    ScriptParsed,
    parse_notification,
)
from .breakpoints import Breakpoint, BreakpointRegistry  # noqa: F401
from .context import ExecutionContextTracker, NotPausedError, PausedFrame  # noqa: F401
from .bridge import BridgeConfig, BridgeState, DebugBridge  # noqa: F401

__all__ = [
    "CDPTransport",
    "TransportConfig",
    "TransportError",
    "CommandTimeout",
    "ProtocolError",
    "Notification",
    "ScriptParsed",
    "Paused",
    "ExceptionThrown",
    "ConsoleApiCalled",
    "BreakpointHit",
    "ExceptionReport",
    "BridgeClosed",
    "EventBus",
    "EventSubscription",
    "parse_notification",
    "Breakpoint",
    "BreakpointRegistry",
    "ExecutionContextTracker",
    "NotPausedError",
    "PausedFrame",
    "BridgeConfig",
    "BridgeState",
    "DebugBridge",
]

__version__ = "0.1.0"
