"""Output helpers for the flow debugger."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Mapping, Optional

from rpaflow.flowdbg import BreakpointHit, BridgeClosed, ConsoleApiCalled, ExceptionReport

from .context import DebuggerContext


def _json_dump(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False)


def emit_result(ctx: DebuggerContext, *, message: str, data: Optional[Mapping[str, Any]] = None) -> None:
    """Emit a successful command result."""
    if ctx.json_output:
        payload: Dict[str, Any] = {"status": "ok"}
        if data is not None:
            payload["result"] = data
        else:
            payload["message"] = message
        print(_json_dump(payload))
    else:
        print(message)


def emit_error(ctx: DebuggerContext, *, message: str, data: Optional[Mapping[str, Any]] = None) -> None:
    """Emit an error message respecting JSON mode."""
    payload: Dict[str, Any] = {"status": "error", "error": message}
    if data:
        payload["details"] = dict(data)
    if ctx.json_output:
        print(_json_dump(payload))
    else:
        print(f"error: {message}")


def format_remote_object(obj: Mapping[str, Any]) -> str:
    """One-line rendering of a protocol RemoteObject."""
    if "value" in obj:
        return json.dumps(obj["value"], ensure_ascii=False)
    if obj.get("unserializableValue"):
        return str(obj["unserializableValue"])
    description = obj.get("description")
    if description:
        return str(description)
    return str(obj.get("type") or "undefined")


def render_properties(descriptors: Iterable[Mapping[str, Any]]) -> None:
    for prop in descriptors:
        value = prop.get("value")
        text = format_remote_object(value) if isinstance(value, Mapping) else "<accessor>"
        object_id = value.get("objectId") if isinstance(value, Mapping) else None
        suffix = f"  [{object_id}]" if object_id else ""
        print(f"  {prop.get('name')!s:<20} {text}{suffix}")


def render_event(ctx: DebuggerContext, event: Any) -> None:
    """Print a bridge event between prompts."""
    if ctx.json_output:
        if isinstance(event, ExceptionReport):
            print(_json_dump({"event": "exception", "body": event.to_dict()}))
        elif isinstance(event, BreakpointHit):
            print(_json_dump({"event": "breakpoint", "body": {"url": event.url, "line": event.line}}))
        elif isinstance(event, ConsoleApiCalled):
            print(_json_dump({"event": "console", "body": event.params}))
        elif isinstance(event, BridgeClosed):
            print(_json_dump({"event": "closed", "body": {"reason": event.reason}}))
        return
    if isinstance(event, BreakpointHit):
        print(f"* paused at {event.url}:{event.line}")
    elif isinstance(event, ConsoleApiCalled):
        print(f"[console.{event.type}] {event.text()}")
    elif isinstance(event, ExceptionReport):
        if event.block_line:
            print(
                f"! exception in {event.flow_name} block {event.block_line} "
                f"({event.directive_display_name}): {event.description}"
            )
        else:
            print(f"! exception: {event.description}")
    elif isinstance(event, BridgeClosed):
        print(f"* debugger connection {event.reason}")


__all__ = [
    "emit_error",
    "emit_result",
    "format_remote_object",
    "render_event",
    "render_properties",
]
