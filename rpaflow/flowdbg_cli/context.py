"""Debugger context and bridge helpers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from rpaflow.flowc.blocks import BlockTable
from rpaflow.flowdbg import (
    Breakpoint,
    BridgeConfig,
    DebugBridge,
    EventBus,
    EventSubscription,
)

LOGGER = logging.getLogger("flowdbg_cli.context")


@dataclass
class DebuggerContext:
    """Holds shared CLI debugger state."""

    url: str = "ws://127.0.0.1:9229"
    json_output: bool = False
    flow_script_marker: str = "flow.js"
    command_timeout: float = 10.0
    initial_breakpoints: List[Breakpoint] = field(default_factory=list)
    block_path: Optional[Path] = None
    bus: EventBus = field(default_factory=EventBus)
    _bridge: Optional[DebugBridge] = field(default=None, init=False, repr=False)
    _subscription: Optional[int] = field(default=None, init=False, repr=False)

    def ensure_bridge(self) -> DebugBridge:
        """Create and start the DebugBridge if needed."""
        if self._bridge is not None:
            return self._bridge
        bridge = DebugBridge(
            self.url,
            list(self.initial_breakpoints),
            config=BridgeConfig(
                flow_script_marker=self.flow_script_marker,
                command_timeout=self.command_timeout,
            ),
            block_table=self._load_block_table(),
            on_breakpoint=[self.bus.publish],
            on_console=[self.bus.publish],
            on_exception=[self.bus.publish],
            on_close=[self.bus.publish],
        )
        bridge.start()
        self._bridge = bridge
        return bridge

    @property
    def bridge(self) -> Optional[DebugBridge]:
        return self._bridge

    def subscribe(self, handler) -> None:
        if self._subscription is not None:
            self.bus.unsubscribe(self._subscription)
        self._subscription = self.bus.subscribe(EventSubscription(handler=handler))

    def disconnect(self) -> None:
        bridge = self._bridge
        if not bridge:
            return
        try:
            bridge.stop()
        except Exception as exc:
            LOGGER.debug("bridge stop failed: %s", exc)
        self._bridge = None

    def _load_block_table(self) -> Optional[BlockTable]:
        if not self.block_path:
            return None
        try:
            return BlockTable.from_file(self.block_path)
        except (OSError, ValueError) as exc:
            LOGGER.warning("failed to load block table from %s: %s", self.block_path, exc)
            return None
