"""Directive tree, flow and block records."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


DEBUG_FLOW_NAME = "debug"


class CompileError(ValueError):
    """Raised when a directive tree violates the compiler's input contract."""


class InputType(str, Enum):
    VARIABLE = "variable"
    ARRAY = "array"
    ARRAY_OBJECT = "arrayObject"
    LITERAL = "literal"


class FailureStrategy(str, Enum):
    TERMINATE = "terminate"
    IGNORE = "ignore"
    RETRY = "retry"


def _to_int(value: Any, default: int = 0) -> int:
    try:
        if value is None or value == "":
            return default
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class DirectiveInput:
    """One declared input of a directive.

    ``type`` is kept as the raw string from the saved project so unknown
    kinds can still be rendered through the generic literal path.
    """

    type: str = InputType.LITERAL.value
    value: Optional[str] = ""
    add_config: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DirectiveInput":
        raw_type = data.get("type") or InputType.LITERAL.value
        if isinstance(raw_type, InputType):
            raw_type = raw_type.value
        value = data.get("value", "")
        if value is not None and not isinstance(value, str):
            value = str(value)
        return cls(type=str(raw_type), value=value, add_config=data.get("addConfig"))


@dataclass
class DirectiveOutput:
    """Destination variable for one directive result field."""

    name: str
    type_details: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DirectiveOutput":
        name = data.get("name")
        if not name:
            raise CompileError("directive output missing destination name")
        return cls(name=str(name), type_details=data.get("typeDetails"))


@dataclass
class DirectiveTree:
    """A single visual block as saved by the editor."""

    name: str
    inputs: Dict[str, DirectiveInput] = field(default_factory=dict)
    outputs: Dict[str, DirectiveOutput] = field(default_factory=dict)
    key: Optional[str] = None
    display_name: Optional[str] = None
    failure_strategy: str = FailureStrategy.TERMINATE.value
    interval_time: int = 0
    retry_count: int = 0
    generator: Optional[str] = None

    @property
    def identity(self) -> str:
        """Canonical lookup identity used for catalog and generator resolution."""
        return self.key or self.name

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DirectiveTree":
        name = data.get("name")
        if not name:
            raise CompileError("directive missing name")
        raw_inputs = data.get("inputs")
        raw_outputs = data.get("outputs")
        if not isinstance(raw_inputs, Mapping):
            raise CompileError(f"directive {name!r} missing inputs map")
        if not isinstance(raw_outputs, Mapping):
            raise CompileError(f"directive {name!r} missing outputs map")
        strategy = data.get("failureStrategy") or FailureStrategy.TERMINATE.value
        if isinstance(strategy, FailureStrategy):
            strategy = strategy.value
        return cls(
            name=str(name),
            key=data.get("key") or None,
            display_name=data.get("displayName") or None,
            inputs={str(k): DirectiveInput.from_dict(v) for k, v in raw_inputs.items()},
            outputs={str(k): DirectiveOutput.from_dict(v) for k, v in raw_outputs.items()},
            failure_strategy=str(strategy),
            interval_time=_to_int(data.get("intervalTime")),
            retry_count=_to_int(data.get("retryCount")),
            generator=data.get("generator") or data.get("toCode") or None,
        )


@dataclass
class Flow:
    """Named, optionally aliased, ordered sequence of directives."""

    name: str
    alias_name: Optional[str] = None
    directives: List[DirectiveTree] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Flow":
        name = data.get("name")
        if not name:
            raise CompileError("flow missing name")
        directives = data.get("directives") or []
        if not isinstance(directives, list):
            raise CompileError(f"flow {name!r} directives must be a list")
        return cls(
            name=str(name),
            alias_name=data.get("aliasName") or None,
            directives=[DirectiveTree.from_dict(item) for item in directives],
        )


@dataclass(frozen=True)
class Block:
    """Metadata baked into the script in front of each directive statement."""

    block_line: int
    flow_name: str
    flow_alias_name: str
    directive_name: str
    directive_display_name: str
    failure_strategy: str = FailureStrategy.TERMINATE.value
    interval_time: int = 0
    retry_count: int = 0

    @classmethod
    def for_directive(
        cls,
        directive: DirectiveTree,
        index: int,
        flow: Optional[Flow] = None,
        *,
        default_flow_name: str = DEBUG_FLOW_NAME,
    ) -> "Block":
        flow_name = flow.name if flow else default_flow_name
        alias = (flow.alias_name or flow.name) if flow else default_flow_name
        return cls(
            block_line=index + 1,
            flow_name=flow_name,
            flow_alias_name=alias,
            directive_name=directive.name,
            directive_display_name=directive.display_name or directive.name,
            failure_strategy=directive.failure_strategy or FailureStrategy.TERMINATE.value,
            interval_time=directive.interval_time or 0,
            retry_count=directive.retry_count or 0,
        )

    def to_dict(self) -> Dict[str, Any]:
        raw = asdict(self)
        return {
            "blockLine": raw["block_line"],
            "flowName": raw["flow_name"],
            "flowAliasName": raw["flow_alias_name"],
            "directiveName": raw["directive_name"],
            "directiveDisplayName": raw["directive_display_name"],
            "failureStrategy": raw["failure_strategy"],
            "intervalTime": raw["interval_time"],
            "retryCount": raw["retry_count"],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Block":
        return cls(
            block_line=_to_int(data.get("blockLine")),
            flow_name=str(data.get("flowName") or ""),
            flow_alias_name=str(data.get("flowAliasName") or ""),
            directive_name=str(data.get("directiveName") or ""),
            directive_display_name=str(data.get("directiveDisplayName") or ""),
            failure_strategy=str(data.get("failureStrategy") or FailureStrategy.TERMINATE.value),
            interval_time=_to_int(data.get("intervalTime")),
            retry_count=_to_int(data.get("retryCount")),
        )


__all__ = [
    "Block",
    "CompileError",
    "DEBUG_FLOW_NAME",
    "DirectiveInput",
    "DirectiveOutput",
    "DirectiveTree",
    "FailureStrategy",
    "Flow",
    "InputType",
]
