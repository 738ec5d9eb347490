"""Directive catalog lookups and the generator strategy registry."""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional

from . import emitter
from .model import DirectiveTree

if TYPE_CHECKING:  # pragma: no cover
    from .compiler import CompilerOptions

logger = logging.getLogger(__name__)

Generator = Callable[[DirectiveTree, str, "CompilerOptions"], str]

DEFAULT_STRATEGY = "default"

_STRATEGIES: Dict[str, Generator] = {}


class CatalogError(ValueError):
    """Raised when a catalog document is malformed or names an unknown strategy."""


def register_strategy(tag: str) -> Callable[[Generator], Generator]:
    """Register a code generator under ``tag``."""

    def decorator(fn: Generator) -> Generator:
        _STRATEGIES[tag] = fn
        return fn

    return decorator


def get_strategy(tag: Optional[str]) -> Optional[Generator]:
    if not tag:
        return None
    return _STRATEGIES.get(tag)


def strategy_names() -> list[str]:
    return sorted(_STRATEGIES)


@register_strategy(DEFAULT_STRATEGY)
def default_generator(directive: DirectiveTree, block_code: str, options: "CompilerOptions") -> str:
    params = emitter.render_params(directive.inputs)
    bindings = emitter.render_bindings(directive.outputs)
    return emitter.render_invocation(
        directive.identity,
        params,
        block_code,
        bindings,
        runtime=options.runtime_name,
    )


@register_strategy("raw")
def raw_generator(directive: DirectiveTree, block_code: str, options: "CompilerOptions") -> str:
    """Emit the ``code`` input verbatim after the block prelude."""
    item = directive.inputs.get("code")
    code = item.value if item and item.value else ""
    return f"{block_code}; {code}".rstrip()


@dataclass
class CatalogEntry:
    inputs: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    outputs: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    generator: Optional[str] = None


class DirectiveCatalog:
    """Static per-directive descriptors keyed by canonical identity."""

    def __init__(self, entries: Optional[Mapping[str, CatalogEntry]] = None) -> None:
        self._entries: Dict[str, CatalogEntry] = dict(entries or {})
        for identity, entry in self._entries.items():
            if entry.generator and entry.generator not in _STRATEGIES:
                raise CatalogError(f"directive {identity!r} names unknown generator {entry.generator!r}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DirectiveCatalog":
        directives = data.get("directives", data)
        if not isinstance(directives, Mapping):
            raise CatalogError("catalog must map directive identities to entries")
        entries: Dict[str, CatalogEntry] = {}
        for identity, raw in directives.items():
            if not isinstance(raw, Mapping):
                raise CatalogError(f"catalog entry {identity!r} must be an object")
            inputs = raw.get("inputs") or {}
            outputs = raw.get("outputs") or {}
            if not isinstance(inputs, Mapping) or not isinstance(outputs, Mapping):
                raise CatalogError(f"catalog entry {identity!r} has malformed inputs/outputs")
            entries[str(identity)] = CatalogEntry(
                inputs={str(k): dict(v or {}) for k, v in inputs.items()},
                outputs={str(k): dict(v or {}) for k, v in outputs.items()},
                generator=raw.get("generator") or None,
            )
        return cls(entries)

    @classmethod
    def from_file(cls, path: Path) -> "DirectiveCatalog":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        catalog = cls.from_dict(data)
        logger.debug("loaded %d catalog entries from %s", len(catalog), path)
        return catalog

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries

    def resolve_generator(self, identity: str) -> Optional[Generator]:
        entry = self._entries.get(identity)
        if entry is None:
            return None
        return get_strategy(entry.generator)

    def get_add_config(self, identity: str, input_key: str) -> Optional[Dict[str, Any]]:
        entry = self._entries.get(identity)
        if entry is None or input_key not in entry.inputs:
            return None
        return copy.deepcopy(entry.inputs[input_key])

    def get_output_type_details(self, identity: str, output_key: str) -> Optional[Dict[str, Any]]:
        entry = self._entries.get(identity)
        if entry is None or output_key not in entry.outputs:
            return None
        return copy.deepcopy(entry.outputs[output_key])


__all__ = [
    "CatalogEntry",
    "CatalogError",
    "DEFAULT_STRATEGY",
    "DirectiveCatalog",
    "Generator",
    "default_generator",
    "get_strategy",
    "raw_generator",
    "register_strategy",
    "strategy_names",
]
