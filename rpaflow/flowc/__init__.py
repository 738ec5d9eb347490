"""
flowc - directive compiler for visual automation flows.

Turns the editor's directive trees into script text where every statement is
preceded by a block-descriptor call, so runtime failures can be traced back
to the visual block that produced them:

    model.py     → directive tree, flow and block records
    emitter.py   → pure code-emission helpers
    catalog.py   → directive catalog lookups, generator strategies
    compiler.py  → per-directive and per-flow compilation
    blocks.py    → script line → block table
"""

from .blocks import BlockTable  # noqa: F401
from .catalog import (  # noqa: F401
    CatalogError,
    DirectiveCatalog,
    get_strategy,
    register_strategy,
)
from .compiler import CompiledFlow, CompilerOptions, DirectiveCompiler, compile_directive  # noqa: F401
from .model import (  # noqa: F401
    Block,
    CompileError,
    DirectiveInput,
    DirectiveOutput,
    DirectiveTree,
    FailureStrategy,
    Flow,
    InputType,
)

__all__ = [
    "Block",
    "BlockTable",
    "CatalogError",
    "CompileError",
    "CompiledFlow",
    "CompilerOptions",
    "DirectiveCatalog",
    "DirectiveCompiler",
    "DirectiveInput",
    "DirectiveOutput",
    "DirectiveTree",
    "FailureStrategy",
    "Flow",
    "InputType",
    "compile_directive",
    "get_strategy",
    "register_strategy",
]

__version__ = "0.1.0"
