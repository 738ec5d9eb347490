"""Directive compiler: directive trees in, instrumented script text out."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from . import emitter
from .blocks import BlockTable
from .catalog import DEFAULT_STRATEGY, DirectiveCatalog, Generator, get_strategy
from .model import Block, CompileError, DEBUG_FLOW_NAME, DirectiveTree, Flow

logger = logging.getLogger(__name__)


@dataclass
class CompilerOptions:
    runtime_name: str = "robotUtil"
    block_factory: str = "generateBlock"
    block_var: str = "_block"
    debug_flow_name: str = DEBUG_FLOW_NAME


@dataclass
class CompiledFlow:
    flow_name: str
    source: str
    blocks: BlockTable


class DirectiveCompiler:
    """Turns directives into one instrumented statement each."""

    def __init__(self, catalog: Optional[DirectiveCatalog] = None, options: Optional[CompilerOptions] = None) -> None:
        self.catalog = catalog if catalog is not None else DirectiveCatalog()
        self.options = options or CompilerOptions()

    def backfill(self, directive: DirectiveTree) -> None:
        """Restore the descriptor fields that saved projects omit."""
        identity = directive.identity
        for key, item in directive.inputs.items():
            item.add_config = self.catalog.get_add_config(identity, key)
        for key, output in directive.outputs.items():
            output.type_details = self.catalog.get_output_type_details(identity, key)

    def resolve_generator(self, directive: DirectiveTree) -> tuple[str, Generator]:
        generator = self.catalog.resolve_generator(directive.identity)
        if generator is not None:
            return directive.identity, generator
        declared = get_strategy(directive.generator)
        if declared is not None:
            return str(directive.generator), declared
        if directive.generator:
            logger.debug("unknown generator %r on %s; using default", directive.generator, directive.identity)
        default = get_strategy(DEFAULT_STRATEGY)
        if default is None:
            raise CompileError(f"no generator registered for {DEFAULT_STRATEGY!r}")
        return DEFAULT_STRATEGY, default

    def build_block(self, directive: DirectiveTree, index: int, flow: Optional[Flow] = None) -> Block:
        return Block.for_directive(directive, index, flow, default_flow_name=self.options.debug_flow_name)

    def compile_directive(
        self,
        directive: Union[DirectiveTree, Mapping[str, Any]],
        index: int,
        flow: Optional[Flow] = None,
    ) -> str:
        if isinstance(directive, Mapping):
            directive = DirectiveTree.from_dict(directive)
        if not isinstance(directive.inputs, Mapping) or not isinstance(directive.outputs, Mapping):
            raise CompileError(f"directive {directive.name!r} must carry inputs and outputs maps")
        block = self.build_block(directive, index, flow)
        block_code = emitter.render_block_call(
            block,
            factory=self.options.block_factory,
            target=self.options.block_var,
        )
        self.backfill(directive)
        strategy, generator = self.resolve_generator(directive)
        logger.debug("compile %s line=%d strategy=%s", directive.identity, block.block_line, strategy)
        try:
            return generator(directive, block_code, self.options)
        except CompileError:
            raise
        except Exception as exc:
            raise CompileError(f"generator {strategy!r} failed for {directive.identity!r}: {exc}") from exc

    def compile_flow(self, flow: Union[Flow, Mapping[str, Any]], *, line_offset: int = 0) -> CompiledFlow:
        if isinstance(flow, Mapping):
            flow = Flow.from_dict(flow)
        table = BlockTable()
        statements: list[str] = []
        line = int(line_offset)
        for index, directive in enumerate(flow.directives):
            code = self.compile_directive(directive, index, flow)
            table.add(line, self.build_block(directive, index, flow))
            statements.append(code)
            line += code.count("\n") + 1
        logger.info("compiled flow %s (%d directives)", flow.name, len(statements))
        return CompiledFlow(flow_name=flow.name, source="\n".join(statements), blocks=table)


def compile_directive(
    directive: Union[DirectiveTree, Mapping[str, Any]],
    index: int,
    flow: Optional[Flow] = None,
    *,
    catalog: Optional[DirectiveCatalog] = None,
) -> str:
    return DirectiveCompiler(catalog).compile_directive(directive, index, flow)


__all__ = ["CompiledFlow", "CompilerOptions", "DirectiveCompiler", "compile_directive"]
