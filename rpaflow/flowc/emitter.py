"""Pure code-emission helpers shared by the generator strategies.

Every function here maps a piece of a directive (its inputs, outputs or block
record) to a fragment of script text.  None of them mutate their arguments.
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping, Optional

from .model import Block, DirectiveInput, DirectiveOutput, InputType

_TEMPLATE_RE = re.compile(r"\$\{[^}]*\}")
_NUMBER_RE = re.compile(r"^-?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?$")

UNDEFINED = "undefined"


def _js_string(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _value_type(add_config: Optional[Mapping[str, Any]]) -> Optional[str]:
    if not isinstance(add_config, Mapping):
        return None
    value_type = add_config.get("valueType")
    return str(value_type) if value_type else None


def render_literal(item: DirectiveInput) -> str:
    """Generic rendering for literal (and unrecognised) inputs."""
    text = item.value
    if text is None:
        return UNDEFINED
    value_type = _value_type(item.add_config)
    stripped = text.strip()
    if value_type == "number" and _NUMBER_RE.match(stripped):
        return stripped
    if value_type == "boolean" and stripped in ("true", "false"):
        return stripped
    if _TEMPLATE_RE.search(text):
        escaped = text.replace("\\", "\\\\").replace("`", "\\`")
        return f"`{escaped}`"
    return _js_string(text)


def render_input(item: DirectiveInput) -> str:
    kind = item.type
    if kind == InputType.VARIABLE.value:
        return item.value if item.value else UNDEFINED
    if kind == InputType.ARRAY.value:
        return f"[{item.value or ''}]"
    if kind == InputType.ARRAY_OBJECT.value:
        return item.value if item.value else UNDEFINED
    return render_literal(item)


def render_params(inputs: Mapping[str, DirectiveInput]) -> str:
    """Render the parameter object literal, ``{}`` when there are no inputs."""
    if not inputs:
        return "{}"
    pairs = [f"{_js_string(key)}:{render_input(item)}" for key, item in inputs.items()]
    return "{" + ",".join(pairs) + "}"


def render_bindings(outputs: Mapping[str, DirectiveOutput], *, result_var: str = "res") -> str:
    """Assign each protocol result field into its destination variable."""
    return "".join(f"{output.name} = {result_var}.{key}; " for key, output in outputs.items())


def render_block_call(block: Block, *, factory: str = "generateBlock", target: str = "_block") -> str:
    args = [
        str(int(block.block_line)),
        _js_string(block.flow_name),
        _js_string(block.flow_alias_name),
        _js_string(block.directive_name),
        _js_string(block.directive_display_name),
        _js_string(block.failure_strategy),
        str(int(block.interval_time)),
        str(int(block.retry_count)),
    ]
    return f"{target} = {factory}({', '.join(args)})"


def render_invocation(identity: str, params: str, block_code: str, bindings: str, *, runtime: str = "robotUtil") -> str:
    return f"await {runtime}.{identity}({params},{block_code}).then(res=>{{ {bindings}}});"


__all__ = [
    "UNDEFINED",
    "render_bindings",
    "render_block_call",
    "render_input",
    "render_invocation",
    "render_literal",
    "render_params",
]
