import pytest

from rpaflow.flowc import (
    CompileError,
    CompilerOptions,
    DirectiveCatalog,
    DirectiveCompiler,
    DirectiveTree,
    Flow,
    compile_directive,
)
from rpaflow.flowc.catalog import register_strategy


def _directive(name="web.click", **extra):
    payload = {"name": name, "inputs": {}, "outputs": {}}
    payload.update(extra)
    return payload


def test_single_directive_default_generator():
    directive = _directive(
        "data.sum",
        displayName="Sum",
        inputs={"a": {"type": "variable", "value": "x"}, "b": {"type": "array", "value": "1,2"}},
        outputs={"total": {"name": "y"}},
    )
    code = compile_directive(directive, 0)
    assert code == (
        'await robotUtil.data.sum({"a":x,"b":[1,2]},'
        '_block = generateBlock(1, "debug", "debug", "data.sum", "Sum", "terminate", 0, 0))'
        ".then(res=>{ y = res.total; });"
    )


def test_zero_inputs_and_outputs():
    code = compile_directive(_directive(), 4)
    assert "({}," in code
    assert code.endswith(".then(res=>{ });")
    assert "generateBlock(5, " in code


def test_block_lines_are_one_based_and_dense():
    flow = {
        "name": "main",
        "aliasName": "Main",
        "directives": [_directive("a.one"), _directive("a.two"), _directive("a.three")],
    }
    compiled = DirectiveCompiler().compile_flow(flow)
    lines = compiled.source.splitlines()
    assert len(lines) == 3
    for idx, line in enumerate(lines, start=1):
        assert f'generateBlock({idx}, "main", "Main", ' in line
    assert [block.block_line for _, block in compiled.blocks] == [1, 2, 3]


def test_flow_alias_defaults_to_name():
    compiled = DirectiveCompiler().compile_flow({"name": "main", "directives": [_directive()]})
    assert 'generateBlock(1, "main", "main", ' in compiled.source


def test_compile_flow_tracks_line_offset():
    flow = {"name": "main", "directives": [_directive("a.one"), _directive("a.two")]}
    compiled = DirectiveCompiler().compile_flow(flow, line_offset=10)
    assert [line for line, _ in compiled.blocks] == [10, 11]
    assert compiled.blocks.lookup(11).directive_name == "a.two"
    assert compiled.flow_name == "main"


def test_malformed_tree_raises_compile_error():
    with pytest.raises(CompileError):
        compile_directive({"name": "web.click", "outputs": {}}, 0)
    with pytest.raises(CompileError):
        compile_directive({"name": "web.click", "inputs": {}, "outputs": []}, 0)
    with pytest.raises(CompileError):
        compile_directive({"inputs": {}, "outputs": {}}, 0)
    with pytest.raises(CompileError):
        DirectiveCompiler().compile_flow({"name": "main", "directives": {"a": 1}})


def test_backfill_is_idempotent():
    catalog = DirectiveCatalog.from_dict(
        {
            "data.count": {
                "inputs": {"n": {"valueType": "number"}},
                "outputs": {"total": {"type": "number"}},
            }
        }
    )
    compiler = DirectiveCompiler(catalog)
    directive = DirectiveTree.from_dict(
        _directive("data.count", inputs={"n": {"value": "7"}}, outputs={"total": {"name": "t"}})
    )
    first = compiler.compile_directive(directive, 0)
    second = compiler.compile_directive(directive, 0)
    assert first == second
    assert '{"n":7}' in first
    assert directive.inputs["n"].add_config == {"valueType": "number"}
    assert directive.outputs["total"].type_details == {"type": "number"}


def test_catalog_missing_input_leaves_add_config_absent():
    catalog = DirectiveCatalog.from_dict({"data.count": {"inputs": {}}})
    directive = DirectiveTree.from_dict(_directive("data.count", inputs={"n": {"value": "7"}}))
    code = DirectiveCompiler(catalog).compile_directive(directive, 0)
    assert directive.inputs["n"].add_config is None
    assert '{"n":"7"}' in code


def test_unknown_identity_uses_default_generator():
    catalog = DirectiveCatalog.from_dict({"other.thing": {"generator": "raw"}})
    code = DirectiveCompiler(catalog).compile_directive(_directive("web.click"), 0)
    assert code.startswith("await robotUtil.web.click(")


def test_missing_default_generator_raises_compile_error(monkeypatch):
    from rpaflow.flowc import catalog

    monkeypatch.delitem(catalog._STRATEGIES, catalog.DEFAULT_STRATEGY)
    with pytest.raises(CompileError, match="no generator registered"):
        compile_directive(_directive("web.click"), 0)


def test_key_takes_precedence_over_name():
    code = compile_directive(_directive("Click", key="web.click"), 0)
    assert code.startswith("await robotUtil.web.click(")
    assert '"Click", "Click", "terminate"' in code


def test_raw_strategy_from_directive_tag():
    directive = _directive("script.run", generator="raw", inputs={"code": {"value": "console.log(1)"}})
    code = compile_directive(directive, 0)
    assert code == (
        '_block = generateBlock(1, "debug", "debug", "script.run", "script.run", "terminate", 0, 0); '
        "console.log(1)"
    )


def test_catalog_strategy_wins_over_directive_tag():
    @register_strategy("test-marker")
    def marker(directive, block_code, options):
        return f"/* {directive.identity} */ {block_code}"

    catalog = DirectiveCatalog.from_dict({"script.run": {"generator": "test-marker"}})
    directive = _directive("script.run", generator="raw", inputs={"code": {"value": "x()"}})
    code = DirectiveCompiler(catalog).compile_directive(directive, 0)
    assert code.startswith("/* script.run */ _block = generateBlock(1, ")


def test_generator_failure_is_wrapped():
    @register_strategy("test-broken")
    def broken(directive, block_code, options):
        raise KeyError("boom")

    with pytest.raises(CompileError, match="test-broken"):
        compile_directive(_directive(generator="test-broken"), 0)


def test_compiler_options_rename_runtime_and_factory():
    options = CompilerOptions(runtime_name="rt", block_factory="mkBlock", block_var="b", debug_flow_name="scratch")
    code = DirectiveCompiler(options=options).compile_directive(_directive(), 0)
    assert code.startswith('await rt.web.click({},b = mkBlock(1, "scratch", "scratch", ')


def test_flow_argument_names_the_block():
    flow = Flow(name="orders", alias_name="Orders")
    code = compile_directive(_directive(), 1, flow)
    assert 'generateBlock(2, "orders", "Orders", ' in code


def test_retry_fields_carried_into_block():
    code = compile_directive(_directive(failureStrategy="retry", intervalTime="250", retryCount=3), 0)
    assert '"retry", 250, 3)' in code
