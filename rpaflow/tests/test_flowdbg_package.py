import importlib


def test_flowdbg_package_exports():
    module = importlib.import_module("rpaflow.flowdbg")
    assert hasattr(module, "CDPTransport")
    assert hasattr(module, "DebugBridge")
    assert hasattr(module, "BreakpointRegistry")
    assert hasattr(module, "EventBus")
    assert module.__version__.startswith("0.")


def test_flowc_package_exports():
    module = importlib.import_module("rpaflow.flowc")
    assert hasattr(module, "DirectiveCompiler")
    assert hasattr(module, "compile_directive")
    assert hasattr(module, "BlockTable")
    assert module.__version__.startswith("0.")
