"""
flowdbg CLI package.

Compiles flow documents and drives an interactive debugging session against
a running flow script.  Use ``python -m rpaflow.flowdbg_cli`` or the
``flowdbg`` console script.
"""

from __future__ import annotations

from .cli import main

__all__ = ["main"]
__version__ = "0.1.0"
