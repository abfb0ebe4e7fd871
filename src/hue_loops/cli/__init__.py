"""
CLI entry points for hue-loops.

- repl: interactive shell for lights and loops
"""

from .repl import Shell, main

__all__ = [
    "Shell",
    "main",
]
