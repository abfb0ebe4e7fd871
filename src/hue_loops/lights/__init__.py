"""Hue bridge access."""

from .bridge import (
    ControllerError,
    HueBridge,
    Light,
    MockBridge,
    TransientControllerError,
    TransitionCommand,
    apply_with_retry,
)
from .discovery import discover_bridges, register, run_setup_wizard

__all__ = [
    "ControllerError",
    "HueBridge",
    "Light",
    "MockBridge",
    "TransientControllerError",
    "TransitionCommand",
    "apply_with_retry",
    "discover_bridges",
    "register",
    "run_setup_wizard",
]
