"""
Animation loops for Hue lights.

This module provides:
- Steps: evenly spaced angles for one color-wheel cycle
- Color conversion from HSL to bridge chromaticity/brightness
- The Loop base class and LoopRegistry for name-based dispatch
- FanIn: many producer threads, one serial consumer
- The built-in loops: test, solo-hue, random-hue
"""

from .base import Loop, LoopNotFoundError, LoopRegistry, pause
from .color import (
    HSL,
    DeviceColor,
    hsl_to_device,
    hsl_to_rgb8,
    normalize_hue,
    rgb_to_device,
)
from .fanin import FanIn
from .reporter import ConsoleReporter, NullReporter, Reporter
from .steps import Steps
from .variants import (
    RandomHueLoop,
    SoloHueLoop,
    TestLoop,
    color_command,
    default_registry,
)

__all__ = [
    # Dispatch
    "Loop",
    "LoopNotFoundError",
    "LoopRegistry",
    "pause",
    "default_registry",
    # Color
    "HSL",
    "DeviceColor",
    "hsl_to_device",
    "hsl_to_rgb8",
    "normalize_hue",
    "rgb_to_device",
    "color_command",
    # Concurrency
    "FanIn",
    # Reporting
    "Reporter",
    "ConsoleReporter",
    "NullReporter",
    # Loops
    "Steps",
    "TestLoop",
    "SoloHueLoop",
    "RandomHueLoop",
]
