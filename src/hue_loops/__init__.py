"""Hue loops: repeatable color animations for Philips Hue lights."""

__version__ = "0.1.0"
