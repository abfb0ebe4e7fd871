"""Progress reporting for loops, kept apart from the color logic."""

from typing import Optional, TextIO
import sys
import threading

from .color import HSL, normalize_hue

# ANSI escape codes for terminal output
RESET = "\033[0m"
RED = "\033[31m"
YELLOW = "\033[33m"


def rgb_text(r: int, g: int, b: int, text: str) -> str:
    """Return text drawn in a 24-bit ANSI foreground color."""
    return f"\033[38;2;{r};{g};{b}m{text}{RESET}"


def warning_text(text: str) -> str:
    return f"{YELLOW}{text}{RESET}"


def error_text(text: str) -> str:
    return f"{RED}{text}{RESET}"


class Reporter:
    """Receives loop events. The base class ignores everything."""

    def step(
        self,
        light: int,
        hsl: HSL,
        rgb: tuple[int, int, int],
        hold: Optional[float] = None,
    ) -> None:
        """A color was computed for ``light``; ``hold`` is set by timed producers."""

    def step_done(self) -> None:
        """All lights received the colors for one step."""

    def message(self, text: str) -> None:
        pass

    def error(self, text: str) -> None:
        pass


class NullReporter(Reporter):
    """Discards every event."""


class ConsoleReporter(Reporter):
    """Prints color swatches and messages, one line per event."""

    SWATCH = "██████"

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream or sys.stdout
        self._lock = threading.Lock()  # producers report from several threads

    def _write(self, line: str) -> None:
        with self._lock:
            print(line, file=self.stream, flush=True)

    def step(self, light, hsl, rgb, hold=None):
        swatch = rgb_text(
            *rgb,
            f"{self.SWATCH} {round(normalize_hue(hsl.hue)):3d} "
            f"{hsl.saturation:.1f} {hsl.lightness:.1f}",
        )
        if hold is None:
            self._write(swatch)
        else:
            self._write(f"# {light} | {swatch} | (for {hold:g} sec)")

    def step_done(self):
        self._write("")

    def message(self, text):
        self._write(f"[LOOP] {text}")

    def error(self, text):
        self._write(error_text(f"[ERROR] {text}"))
