"""Interactive shell for Hue lights and loops.

Commands:
    ls                  list lights
    ls loops            list loops
    all on|off          switch every light
    on ID / off ID      switch one light
    bri ID VALUE        set brightness (1-254)
    rgb ID R G B        set color from 8-bit RGB
    play [NAME]         run a loop until Ctrl-C (default: random-hue)
    help                show this text
    quit / exit         leave (Ctrl-D works too)
"""

from pathlib import Path
from typing import Optional, TextIO
import argparse
import logging
import sys
import threading

from ..config import AppConfig, ConfigError, ShellConfig, load_config
from ..lights import (
    ControllerError,
    HueBridge,
    MockBridge,
    TransitionCommand,
    run_setup_wizard,
)
from ..loops import ConsoleReporter, LoopRegistry, default_registry, rgb_to_device
from ..loops.reporter import error_text, warning_text

try:
    import readline
except ImportError:  # not available on Windows
    readline = None

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_FILE = Path.home() / ".hue_loops_history"
PROMPT = ">> "


class CommandError(ValueError):
    """Input the shell could not understand."""


def _parse_int(label: str, text: str) -> int:
    try:
        return int(text)
    except ValueError as e:
        raise CommandError(f"cannot parse {label}: {e}") from None


def parse_id(text: str) -> int:
    light_id = _parse_int("id", text)
    if not 0 <= light_id <= 255:
        raise CommandError(f"cannot parse id: {light_id} is outside 0-255")
    return light_id


def parse_bri(text: str) -> int:
    bri = _parse_int("bri", text)
    if not 0 <= bri <= 255:
        raise CommandError(f"cannot parse bri: {bri} is outside 0-255")
    return bri


def parse_rgb(r: str, g: str, b: str) -> tuple[int, int, int]:
    values = []
    for label, text in (("r", r), ("g", g), ("b", b)):
        value = _parse_int(label, text)
        if not 0 <= value <= 255:
            raise CommandError(f"cannot parse {label}: {value} is outside 0-255")
        values.append(value)
    return values[0], values[1], values[2]


class Shell:
    """
    Line-based command shell.

    Usage:
        shell = Shell(bridge, default_registry(config.loops, ConsoleReporter()))
        shell.run()
    """

    def __init__(
        self,
        bridge,
        registry: LoopRegistry,
        config: ShellConfig | None = None,
        out: TextIO | None = None,
    ):
        self.bridge = bridge
        self.registry = registry
        self.config = config or ShellConfig()
        self.out = out or sys.stdout

    def _print(self, text: str = "") -> None:
        print(text, file=self.out)

    # =========================================================================
    # Command dispatch
    # =========================================================================

    def process_line(self, line: str) -> bool:
        """
        Run one command line.

        Returns False when the shell should exit. Raises CommandError for
        bad input and ControllerError when the bridge rejects a change.
        """
        words = line.split()

        if not words:
            pass
        elif words in (["quit"], ["exit"]):
            return False
        elif words == ["help"]:
            self._print(__doc__.split("Commands:", 1)[1].rstrip())
        elif words == ["ls"]:
            self.list_lights()
        elif words == ["ls", "loops"]:
            self.list_loops()
        elif words == ["all", "on"]:
            self.all_lights_set_on(True)
        elif words == ["all", "off"]:
            self.all_lights_set_on(False)
        elif len(words) == 2 and words[0] in ("on", "off"):
            self.light_set_on(parse_id(words[1]), words[0] == "on")
        elif len(words) == 3 and words[0] == "bri":
            self.light_set_bri(parse_id(words[1]), parse_bri(words[2]))
        elif len(words) == 5 and words[0] == "rgb":
            self.light_set_color(parse_id(words[1]), parse_rgb(*words[2:]))
        elif words == ["play"]:
            self.play_loop(self.config.default_loop)
        elif len(words) == 2 and words[0] == "play":
            self.play_loop(words[1])
        else:
            raise CommandError(f"Unknown command: {line.strip()}")

        return True

    # =========================================================================
    # Lights
    # =========================================================================

    def list_lights(self) -> None:
        headers = ["id", "on", "name", "bri", "sat", "hue", "xy"]
        rows = [
            [
                str(light.id),
                "✓" if light.on else " ",
                light.name,
                str(light.bri),
                "" if light.sat is None else str(light.sat),
                "" if light.hue is None else str(light.hue),
                "" if light.xy is None else f"[{light.xy[0]:.4f}, {light.xy[1]:.4f}]",
            ]
            for light in self.bridge.lights.values()
        ]
        widths = [
            max(len(row[i]) for row in [headers] + rows)
            for i in range(len(headers))
        ]
        for row in [headers] + rows:
            self._print(" │ ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip())

    def light_set_on(self, light_id: int, on: bool) -> None:
        if on:
            light = self.bridge.lights.get(light_id)
            if light is None:
                raise CommandError(f"Unknown light: {light_id}")
            logger.debug("setting bri of %s to %s", light_id, light.bri)
            self.bridge.apply([light_id], TransitionCommand(on=True, brightness=light.bri or None))
        else:
            self.bridge.apply([light_id], TransitionCommand(on=False))

    def all_lights_set_on(self, on: bool) -> None:
        self.bridge.apply_all(TransitionCommand(on=on))

    def light_set_bri(self, light_id: int, bri: int) -> None:
        logger.debug("setting bri of %s to %s", light_id, bri)
        self.bridge.apply([light_id], TransitionCommand(brightness=bri))

    def light_set_color(self, light_id: int, rgb: tuple[int, int, int]) -> None:
        device = rgb_to_device(*rgb)
        self.bridge.apply([light_id], TransitionCommand(xy=device.xy))

    # =========================================================================
    # Loops
    # =========================================================================

    def list_loops(self) -> None:
        for name in self.registry.names():
            self._print(f"- {name}")

    def play_loop(self, name: str) -> bool:
        """Run a loop until it ends or Ctrl-C. Returns False if there is no such loop."""
        if name not in self.registry:
            self._print(warning_text(f"Loop {error_text(name)}") + warning_text(" not found"))
            return False

        stop_event = threading.Event()
        self._print(f"[LOOP] Playing {name}, press Ctrl-C to stop")
        try:
            self.registry.play(name, self.bridge, stop_event)
        except KeyboardInterrupt:
            stop_event.set()
            self._print("\n[LOOP] Stopped")
        return True

    # =========================================================================
    # Main loop
    # =========================================================================

    def _history_file(self) -> Path:
        return self.config.history_file or DEFAULT_HISTORY_FILE

    def run(self) -> None:
        """Read and run commands until quit or Ctrl-D."""
        if readline is not None:
            # Ignore missing history
            try:
                readline.read_history_file(self._history_file())
            except OSError:
                pass

        try:
            while True:
                try:
                    line = input(PROMPT)
                except KeyboardInterrupt:
                    self._print("Interrupted")
                    continue
                except EOFError:
                    self._print("CTRL-D")
                    break

                try:
                    if not self.process_line(line):
                        break
                except CommandError as e:
                    self._print(warning_text(str(e)))
                except ControllerError as e:
                    self._print(error_text(f"[ERROR] {e}"))

                try:
                    self.bridge.refresh()
                except ControllerError as e:
                    self._print(error_text(f"[ERROR] Could not refresh lights: {e}"))
        finally:
            if readline is not None:
                try:
                    readline.write_history_file(self._history_file())
                except OSError as e:
                    logger.warning("Could not save history to %s: %s", self._history_file(), e)


def build_bridge(config: AppConfig, mock: bool):
    """Create the bridge client, or a mock one for the configured roster."""
    if mock:
        return MockBridge(sorted(set(config.loops.roster)) or [1])
    if config.hue is None:
        raise ConfigError("No bridge configured. Run with --setup first.")
    return HueBridge(config.hue.bridge_ip, config.hue.username, timeout=config.hue.timeout)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Interactive shell and color loops for Philips Hue lights"
    )
    parser.add_argument(
        "--config", type=Path, default=Path("config.yaml"),
        help="Config file (default: config.yaml)",
    )
    parser.add_argument(
        "--mock", action="store_true",
        help="Use an in-memory bridge instead of real hardware",
    )
    parser.add_argument(
        "--setup", action="store_true",
        help="Find a bridge, register and save credentials",
    )
    parser.add_argument(
        "--play", metavar="NAME",
        help="Play one loop and exit instead of starting the shell",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Log bridge requests",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config) if args.config.exists() else AppConfig.with_defaults()
    except ConfigError as e:
        print(error_text(f"[CONFIG] {e}"))
        return 1

    if args.setup and run_setup_wizard(config, args.config) is None:
        return 1

    try:
        bridge = build_bridge(config, args.mock)
        bridge.refresh()
    except ConfigError as e:
        print(error_text(f"[CONFIG] {e}"))
        return 1
    except ControllerError as e:
        print(error_text(f"[HUE] Could not reach bridge: {e}"))
        return 1

    print(f"[HUE] {len(bridge.lights)} lights")
    registry = default_registry(config.loops, ConsoleReporter())
    shell = Shell(bridge, registry, config.shell)

    if args.play:
        return 0 if shell.play_loop(args.play) else 1

    shell.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
