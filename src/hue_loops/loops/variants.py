"""
The built-in loops.

- test: prints a line, never talks to the bridge
- solo-hue: rotating rainbow, each light a fixed hue offset from the previous
- random-hue: every light cycles on its own thread with random offsets and timing
"""

from functools import partial
from typing import Callable
import math
import random
import threading

from ..config import LoopConfig
from ..lights.bridge import (
    ControllerError,
    TransientControllerError,
    TransitionCommand,
    apply_with_retry,
)
from .base import Loop, LoopRegistry, pause
from .color import HSL, hsl_to_device, hsl_to_rgb8
from .fanin import Emit, FanIn
from .reporter import NullReporter, Reporter
from .steps import Steps


def color_command(hsl: HSL, transition_time: int) -> TransitionCommand:
    """Build the light state change that shows ``hsl``."""
    device, _ = hsl_to_device(*hsl)
    return TransitionCommand(
        on=True,
        brightness=device.brightness,
        xy=device.xy,
        transition_time=transition_time,
    )


class TestLoop(Loop):
    """Checks that dispatch works."""

    # Keep pytest from collecting this class
    __test__ = False

    name = "test"

    def __init__(self, reporter: Reporter | None = None):
        self.reporter = reporter or NullReporter()

    def play(self, controller, stop_event=None):
        self.reporter.message("It's test!")


class SoloHueLoop(Loop):
    """
    All lights walk the color wheel together, ``solo_shift`` degrees apart.

    Each step sends one command per light, then holds for
    ``transition_time`` seconds. Repeats until stopped.
    """

    name = "solo-hue"

    def __init__(self, config: LoopConfig | None = None, reporter: Reporter | None = None):
        self.config = config or LoopConfig()
        self.reporter = reporter or NullReporter()

    def colors_for_step(self, step: float) -> list[tuple[int, HSL]]:
        """Colors for every light in the roster at one step angle (radians)."""
        cfg = self.config
        base = HSL(math.degrees(step), cfg.saturation, cfg.lightness)
        return [
            (light, base.rotate(cfg.solo_shift * index))
            for index, light in enumerate(cfg.roster)
        ]

    def play(self, controller, stop_event=None):
        cfg = self.config
        steps = Steps(cfg.steps)
        retired: set[int] = set()

        while True:
            for step in steps:
                for light, hsl in self.colors_for_step(step):
                    if light in retired:
                        continue
                    self.reporter.step(light, hsl, hsl_to_rgb8(*hsl))
                    try:
                        apply_with_retry(
                            controller,
                            [light],
                            color_command(hsl, cfg.transition_time),
                            cfg.retries,
                            cfg.retry_backoff,
                            stop_event,
                        )
                    except TransientControllerError as e:
                        self.reporter.error(f"Light {light} skipped a step: {e}")
                    except ControllerError as e:
                        retired.add(light)
                        self.reporter.error(f"Light {light} removed from loop: {e}")

                self.reporter.step_done()
                if pause(stop_event, cfg.transition_time):
                    return

            if not steps and pause(stop_event, cfg.transition_time):
                return


class RandomHueLoop(Loop):
    """
    Every light runs its own color cycle on a separate thread.

    Per cycle a light draws a random hue shift (multiplied by its roster
    index); per step it draws a random hold time. Colors flow through one
    queue to the calling thread, which is the only one talking to the
    controller.
    """

    name = "random-hue"

    def __init__(
        self,
        config: LoopConfig | None = None,
        reporter: Reporter | None = None,
        rng_factory: Callable[[], random.Random] = random.Random,
    ):
        self.config = config or LoopConfig()
        self.reporter = reporter or NullReporter()
        self.rng_factory = rng_factory

    def produce(
        self,
        light: int,
        index: int,
        retired: threading.Event,
        emit: Emit,
        halt: threading.Event,
    ) -> None:
        """Generate ``(light, HSL)`` pairs for one light until halted or retired."""
        cfg = self.config
        rng = self.rng_factory()
        steps = Steps(cfg.steps)

        while not (halt.is_set() or retired.is_set()):
            # Shift is drawn once per cycle, hold once per step
            shift = rng.randrange(*cfg.random_shift_range)
            for step in steps:
                if retired.is_set():
                    return
                hsl = HSL(math.degrees(step), cfg.saturation, cfg.lightness).rotate(shift * index)
                hold = rng.randrange(*cfg.random_hold_range)
                self.reporter.step(light, hsl, hsl_to_rgb8(*hsl), hold)
                emit((light, hsl))
                if halt.wait(hold):
                    return

            if not steps and halt.wait(cfg.transition_time):
                return

    def play(self, controller, stop_event=None):
        cfg = self.config
        retired = {light: threading.Event() for light in cfg.roster}

        def consume(item: tuple[int, HSL]) -> None:
            light, hsl = item
            if retired[light].is_set():
                return
            try:
                apply_with_retry(
                    controller,
                    [light],
                    color_command(hsl, cfg.transition_time),
                    cfg.retries,
                    cfg.retry_backoff,
                    stop_event,
                )
            except TransientControllerError as e:
                self.reporter.error(f"Light {light} skipped a step: {e}")
            except ControllerError as e:
                retired[light].set()
                self.reporter.error(f"Light {light} removed from loop: {e}")

        def on_error(index: int, error: BaseException) -> None:
            self.reporter.error(f"Light {cfg.roster[index]} producer crashed: {error!r}")

        producers = [
            partial(self.produce, light, index, retired[light])
            for index, light in enumerate(cfg.roster)
        ]
        fanin = FanIn(
            producers,
            consume,
            maxsize=cfg.queue_size,
            on_error=on_error,
            name=self.name,
        )
        fanin.run(stop_event)

        if cfg.roster and all(event.is_set() for event in retired.values()):
            self.reporter.error("Every light failed, stopping")


def default_registry(
    config: LoopConfig | None = None,
    reporter: Reporter | None = None,
) -> LoopRegistry:
    """Registry with the built-in loops."""
    return LoopRegistry([
        TestLoop(reporter),
        SoloHueLoop(config, reporter),
        RandomHueLoop(config, reporter),
    ])
