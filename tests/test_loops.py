"""Tests for the built-in loops."""

import math
import random
import threading
from unittest.mock import Mock

import pytest

from conftest import RecordingController
from hue_loops.config import LoopConfig
from hue_loops.lights import ControllerError, TransientControllerError, TransitionCommand
from hue_loops.loops import (
    HSL,
    RandomHueLoop,
    SoloHueLoop,
    Steps,
    TestLoop,
    color_command,
    hsl_to_device,
)


def hue_delta(a: float, b: float) -> float:
    """Difference b - a wrapped into [0, 360)."""
    return (b - a) % 360


class FakeRandom:
    """Random stand-in returning the low end of each range and recording draws."""

    def __init__(self):
        self.draws = []

    def randrange(self, low, high):
        self.draws.append((low, high))
        return low


# =================================================================
# Test loop
# =================================================================


class TestTestLoop:

    def test_reports_and_leaves_controller_alone(self, reporter):
        controller = Mock()
        TestLoop(reporter).play(controller)
        assert reporter.messages == ["It's test!"]
        controller.assert_not_called()
        assert controller.method_calls == []


# =================================================================
# Solo hue
# =================================================================


class TestSoloHueLoop:

    def test_offset_law_over_full_cycle(self):
        loop = SoloHueLoop(LoopConfig(roster=[2, 3, 4]))

        for step in Steps(24):
            colors = loop.colors_for_step(step)
            assert [light for light, _ in colors] == [2, 3, 4]
            (_, first), (_, second), (_, third) = colors
            assert hue_delta(first.hue, second.hue) == pytest.approx(75)
            assert hue_delta(first.hue, third.hue) == pytest.approx(150)
            assert first.hue == pytest.approx(math.degrees(step))
            for _, hsl in colors:
                assert (hsl.saturation, hsl.lightness) == (0.8, 0.5)

    def test_one_cycle_sends_one_command_per_light_per_step(self, fast_config, stop_event, reporter):
        controller = RecordingController(stop_event, stop_after=24 * 3)
        SoloHueLoop(fast_config, reporter).play(controller, stop_event)

        assert len(controller.calls) == 72
        assert [ids for ids, _ in controller.calls[:6]] == [(2,), (3,), (4,), (2,), (3,), (4,)]
        assert reporter.steps_done == 24

        angles = list(Steps(24))
        for index, (ids, command) in enumerate(controller.calls):
            expected_hue = math.degrees(angles[index // 3]) + 75 * (index % 3)
            device, _ = hsl_to_device(expected_hue, 0.8, 0.5)
            assert command.on is True
            assert command.transition_time == 0
            assert command.xy == device.xy
            assert command.brightness == device.brightness

    def test_repeats_after_a_cycle(self, fast_config, stop_event):
        controller = RecordingController(stop_event, stop_after=24 * 3 + 3)
        SoloHueLoop(fast_config).play(controller, stop_event)

        # First step of the second cycle starts again at hue 0
        assert controller.calls[72][1] == controller.calls[0][1]

    def test_empty_roster_keeps_stepping_without_sending(self, stop_event, reporter):
        config = LoopConfig(roster=[], transition_time=0)
        controller = RecordingController()
        timer = threading.Timer(0.05, stop_event.set)
        timer.start()

        SoloHueLoop(config, reporter).play(controller, stop_event)

        assert controller.calls == []
        assert reporter.steps_done > 0

    def test_stop_event_interrupts_hold(self, stop_event):
        config = LoopConfig(transition_time=30)
        controller = RecordingController(stop_event, stop_after=3)
        SoloHueLoop(config).play(controller, stop_event)
        assert len(controller.calls) == 3

    def test_permanent_failure_retires_only_that_light(
        self, fast_config, stop_event, reporter, permanent_failure
    ):
        controller = RecordingController(
            stop_event, stop_after=24 * 2, failures={3: permanent_failure}
        )
        SoloHueLoop(fast_config, reporter).play(controller, stop_event)

        assert controller.attempts.count((3,)) == 1
        assert len(controller.calls_for(2)) == 24
        assert len(controller.calls_for(4)) == 24
        assert len(reporter.errors) == 1
        assert "Light 3" in reporter.errors[0]

    def test_transient_failure_is_retried(self, fast_config, stop_event, reporter):
        failures = iter([TransientControllerError("timeout"), None])
        controller = RecordingController(
            stop_event, stop_after=3, failures={2: lambda: next(failures, None)}
        )
        SoloHueLoop(fast_config, reporter).play(controller, stop_event)

        assert controller.attempts[:2] == [(2,), (2,)]
        assert [ids for ids, _ in controller.calls] == [(2,), (3,), (4,)]
        assert reporter.errors == []

    def test_exhausted_retries_skip_the_step(self, stop_event, reporter):
        config = LoopConfig(roster=[2], transition_time=0, retries=2, retry_backoff=0.0)
        attempts = {"n": 0}

        def flaky():
            attempts["n"] += 1
            return TransientControllerError("busy") if attempts["n"] <= 3 else None

        controller = RecordingController(stop_event, stop_after=1, failures={2: flaky})
        SoloHueLoop(config, reporter).play(controller, stop_event)

        # Three failed attempts on step 0, then success on step 1
        assert len(controller.attempts) == 4
        assert len(reporter.errors) == 1
        assert "skipped" in reporter.errors[0]


# =================================================================
# Random hue
# =================================================================


class HaltAfter:
    """Halt stand-in that ends a producer once ``items`` holds ``count`` entries."""

    def __init__(self, items, count):
        self.items = items
        self.count = count
        self.waits = []

    def is_set(self):
        return False

    def wait(self, seconds):
        self.waits.append(seconds)
        return len(self.items) >= self.count


class TestRandomHueProducer:

    def test_shift_drawn_per_cycle_and_hold_per_step(self):
        fake = FakeRandom()
        loop = RandomHueLoop(LoopConfig(), rng_factory=lambda: fake)
        emitted = []
        halt = HaltAfter(emitted, 48)

        loop.produce(3, 1, threading.Event(), emitted.append, halt)

        assert len(emitted) == 48
        assert fake.draws.count((35, 140)) == 2
        assert fake.draws.count((4, 16)) == 48
        assert halt.waits == [4] * 48

    def test_hues_follow_solo_formula_with_random_shift(self):
        loop = RandomHueLoop(LoopConfig(), rng_factory=FakeRandom)
        emitted = []

        loop.produce(4, 2, threading.Event(), emitted.append, HaltAfter(emitted, 24))

        angles = list(Steps(24))
        for step_index, (light, hsl) in enumerate(emitted):
            assert light == 4
            assert hsl == HSL(math.degrees(angles[step_index]) + 35 * 2, 0.8, 0.5)

    def test_retired_light_stops_producing(self):
        loop = RandomHueLoop(LoopConfig(), rng_factory=FakeRandom)
        retired = threading.Event()
        retired.set()
        emitted = []
        loop.produce(2, 0, retired, emitted.append, threading.Event())
        assert emitted == []

    def test_default_draws_stay_in_configured_ranges(self):
        rng = random.Random(7)
        loop = RandomHueLoop(LoopConfig(), rng_factory=lambda: rng)
        emitted = []
        halt = HaltAfter(emitted, 24 * 5)

        loop.produce(3, 1, threading.Event(), emitted.append, halt)

        assert all(4 <= hold < 16 for hold in halt.waits)
        for cycle in range(5):
            first = emitted[cycle * 24][1].hue
            assert 35 <= first < 140
            for step in range(1, 24):
                hue = emitted[cycle * 24 + step][1].hue
                assert hue - first == pytest.approx(step * 15)


class TestRandomHueLoop:

    def test_serializes_controller_calls(self, fast_config, stop_event, reporter):
        controller = RecordingController(stop_event, stop_after=90, delay=0.001)
        RandomHueLoop(fast_config, reporter).play(controller, stop_event)

        assert len(controller.calls) == 90
        assert controller.max_in_flight == 1
        assert all(len(ids) == 1 for ids, _ in controller.calls)
        assert {ids[0] for ids, _ in controller.calls} <= {2, 3, 4}

    def test_commands_match_produced_colors(self, fast_config, stop_event, reporter):
        controller = RecordingController(stop_event, stop_after=30)
        RandomHueLoop(fast_config, reporter).play(controller, stop_event)

        for light in (2, 3, 4):
            produced = reporter.steps_for(light)
            sent = controller.calls_for(light)
            for hsl, command in zip(produced, sent):
                assert command == color_command(hsl, 0)

    def test_permanent_failure_retires_only_that_light(
        self, fast_config, stop_event, reporter, permanent_failure
    ):
        controller = RecordingController(
            stop_event, stop_after=60, failures={3: permanent_failure}
        )
        RandomHueLoop(fast_config, reporter).play(controller, stop_event)

        assert controller.attempts.count((3,)) == 1
        assert controller.calls_for(3) == []
        assert len(controller.calls) == 60
        assert sum("Light 3" in e for e in reporter.errors) == 1

    def test_returns_when_every_light_failed(self, fast_config, stop_event, reporter):
        failure = ControllerError("unauthorized user")
        controller = RecordingController(failures={2: failure, 3: failure, 4: failure})
        watchdog = threading.Timer(5.0, stop_event.set)
        watchdog.start()
        try:
            RandomHueLoop(fast_config, reporter).play(controller, stop_event)
        finally:
            watchdog.cancel()

        assert not stop_event.is_set()
        assert controller.calls == []
        assert "Every light failed, stopping" in reporter.errors

    def test_producer_crash_is_reported(self, fast_config, stop_event, reporter):
        def broken_rng():
            rng = Mock()
            rng.randrange.side_effect = RuntimeError("no entropy")
            return rng

        controller = RecordingController()
        watchdog = threading.Timer(5.0, stop_event.set)
        watchdog.start()
        try:
            RandomHueLoop(fast_config, reporter, rng_factory=broken_rng).play(controller, stop_event)
        finally:
            watchdog.cancel()

        assert len(reporter.errors) == 3
        assert all("producer crashed" in e for e in reporter.errors)


def test_color_command_fields():
    command = color_command(HSL(0, 0.8, 0.5), 5)
    device, _ = hsl_to_device(0, 0.8, 0.5)
    assert command == TransitionCommand(
        on=True, brightness=device.brightness, xy=device.xy, transition_time=5
    )
