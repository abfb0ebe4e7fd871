"""Pytest fixtures and test doubles."""

import threading
import time

import pytest

from hue_loops.config import LoopConfig
from hue_loops.lights import ControllerError
from hue_loops.loops import Reporter


class RecordingController:
    """
    Controller double that records calls and tracks concurrent use.

    Args:
        stop_event: Set once ``stop_after`` calls have succeeded
        stop_after: Number of successful calls before stopping
        delay: Seconds each call blocks, to widen any race window
        failures: light id -> exception (or callable returning one / None)
    """

    def __init__(self, stop_event=None, stop_after=None, delay=0.0, failures=None):
        self.stop_event = stop_event
        self.stop_after = stop_after
        self.delay = delay
        self.failures = failures or {}
        self.calls = []
        self.attempts = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def apply(self, light_ids, command):
        ids = tuple(light_ids)
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            self.attempts.append(ids)
        try:
            if self.delay:
                time.sleep(self.delay)
            for light_id in ids:
                failure = self.failures.get(light_id)
                if callable(failure) and not isinstance(failure, BaseException):
                    failure = failure()
                if failure is not None:
                    raise failure
            with self._lock:
                self.calls.append((ids, command))
                done = len(self.calls)
            if self.stop_after is not None and done >= self.stop_after:
                self.stop_event.set()
        finally:
            with self._lock:
                self.in_flight -= 1

    def calls_for(self, light_id):
        return [command for ids, command in self.calls if light_id in ids]


class RecordingReporter(Reporter):
    """Reporter double that keeps every event."""

    def __init__(self):
        self.steps = []
        self.steps_done = 0
        self.messages = []
        self.errors = []
        self._lock = threading.Lock()

    def step(self, light, hsl, rgb, hold=None):
        with self._lock:
            self.steps.append((light, hsl, rgb, hold))

    def step_done(self):
        self.steps_done += 1

    def message(self, text):
        self.messages.append(text)

    def error(self, text):
        with self._lock:
            self.errors.append(text)

    def steps_for(self, light):
        with self._lock:
            return [hsl for l, hsl, _, _ in self.steps if l == light]


@pytest.fixture
def stop_event():
    """Stop event that is always set at teardown so no thread outlives a test."""
    event = threading.Event()
    yield event
    event.set()


@pytest.fixture
def fast_config():
    """Default loop parameters with every wait reduced to zero."""
    return LoopConfig(
        transition_time=0,
        random_hold_range=(0, 1),
        retry_backoff=0.0,
    )


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def permanent_failure():
    return ControllerError("device is off")
