"""Hue bridge client (v1 REST light state API)."""

from dataclasses import dataclass
from typing import Iterable, Optional
import logging
import threading
import time

import requests

logger = logging.getLogger(__name__)

# Bridge error types that are worth retrying (internal error, bridge busy)
TRANSIENT_ERROR_TYPES = {901, 950}


class ControllerError(Exception):
    """A light state change was rejected or could not be delivered."""

    def __init__(self, message: str, light_id: Optional[int] = None):
        super().__init__(message)
        self.light_id = light_id


class TransientControllerError(ControllerError):
    """Failure that may succeed on retry (network trouble, bridge busy)."""


@dataclass
class TransitionCommand:
    """
    One light state change.

    Unset fields are left out of the request so the bridge keeps
    their current value.
    """
    on: Optional[bool] = None
    brightness: Optional[int] = None         # 1-254
    xy: Optional[tuple[float, float]] = None
    transition_time: Optional[int] = None    # multiples of 100ms

    def to_payload(self) -> dict:
        payload: dict = {}
        if self.on is not None:
            payload["on"] = self.on
        if self.brightness is not None:
            payload["bri"] = self.brightness
        if self.xy is not None:
            payload["xy"] = [round(self.xy[0], 4), round(self.xy[1], 4)]
        if self.transition_time is not None:
            payload["transitiontime"] = self.transition_time
        return payload


@dataclass
class Light:
    """Light as reported by the bridge."""
    id: int
    name: str
    on: bool = False
    bri: int = 0
    sat: Optional[int] = None
    hue: Optional[int] = None
    xy: Optional[tuple[float, float]] = None

    @classmethod
    def from_json(cls, light_id: int, data: dict) -> "Light":
        state = data.get("state", {})
        xy = state.get("xy")
        return cls(
            id=light_id,
            name=data.get("name", "Unknown"),
            on=bool(state.get("on", False)),
            bri=state.get("bri", 0),
            sat=state.get("sat"),
            hue=state.get("hue"),
            xy=tuple(xy) if xy else None,
        )


def _raise_for_errors(result, light_id: Optional[int]) -> None:
    """Raise on the first error entry of a bridge response list."""
    if not isinstance(result, list):
        return
    for entry in result:
        if isinstance(entry, dict) and "error" in entry:
            error = entry["error"]
            message = f"{error.get('description', 'unknown error')} ({error.get('address', '')})"
            if error.get("type") in TRANSIENT_ERROR_TYPES:
                raise TransientControllerError(message, light_id)
            raise ControllerError(message, light_id)


class HueBridge:
    """
    Blocking client for one Hue bridge.

    Usage:
        bridge = HueBridge("192.168.1.2", username)
        bridge.refresh()
        bridge.apply([2], TransitionCommand(on=True, brightness=200))
    """

    def __init__(
        self,
        bridge_ip: str,
        username: str,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        self.bridge_ip = bridge_ip
        self.username = username
        self.timeout = timeout
        self._session = session or requests.Session()
        self.lights: dict[int, Light] = {}

    @property
    def base_url(self) -> str:
        return f"http://{self.bridge_ip}/api/{self.username}"

    def _request(self, method: str, path: str, light_id: Optional[int] = None, payload=None):
        url = f"{self.base_url}/{path}"
        logger.debug("%s %s %s", method, url, payload)
        try:
            response = self._session.request(method, url, json=payload, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransientControllerError(f"Bridge unreachable: {e}", light_id) from e
        except requests.RequestException as e:
            raise ControllerError(f"Request failed: {e}", light_id) from e

        if response.status_code >= 500:
            raise TransientControllerError(f"Bridge returned HTTP {response.status_code}", light_id)
        if response.status_code >= 400:
            raise ControllerError(f"Bridge returned HTTP {response.status_code}", light_id)

        try:
            result = response.json()
        except ValueError as e:
            raise ControllerError(f"Invalid response from bridge: {e}", light_id) from e

        _raise_for_errors(result, light_id)
        return result

    def get_lights(self) -> dict[int, Light]:
        """Fetch all lights, keyed by numeric id."""
        data = self._request("GET", "lights")
        return {
            int(light_id): Light.from_json(int(light_id), item)
            for light_id, item in sorted(data.items(), key=lambda kv: int(kv[0]))
        }

    def refresh(self) -> dict[int, Light]:
        """Re-read the light list into ``self.lights``."""
        self.lights = self.get_lights()
        return self.lights

    def apply(self, light_ids: Iterable[int], command: TransitionCommand) -> None:
        """Send ``command`` to each light, one request per light."""
        payload = command.to_payload()
        for light_id in light_ids:
            self._request("PUT", f"lights/{light_id}/state", light_id, payload)

    def apply_all(self, command: TransitionCommand) -> None:
        """Send ``command`` to every light at once (group 0)."""
        self._request("PUT", "groups/0/action", None, command.to_payload())


class MockBridge:
    """In-memory bridge for running without hardware and for tests."""

    def __init__(self, light_ids: Iterable[int] = (1, 2, 3, 4)):
        self.lights: dict[int, Light] = {
            light_id: Light(id=light_id, name=f"Mock light {light_id}")
            for light_id in light_ids
        }
        self.calls: list[tuple[tuple[int, ...], TransitionCommand]] = []
        self._lock = threading.Lock()

    def get_lights(self) -> dict[int, Light]:
        return dict(self.lights)

    def refresh(self) -> dict[int, Light]:
        return self.lights

    def apply(self, light_ids: Iterable[int], command: TransitionCommand) -> None:
        ids = tuple(light_ids)
        with self._lock:
            for light_id in ids:
                if light_id not in self.lights:
                    raise ControllerError(f"resource, /lights/{light_id}, not available", light_id)
            self.calls.append((ids, command))
            for light_id in ids:
                self._update(self.lights[light_id], command)

    def apply_all(self, command: TransitionCommand) -> None:
        self.apply(list(self.lights), command)

    @staticmethod
    def _update(light: Light, command: TransitionCommand) -> None:
        if command.on is not None:
            light.on = command.on
        if command.brightness is not None:
            light.bri = command.brightness
        if command.xy is not None:
            light.xy = command.xy


def apply_with_retry(
    controller,
    light_ids: Iterable[int],
    command: TransitionCommand,
    retries: int = 3,
    backoff: float = 0.5,
    stop_event: Optional[threading.Event] = None,
) -> None:
    """
    Apply a command, retrying transient failures with exponential backoff.

    Permanent failures are raised immediately. After ``retries`` failed
    retries the last transient error is raised.
    """
    ids = tuple(light_ids)
    attempt = 0
    while True:
        try:
            controller.apply(ids, command)
            return
        except TransientControllerError as e:
            if attempt >= retries:
                raise
            delay = backoff * (2 ** attempt)
            attempt += 1
            logger.debug("Retry %d/%d for lights %s in %.2fs: %s", attempt, retries, ids, delay, e)
            if stop_event is not None:
                if stop_event.wait(delay):
                    raise
            else:
                time.sleep(delay)
