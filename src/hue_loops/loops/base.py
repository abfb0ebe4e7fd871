"""
Loop base class and name-based dispatch.

A loop is a named animation that runs against a controller (anything with
``apply(light_ids, command)``) until its stop event is set. Without a stop
event it runs until the process exits.
"""

from typing import Iterable, Optional
import threading
import time


def pause(stop_event: Optional[threading.Event], seconds: float) -> bool:
    """Sleep for ``seconds``. Returns True if ``stop_event`` was set meanwhile."""
    if stop_event is None:
        time.sleep(seconds)
        return False
    return stop_event.wait(seconds)


class LoopNotFoundError(LookupError):
    """No loop is registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(f"Loop {name} not found")
        self.name = name


class Loop:
    """Base class for loops. Subclasses set ``name`` and implement ``play``."""

    name: str = ""

    def play(self, controller, stop_event: Optional[threading.Event] = None) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class LoopRegistry:
    """
    Ordered set of loops, looked up by name.

    Usage:
        registry = LoopRegistry([TestLoop(), SoloHueLoop(config)])
        registry.play("solo-hue", bridge, stop_event)
    """

    def __init__(self, loops: Iterable[Loop] = ()):
        self._loops: dict[str, Loop] = {}
        for loop in loops:
            self.register(loop)

    def register(self, loop: Loop) -> Loop:
        if not loop.name:
            raise ValueError(f"{loop!r} has no name")
        if loop.name in self._loops:
            raise ValueError(f"Loop {loop.name} is already registered")
        self._loops[loop.name] = loop
        return loop

    def get(self, name: str) -> Loop:
        try:
            return self._loops[name]
        except KeyError:
            raise LoopNotFoundError(name) from None

    def names(self) -> list[str]:
        return list(self._loops)

    def play(self, name: str, controller, stop_event: Optional[threading.Event] = None) -> None:
        """Run the named loop. Raises LoopNotFoundError before touching the controller."""
        self.get(name).play(controller, stop_event)

    def __contains__(self, name: str) -> bool:
        return name in self._loops

    def __len__(self) -> int:
        return len(self._loops)
