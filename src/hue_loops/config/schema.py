"""Configuration dataclasses."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


class ConfigError(ValueError):
    """Raised when a configuration value is missing or out of range."""


@dataclass
class HueConfig:
    """Philips Hue bridge configuration."""
    bridge_ip: str
    username: str
    timeout: float = 5.0  # seconds per HTTP request


@dataclass
class LoopConfig:
    """Parameters shared by the animation loops."""
    roster: list[int] = field(default_factory=lambda: [2, 3, 4])
    steps: int = 24
    saturation: float = 0.8
    lightness: float = 0.5
    transition_time: int = 5       # bridge units; also the solo loop's hold in seconds
    solo_shift: float = 75.0       # degrees between neighbouring lights
    random_shift_range: tuple[int, int] = (35, 140)  # [low, high)
    random_hold_range: tuple[int, int] = (4, 16)     # seconds, [low, high)
    queue_size: int = 0            # 0 = unbounded
    retries: int = 3
    retry_backoff: float = 0.5

    def validate(self) -> None:
        """Check ranges, raising ConfigError on the first bad value."""
        if self.steps < 0:
            raise ConfigError(f"loops.steps must be >= 0, got {self.steps}")
        if self.transition_time < 0:
            raise ConfigError(f"loops.transition_time must be >= 0, got {self.transition_time}")
        for key in ("saturation", "lightness"):
            value = getattr(self, key)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"loops.{key} must be within [0, 1], got {value}")
        for key in ("random_shift_range", "random_hold_range"):
            low, high = getattr(self, key)
            if low >= high:
                raise ConfigError(f"loops.{key} must satisfy low < high, got [{low}, {high}]")
        if self.random_hold_range[0] < 0:
            raise ConfigError("loops.random_hold_range must not be negative")
        if self.queue_size < 0:
            raise ConfigError(f"loops.queue_size must be >= 0, got {self.queue_size}")
        if self.retries < 0:
            raise ConfigError(f"loops.retries must be >= 0, got {self.retries}")
        if self.retry_backoff < 0:
            raise ConfigError(f"loops.retry_backoff must be >= 0, got {self.retry_backoff}")


@dataclass
class ShellConfig:
    """Interactive shell settings."""
    history_file: Optional[Path] = None  # None = default location
    default_loop: str = "random-hue"


@dataclass
class AppConfig:
    """Main application configuration."""
    hue: Optional[HueConfig] = None
    loops: LoopConfig = field(default_factory=LoopConfig)
    shell: ShellConfig = field(default_factory=ShellConfig)

    @classmethod
    def with_defaults(cls) -> "AppConfig":
        """Create config with no bridge and default loop parameters."""
        return cls()
