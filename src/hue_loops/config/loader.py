"""Configuration file loading and saving."""

from pathlib import Path
from typing import Any, Callable
import yaml

from .schema import (
    AppConfig,
    ConfigError,
    HueConfig,
    LoopConfig,
    ShellConfig,
)


def _section(data: dict, name: str) -> dict:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"{name} must be a mapping, got {value!r}")
    return value


def _value(data: dict, section: str, key: str, convert: Callable[[Any], Any], default: Any) -> Any:
    """Read ``data[key]`` through ``convert``, reporting bad values as ConfigError."""
    value = data.get(key, default)
    try:
        return convert(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{section}.{key} has an invalid value: {value!r}") from None


def _pair(data: dict, key: str, default: tuple[int, int]) -> tuple[int, int]:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ConfigError(f"loops.{key} must be a [low, high] pair, got {value!r}")
    try:
        return int(value[0]), int(value[1])
    except (TypeError, ValueError):
        raise ConfigError(f"loops.{key} has an invalid value: {value!r}") from None


def _roster(value: Any) -> list[int]:
    if not isinstance(value, (list, tuple)):
        raise TypeError("roster must be a list")
    return [int(light) for light in value]


def load_config(config_path: Path) -> AppConfig:
    """Load configuration from YAML file."""
    with open(config_path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"{config_path} is not valid YAML: {e}") from None
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping at the top level")

    # Parse Hue config
    hue = None
    hue_data = _section(data, "hue")
    if hue_data:
        try:
            hue = HueConfig(
                bridge_ip=str(hue_data["bridge_ip"]),
                username=str(hue_data["username"]),
                timeout=_value(hue_data, "hue", "timeout", float, 5.0),
            )
        except KeyError as e:
            raise ConfigError(f"hue.{e.args[0]} is required")

    # Parse loop parameters
    defaults = LoopConfig()
    loop_data = _section(data, "loops")

    def get(key: str, convert: Callable[[Any], Any]) -> Any:
        return _value(loop_data, "loops", key, convert, getattr(defaults, key))

    loops = LoopConfig(
        roster=get("roster", _roster),
        steps=get("steps", int),
        saturation=get("saturation", float),
        lightness=get("lightness", float),
        transition_time=get("transition_time", int),
        solo_shift=get("solo_shift", float),
        random_shift_range=_pair(loop_data, "random_shift_range", defaults.random_shift_range),
        random_hold_range=_pair(loop_data, "random_hold_range", defaults.random_hold_range),
        queue_size=get("queue_size", int),
        retries=get("retries", int),
        retry_backoff=get("retry_backoff", float),
    )
    loops.validate()

    # Parse shell settings
    shell_data = _section(data, "shell")
    history = shell_data.get("history_file")
    shell = ShellConfig(
        history_file=Path(history).expanduser() if history else None,
        default_loop=shell_data.get("default_loop", "random-hue"),
    )

    return AppConfig(hue=hue, loops=loops, shell=shell)


def save_config(config: AppConfig, config_path: Path) -> None:
    """Save configuration to YAML file."""
    data: dict[str, Any] = {
        "loops": {
            "roster": list(config.loops.roster),
            "steps": config.loops.steps,
            "saturation": config.loops.saturation,
            "lightness": config.loops.lightness,
            "transition_time": config.loops.transition_time,
            "solo_shift": config.loops.solo_shift,
            "random_shift_range": list(config.loops.random_shift_range),
            "random_hold_range": list(config.loops.random_hold_range),
            "queue_size": config.loops.queue_size,
            "retries": config.loops.retries,
            "retry_backoff": config.loops.retry_backoff,
        },
        "shell": {
            "default_loop": config.shell.default_loop,
        },
    }

    if config.shell.history_file:
        data["shell"]["history_file"] = str(config.shell.history_file)

    if config.hue:
        data["hue"] = {
            "bridge_ip": config.hue.bridge_ip,
            "username": config.hue.username,
            "timeout": config.hue.timeout,
        }

    with open(config_path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
