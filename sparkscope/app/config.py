# sparkscope/app/config.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

import yaml

from sparkscope.channel.base import Channel
from sparkscope.channel.errors import ChannelError, ChannelParamsError, UnknownChannelDriverError
from sparkscope.channel.registry import ChannelDriverRegistry
from sparkscope.common.logging_config import DEFAULTS as LOG_DEFAULTS, LEVELS
from sparkscope.core.errors import ConfigError
from sparkscope.runtime.state import DisplayMode


@dataclass(frozen=True)
class ChannelConfig:
    driver: str = "memory"
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LoggingConfig:
    level: str = LOG_DEFAULTS.level
    file: Optional[str] = None


@dataclass(frozen=True)
class SparkScopeConfig:
    channel: ChannelConfig = field(default_factory=ChannelConfig)
    display_mode: DisplayMode = DisplayMode.SHOWN
    ready_timeout_s: Optional[float] = 2.0
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SparkScopeConfig":
        if not isinstance(data, Mapping):
            raise ConfigError("Config root must be a mapping.")

        ch = data.get("channel") or {}
        if not isinstance(ch, Mapping):
            raise ConfigError("'channel' must be a mapping.")
        driver = ch.get("driver", "memory")
        if not isinstance(driver, str) or not driver:
            raise ConfigError("'channel.driver' must be a non-empty string.")
        params = ch.get("params") or {}
        if not isinstance(params, Mapping):
            raise ConfigError("'channel.params' must be a mapping.", details={"driver": driver})

        raw_mode = data.get("display_mode", DisplayMode.SHOWN.value)
        try:
            mode = DisplayMode(raw_mode)
        except ValueError:
            raise ConfigError(
                f"Unknown display_mode '{raw_mode}'.",
                hint=f"Valid modes: {[m.value for m in DisplayMode]}",
            ) from None

        ready = data.get("ready_timeout_s", 2.0)
        if ready is not None:
            if isinstance(ready, bool) or not isinstance(ready, (int, float)) or ready < 0:
                raise ConfigError("'ready_timeout_s' must be a non-negative number or null.")
            ready = float(ready)

        lg = data.get("logging") or {}
        if not isinstance(lg, Mapping):
            raise ConfigError("'logging' must be a mapping.")
        level = str(lg.get("level", LOG_DEFAULTS.level)).upper()
        if level not in LEVELS:
            raise ConfigError(f"Unknown log level '{level}'.", hint=f"Valid levels: {list(LEVELS)}")
        log_file = lg.get("file")

        return cls(
            channel=ChannelConfig(driver=driver, params=dict(params)),
            display_mode=mode,
            ready_timeout_s=ready,
            logging=LoggingConfig(level=level, file=str(log_file) if log_file else None),
        )


def load_config(path: str | Path) -> SparkScopeConfig:
    """Load a SparkScopeConfig from YAML. Raises ConfigError on any problem."""
    path = Path(path)
    if not path.exists():
        raise ConfigError(
            f"Missing config file: {path}",
            hint="Pass --config with the path to a sparkscope YAML file.",
            details={"path": str(path)},
        )
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError("Failed to parse config YAML.", hint=str(e), details={"path": str(path)}) from None

    return SparkScopeConfig.from_mapping(data)


def build_channel_factory(
    config: ChannelConfig,
    drivers: Optional[ChannelDriverRegistry] = None,
) -> Callable[[], Channel]:
    """
    Return a callable producing a fresh, unopened Channel per call.
    The driver key and its params are resolved immediately, so a bad
    config fails here rather than at the first open.
    """
    drivers = drivers or ChannelDriverRegistry.default()
    try:
        params = drivers.resolve_params(config.driver, config.params)
    except UnknownChannelDriverError as e:
        raise ConfigError(
            f"Unknown channel driver '{config.driver}'.",
            hint=f"Valid drivers: {e.known}",
            details={"driver": config.driver},
        ) from None
    except ChannelParamsError as e:
        raise ConfigError(
            str(e),
            hint=e.hint,
            details={"driver": config.driver, "param": e.param},
        ) from None
    channel_cls = drivers.get_class(config.driver)

    def _create() -> Channel:
        try:
            return channel_cls(**params)
        except (ChannelError, TypeError) as e:
            raise ConfigError(
                f"Failed to construct channel (driver='{config.driver}').",
                hint=str(e),
                details={"driver": config.driver, "params": dict(config.params)},
            ) from None

    return _create
