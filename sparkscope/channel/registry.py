# sparkscope/channel/registry.py
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Type

from .base import Channel
from .memory import MemoryChannel
from .serial import SerialChannel
from .errors import ChannelParamsError, UnknownChannelDriverError


class ChannelDriverRegistry:
    """
    Maps driver keys -> concrete Channel classes and resolves their params.

    Keys are case-insensitive. A driver that declares a ``PARAMS`` schema
    gets its config params checked and cast before construction; one
    without a schema receives them unchanged. Nothing here opens a channel.
    """

    def __init__(self, drivers: Dict[str, Type[Channel]]):
        self._drivers: Dict[str, Type[Channel]] = {k.lower(): v for k, v in drivers.items()}

    @classmethod
    def default(cls) -> "ChannelDriverRegistry":
        return cls(
            drivers={
                "memory": MemoryChannel,
                "serial": SerialChannel,
            }
        )

    def drivers(self) -> list[str]:
        return sorted(self._drivers)

    def has(self, driver: str) -> bool:
        return driver.lower() in self._drivers

    def get_class(self, driver: str) -> Type[Channel]:
        key = driver.lower()
        if key not in self._drivers:
            raise UnknownChannelDriverError(driver, self.drivers())
        return self._drivers[key]

    def resolve_params(self, driver: str, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Constructor kwargs for ``driver``: overrides validated, defaults filled in."""
        params = dict(params or {})
        schema = self.get_class(driver).PARAMS
        if schema is None:
            return params

        for key in params:
            if key not in schema:
                raise ChannelParamsError(
                    f"Unknown param '{key}' for channel driver '{driver}'.",
                    driver=driver,
                    param=key,
                    hint=f"Valid params: {sorted(schema)}",
                )

        resolved: Dict[str, Any] = {}
        for name, rule in schema.items():
            if name in params:
                value = params[name]
            elif "default" in rule:
                value = rule["default"]
            elif rule.get("required", False):
                raise ChannelParamsError(
                    f"Missing required param '{name}' for channel driver '{driver}'.",
                    driver=driver,
                    param=name,
                    hint="Add it under channel.params in the config.",
                )
            else:
                continue

            try:
                resolved[name] = _cast_param(value, rule.get("type"))
            except TypeError as e:
                raise ChannelParamsError(
                    f"Invalid value for channel driver '{driver}' param '{name}'.",
                    driver=driver,
                    param=name,
                    hint=str(e),
                ) from None

        return resolved

    def create(self, driver: str, **params) -> Channel:
        channel_cls = self.get_class(driver)
        return channel_cls(**self.resolve_params(driver, params))


def _cast_param(value: Any, type_name: Any) -> Any:
    if value is None:
        return None

    if type_name == "str":
        if not isinstance(value, str):
            raise TypeError(f"Expected str, got {type(value).__name__}")
        return value

    if type_name == "int":
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Expected int, got {type(value).__name__}")
        return value

    if type_name == "float":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"Expected float, got {type(value).__name__}")
        return float(value)

    raise TypeError(f"Unknown schema type '{type_name}'")
