from .config import SparkScopeConfig, ChannelConfig, LoggingConfig, load_config, build_channel_factory
from .controller import SparkScopeController, ControllerStatus

__all__ = [
    "SparkScopeConfig",
    "ChannelConfig",
    "LoggingConfig",
    "load_config",
    "build_channel_factory",
    "SparkScopeController",
    "ControllerStatus",
]
