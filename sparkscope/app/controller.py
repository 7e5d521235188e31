# sparkscope/app/controller.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sparkscope.app.config import SparkScopeConfig, build_channel_factory
from sparkscope.channel.adapter import ChannelAdapter
from sparkscope.channel.base import Channel
from sparkscope.channel.registry import ChannelDriverRegistry
from sparkscope.interfaces.active_command import ActiveCommandTracker
from sparkscope.interfaces.display import DisplayFactory
from sparkscope.runtime.engine import CorrelationEngine
from sparkscope.runtime.monitor import CommandMonitor
from sparkscope.runtime.state import EngineStats, SessionSnapshot


@dataclass(frozen=True)
class ControllerStatus:
    channel_open: bool
    session: SessionSnapshot
    stats: EngineStats


class SparkScopeController:
    """
    App-level controller: one per notebook session.

    Wires the host's command tracker, the correlation engine and the
    channel adapter, and exposes the hooks the host calls.
    """

    def __init__(
        self,
        config: SparkScopeConfig,
        *,
        tracker: ActiveCommandTracker,
        display_factory: Optional[DisplayFactory] = None,
        channel_factory: Optional[Callable[[], Channel]] = None,
        drivers: Optional[ChannelDriverRegistry] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._log = logger or logging.getLogger(__name__)
        self._tracker = tracker

        self._engine = CorrelationEngine(
            tracker,
            display_factory=display_factory,
            display_mode=config.display_mode,
            logger=self._log,
        )
        self._adapter = ChannelAdapter(
            channel_factory or build_channel_factory(config.channel, drivers),
            tracker,
            on_message=self._engine.handle_message,
            ready_timeout_s=config.ready_timeout_s,
            logger=self._log,
        )
        self._engine.attach_sender(self._adapter.send)

    @property
    def config(self) -> SparkScopeConfig:
        return self._config

    @property
    def engine(self) -> CorrelationEngine:
        return self._engine

    @property
    def adapter(self) -> ChannelAdapter:
        return self._adapter

    def start(self) -> None:
        try:
            self._adapter.open()
        except Exception:
            try:
                self.stop()
            except Exception:
                self._log.exception("CONTROLLER_STOP_AFTER_START_FAIL")
            raise

    def stop(self) -> None:
        try:
            self._adapter.close()
        except Exception:
            self._log.exception("ADAPTER_CLOSE_ERROR")
        self._engine.retire_all()

    def __enter__(self) -> "SparkScopeController":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # host hooks
    def toggle_all(self) -> None:
        self._engine.toggle_visibility()

    def show_all(self) -> None:
        self._engine.show_all()

    def hide_all(self) -> None:
        self._engine.hide_all()

    def on_command_removed(self, command_id: str) -> None:
        self._engine.on_command_removed(command_id)

    def on_kernel_status(self, status: str) -> None:
        self._adapter.on_kernel_status(status)

    # passthrough
    def get_monitor(self, command_id: str) -> Optional[CommandMonitor]:
        return self._engine.get_monitor(command_id)

    def status(self) -> ControllerStatus:
        return ControllerStatus(
            channel_open=self._adapter.is_open,
            session=self._engine.session(),
            stats=self._engine.stats(),
        )
