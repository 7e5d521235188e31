# sparkscope/runtime/engine.py
from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Callable, Dict, List, Mapping, Optional

from sparkscope.core.errors import EnvelopeError
from sparkscope.interfaces.active_command import ActiveCommandTracker, CommandRef
from sparkscope.interfaces.display import DisplayFactory
from sparkscope.protocol.decoder import decode_event
from sparkscope.protocol.events import (
    ApplicationEnd,
    ApplicationStart,
    EventKind,
    ExecutorAdded,
    ExecutorRemoved,
    JobEnd,
    JobStart,
    SparkEvent,
    StageCompleted,
    StageSubmitted,
    TaskEnd,
    TaskStart,
)
from sparkscope.runtime.monitor import CommandMonitor
from sparkscope.runtime.records import CorrelationTable
from sparkscope.runtime.state import DisplayMode, EngineStats, SessionSnapshot, SessionState

Sender = Callable[[Mapping[str, Any]], None]


class CorrelationEngine:
    """
    Routes decoded Spark listener events to per-command monitors.

    Jobs are attributed to the command active when they start; stages to the
    command active when they are submitted. Job end, stage completion and
    task events are resolved through the recorded (app_instance, id) tables.

    All public entry points hold one re-entrant lock, so a handler always
    runs to completion before the next event or host hook is processed.
    """

    def __init__(
        self,
        tracker: ActiveCommandTracker,
        *,
        display_factory: Optional[DisplayFactory] = None,
        display_mode: DisplayMode = DisplayMode.SHOWN,
        logger: Optional[logging.Logger] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._tracker = tracker
        self._display_factory = display_factory
        self._log = logger or logging.getLogger(__name__)
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))

        self._lock = threading.RLock()
        self._sender: Optional[Sender] = None

        self.state = SessionState(display_mode=DisplayMode(display_mode))
        self._monitors: Dict[str, CommandMonitor] = {}
        self._jobs = CorrelationTable("job")
        self._stages = CorrelationTable("stage")

        self._events_handled = 0
        self._events_dropped = 0

        self._handlers: Dict[EventKind, Callable[[Any], None]] = {
            EventKind.JOB_START: self.on_job_start,
            EventKind.JOB_END: self.on_job_end,
            EventKind.STAGE_SUBMITTED: self.on_stage_submitted,
            EventKind.STAGE_COMPLETED: self.on_stage_completed,
            EventKind.TASK_START: self.on_task_start,
            EventKind.TASK_END: self.on_task_end,
            EventKind.APPLICATION_START: self.on_application_start,
            EventKind.APPLICATION_END: self.on_application_end,
            EventKind.EXECUTOR_ADDED: self.on_executor_added,
            EventKind.EXECUTOR_REMOVED: self.on_executor_removed,
        }

    # ---------------- Outbound ----------------
    def attach_sender(self, sender: Optional[Sender]) -> None:
        self._sender = sender

    def send(self, message: Mapping[str, Any]) -> bool:
        sender = self._sender
        if sender is None:
            self._log.warning("SEND_NO_CHANNEL msgtype=%s", message.get("msgtype"))
            return False
        sender(message)
        return True

    # ---------------- Inbound dispatch ----------------
    def handle_message(self, raw: Any) -> None:
        """Decode one channel message and route it. Never raises."""
        with self._lock:
            if self.state.display_mode is DisplayMode.HIDDEN:
                return

            try:
                event = decode_event(raw)
            except EnvelopeError as e:
                self._events_dropped += 1
                self._log.warning("ENVELOPE_REJECTED err=%s hint=%s", e.message, e.hint)
                return

            if event is None:
                self._log.debug("ENVELOPE_IGNORED")
                return

            self.dispatch(event)

    def dispatch(self, event: SparkEvent) -> None:
        with self._lock:
            handler = self._handlers[event.kind]
            self._events_handled += 1
            try:
                handler(event)
            except Exception:
                self._log.exception("EVENT_HANDLER_ERROR kind=%s", event.kind.value)

    # ---------------- Application ----------------
    def on_application_start(self, event: ApplicationStart) -> None:
        with self._lock:
            self.state.set_application(event.app_id, event.app_name, event.app_attempt_id)
            self._log.info(
                "APPLICATION_START app=%s name=%s",
                self.state.app_instance,
                self.state.app_name,
            )

    def on_application_end(self, event: ApplicationEnd) -> None:
        self._log.info("APPLICATION_END app=%s end_time=%s", self.state.app_instance, event.end_time)

    # ---------------- Jobs ----------------
    def on_job_start(self, event: JobStart) -> None:
        with self._lock:
            command = self._tracker.get_active()
            if command is None:
                self._events_dropped += 1
                self._log.error("JOB_START_NO_ACTIVE_COMMAND job_id=%d", event.job_id)
                return
            self._ensure_command_id(command)

            executed = self._tracker.get_execution_count()
            new_run = executed > self.state.commands_executed_at_last_job_start
            if new_run:
                self.state.commands_executed_at_last_job_start = executed

            shown = self.state.display_mode is DisplayMode.SHOWN
            monitor = self._monitors.get(command.id)
            if shown and (monitor is None or new_run):
                monitor = self.create_monitor(command)

            self._jobs.record(self.state.app_instance, event.job_id, command.id)

            # Last write wins: executor events may have been missed while reconnecting.
            self.state.total_cores = event.total_cores
            self.state.num_executors = event.num_executors

            self._log.info(
                "JOB_START command=%s job_id=%d app=%s new_run=%s",
                command.id,
                event.job_id,
                self.state.app_instance,
                new_run,
            )

            if monitor is not None:
                monitor.on_job_start(event, self._snapshot())

    def on_job_end(self, event: JobEnd) -> None:
        with self._lock:
            command_id = self._jobs.lookup(self.state.app_instance, event.job_id)
            if not command_id:
                self._events_dropped += 1
                self._log.error("JOB_END_UNKNOWN_JOB job_id=%d app=%s", event.job_id, self.state.app_instance)
                return
            self._log.info("JOB_END command=%s job_id=%d status=%s", command_id, event.job_id, event.status)
            monitor = self._monitors.get(command_id)
            if monitor is not None:
                monitor.on_job_end(event, self._snapshot())

    # ---------------- Stages ----------------
    def on_stage_submitted(self, event: StageSubmitted) -> None:
        with self._lock:
            command = self._tracker.get_active()
            if command is None:
                self._events_dropped += 1
                self._log.error("STAGE_SUBMITTED_NO_ACTIVE_COMMAND stage_id=%d", event.stage_id)
                return
            self._ensure_command_id(command)

            self._stages.record(self.state.app_instance, event.stage_id, command.id)
            self._log.debug("STAGE_SUBMITTED command=%s stage_id=%d", command.id, event.stage_id)

            monitor = self._monitors.get(command.id)
            if monitor is not None:
                monitor.on_stage_submitted(event, self._snapshot())

    def on_stage_completed(self, event: StageCompleted) -> None:
        with self._lock:
            monitor = self._stage_monitor(event.stage_id, "STAGE_COMPLETED")
            if monitor is not None:
                monitor.on_stage_completed(event, self._snapshot())

    # ---------------- Tasks ----------------
    def on_task_start(self, event: TaskStart) -> None:
        with self._lock:
            monitor = self._stage_monitor(event.stage_id, "TASK_START")
            if monitor is not None:
                monitor.on_task_start(event, self._snapshot())

    def on_task_end(self, event: TaskEnd) -> None:
        with self._lock:
            monitor = self._stage_monitor(event.stage_id, "TASK_END")
            if monitor is not None:
                monitor.on_task_end(event, self._snapshot())

    # ---------------- Executors ----------------
    def on_executor_added(self, event: ExecutorAdded) -> None:
        with self._lock:
            self.state.total_cores = event.total_cores
            self.state.num_executors += 1
            self._log.info(
                "EXECUTOR_ADDED executor=%s total_cores=%d num_executors=%d",
                event.executor_id,
                self.state.total_cores,
                self.state.num_executors,
            )
            monitor = self._active_monitor()
            if monitor is not None:
                monitor.on_executor_added(event, self._snapshot())

    def on_executor_removed(self, event: ExecutorRemoved) -> None:
        with self._lock:
            self.state.total_cores = event.total_cores
            self.state.num_executors -= 1
            self._log.info(
                "EXECUTOR_REMOVED executor=%s total_cores=%d num_executors=%d",
                event.executor_id,
                self.state.total_cores,
                self.state.num_executors,
            )
            monitor = self._active_monitor()
            if monitor is not None:
                monitor.on_executor_removed(event, self._snapshot())

    # ---------------- Monitor lifecycle ----------------
    def get_monitor(self, command_id: str) -> Optional[CommandMonitor]:
        with self._lock:
            return self._monitors.get(command_id)

    def monitor_ids(self) -> List[str]:
        with self._lock:
            return list(self._monitors)

    def create_monitor(self, command: CommandRef) -> CommandMonitor:
        with self._lock:
            self._ensure_command_id(command)
            if command.id in self._monitors:
                self.retire_monitor(command.id)
            monitor = CommandMonitor(command, display_factory=self._display_factory, logger=self._log)
            self._monitors[command.id] = monitor
            self._log.info("MONITOR_CREATED command=%s", command.id)
            return monitor

    def retire_monitor(self, command_id: str) -> None:
        with self._lock:
            monitor = self._monitors.pop(command_id, None)
            if monitor is None:
                return
            monitor.remove_display()
            self._log.info("MONITOR_RETIRED command=%s", command_id)

    def retire_all(self) -> None:
        with self._lock:
            for command_id in list(self._monitors):
                self.retire_monitor(command_id)

    def on_command_removed(self, command_id: str) -> None:
        """Host hook: the command was deleted from the notebook."""
        with self._lock:
            if command_id in self._monitors:
                self._log.info("COMMAND_REMOVED command=%s", command_id)
            self.retire_monitor(command_id)

    # ---------------- Global display mode ----------------
    def toggle_visibility(self) -> None:
        with self._lock:
            if self.state.display_mode is DisplayMode.HIDDEN:
                self.show_all()
            else:
                self.hide_all()

    def show_all(self) -> None:
        with self._lock:
            self.state.display_mode = DisplayMode.SHOWN
            self._log.info("DISPLAY_MODE mode=shown")

    def hide_all(self) -> None:
        with self._lock:
            for monitor in self._monitors.values():
                if monitor.display_visible:
                    monitor.remove_display()
            self.state.display_mode = DisplayMode.HIDDEN
            self._log.info("DISPLAY_MODE mode=hidden")

    # ---------------- Introspection ----------------
    def session(self) -> SessionSnapshot:
        with self._lock:
            return self._snapshot()

    def stats(self) -> EngineStats:
        with self._lock:
            return EngineStats(
                monitors=len(self._monitors),
                jobs_recorded=len(self._jobs),
                stages_recorded=len(self._stages),
                events_handled=self._events_handled,
                events_dropped=self._events_dropped,
            )

    def job_owner(self, job_id: int, app_instance: Optional[str] = None) -> Optional[str]:
        with self._lock:
            return self._jobs.lookup(app_instance or self.state.app_instance, job_id)

    def stage_owner(self, stage_id: int, app_instance: Optional[str] = None) -> Optional[str]:
        with self._lock:
            return self._stages.lookup(app_instance or self.state.app_instance, stage_id)

    # ---------------- helpers ----------------
    def _snapshot(self) -> SessionSnapshot:
        return self.state.snapshot()

    def _ensure_command_id(self, command: CommandRef) -> None:
        if not command.id:
            command.id = self._new_id()
            self._log.debug("COMMAND_ID_ASSIGNED command=%s", command.id)

    def _stage_monitor(self, stage_id: int, what: str) -> Optional[CommandMonitor]:
        command_id = self._stages.lookup(self.state.app_instance, stage_id)
        if not command_id:
            self._events_dropped += 1
            self._log.error("%s_UNKNOWN_STAGE stage_id=%d app=%s", what, stage_id, self.state.app_instance)
            return None
        return self._monitors.get(command_id)

    def _active_monitor(self) -> Optional[CommandMonitor]:
        command = self._tracker.get_active()
        if command is None or not command.id:
            return None
        return self._monitors.get(command.id)
