# sparkscope/runtime/state.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

UNSET = "NULL"


class DisplayMode(str, Enum):
    SHOWN = "shown"
    HIDDEN = "hidden"


@dataclass
class SessionState:
    """
    Per-connection Spark application state. Mutated only by the engine.
    """
    app_id: str = UNSET
    app_name: str = UNSET
    app_attempt_id: str = UNSET
    app_instance: str = UNSET
    total_cores: int = 0
    num_executors: int = 0
    display_mode: DisplayMode = DisplayMode.SHOWN
    commands_executed_at_last_job_start: int = 0

    def set_application(self, app_id: str, app_name: str, app_attempt_id: str) -> None:
        self.app_id = app_id
        self.app_name = app_name
        self.app_attempt_id = app_attempt_id
        self.app_instance = f"{app_id}_{app_attempt_id}"

    def snapshot(self) -> "SessionSnapshot":
        return SessionSnapshot(
            app_id=self.app_id,
            app_name=self.app_name,
            app_attempt_id=self.app_attempt_id,
            app_instance=self.app_instance,
            total_cores=self.total_cores,
            num_executors=self.num_executors,
            display_mode=self.display_mode,
        )


@dataclass(frozen=True)
class SessionSnapshot:
    """
    Copy of SessionState handed to monitors, safe to keep after the event.
    """
    app_id: str
    app_name: str
    app_attempt_id: str
    app_instance: str
    total_cores: int
    num_executors: int
    display_mode: DisplayMode


@dataclass(frozen=True)
class JobState:
    job_id: int
    name: str
    status: str
    stage_ids: Tuple[int, ...] = ()
    num_tasks: int = 0
    submission_time: Optional[int] = None
    completion_time: Optional[int] = None


@dataclass(frozen=True)
class StageState:
    stage_id: int
    name: str
    status: str
    num_tasks: int = 0
    num_active_tasks: int = 0
    num_completed_tasks: int = 0
    num_failed_tasks: int = 0
    submission_time: Optional[int] = None
    completion_time: Optional[int] = None


@dataclass(frozen=True)
class ExecutorMark:
    """Executor add/remove annotation on a command's timeline."""
    kind: str  # "added" | "removed"
    executor_id: str
    total_cores: int
    time: Optional[int] = None


@dataclass(frozen=True)
class MonitorSnapshot:
    """
    A snapshot of one command monitor, passed to its display.
    """
    command_id: str
    visible: bool
    display_visible: bool
    num_jobs: int
    num_completed_jobs: int
    num_failed_jobs: int
    num_stages: int
    num_completed_stages: int
    num_active_tasks: int
    num_completed_tasks: int
    num_failed_tasks: int
    total_cores: int
    num_executors: int
    jobs: Tuple[JobState, ...] = ()
    stages: Tuple[StageState, ...] = ()
    executor_marks: Tuple[ExecutorMark, ...] = ()


@dataclass(frozen=True)
class EngineStats:
    monitors: int
    jobs_recorded: int
    stages_recorded: int
    events_handled: int
    events_dropped: int
