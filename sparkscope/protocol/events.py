# sparkscope/protocol/events.py
"""
Typed Spark listener events.

Each wire tag maps to exactly one frozen dataclass. ``EVENT_TYPES`` is the
closed tag -> class table used by the decoder; the engine dispatches on
``EventKind``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Type, Union


class EventKind(str, Enum):
    JOB_START = "sparkJobStart"
    JOB_END = "sparkJobEnd"
    STAGE_SUBMITTED = "sparkStageSubmitted"
    STAGE_COMPLETED = "sparkStageCompleted"
    TASK_START = "sparkTaskStart"
    TASK_END = "sparkTaskEnd"
    APPLICATION_START = "sparkApplicationStart"
    APPLICATION_END = "sparkApplicationEnd"
    EXECUTOR_ADDED = "sparkExecutorAdded"
    EXECUTOR_REMOVED = "sparkExecutorRemoved"


# ---------------- payload helpers ----------------

def _required_int(d: Mapping[str, Any], key: str) -> int:
    if key not in d or d[key] is None:
        raise KeyError(key)
    v = d[key]
    if isinstance(v, bool):
        raise TypeError(f"{key} must be an int, got bool")
    return int(v)


def _opt_int(d: Mapping[str, Any], key: str, default: Optional[int] = None) -> Optional[int]:
    v = d.get(key)
    if v is None or isinstance(v, bool):
        return default
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def _opt_str(d: Mapping[str, Any], key: str, default: str = "") -> str:
    v = d.get(key)
    return default if v is None else str(v)


def _int_tuple(v: Any) -> Tuple[int, ...]:
    if not isinstance(v, (list, tuple)):
        return ()
    out = []
    for item in v:
        try:
            out.append(int(item))
        except (TypeError, ValueError):
            continue
    return tuple(out)


# ---------------- events ----------------

@dataclass(frozen=True, slots=True)
class JobStart:
    job_id: int
    total_cores: int = 0
    num_executors: int = 0
    name: str = ""
    status: str = "RUNNING"
    stage_ids: Tuple[int, ...] = ()
    num_tasks: int = 0
    submission_time: Optional[int] = None
    kind: EventKind = field(default=EventKind.JOB_START, init=False)

    @classmethod
    def from_payload(cls, d: Mapping[str, Any]) -> "JobStart":
        return cls(
            job_id=_required_int(d, "jobId"),
            total_cores=_opt_int(d, "totalCores", 0) or 0,
            num_executors=_opt_int(d, "numExecutors", 0) or 0,
            name=_opt_str(d, "name"),
            status=_opt_str(d, "status", "RUNNING"),
            stage_ids=_int_tuple(d.get("stageIds")),
            num_tasks=_opt_int(d, "numTasks", 0) or 0,
            submission_time=_opt_int(d, "submissionTime"),
        )


@dataclass(frozen=True, slots=True)
class JobEnd:
    job_id: int
    status: str = "SUCCEEDED"
    completion_time: Optional[int] = None
    kind: EventKind = field(default=EventKind.JOB_END, init=False)

    @classmethod
    def from_payload(cls, d: Mapping[str, Any]) -> "JobEnd":
        return cls(
            job_id=_required_int(d, "jobId"),
            status=_opt_str(d, "status", "SUCCEEDED"),
            completion_time=_opt_int(d, "completionTime"),
        )


@dataclass(frozen=True, slots=True)
class StageSubmitted:
    stage_id: int
    stage_attempt_id: int = 0
    name: str = ""
    num_tasks: int = 0
    submission_time: Optional[int] = None
    kind: EventKind = field(default=EventKind.STAGE_SUBMITTED, init=False)

    @classmethod
    def from_payload(cls, d: Mapping[str, Any]) -> "StageSubmitted":
        return cls(
            stage_id=_required_int(d, "stageId"),
            stage_attempt_id=_opt_int(d, "stageAttemptId", 0) or 0,
            name=_opt_str(d, "name"),
            num_tasks=_opt_int(d, "numTasks", 0) or 0,
            submission_time=_opt_int(d, "submissionTime"),
        )


@dataclass(frozen=True, slots=True)
class StageCompleted:
    stage_id: int
    stage_attempt_id: int = 0
    status: str = "COMPLETED"
    completion_time: Optional[int] = None
    kind: EventKind = field(default=EventKind.STAGE_COMPLETED, init=False)

    @classmethod
    def from_payload(cls, d: Mapping[str, Any]) -> "StageCompleted":
        return cls(
            stage_id=_required_int(d, "stageId"),
            stage_attempt_id=_opt_int(d, "stageAttemptId", 0) or 0,
            status=_opt_str(d, "status", "COMPLETED"),
            completion_time=_opt_int(d, "completionTime"),
        )


@dataclass(frozen=True, slots=True)
class TaskStart:
    stage_id: int
    task_id: Optional[int] = None
    executor_id: str = ""
    host: str = ""
    launch_time: Optional[int] = None
    kind: EventKind = field(default=EventKind.TASK_START, init=False)

    @classmethod
    def from_payload(cls, d: Mapping[str, Any]) -> "TaskStart":
        return cls(
            stage_id=_required_int(d, "stageId"),
            task_id=_opt_int(d, "taskId"),
            executor_id=_opt_str(d, "executorId"),
            host=_opt_str(d, "host"),
            launch_time=_opt_int(d, "launchTime"),
        )


@dataclass(frozen=True, slots=True)
class TaskEnd:
    stage_id: int
    task_id: Optional[int] = None
    status: str = "SUCCESS"
    finish_time: Optional[int] = None
    kind: EventKind = field(default=EventKind.TASK_END, init=False)

    @classmethod
    def from_payload(cls, d: Mapping[str, Any]) -> "TaskEnd":
        return cls(
            stage_id=_required_int(d, "stageId"),
            task_id=_opt_int(d, "taskId"),
            status=_opt_str(d, "status", "SUCCESS"),
            finish_time=_opt_int(d, "finishTime"),
        )


@dataclass(frozen=True, slots=True)
class ApplicationStart:
    app_id: str
    app_name: str = ""
    app_attempt_id: str = ""
    spark_user: str = ""
    start_time: Optional[int] = None
    kind: EventKind = field(default=EventKind.APPLICATION_START, init=False)

    @classmethod
    def from_payload(cls, d: Mapping[str, Any]) -> "ApplicationStart":
        if d.get("appId") is None:
            raise KeyError("appId")
        return cls(
            app_id=str(d["appId"]),
            app_name=_opt_str(d, "appName"),
            # client-mode applications have no attempt id
            app_attempt_id=_opt_str(d, "appAttemptId", "None"),
            spark_user=_opt_str(d, "sparkUser"),
            start_time=_opt_int(d, "startTime"),
        )


@dataclass(frozen=True, slots=True)
class ApplicationEnd:
    end_time: Optional[int] = None
    kind: EventKind = field(default=EventKind.APPLICATION_END, init=False)

    @classmethod
    def from_payload(cls, d: Mapping[str, Any]) -> "ApplicationEnd":
        return cls(end_time=_opt_int(d, "endTime"))


@dataclass(frozen=True, slots=True)
class ExecutorAdded:
    total_cores: int = 0
    executor_id: str = ""
    host: str = ""
    num_cores: Optional[int] = None
    time: Optional[int] = None
    kind: EventKind = field(default=EventKind.EXECUTOR_ADDED, init=False)

    @classmethod
    def from_payload(cls, d: Mapping[str, Any]) -> "ExecutorAdded":
        return cls(
            total_cores=_required_int(d, "totalCores"),
            executor_id=_opt_str(d, "executorId"),
            host=_opt_str(d, "host"),
            num_cores=_opt_int(d, "numCores"),
            time=_opt_int(d, "time"),
        )


@dataclass(frozen=True, slots=True)
class ExecutorRemoved:
    total_cores: int = 0
    executor_id: str = ""
    time: Optional[int] = None
    kind: EventKind = field(default=EventKind.EXECUTOR_REMOVED, init=False)

    @classmethod
    def from_payload(cls, d: Mapping[str, Any]) -> "ExecutorRemoved":
        return cls(
            total_cores=_required_int(d, "totalCores"),
            executor_id=_opt_str(d, "executorId"),
            time=_opt_int(d, "time"),
        )


SparkEvent = Union[
    JobStart,
    JobEnd,
    StageSubmitted,
    StageCompleted,
    TaskStart,
    TaskEnd,
    ApplicationStart,
    ApplicationEnd,
    ExecutorAdded,
    ExecutorRemoved,
]

EVENT_TYPES: Dict[EventKind, Type[Any]] = {
    EventKind.JOB_START: JobStart,
    EventKind.JOB_END: JobEnd,
    EventKind.STAGE_SUBMITTED: StageSubmitted,
    EventKind.STAGE_COMPLETED: StageCompleted,
    EventKind.TASK_START: TaskStart,
    EventKind.TASK_END: TaskEnd,
    EventKind.APPLICATION_START: ApplicationStart,
    EventKind.APPLICATION_END: ApplicationEnd,
    EventKind.EXECUTOR_ADDED: ExecutorAdded,
    EventKind.EXECUTOR_REMOVED: ExecutorRemoved,
}
