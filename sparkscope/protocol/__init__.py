# protocol/__init__.py

from .events import (
    EventKind,
    SparkEvent,
    JobStart, JobEnd,
    StageSubmitted, StageCompleted,
    TaskStart, TaskEnd,
    ApplicationStart, ApplicationEnd,
    ExecutorAdded, ExecutorRemoved,
)
from .decoder import OPEN_HANDSHAKE, decode_event, encode_envelope

__all__ = [
    "EventKind", "SparkEvent",
    "JobStart", "JobEnd",
    "StageSubmitted", "StageCompleted",
    "TaskStart", "TaskEnd",
    "ApplicationStart", "ApplicationEnd",
    "ExecutorAdded", "ExecutorRemoved",
    "OPEN_HANDSHAKE", "decode_event", "encode_envelope",
]
