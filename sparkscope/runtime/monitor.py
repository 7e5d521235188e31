# sparkscope/runtime/monitor.py
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Set

from sparkscope.interfaces.active_command import CommandRef
from sparkscope.interfaces.display import CommandDisplay, DisplayFactory, null_display_factory
from sparkscope.protocol.events import (
    ExecutorAdded,
    ExecutorRemoved,
    JobEnd,
    JobStart,
    StageCompleted,
    StageSubmitted,
    TaskEnd,
    TaskStart,
)
from sparkscope.runtime.state import (
    ExecutorMark,
    JobState,
    MonitorSnapshot,
    SessionSnapshot,
    StageState,
)

_JOB_OK = "SUCCEEDED"
_TASK_OK = "SUCCESS"


class CommandMonitor:
    """
    Accumulates job/stage/task progress for one command and drives its display.

    The display is created on the first job start. Once torn down by
    ``remove_display()`` it is never recreated; a re-run gets a new monitor.
    """

    def __init__(
        self,
        command: CommandRef,
        *,
        display_factory: Optional[DisplayFactory] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.command = command
        self.command_id = command.id
        self._display_factory = display_factory or null_display_factory
        self._log = logger or logging.getLogger(__name__)

        self._display: Optional[CommandDisplay] = None
        self._display_removed = False
        self.visible = True

        self._jobs: Dict[int, JobState] = {}
        self._stages: Dict[int, StageState] = {}
        self._executor_marks: List[ExecutorMark] = []
        self._ended_jobs: Set[int] = set()
        self._completed_stages: Set[int] = set()

        self.num_completed_jobs = 0
        self.num_failed_jobs = 0
        self.num_completed_stages = 0
        self.num_active_tasks = 0
        self.num_completed_tasks = 0
        self.num_failed_tasks = 0

        self.total_cores = 0
        self.num_executors = 0

    # --- state ---
    @property
    def display_visible(self) -> bool:
        return self._display is not None

    @property
    def num_jobs(self) -> int:
        return len(self._jobs)

    @property
    def num_stages(self) -> int:
        return len(self._stages)

    def snapshot(self) -> MonitorSnapshot:
        return MonitorSnapshot(
            command_id=self.command_id,
            visible=self.visible,
            display_visible=self.display_visible,
            num_jobs=self.num_jobs,
            num_completed_jobs=self.num_completed_jobs,
            num_failed_jobs=self.num_failed_jobs,
            num_stages=self.num_stages,
            num_completed_stages=self.num_completed_stages,
            num_active_tasks=self.num_active_tasks,
            num_completed_tasks=self.num_completed_tasks,
            num_failed_tasks=self.num_failed_tasks,
            total_cores=self.total_cores,
            num_executors=self.num_executors,
            jobs=tuple(self._jobs.values()),
            stages=tuple(self._stages.values()),
            executor_marks=tuple(self._executor_marks),
        )

    # --- display control ---
    def toggle(self) -> None:
        """Collapse/expand this command's panel."""
        self.visible = not self.visible
        self._render()

    def remove_display(self) -> None:
        self._display_removed = True
        display, self._display = self._display, None
        if display is None:
            return
        try:
            display.remove()
        except Exception:
            self._log.exception("DISPLAY_REMOVE_ERROR command=%s", self.command_id)

    def _ensure_display(self) -> None:
        if self._display is not None or self._display_removed:
            return
        try:
            self._display = self._display_factory(self.command)
        except Exception:
            self._display_removed = True
            self._log.exception("DISPLAY_CREATE_ERROR command=%s", self.command_id)

    def _render(self) -> None:
        display = self._display
        if display is None:
            return
        try:
            display.update(self.snapshot())
        except Exception:
            self._log.exception("DISPLAY_UPDATE_ERROR command=%s", self.command_id)

    def _take_session(self, session: SessionSnapshot) -> None:
        self.total_cores = session.total_cores
        self.num_executors = session.num_executors

    # --- lifecycle events ---
    def on_job_start(self, event: JobStart, session: SessionSnapshot) -> None:
        self._ensure_display()
        self._take_session(session)
        self._jobs[event.job_id] = JobState(
            job_id=event.job_id,
            name=event.name,
            status=event.status or "RUNNING",
            stage_ids=event.stage_ids,
            num_tasks=event.num_tasks,
            submission_time=event.submission_time,
        )
        self._render()

    def on_job_end(self, event: JobEnd, session: SessionSnapshot) -> None:
        self._take_session(session)
        if event.job_id in self._ended_jobs:
            return
        self._ended_jobs.add(event.job_id)

        job = self._jobs.get(event.job_id)
        if job is None:
            job = JobState(job_id=event.job_id, name="", status=event.status)
        self._jobs[event.job_id] = replace(job, status=event.status, completion_time=event.completion_time)
        if event.status == _JOB_OK:
            self.num_completed_jobs += 1
        else:
            self.num_failed_jobs += 1
        self._render()

    def on_stage_submitted(self, event: StageSubmitted, session: SessionSnapshot) -> None:
        self._take_session(session)
        self._stages[event.stage_id] = StageState(
            stage_id=event.stage_id,
            name=event.name,
            status="ACTIVE",
            num_tasks=event.num_tasks,
            submission_time=event.submission_time,
        )
        self._render()

    def on_stage_completed(self, event: StageCompleted, session: SessionSnapshot) -> None:
        self._take_session(session)
        stage = self._stages.get(event.stage_id)
        if stage is None:
            stage = StageState(stage_id=event.stage_id, name="", status=event.status)
        if event.stage_id not in self._completed_stages:
            self._completed_stages.add(event.stage_id)
            self.num_completed_stages += 1
        self._stages[event.stage_id] = replace(
            stage,
            status=event.status,
            num_active_tasks=0,
            completion_time=event.completion_time,
        )
        self._render()

    def on_task_start(self, event: TaskStart, session: SessionSnapshot) -> None:
        self._take_session(session)
        self.num_active_tasks += 1
        stage = self._stages.get(event.stage_id)
        if stage is not None:
            self._stages[event.stage_id] = replace(stage, num_active_tasks=stage.num_active_tasks + 1)
        self._render()

    def on_task_end(self, event: TaskEnd, session: SessionSnapshot) -> None:
        self._take_session(session)
        self.num_active_tasks = max(0, self.num_active_tasks - 1)
        ok = event.status == _TASK_OK
        if ok:
            self.num_completed_tasks += 1
        else:
            self.num_failed_tasks += 1

        stage = self._stages.get(event.stage_id)
        if stage is not None:
            self._stages[event.stage_id] = replace(
                stage,
                num_active_tasks=max(0, stage.num_active_tasks - 1),
                num_completed_tasks=stage.num_completed_tasks + (1 if ok else 0),
                num_failed_tasks=stage.num_failed_tasks + (0 if ok else 1),
            )
        self._render()

    def on_executor_added(self, event: ExecutorAdded, session: SessionSnapshot) -> None:
        self._take_session(session)
        self._executor_marks.append(
            ExecutorMark(kind="added", executor_id=event.executor_id, total_cores=event.total_cores, time=event.time)
        )
        self._render()

    def on_executor_removed(self, event: ExecutorRemoved, session: SessionSnapshot) -> None:
        self._take_session(session)
        self._executor_marks.append(
            ExecutorMark(kind="removed", executor_id=event.executor_id, total_cores=event.total_cores, time=event.time)
        )
        self._render()
