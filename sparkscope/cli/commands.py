# sparkscope/cli/commands.py
from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from sparkscope.app.config import SparkScopeConfig, load_config
from sparkscope.app.controller import SparkScopeController
from sparkscope.channel.memory import MemoryChannel
from sparkscope.common.logging_config import configure_logging
from sparkscope.core.errors import ConfigError
from sparkscope.interfaces.active_command import CommandRef
from sparkscope.runtime.monitor import CommandMonitor
from sparkscope.runtime.state import MonitorSnapshot
from sparkscope.runtime.tracker import ExecutionTracker


# ---------------- Displays ----------------

class PrintDisplay:
    """Print a one-line progress summary on every monitor update."""
    def __init__(self, command: CommandRef):
        self._command = command

    def update(self, snapshot: MonitorSnapshot) -> None:
        print(f"PROGRESS {format_snapshot(snapshot)}")

    def remove(self) -> None:
        print(f"PROGRESS {self._command.id} removed")


def format_snapshot(s: MonitorSnapshot) -> str:
    return (
        f"{s.command_id} jobs={s.num_completed_jobs}/{s.num_jobs} failed_jobs={s.num_failed_jobs} "
        f"stages={s.num_completed_stages}/{s.num_stages} "
        f"tasks_done={s.num_completed_tasks} tasks_active={s.num_active_tasks} tasks_failed={s.num_failed_tasks} "
        f"cores={s.total_cores} executors={s.num_executors}"
    )


def print_monitor(monitor: CommandMonitor, *, details: bool = True) -> None:
    s = monitor.snapshot()
    print(f"MONITOR {format_snapshot(s)}")
    if not details:
        return
    for job in s.jobs:
        print(f"  job {job.job_id} {job.status} name={job.name!r} stages={list(job.stage_ids)}")
    for stage in s.stages:
        print(
            f"  stage {stage.stage_id} {stage.status} "
            f"tasks={stage.num_completed_tasks}/{stage.num_tasks} failed={stage.num_failed_tasks}"
        )
    for mark in s.executor_marks:
        print(f"  executor {mark.kind} id={mark.executor_id} total_cores={mark.total_cores}")


def _apply_logging(config: SparkScopeConfig, level: Optional[str], log_file: Optional[str]) -> None:
    path = log_file or config.logging.file
    try:
        configure_logging(level or config.logging.level, Path(path) if path else None)
    except ValueError as e:
        raise ConfigError("Invalid logging settings.", hint=str(e)) from None


# ---------------- replay ----------------

def read_script(path: Path) -> Iterator[Tuple[int, dict]]:
    if not path.exists():
        raise ConfigError(f"Missing replay script: {path}", details={"path": str(path)})
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            try:
                item = json.loads(line)
            except json.JSONDecodeError as e:
                raise ConfigError(
                    f"Replay script line {lineno} is not valid JSON.",
                    hint=str(e),
                    details={"path": str(path), "line": lineno},
                ) from None
            if not isinstance(item, dict):
                raise ConfigError(f"Replay script line {lineno} must be a JSON object.")
            yield lineno, item


def cmd_replay(
    script: Path,
    *,
    config: Optional[SparkScopeConfig] = None,
    details: bool = True,
) -> int:
    config = config or SparkScopeConfig()
    tracker = ExecutionTracker(ready=True)
    channel = MemoryChannel("replay")
    controller = SparkScopeController(config, tracker=tracker, channel_factory=lambda: channel)
    commands: Dict[str, CommandRef] = {}

    def _command(item: dict, lineno: int) -> CommandRef:
        cid = item.get("command")
        if not isinstance(cid, str):
            raise ConfigError(f"Replay script line {lineno}: 'command' must be a string.")
        if cid not in commands:
            commands[cid] = CommandRef(id=cid, label=cid)
        return commands[cid]

    controller.start()
    try:
        for lineno, item in read_script(script):
            directive = item.get("host")
            if directive is None:
                channel.inject(item)
            elif directive == "begin":
                tracker.begin(_command(item, lineno))
            elif directive == "end":
                tracker.end(_command(item, lineno))
            elif directive == "remove":
                command = _command(item, lineno)
                controller.on_command_removed(command.id)
                tracker.forget(command)
                commands.pop(command.id, None)
            elif directive == "kernel":
                controller.on_kernel_status(str(item.get("status", "")))
            elif directive == "hide":
                controller.hide_all()
            elif directive == "show":
                controller.show_all()
            elif directive == "toggle":
                controller.toggle_all()
            else:
                raise ConfigError(f"Replay script line {lineno}: unknown host directive '{directive}'.")

        monitors: List[CommandMonitor] = [
            m for m in (controller.get_monitor(cid) for cid in controller.engine.monitor_ids()) if m is not None
        ]
        for monitor in monitors:
            print_monitor(monitor, details=details)

        st = controller.status()
        print(
            f"SESSION app={st.session.app_instance} cores={st.session.total_cores} "
            f"executors={st.session.num_executors} mode={st.session.display_mode.value}"
        )
        print(
            f"STATS monitors={st.stats.monitors} jobs={st.stats.jobs_recorded} "
            f"stages={st.stats.stages_recorded} handled={st.stats.events_handled} "
            f"dropped={st.stats.events_dropped}"
        )
    finally:
        controller.stop()
    return 0


# ---------------- listen ----------------

def cmd_listen(
    config: SparkScopeConfig,
    *,
    command_id: str,
    secs: Optional[float] = None,
) -> int:
    tracker = ExecutionTracker(ready=True)
    command = CommandRef(id=command_id, label=command_id)
    tracker.begin(command)

    controller = SparkScopeController(config, tracker=tracker, display_factory=PrintDisplay)
    t0 = time.monotonic()
    with controller:
        print(f"Listening (command={command_id}). Ctrl+C to stop.")
        try:
            while secs is None or (time.monotonic() - t0) < secs:
                time.sleep(0.2)
        except KeyboardInterrupt:
            pass
        monitor = controller.get_monitor(command_id)
        if monitor is not None:
            print_monitor(monitor)
    return 0


def run_replay(args) -> int:
    config = load_config(args.config) if args.config else SparkScopeConfig()
    _apply_logging(config, args.log_level, args.log_file)
    return cmd_replay(Path(args.script), config=config, details=not args.hide_details)


def run_listen(args) -> int:
    config = load_config(args.config)
    _apply_logging(config, args.log_level, args.log_file)
    return cmd_listen(config, command_id=args.command, secs=args.secs)
