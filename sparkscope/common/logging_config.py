# sparkscope/common/logging_config.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class LogDefaults:
    level: str = "INFO"
    fmt: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    filename_prefix: str = "SparkScope"
    filename_ext: str = ".log"
    directory: str = "logs"


DEFAULTS = LogDefaults()


def make_log_path(*, suffix: str | None = None, directory: Path | None = None) -> Path:
    root = Path(directory) if directory else Path(DEFAULTS.directory)
    ts = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    base = f"{DEFAULTS.filename_prefix}_{ts}"
    if suffix:
        base += f"_{suffix}"
    return root / f"{base}{DEFAULTS.filename_ext}"


def configure_logging(level: str = DEFAULTS.level, log_path: Optional[Path] = None) -> None:
    """
    Attach a stream handler (and optionally a file handler) to the root
    logger. Idempotent: handlers already installed are not duplicated.
    """
    lvl = level.upper()
    if lvl not in LEVELS:
        raise ValueError(f"Unknown log level '{level}'")

    root = logging.getLogger()
    formatter = logging.Formatter(DEFAULTS.fmt)

    if not any(getattr(h, "_sparkscope", False) for h in root.handlers):
        sh = logging.StreamHandler()
        sh.setFormatter(formatter)
        sh._sparkscope = True  # type: ignore[attr-defined]
        root.addHandler(sh)

    if log_path is not None:
        log_path = Path(log_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        target = str(log_path.resolve())
        exists = any(
            isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == target
            for h in root.handlers
        )
        if not exists:
            fh = logging.FileHandler(log_path, encoding="utf-8", delay=True)
            fh.setFormatter(formatter)
            root.addHandler(fh)

    root.setLevel(getattr(logging, lvl))
