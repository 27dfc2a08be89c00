#!/usr/bin/env python3
from __future__ import annotations

import logging
import os
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable

from config import _env, _env_bool, _env_int

# Chatty third-party loggers, muted unless debugging.
_NOISY_LOGGERS = ("urllib3", "urllib3.connectionpool", "httpx", "uvicorn.access")


def _level_from_str(level: str) -> int:
    s = str(level or "").strip().upper()
    if not s:
        return logging.INFO
    if s.isdigit():
        return int(s)
    lvl = logging.getLevelName(s)
    return lvl if isinstance(lvl, int) else logging.INFO


def _build_handlers(log_path: Path, level_num: int, formatter: logging.Formatter) -> Iterable[logging.Handler]:
    handlers: list[logging.Handler] = []

    if _env_bool("LOG_TO_FILE", True):
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            fh = RotatingFileHandler(
                filename=str(log_path),
                maxBytes=max(0, _env_int("LOG_MAX_BYTES", 2 * 1024 * 1024)),
                backupCount=max(0, _env_int("LOG_BACKUP_COUNT", 3)),
                encoding="utf-8",
                delay=True,
            )
            fh.setLevel(level_num)
            fh.setFormatter(formatter)
            handlers.append(fh)
        except OSError:
            # Read-only SD card or similar: keep going with stdout only.
            pass

    if _env_bool("LOG_TO_STDOUT", True) or not handlers:
        sh = logging.StreamHandler()
        sh.setLevel(level_num)
        sh.setFormatter(formatter)
        handlers.append(sh)

    return handlers


def setup_logging(app_name: str, debug_default: bool = False) -> logging.Logger:
    """Configure rotating file + stdout logging for a dashboard process.

    Environment variables:
      LOG_DIR=logs
      LOG_FILE=             (overrides ${LOG_DIR}/{app_name}.log)
      LOG_LEVEL=INFO|DEBUG|...
      LOG_TO_STDOUT=1
      LOG_TO_FILE=1
      LOG_MAX_BYTES=2097152
      LOG_BACKUP_COUNT=3
      LOG_UTC=0
      LOG_FORMAT='[%(asctime)s] %(levelname)s %(name)s: %(message)s'
      LOG_DATEFMT='%Y-%m-%dT%H:%M:%S'
    """

    log_dir = Path(_env("LOG_DIR", "logs")).expanduser()
    log_file_env = _env("LOG_FILE").strip()
    log_path = Path(log_file_env).expanduser() if log_file_env else (log_dir / f"{app_name}.log")

    level = _env("LOG_LEVEL").strip() or ("DEBUG" if debug_default else "INFO")
    level_num = _level_from_str(level)

    formatter = logging.Formatter(
        fmt=_env("LOG_FORMAT", "[%(asctime)s] %(levelname)s %(name)s: %(message)s"),
        datefmt=_env("LOG_DATEFMT", "%Y-%m-%dT%H:%M:%S"),
    )
    if _env_bool("LOG_UTC", False):
        formatter.converter = time.gmtime

    # Root logger so requests/uvicorn records land in the same file.
    root = logging.getLogger()
    root.setLevel(level_num)

    # Drop handlers from a previous call (reloads, tests).
    for h in list(root.handlers):
        root.removeHandler(h)

    for h in _build_handlers(log_path, level_num, formatter):
        root.addHandler(h)

    if level_num > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.captureWarnings(True)

    return logging.getLogger(app_name)
