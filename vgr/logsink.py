"""Operator log for one invocation.

Lines go to ``<log_dir>/<prefix>_<YYYYMMDD>.log`` and to stdout. When a new
day's file is first created, the previous day's file is moved to
``<log_dir>/archive/``. Events are also mirrored into the sqlite history when
a database path is configured.

Writing the log must never stop a recovery, so I/O errors are dropped here.
"""
from __future__ import annotations

import os
import shutil
import sqlite3
import sys
from datetime import date, datetime, timedelta
from typing import Callable, Protocol, TextIO

from . import db


class LogSink(Protocol):
    def append(self, message: str, level: str = "INFO", container: str | None = None) -> None: ...


class DailyLogSink:
    def __init__(
        self,
        log_dir: str,
        prefix: str,
        db_path: str | None = None,
        echo: bool = True,
        stream: TextIO | None = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.log_dir = log_dir
        self.prefix = prefix
        self.db_path = db_path or None
        self.echo = echo
        self.stream = stream
        self._now = now
        self._db_ready = False

    def file_name(self, day: date) -> str:
        return f"{self.prefix}_{day.strftime('%Y%m%d')}.log"

    def current_path(self) -> str:
        return os.path.join(self.log_dir, self.file_name(self._now().date()))

    def _rotate(self, today: date) -> None:
        if os.path.exists(os.path.join(self.log_dir, self.file_name(today))):
            return
        old = os.path.join(self.log_dir, self.file_name(today - timedelta(days=1)))
        if os.path.isfile(old):
            archive_dir = os.path.join(self.log_dir, "archive")
            os.makedirs(archive_dir, exist_ok=True)
            shutil.move(old, os.path.join(archive_dir, os.path.basename(old)))

    def append(self, message: str, level: str = "INFO", container: str | None = None) -> None:
        now = self._now()
        line = f"{now.strftime('%a %b %d %H:%M:%S %Y')} - {message}"
        if self.echo:
            try:
                print(line, file=self.stream or sys.stdout, flush=True)
            except (OSError, ValueError):
                pass

        try:
            os.makedirs(self.log_dir, exist_ok=True)
            self._rotate(now.date())
            with open(os.path.join(self.log_dir, self.file_name(now.date())), "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError:
            pass

        if self.db_path:
            try:
                if not self._db_ready:
                    db.init_db(self.db_path)
                    self._db_ready = True
                db.log_event(self.db_path, level, message, container=container)
            except (OSError, sqlite3.Error):
                pass


class MemoryLogSink:
    """Keeps log lines in memory."""

    def __init__(self) -> None:
        self.lines: list[str] = []
        self.records: list[tuple[str, str, str | None]] = []

    def append(self, message: str, level: str = "INFO", container: str | None = None) -> None:
        self.lines.append(message)
        self.records.append((level.upper(), message, container))
