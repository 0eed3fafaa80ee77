from __future__ import annotations

import json
import sys
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO


def new_run_id() -> str:
    return uuid.uuid4().hex


RUN_ID = new_run_id()

_LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "WARNING": 30, "ERROR": 40}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class PrintLogger:
    """Structured line logger: one JSON object per event, to a stream and optionally a file."""

    def __init__(
        self,
        job_name: str = "entity_recon",
        file_path: Optional[str] = None,
        level: str = "INFO",
        stream: Optional[TextIO] = None,
        run_id: str = RUN_ID,
    ) -> None:
        self.job_name = job_name
        self.file_path = file_path
        self.level = level.upper()
        self._threshold = _LEVELS.get(self.level, 20)
        self._stream = stream
        self.run_id = run_id
        # Reentrant: a log call made from inside a stream write must not deadlock.
        self._lock = threading.RLock()

    def log(self, level: str, msg: str, **fields: Any) -> None:
        normalized = level.upper()
        if normalized == "WARNING":
            normalized = "WARN"
        if _LEVELS.get(normalized, 20) < self._threshold:
            return
        record: Dict[str, Any] = {
            "ts": utc_now_iso(),
            "level": normalized,
            "job": self.job_name,
            "run_id": self.run_id,
            "msg": msg,
        }
        record.update({key: value for key, value in fields.items() if value is not None})
        line = json.dumps(record, default=str)
        with self._lock:
            stream = self._stream or sys.stderr
            print(line, file=stream, flush=True)
            if self.file_path:
                with open(self.file_path, "a", encoding="utf-8") as handle:
                    handle.write(line + "\n")

    def debug(self, msg: str, **fields: Any) -> None:
        self.log("DEBUG", msg, **fields)

    def info(self, msg: str, **fields: Any) -> None:
        self.log("INFO", msg, **fields)

    def warn(self, msg: str, **fields: Any) -> None:
        self.log("WARN", msg, **fields)

    warning = warn

    def error(self, msg: str, **fields: Any) -> None:
        self.log("ERROR", msg, **fields)


__all__ = ["RUN_ID", "PrintLogger", "new_run_id", "utc_now_iso"]
