"""File-based persistence for assignment records and other run outputs."""

from __future__ import annotations

import functools
import json
import logging
import threading
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..config import settings
from ..models.domain import AssignmentRecord


class FileStorage:
    """Thin wrapper around the data root for storing JSON Lines outputs."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()
        self.output_root = self.root / "outputs"
        self.output_root.mkdir(parents=True, exist_ok=True)

    def append_json_line(self, path: Path, data: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(data, ensure_ascii=False, default=str))
            handle.write("\n")


def assignment_to_dict(record: AssignmentRecord) -> dict[str, Any]:
    payload = asdict(record)
    payload["assigned_at"] = record.assigned_at.astimezone(timezone.utc).isoformat()
    return payload


class AssignmentLog:
    """Append-only sink of vehicle assignments, one JSON object per line per UTC day."""

    def __init__(self, storage: FileStorage | None = None) -> None:
        self.storage = storage or FileStorage()
        self._lock = threading.Lock()

    def path_for(self, when: datetime) -> Path:
        day = when.astimezone(timezone.utc).strftime("%Y%m%d")
        return self.storage.output_root / f"assignments_{day}.jsonl"

    def record(self, record: AssignmentRecord) -> Path:
        path = self.path_for(record.assigned_at)
        with self._lock:
            self.storage.append_json_line(path, assignment_to_dict(record))
        logging.info(
            f"Order {record.order_id} assigned to vehicle {record.vehicle_id} "
            f"(branch {record.branch_id}, by {record.assigned_by or 'system'})"
        )
        return path

    def read(self, when: datetime) -> list[dict[str, Any]]:
        path = self.path_for(when)
        if not path.exists():
            return []
        with path.open("r", encoding="utf-8") as handle:
            return [json.loads(line) for line in handle if line.strip()]


@functools.lru_cache(maxsize=1)
def get_assignment_log() -> AssignmentLog:
    return AssignmentLog()
