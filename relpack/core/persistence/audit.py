"""
Run history, one JSON object per line in .state/audit.ndjson.

Lines are only ever appended. Readers tolerate damage: a line that
does not parse is logged and skipped so one bad write cannot hide the
rest of the history.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_DIR = ".state"
DEFAULT_AUDIT_FILE = "audit.ndjson"


class AuditEntry(BaseModel):
    """Summary of one packaging run."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    run_id: str = ""
    package_name: str = ""
    nominal_version: str | None = None
    build_revision: str = ""
    platform: str = ""

    status: str = ""               # ok | failed
    failed_stage: str | None = None
    stages_completed: list[str] = Field(default_factory=list)
    packages: list[str] = Field(default_factory=list)
    duration_ms: int = 0

    errors: list[str] = Field(default_factory=list)

    def to_line(self) -> str:
        return json.dumps(self.model_dump(mode="json"), ensure_ascii=False) + "\n"


class AuditWriter:
    """Appends to and reads back the history file.

    ``path`` wins over ``project_root``; with neither, the file lives
    under ``.state/`` in the current directory.
    """

    def __init__(self, path: Path | None = None, project_root: Path | None = None):
        if path is None:
            path = (project_root or Path()) / DEFAULT_AUDIT_DIR / DEFAULT_AUDIT_FILE
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(entry.to_line())
        except OSError as e:
            logger.error("Could not append run %s to %s: %s", entry.run_id, self._path, e)
            return
        logger.debug("Recorded run %s (%s) in history", entry.run_id, entry.status)

    def read_all(self) -> list[AuditEntry]:
        """Every readable entry, oldest first."""
        return list(self._entries())

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        return self.read_all()[-n:]

    def _entries(self) -> Iterator[AuditEntry]:
        try:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return
        except OSError as e:
            logger.error("Could not read history %s: %s", self._path, e)
            return

        for number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                yield AuditEntry.model_validate_json(line)
            except ValidationError as e:
                logger.warning("%s:%d: skipping unreadable entry (%s)", self._path.name, number, e.error_count())
