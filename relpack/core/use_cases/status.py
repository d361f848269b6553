"""
Status use case: what the last runs did, read back from .state/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from relpack.core.config.loader import find_config_file
from relpack.core.models.state import RunState
from relpack.core.persistence.audit import AuditEntry, AuditWriter
from relpack.core.persistence.state_file import default_state_path, load_state


@dataclass
class StatusResult:
    state: RunState | None = None
    history: list[AuditEntry] = field(default_factory=list)
    state_root: Path | None = None
    error: str | None = None

    @property
    def has_runs(self) -> bool:
        return bool(self.state and self.state.run_id)

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "state_root": str(self.state_root),
            "last_run": self.state.model_dump(mode="json") if self.has_runs else None,
            "history": [entry.model_dump(mode="json") for entry in self.history],
        }


def get_status(config_path: Path | None = None, cwd: Path | None = None, limit: int = 10) -> StatusResult:
    """Load the last run's state and the ``limit`` most recent history entries.

    State lives beside packaging.yml when there is one, else in ``cwd``,
    the same place ``run_package`` writes it.
    """
    result = StatusResult()
    cwd = cwd or Path.cwd()

    if config_path is not None:
        if not config_path.is_file():
            result.error = f"Config file not found: {config_path}"
            return result
    else:
        config_path = find_config_file(cwd)

    root = config_path.parent.resolve() if config_path else cwd.resolve()
    result.state_root = root
    result.state = load_state(default_state_path(root))
    result.history = AuditWriter(project_root=root).read_recent(limit)
    return result
