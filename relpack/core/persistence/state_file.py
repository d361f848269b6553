"""
Persistence for RunState (.state/current.json).

The file is replaced, never rewritten in place: the new content goes to
a sibling temp file which is then renamed over the old one.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from relpack.core.models.state import RunState

logger = logging.getLogger(__name__)

DEFAULT_STATE_DIR = ".state"
DEFAULT_STATE_FILE = "current.json"


def default_state_path(project_root: Path) -> Path:
    return project_root / DEFAULT_STATE_DIR / DEFAULT_STATE_FILE


def load_state(path: Path) -> RunState:
    """Read the last run's state.

    A missing, unreadable or malformed file is not an error: the state
    is informational, so the caller gets an empty RunState instead.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.info("No state file at %s", path)
        return RunState()
    except OSError as e:
        logger.warning("Cannot read %s (%s); using empty state", path, e)
        return RunState()

    try:
        return RunState.model_validate_json(raw)
    except ValidationError as e:
        logger.warning("Ignoring malformed state file %s: %s", path, e.errors()[0]["msg"])
        return RunState()


def save_state(state: RunState, path: Path) -> None:
    """Stamp ``updated_at`` and write ``state`` to ``path``.

    Raises OSError when the directory is not writable.
    """
    state.touch()
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(state.model_dump(mode="json"), indent=2, ensure_ascii=False)

    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False,
    ) as handle:
        tmp = Path(handle.name)
        try:
            handle.write(payload + "\n")
        except OSError:
            handle.close()
            tmp.unlink(missing_ok=True)
            raise

    try:
        os.replace(tmp, path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise
    logger.debug("Wrote run state %s to %s", state.run_id or "(empty)", path)
