"""
Logging for the ``relpack`` logger tree.

Modules only ever call ``logging.getLogger(__name__)``; handlers are
installed here, once, by the CLI. The console level comes from the
``-v/-q/--debug`` flags, else ``RELPACK_LOG_LEVEL``, else WARNING.
``RELPACK_LOG_FILE`` (with ``RELPACK_LOG_FILE_LEVEL``) adds a second
sink.

A packaging run additionally writes a DEBUG log of its own under
``.state/logs/<run-id>.log`` via ``attach_run_log``.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

_ROOT_LOGGER = "relpack"

_DETAILED = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d: %(message)s"

# (upper bound, format, datefmt) for the console; first match wins
_CONSOLE_FORMATS: list[tuple[int, str, str | None]] = [
    (logging.DEBUG, _DETAILED, "%H:%M:%S"),
    (logging.INFO, "%(asctime)s %(name)s: %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(message)s", None),
]


def parse_level(level: str | None) -> int:
    """Level name to number; empty or unknown names mean WARNING."""
    numeric = logging.getLevelName(level.upper()) if level else None
    return numeric if isinstance(numeric, int) else logging.WARNING


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """(Re)install the console handler and the optional file handler.

    Calling it again replaces the previous handlers.
    """
    console_level = parse_level(level)
    fmt, datefmt = next((f, d) for bound, f, d in _CONSOLE_FORMATS if console_level <= bound)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    handlers: list[logging.Handler] = [console]
    if log_file:
        handlers.append(_file_handler(Path(log_file), parse_level(log_file_level or level)))

    root = logging.getLogger(_ROOT_LOGGER)
    root.handlers[:] = handlers
    root.setLevel(min(h.level for h in handlers))
    root.propagate = False
    logging.raiseExceptions = False


def attach_run_log(path: Path, level: str = "DEBUG") -> logging.Handler:
    """Tee ``relpack`` records at ``level`` or above into ``path``.

    The logger level is lowered if needed so the file sees everything;
    console output is unaffected since its handler keeps its own level.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = _file_handler(path, parse_level(level))

    root = logging.getLogger(_ROOT_LOGGER)
    root.addHandler(handler)
    if root.level == logging.NOTSET or root.level > handler.level:
        root.setLevel(handler.level)
    return handler


def detach_run_log(handler: logging.Handler) -> None:
    logging.getLogger(_ROOT_LOGGER).removeHandler(handler)
    handler.close()


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_DETAILED, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler
