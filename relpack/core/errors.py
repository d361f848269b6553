"""
Error taxonomy for the packaging pipeline.

Every error here is fatal to a run. There is no partial-success mode
and no automatic retry: the orchestrator lets these propagate, the use
case turns them into a failed result, and the CLI exits non-zero.
"""

from __future__ import annotations


class PackagingError(Exception):
    """Base class for all pipeline errors."""


class InvalidVersion(PackagingError):
    """A version token could not be parsed as dotted non-negative integers."""


class UnresolvedPlatform(PackagingError):
    """No source of OS identity was available and no override was given."""


class UnsupportedPlatform(PackagingError):
    """The platform was identified but has no policy mapping."""


class VersionUnavailable(PackagingError):
    """The checkout has no extractable version and no override was given."""


class TlsBackendUnavailable(PackagingError):
    """None of the supported libcurl TLS backends is installed on the build host."""


class StageFailure(PackagingError):
    """A pipeline stage failed; wraps the collaborator's error.

    Attributes:
        stage: Name of the failing stage (e.g. ``"built"``).
        cause: Human-readable cause, usually the adapter receipt's error.
    """

    def __init__(self, stage: str, cause: str):
        self.stage = stage
        self.cause = cause
        super().__init__(f"stage '{stage}' failed: {cause}")


class ContextError(PackagingError):
    """A BuildContext was used out of order, e.g. reused for a second run."""
