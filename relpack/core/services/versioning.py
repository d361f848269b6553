"""
Version comparison: numeric, with threshold predicates.

Versions are compared as tuples of non-negative integers. The shorter
tuple is zero-padded on the right, so ``0.19`` equals ``0.19.0``.
Components compare numerically: ``0.19.0 > 0.2.0``.

The comparator knows nothing about pre-release suffixes. Those live on
``NominalVersion``: a pre-release sorts strictly before the pure release
with the same numeric prefix (``0.21.0-rc1`` is before ``0.21.0``).
This is a policy rule layered on top of ``compare``, not comparator
behaviour.

No I/O, no subprocess.
"""

from __future__ import annotations

import enum
import re

from pydantic import BaseModel, ConfigDict

from relpack.core.errors import InvalidVersion

VersionSpec = tuple[int, ...]


class Ordering(enum.Enum):
    LESS = -1
    EQUAL = 0
    GREATER = 1


_DIGITS_RE = re.compile(r"[0-9]+")


def parse_spec(text: str) -> VersionSpec:
    """Parse ``"0.19.0"`` into ``(0, 19, 0)``.

    Raises:
        InvalidVersion: On an empty string or any non-numeric component.
    """
    if not text or not text.strip():
        raise InvalidVersion("empty version string")

    parts = text.strip().split(".")
    spec: list[int] = []
    for part in parts:
        if not _DIGITS_RE.fullmatch(part):
            raise InvalidVersion(f"invalid version component {part!r} in {text!r}")
        spec.append(int(part))
    return tuple(spec)


def _coerce(v: VersionSpec | str) -> VersionSpec:
    if isinstance(v, str):
        return parse_spec(v)
    if not v:
        raise InvalidVersion("empty version spec")
    for part in v:
        if not isinstance(part, int) or isinstance(part, bool) or part < 0:
            raise InvalidVersion(f"invalid version component {part!r} in {v!r}")
    return tuple(v)


def compare(a: VersionSpec | str, b: VersionSpec | str) -> Ordering:
    """Compare two version specs after zero-padding the shorter one."""
    left, right = _coerce(a), _coerce(b)

    width = max(len(left), len(right))
    left = left + (0,) * (width - len(left))
    right = right + (0,) * (width - len(right))

    for x, y in zip(left, right):
        if x < y:
            return Ordering.LESS
        if x > y:
            return Ordering.GREATER
    return Ordering.EQUAL


def at_least(v: VersionSpec | str, threshold: VersionSpec | str) -> bool:
    """``v >= threshold``."""
    return compare(v, threshold) is not Ordering.LESS


def before(v: VersionSpec | str, threshold: VersionSpec | str) -> bool:
    """``v < threshold``."""
    return compare(v, threshold) is Ordering.LESS


# ── Nominal versions ────────────────────────────────────────────

# 0.21.0, 0.21.0-rc1, 0.21.0rc1, 0.21.0~rc1
_NOMINAL_RE = re.compile(r"^v?(?P<release>[0-9]+(?:\.[0-9]+)*)(?:[-~.]?(?P<pre>[A-Za-z][0-9A-Za-z.]*))?$")


class NominalVersion(BaseModel):
    """The project's own version: a numeric release plus optional pre-release tag."""

    model_config = ConfigDict(frozen=True)

    release: VersionSpec
    prerelease: str | None = None

    def __str__(self) -> str:
        base = ".".join(str(p) for p in self.release)
        return f"{base}-{self.prerelease}" if self.prerelease else base

    @property
    def package_version(self) -> str:
        """Version as written into package metadata and file names.

        Pre-releases use ``~`` so dpkg and rpm sort them before the release.
        """
        base = ".".join(str(p) for p in self.release)
        return f"{base}~{self.prerelease}" if self.prerelease else base

    @property
    def is_prerelease(self) -> bool:
        return self.prerelease is not None

    def at_least(self, threshold: VersionSpec | str) -> bool:
        """Threshold check with pre-releases ordered before their release.

        ``0.19.0-rc1`` is *not* at least ``0.19.0``, but it is at least
        ``0.18.9``.
        """
        order = compare(self.release, threshold)
        if order is Ordering.EQUAL:
            return not self.is_prerelease
        return order is Ordering.GREATER

    def before(self, threshold: VersionSpec | str) -> bool:
        return not self.at_least(threshold)


def parse_nominal(text: str) -> NominalVersion:
    """Parse a nominal version such as ``"0.21.0"`` or ``"0.21.0-rc1"``.

    Raises:
        InvalidVersion: If the string is not a dotted numeric release with
            an optional alphabetic pre-release suffix.
    """
    raw = (text or "").strip()
    match = _NOMINAL_RE.match(raw)
    if not match:
        raise InvalidVersion(f"unparseable version: {text!r}")
    return NominalVersion(
        release=parse_spec(match.group("release")),
        prerelease=match.group("pre"),
    )
