"""Semantic version parsing and ordering for tag names.

Tags are expected to look like ``v1.2.3``.  Only the numeric
``major.minor.patch`` triple takes part in ordering; a trailing
``-prerelease`` or ``+build`` part is accepted and kept on the parsed
value but ignored by ``compare()``.

The ``major.minor`` short key is what names a tag's local folder, so
``v2.10.0`` and ``v2.10.3`` both land in ``2.10/``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

from docmirror.errors import ParseError

_SEMVER_PATTERN = re.compile(
    r"^(?P<major>\d+)"
    r"(?:\.(?P<minor>\d+))?"
    r"(?:\.(?P<patch>\d+))?"
    r"(?:-(?P<prerelease>[0-9A-Za-z.-]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z.-]+))?$"
)


@dataclass(frozen=True, order=True)
class SemVer:
    """A parsed version.  Ordering uses the numeric triple only."""

    major: int
    minor: int = 0
    patch: int = 0
    prerelease: str | None = field(default=None, compare=False)
    build: str | None = field(default=None, compare=False)
    original: str = field(default="", compare=False)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def parse(name: str) -> SemVer:
    """Parse *name* into a ``SemVer``.

    One leading ``v`` is stripped.  Minor and patch default to ``0`` when
    absent, so ``v2`` parses as ``2.0.0``.

    Raises:
        ParseError: If the remainder is not ``major[.minor[.patch]]``.
    """
    if not isinstance(name, str):
        raise ParseError(f"Version must be a string, got {type(name).__name__}")

    raw = name.strip()
    text = raw[1:] if raw.startswith("v") else raw
    match = _SEMVER_PATTERN.match(text)
    if match is None:
        raise ParseError(f"Invalid version '{name}'")

    return SemVer(
        major=int(match.group("major")),
        minor=int(match.group("minor") or 0),
        patch=int(match.group("patch") or 0),
        prerelease=match.group("prerelease"),
        build=match.group("build"),
        original=name,
    )


def compare(a: SemVer, b: SemVer) -> int:
    """Return ``-1``, ``0`` or ``1`` as *a* is less than, equal to or
    greater than *b*."""
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def short_key(version: SemVer) -> str:
    """Return the ``"major.minor"`` grouping key for *version*."""
    return f"{version.major}.{version.minor}"


def sort_descending(names: Iterable[str]) -> list[str]:
    """Sort version strings highest first.

    Equal versions keep their original relative order.

    Raises:
        ParseError: If any name does not parse.
    """
    parsed = [(parse(name), name) for name in names]
    parsed.sort(key=lambda pair: pair[0], reverse=True)
    return [name for _, name in parsed]


def highest_short_version(keys: Iterable[str]) -> str | None:
    """Pick the highest ``major.minor`` key from local folder names.

    Names that are not versions (branch folders such as ``master``) are
    ignored.  Returns ``None`` when nothing parses.
    """
    best: tuple[SemVer, str] | None = None
    for key in keys:
        try:
            version = parse(key)
        except ParseError:
            continue
        if best is None or version > best[0]:
            best = (version, key)
    return best[1] if best else None
