"""
Version and version-range models for unipkg.

Package versions are ``MAJOR.MINOR.PATCH[-PRERELEASE]`` triples. Ranges
use npm syntax (``^1.2.0``, ``~1.2``, ``>=1.0.0 <2.0.0``, ``1.x``,
``1.0.0 - 2.0.0``, ``a || b``). :class:`semantic_version.NpmSpec` checks
the syntax; each comparator set is then expanded into plain bounds and
evaluated against :class:`Version`, so prerelease versions only satisfy a
set that names the same release with a prerelease tag.

Example:
    >>> rng = parse_range("^1.2.0")
    >>> versions = [parse_version(v) for v in ("1.1.0", "1.4.2", "2.0.0")]
    >>> rng.best_satisfying(versions)
    1
"""

from __future__ import annotations

import re
import operator
from dataclasses import dataclass
from functools import total_ordering
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import semantic_version

from unipkg.exceptions import InvalidRangeFormat, InvalidVersionFormat


@total_ordering
@dataclass(frozen=True)
class Version:
    """An immutable, totally ordered package version.

    Numeric fields compare numerically. A release outranks the same
    triple with a prerelease label, and prerelease labels compare as
    plain strings (``beta.10`` sorts before ``beta.2``).

    Attributes:
        major: Major version number.
        minor: Minor version number.
        patch: Patch version number.
        prerelease: Dot-joined prerelease label, or ``None`` for a release.
    """

    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None

    def _sort_key(self) -> Tuple[int, int, int, bool, str]:
        return (
            self.major,
            self.minor,
            self.patch,
            self.prerelease is None,
            self.prerelease or "",
        )

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __str__(self) -> str:
        core = f"{self.major}.{self.minor}.{self.patch}"
        return f"{core}-{self.prerelease}" if self.prerelease else core

    @property
    def is_prerelease(self) -> bool:
        return self.prerelease is not None

    def release(self) -> "Version":
        """Return this version without its prerelease label."""
        return Version(self.major, self.minor, self.patch)


def parse_version(text: str) -> Version:
    """Parse a version string.

    Parsing is loose: surrounding whitespace and a single leading ``v`` or
    ``=`` are ignored, and build metadata (``+build.5``) is discarded.

    Raises:
        InvalidVersionFormat: ``text`` is not a full ``MAJOR.MINOR.PATCH``
            version.
    """
    if not isinstance(text, str):
        raise InvalidVersionFormat(f"Invalid version: {text!r}", version=repr(text))

    cleaned = text.strip()
    if cleaned[:1] in ("v", "V", "="):
        cleaned = cleaned[1:].strip()

    try:
        parsed = semantic_version.Version(cleaned)
    except ValueError as exc:
        raise InvalidVersionFormat(f"Invalid version: {text!r}", version=text) from exc

    return Version(
        major=parsed.major,
        minor=parsed.minor,
        patch=parsed.patch,
        prerelease=".".join(parsed.prerelease) if parsed.prerelease else None,
    )


Comparator = Tuple[str, Version]

_COMPARE: Dict[str, Callable[[Version, Version], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "=": operator.eq,
}

_OPERATOR_SPACE = re.compile(r"([<>]=?|=|\^|~)\s+")
_HYPHEN = re.compile(r"^(?P<low>\S+)\s+-\s+(?P<high>\S+)$")
_PARTIAL = re.compile(
    r"^(?P<op>[<>]=?|=|\^|~)?[vV]?"
    r"(?P<major>\d+|[xX*])(?:\.(?P<minor>\d+|[xX*]))?(?:\.(?P<patch>\d+|[xX*]))?"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?(?:\+[0-9A-Za-z.-]+)?$"
)


class VersionRange:
    """A parsed version constraint.

    A range is a list of comparator sets joined by ``||``. A version
    satisfies the range when every comparator of at least one set accepts
    it. A prerelease version is only considered by a set that has a
    comparator on the same ``MAJOR.MINOR.PATCH`` carrying a prerelease
    tag.

    Instances are created with :func:`parse_range`; the original text is
    kept for error messages.
    """

    __slots__ = ("text", "_sets")

    def __init__(self, text: str, comparator_sets: Sequence[Sequence[Comparator]]) -> None:
        self.text = text
        self._sets = [list(comparators) for comparators in comparator_sets]

    def is_satisfied(self, version: Version) -> bool:
        """Return True if ``version`` lies within this range."""
        return any(_set_matches(comparators, version) for comparators in self._sets)

    def best_satisfying(self, versions: Sequence[Version]) -> Optional[int]:
        """Return the index of the highest satisfying version.

        When the highest version appears more than once, the earliest
        index wins.

        Returns:
            The index into ``versions``, or ``None`` when ``versions`` is
            empty or no element satisfies the range.
        """
        best: Optional[int] = None
        for index, version in enumerate(versions):
            if not self.is_satisfied(version):
                continue
            if best is None or version > versions[best]:
                best = index
        return best

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"VersionRange({self.text!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VersionRange):
            return NotImplemented
        return self.text == other.text

    def __hash__(self) -> int:
        return hash(self.text)


def _set_matches(comparators: List[Comparator], version: Version) -> bool:
    if not all(_COMPARE[op](version, bound) for op, bound in comparators):
        return False
    if not version.is_prerelease:
        return True
    triple = (version.major, version.minor, version.patch)
    return any(
        bound.is_prerelease and (bound.major, bound.minor, bound.patch) == triple
        for _, bound in comparators
    )


def parse_range(text: str) -> VersionRange:
    """Parse an npm-style version constraint.

    Whitespace between an operator and its version is allowed
    (``>= 1.0.0``). An empty or blank constraint accepts any release.

    Raises:
        InvalidRangeFormat: ``text`` is not a valid constraint.
    """
    if not isinstance(text, str):
        raise InvalidRangeFormat(f"Invalid version range: {text!r}", range=repr(text))

    expression = _OPERATOR_SPACE.sub(r"\1", text.strip()) or "*"
    try:
        semantic_version.NpmSpec(expression)
        comparator_sets = [_parse_set(group.strip()) for group in expression.split("||")]
    except ValueError as exc:
        raise InvalidRangeFormat(f"Invalid version range: {text!r}", range=text) from exc

    return VersionRange(text, comparator_sets)


def _parse_set(group: str) -> List[Comparator]:
    hyphen = _HYPHEN.match(group)
    if hyphen:
        return _lower_bound(_partial(hyphen.group("low"))) + _upper_bound(
            _partial(hyphen.group("high"))
        )

    comparators: List[Comparator] = []
    for token in group.split():
        comparators.extend(_desugar(*_partial(token)))
    return comparators


Partial = Tuple[str, Optional[int], Optional[int], Optional[int], Optional[str]]


def _partial(token: str) -> Partial:
    match = _PARTIAL.match(token)
    if not match:
        raise ValueError(f"Invalid comparator: {token!r}")

    def number(part: Optional[str]) -> Optional[int]:
        return None if part is None or part in ("x", "X", "*") else int(part)

    major = number(match.group("major"))
    minor = number(match.group("minor")) if major is not None else None
    patch = number(match.group("patch")) if minor is not None else None
    pre = match.group("pre") if patch is not None else None
    return match.group("op") or "", major, minor, patch, pre


def _next(major: int, minor: Optional[int]) -> Version:
    """First prerelease of the release after a partial version."""
    if minor is None:
        return Version(major + 1, 0, 0, "0")
    return Version(major, minor + 1, 0, "0")


def _lower_bound(partial: Partial) -> List[Comparator]:
    _, major, minor, patch, pre = partial
    if major is None:
        return []
    return [(">=", Version(major, minor or 0, patch or 0, pre))]


def _upper_bound(partial: Partial) -> List[Comparator]:
    _, major, minor, patch, pre = partial
    if major is None:
        return []
    if patch is None:
        return [("<", _next(major, minor))]
    return [("<=", Version(major, minor or 0, patch, pre))]


def _desugar(
    op: str,
    major: Optional[int],
    minor: Optional[int],
    patch: Optional[int],
    pre: Optional[str],
) -> List[Comparator]:
    """Expand one npm comparator into plain ``<``/``<=``/``>``/``>=``/``=`` bounds."""
    if major is None:
        # "*", "x" and friends; "<*" and ">*" match nothing.
        return [("<", Version(0, 0, 0, "0"))] if op in ("<", ">") else []

    partial = (op, major, minor, patch, pre)
    exact = Version(major, minor or 0, patch or 0, pre)

    if op in ("", "="):
        if patch is not None:
            return [("=", exact)]
        return _lower_bound(partial) + _upper_bound(partial)

    if op == "~":
        return [(">=", exact), ("<", _next(major, minor))]

    if op == "^":
        if minor is None or major > 0:
            upper = Version(major + 1, 0, 0, "0")
        elif patch is None or minor > 0:
            upper = Version(0, minor + 1, 0, "0")
        else:
            upper = Version(0, 0, patch + 1, "0")
        return [(">=", exact), ("<", upper)]

    if op == ">":
        if patch is not None:
            return [(">", exact)]
        return [(">=", _next(major, minor).release())]

    if op == ">=":
        return [(">=", exact)]

    if op == "<":
        if patch is not None:
            return [("<", exact)]
        return [("<", Version(major, minor or 0, 0, "0"))]

    # "<="
    return _upper_bound(partial)
