# SPDX-License-Identifier: MIT
"""Semantic versions and npm-style version ranges.

Versions follow SemVer 2.0.0 (MAJOR.MINOR.PATCH[-prerelease][+build]).
Ranges cover the npm syntax found in ``engines`` and ``dependencies``:

- ``*``, ``x`` and partial versions (``1``, ``1.2``, ``1.2.x``)
- caret and tilde ranges (``^1.2.3``, ``~1.2.3``)
- comparators (``>=1.2.3``, ``<2.0.0``, ``=1.0.0``), space separated
- hyphen ranges (``1.2.3 - 2.0.0``)
- unions with ``||``
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

# Semantic versioning regex pattern (SemVer 2.0.0 compliant)
# https://semver.org/#is-there-a-suggested-regular-expression-regex-to-check-a-semver-string
SEMVER_PATTERN = re.compile(
    r"^(?P<major>0|[1-9]\d*)"
    r"\.(?P<minor>0|[1-9]\d*)"
    r"\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+(?P<buildmetadata>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)

# Partial version inside a range: components may be missing or wildcards
PARTIAL_PATTERN = re.compile(
    r"^v?(?P<major>0|[1-9]\d*|[xX*])"
    r"(?:\.(?P<minor>0|[1-9]\d*|[xX*]))?"
    r"(?:\.(?P<patch>0|[1-9]\d*|[xX*]))?"
    r"(?:-(?P<prerelease>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)

COMPARATOR_PATTERN = re.compile(r"^(?P<op>\^|~>?|>=|<=|>|<|=)?(?P<version>.+)$")

_WILDCARDS = {"x", "X", "*"}


class InvalidVersionError(Exception):
    """Raised when a version string does not follow semantic versioning."""

    def __init__(self, version: str, message: str = ""):
        self.version = version
        self.message = message or f"Invalid semantic version: {version}"
        super().__init__(self.message)


class InvalidRangeError(Exception):
    """Raised when a version range cannot be parsed."""

    def __init__(self, version_range: str, message: str = ""):
        self.version_range = version_range
        self.message = message or f"Invalid version range: {version_range}"
        super().__init__(self.message)


@dataclass(frozen=True)
class Version:
    """Represents a parsed semantic version.

    Attributes:
        major: Major version number (breaking changes)
        minor: Minor version number (new features, backward compatible)
        patch: Patch version number (bug fixes, backward compatible)
        prerelease: Optional pre-release identifier (e.g., "alpha.1", "beta", "rc.2")
        build: Optional build metadata (e.g., "build.123", "20240101")
    """

    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None
    build: Optional[str] = None

    def __str__(self) -> str:
        """Return the canonical string representation of the version."""
        version = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            version += f"-{self.prerelease}"
        if self.build:
            version += f"+{self.build}"
        return version

    @property
    def is_prerelease(self) -> bool:
        """Return True if this is a pre-release version."""
        return self.prerelease is not None

    def sort_key(self) -> tuple:
        """Return a key ordering versions by SemVer precedence (build ignored)."""
        if self.prerelease is None:
            return (self.major, self.minor, self.patch, 1, ())
        identifiers = tuple(
            (0, int(part), "") if part.isdigit() else (1, 0, part)
            for part in self.prerelease.split(".")
        )
        return (self.major, self.minor, self.patch, 0, identifiers)


def parse_version(version_string: str) -> Version:
    """Parse a semantic version string into a Version object.

    Args:
        version_string: A string following semantic versioning format
            (MAJOR.MINOR.PATCH[-prerelease][+build])

    Returns:
        A Version object with parsed components

    Raises:
        InvalidVersionError: If the string does not follow semantic versioning

    Examples:
        >>> parse_version("1.2.3")
        Version(major=1, minor=2, patch=3, prerelease=None, build=None)

        >>> parse_version("2.0.0-rc.1+build.456")
        Version(major=2, minor=0, patch=0, prerelease='rc.1', build='build.456')
    """
    if not isinstance(version_string, str):
        raise InvalidVersionError(
            str(version_string), f"Version must be a string, got {type(version_string).__name__}"
        )

    version_string = version_string.strip()
    if not version_string:
        raise InvalidVersionError(version_string, "Version string cannot be empty")

    match = SEMVER_PATTERN.match(version_string)
    if not match:
        raise InvalidVersionError(version_string)

    return Version(
        major=int(match.group("major")),
        minor=int(match.group("minor")),
        patch=int(match.group("patch")),
        prerelease=match.group("prerelease"),
        build=match.group("buildmetadata"),
    )


def is_valid_semver(version_string: str) -> bool:
    """Check if a string is a valid semantic version.

    Examples:
        >>> is_valid_semver("1.0.0")
        True
        >>> is_valid_semver("1.0")
        False
    """
    if not isinstance(version_string, str):
        return False
    return SEMVER_PATTERN.match(version_string.strip()) is not None


def compare_versions(left: str | Version, right: str | Version) -> int:
    """Compare two versions, returning -1, 0 or 1."""
    left_key = (left if isinstance(left, Version) else parse_version(left)).sort_key()
    right_key = (right if isinstance(right, Version) else parse_version(right)).sort_key()
    if left_key < right_key:
        return -1
    if left_key > right_key:
        return 1
    return 0


# =============================================================================
# Ranges
# =============================================================================

# (operator, version) where operator is one of >=, >, <=, <, =
Comparator = tuple[str, Version]


@dataclass(frozen=True)
class _Partial:
    major: Optional[int]
    minor: Optional[int]
    patch: Optional[int]
    prerelease: Optional[str]

    def floor(self) -> Version:
        return Version(self.major or 0, self.minor or 0, self.patch or 0, self.prerelease)


def _parse_partial(text: str, version_range: str) -> _Partial:
    match = PARTIAL_PATTERN.match(text)
    if not match:
        raise InvalidRangeError(version_range)

    def component(name: str) -> Optional[int]:
        value = match.group(name)
        if value is None or value in _WILDCARDS:
            return None
        return int(value)

    major, minor, patch = component("major"), component("minor"), component("patch")
    # "1.x.3" is not a valid partial
    if major is None and (minor is not None or patch is not None):
        raise InvalidRangeError(version_range)
    if minor is None and patch is not None:
        raise InvalidRangeError(version_range)

    return _Partial(major, minor, patch, match.group("prerelease"))


def _upper(major: int, minor: int = 0, patch: int = 0) -> Comparator:
    # "-0" keeps pre-releases of the next version out of the range
    return ("<", Version(major, minor, patch, "0"))


def _desugar(op: str, partial: _Partial) -> list[Comparator]:
    major, minor, patch = partial.major, partial.minor, partial.patch
    floor = partial.floor()

    if major is None:
        if op in ("<", ">"):
            return [("<", Version(0, 0, 0, "0"))]
        return [(">=", Version(0, 0, 0))]

    if op == "^":
        if major > 0 or minor is None:
            return [(">=", floor), _upper(major + 1)]
        if minor > 0 or patch is None:
            return [(">=", floor), _upper(0, minor + 1)]
        return [(">=", floor), _upper(0, 0, patch + 1)]

    if op in ("~", "~>"):
        if minor is None:
            return [(">=", floor), _upper(major + 1)]
        return [(">=", floor), _upper(major, minor + 1)]

    if op == ">":
        if minor is None:
            return [(">=", Version(major + 1, 0, 0))]
        if patch is None:
            return [(">=", Version(major, minor + 1, 0))]
        return [(">", floor)]

    if op == "<=":
        if minor is None:
            return [_upper(major + 1)]
        if patch is None:
            return [_upper(major, minor + 1)]
        return [("<=", floor)]

    if op in (">=", "<"):
        return [(op, floor)]

    # "=" or bare version: partials act as x-ranges
    if minor is None:
        return [(">=", floor), _upper(major + 1)]
    if patch is None:
        return [(">=", floor), _upper(major, minor + 1)]
    return [("=", floor)]


def _parse_comparator_set(text: str, version_range: str) -> list[Comparator]:
    text = text.strip()
    if not text:
        return [(">=", Version(0, 0, 0))]

    hyphen = re.fullmatch(r"(\S+)\s+-\s+(\S+)", text)
    if hyphen:
        low = _parse_partial(hyphen.group(1), version_range)
        high = _parse_partial(hyphen.group(2), version_range)
        return _desugar(">=", low) + _desugar("<=", high)

    # allow "> = 1.0" style spacing between operator and version
    tokens = re.sub(r"(\^|~>?|>=|<=|>|<|=)\s+", r"\1", text).split()
    comparators: list[Comparator] = []
    for token in tokens:
        match = COMPARATOR_PATTERN.match(token)
        if not match:
            raise InvalidRangeError(version_range)
        partial = _parse_partial(match.group("version"), version_range)
        comparators.extend(_desugar(match.group("op") or "=", partial))
    return comparators


def parse_range(version_range: str) -> list[list[Comparator]]:
    """Parse an npm-style range into comparator sets joined by ``||``.

    Raises:
        InvalidRangeError: If the range uses unsupported or malformed syntax
    """
    if not isinstance(version_range, str):
        raise InvalidRangeError(str(version_range))
    return [_parse_comparator_set(part, version_range) for part in version_range.split("||")]


def is_valid_range(version_range: str) -> bool:
    """Check if a string is a valid npm-style version range."""
    try:
        parse_range(version_range)
    except InvalidRangeError:
        return False
    return True


def _test(comparator: Comparator, version: Version) -> bool:
    op, bound = comparator
    key, bound_key = version.sort_key(), bound.sort_key()
    if op == ">=":
        return key >= bound_key
    if op == ">":
        return key > bound_key
    if op == "<=":
        return key <= bound_key
    if op == "<":
        return key < bound_key
    return key == bound_key


def satisfies(version: str | Version, version_range: str) -> bool:
    """Check whether a version falls inside a range.

    Pre-release versions are compared like any other version.

    Raises:
        InvalidVersionError: If version is not a valid semantic version
        InvalidRangeError: If the range cannot be parsed
    """
    parsed = version if isinstance(version, Version) else parse_version(version)
    return any(
        all(_test(comparator, parsed) for comparator in comparators)
        for comparators in parse_range(version_range)
    )


def min_version(version_range: str) -> Optional[Version]:
    """Return the lowest version a range accepts, or None if it accepts nothing.

    Raises:
        InvalidRangeError: If the range cannot be parsed
    """
    best: Optional[Version] = None
    for comparators in parse_range(version_range):
        candidate = Version(0, 0, 0)
        for op, bound in comparators:
            if op in (">=", "=") and bound.sort_key() > candidate.sort_key():
                candidate = bound
            elif op == ">" and bound.sort_key() >= candidate.sort_key():
                if bound.prerelease is None:
                    candidate = Version(bound.major, bound.minor, bound.patch + 1)
                else:
                    candidate = Version(bound.major, bound.minor, bound.patch, bound.prerelease + ".0")
        if not all(_test(comparator, candidate) for comparator in comparators):
            continue
        if best is None or candidate.sort_key() < best.sort_key():
            best = candidate
    return best
