"""Debian package version comparison.

Implements the ordering dpkg uses (``dpkg --compare-versions``) so the
Plan Builder can decide whether an installed package satisfies a
minimum version without shelling out.

A version is ``[epoch:]upstream[-revision]``. Within upstream and
revision, non-digit runs are compared character by character (letters
sort before other characters, ``~`` sorts before everything including the
end of the string) and digit runs are compared numerically.
"""

from typing import NamedTuple

_DIGITS = frozenset("0123456789")


class DebianVersion(NamedTuple):
    """A parsed Debian version string."""

    epoch: int
    upstream: str
    revision: str


def parse_version(version: str) -> DebianVersion:
    """Split a version string into epoch, upstream and revision.

    Args:
        version: Version string such as ``1:1.18.0-6ubuntu14``.

    Returns:
        Parsed DebianVersion. A missing revision is ``"0"``.

    Raises:
        ValueError: If the version is empty or the epoch is not a number.
    """
    value = version.strip()
    if not value:
        msg = "Version string cannot be empty"
        raise ValueError(msg)

    epoch = 0
    if ":" in value:
        epoch_str, value = value.split(":", 1)
        if not epoch_str.isdigit():
            msg = f"Invalid epoch in version '{version}'"
            raise ValueError(msg)
        epoch = int(epoch_str)

    upstream, sep, revision = value.rpartition("-")
    if not sep:
        upstream, revision = value, "0"
    if not upstream:
        msg = f"Missing upstream version in '{version}'"
        raise ValueError(msg)
    return DebianVersion(epoch=epoch, upstream=upstream, revision=revision)


def _order(char: str) -> int:
    """Sort weight of a single non-digit character."""
    if char == "~":
        return -1
    if char in _DIGITS:
        return 0
    if char.isalpha():
        return ord(char)
    return ord(char) + 256


def _compare_fragment(a: str, b: str) -> int:
    i = j = 0
    while i < len(a) or j < len(b):
        # Non-digit prefix
        while (i < len(a) and a[i] not in _DIGITS) or (j < len(b) and b[j] not in _DIGITS):
            ac = _order(a[i]) if i < len(a) else 0
            bc = _order(b[j]) if j < len(b) else 0
            if ac != bc:
                return -1 if ac < bc else 1
            i += 1
            j += 1

        # Digit run, compared numerically
        while i < len(a) and a[i] == "0":
            i += 1
        while j < len(b) and b[j] == "0":
            j += 1
        first_diff = 0
        while i < len(a) and a[i] in _DIGITS and j < len(b) and b[j] in _DIGITS:
            if not first_diff:
                first_diff = ord(a[i]) - ord(b[j])
            i += 1
            j += 1
        if i < len(a) and a[i] in _DIGITS:
            return 1
        if j < len(b) and b[j] in _DIGITS:
            return -1
        if first_diff:
            return -1 if first_diff < 0 else 1
    return 0


def compare_versions(a: str, b: str) -> int:
    """Compare two Debian version strings.

    Args:
        a: First version.
        b: Second version.

    Returns:
        -1 if a < b, 0 if equal, 1 if a > b.

    Raises:
        ValueError: If either version cannot be parsed.
    """
    va = parse_version(a)
    vb = parse_version(b)
    if va.epoch != vb.epoch:
        return -1 if va.epoch < vb.epoch else 1
    result = _compare_fragment(va.upstream, vb.upstream)
    if result:
        return result
    return _compare_fragment(va.revision, vb.revision)


def version_satisfies(installed: str, minimum: str | None) -> bool:
    """Check whether an installed version meets a minimum.

    Args:
        installed: Installed version string.
        minimum: Minimum acceptable version, or None for "any version".

    Raises:
        ValueError: If either version cannot be parsed.
    """
    if minimum is None:
        return True
    return compare_versions(installed, minimum) >= 0
