"""Maven version ordering and version range semantics.

Ordering follows Maven's ComparableVersion: a version is split into numeric
and qualifier items on '.', '-' and digit/letter transitions, trailing null
items are dropped, and well-known qualifiers sort as
alpha < beta < milestone < rc < snapshot < (release) < sp.
"""
from __future__ import annotations

import functools
import re
from typing import Iterable, List, Optional, Tuple

_QUALIFIERS = ["alpha", "beta", "milestone", "rc", "snapshot", "", "sp"]
_ALIASES = {"ga": "", "final": "", "release": "", "cr": "rc"}
_SHORT_QUALIFIERS = {"a": "alpha", "b": "beta", "m": "milestone"}
_RELEASE_INDEX = str(_QUALIFIERS.index(""))
_INVALID_CHARS = re.compile(r"[\s${}\[\](),]")


def _cmp(left, right) -> int:
    return (left > right) - (left < right)


class _IntItem:
    __slots__ = ("value",)

    def __init__(self, value: int) -> None:
        self.value = value

    def is_null(self) -> bool:
        return self.value == 0

    def compare(self, other) -> int:
        if other is None:
            return 0 if self.value == 0 else 1
        if isinstance(other, _IntItem):
            return _cmp(self.value, other.value)
        return 1


class _StringItem:
    __slots__ = ("value",)

    def __init__(self, value: str, followed_by_digit: bool) -> None:
        if followed_by_digit and len(value) == 1:
            value = _SHORT_QUALIFIERS.get(value, value)
        self.value = _ALIASES.get(value, value)

    @staticmethod
    def _comparable(qualifier: str) -> str:
        if qualifier in _QUALIFIERS:
            return str(_QUALIFIERS.index(qualifier))
        return f"{len(_QUALIFIERS)}-{qualifier}"

    def is_null(self) -> bool:
        return self._comparable(self.value) == _RELEASE_INDEX

    def compare(self, other) -> int:
        if other is None:
            return _cmp(self._comparable(self.value), _RELEASE_INDEX)
        if isinstance(other, _StringItem):
            return _cmp(self._comparable(self.value), self._comparable(other.value))
        return -1


class _ListItem(list):

    def is_null(self) -> bool:
        return len(self) == 0

    def normalize(self) -> None:
        for i in range(len(self) - 1, -1, -1):
            item = self[i]
            if item.is_null():
                del self[i]
            elif not isinstance(item, _ListItem):
                break

    def compare(self, other) -> int:
        if other is None:
            if not self:
                return 0
            return self[0].compare(None)
        if isinstance(other, _IntItem):
            return -1
        if isinstance(other, _StringItem):
            return 1
        for i in range(max(len(self), len(other))):
            left = self[i] if i < len(self) else None
            right = other[i] if i < len(other) else None
            if left is None:
                result = -right.compare(None)
            else:
                result = left.compare(right)
            if result:
                return result
        return 0


def _parse_item(is_digit: bool, text: str):
    if is_digit:
        return _IntItem(int(text))
    return _StringItem(text, False)


def _parse(version: str) -> _ListItem:
    version = version.lower()
    items = _ListItem()
    current = items
    stack = [current]
    is_digit = False
    start = 0

    for i, c in enumerate(version):
        if c == ".":
            current.append(_IntItem(0) if i == start else _parse_item(is_digit, version[start:i]))
            start = i + 1
        elif c == "-":
            current.append(_IntItem(0) if i == start else _parse_item(is_digit, version[start:i]))
            start = i + 1
            nested = _ListItem()
            current.append(nested)
            current = nested
            stack.append(current)
        elif c.isdigit():
            if not is_digit and i > start:
                current.append(_StringItem(version[start:i], True))
                start = i
                nested = _ListItem()
                current.append(nested)
                current = nested
                stack.append(current)
            is_digit = True
        else:
            if is_digit and i > start:
                current.append(_parse_item(True, version[start:i]))
                start = i
                nested = _ListItem()
                current.append(nested)
                current = nested
                stack.append(current)
            is_digit = False

    if len(version) > start:
        current.append(_parse_item(is_digit, version[start:]))

    while stack:
        stack.pop().normalize()
    return items


@functools.total_ordering
class MavenVersion:
    """A concrete version string with Maven ordering semantics.

    Raises:
        ValueError: for empty strings, whitespace, unresolved ``${...}``
            placeholders or range syntax.
    """

    __slots__ = ("raw", "_items")

    def __init__(self, raw: str) -> None:
        if not isinstance(raw, str) or not raw.strip():
            raise ValueError("Empty version string")
        if _INVALID_CHARS.search(raw):
            raise ValueError(f"Malformed version string '{raw}'")
        self.raw = raw
        self._items = _parse(raw)

    @property
    def is_snapshot(self) -> bool:
        return self.raw.upper().endswith("-SNAPSHOT")

    def __eq__(self, other) -> bool:
        if not isinstance(other, MavenVersion):
            return NotImplemented
        return self._items.compare(other._items) == 0

    def __lt__(self, other) -> bool:
        if not isinstance(other, MavenVersion):
            return NotImplemented
        return self._items.compare(other._items) < 0

    def __hash__(self) -> int:
        return hash(self._canonical(self._items))

    @classmethod
    def _canonical(cls, item) -> tuple:
        if isinstance(item, _ListItem):
            return tuple(cls._canonical(i) for i in item)
        if isinstance(item, _IntItem):
            return ("i", item.value)
        return ("s", item.value)

    def __repr__(self) -> str:
        return f"MavenVersion({self.raw!r})"

    def __str__(self) -> str:
        return self.raw


def highest(versions: Iterable[str]) -> str:
    """Return the greatest version string.

    Raises:
        ValueError: if any version is malformed or the iterable is empty.
    """
    parsed = [MavenVersion(v) for v in versions]
    if not parsed:
        raise ValueError("No versions to compare")
    return max(parsed).raw


# (lower, lower_inclusive, upper, upper_inclusive); None bound = unbounded
_Interval = Tuple[Optional[MavenVersion], bool, Optional[MavenVersion], bool]

_UNION_SPLIT = re.compile(r"(?<=[\])])\s*,\s*(?=[\[(])")
_LATEST_INTEGRATION = ("latest.integration", "latest")
_LATEST_RELEASE = ("latest.release", "release")


class VersionRange:
    """A version constraint: exact, Maven/Ivy range, Ivy prefix or latest marker."""

    def __init__(
        self,
        raw: str,
        *,
        exact: Optional[MavenVersion] = None,
        intervals: Optional[List[_Interval]] = None,
        prefix: Optional[str] = None,
        latest: Optional[str] = None,
    ) -> None:
        self.raw = raw
        self.exact = exact
        self.intervals = intervals or []
        self.prefix = prefix
        self.latest = latest

    @property
    def is_exact(self) -> bool:
        return self.exact is not None

    @classmethod
    def parse(cls, raw: str) -> "VersionRange":
        """Parse a constraint string.

        Raises:
            ValueError: if the constraint is malformed.
        """
        spec = raw.strip()
        if not spec:
            raise ValueError("Empty version constraint")
        lowered = spec.lower()
        if lowered in _LATEST_INTEGRATION:
            return cls(raw, latest="integration")
        if lowered in _LATEST_RELEASE:
            return cls(raw, latest="release")
        if spec.endswith("+") and not spec.startswith(("[", "(", "]")):
            return cls(raw, prefix=spec[:-1])
        if spec[0] in "[(]":
            return cls(raw, intervals=[cls._parse_interval(part) for part in _UNION_SPLIT.split(spec)])
        return cls(raw, exact=MavenVersion(spec))

    @staticmethod
    def _parse_interval(text: str) -> _Interval:
        text = text.strip()
        if len(text) < 2 or text[0] not in "[(]" or text[-1] not in "])[":
            raise ValueError(f"Malformed version range '{text}'")
        lower_inclusive = text[0] == "["
        upper_inclusive = text[-1] == "]"
        inner = text[1:-1]
        if "," not in inner:
            if not (lower_inclusive and upper_inclusive):
                raise ValueError(f"Single-version range must be inclusive: '{text}'")
            pinned = MavenVersion(inner.strip())
            return pinned, True, pinned, True
        lower_str, upper_str = (p.strip() for p in inner.split(",", 1))
        lower = MavenVersion(lower_str) if lower_str else None
        upper = MavenVersion(upper_str) if upper_str else None
        if lower is not None and upper is not None and upper < lower:
            raise ValueError(f"Range upper bound below lower bound: '{text}'")
        return lower, lower_inclusive, upper, upper_inclusive

    def matches(self, version: str) -> bool:
        """Return True if the concrete ``version`` satisfies this constraint."""
        try:
            candidate = MavenVersion(version)
        except ValueError:
            return False
        if self.exact is not None:
            return candidate == self.exact
        if self.latest is not None:
            return self.latest == "integration" or not candidate.is_snapshot
        if self.prefix is not None:
            return version.startswith(self.prefix)
        for lower, lower_inclusive, upper, upper_inclusive in self.intervals:
            if lower is not None and (candidate < lower or (candidate == lower and not lower_inclusive)):
                continue
            if upper is not None and (candidate > upper or (candidate == upper and not upper_inclusive)):
                continue
            return True
        return False

    def select(self, candidates: Iterable[str]) -> Optional[str]:
        """Pick the highest candidate satisfying the constraint, if any."""
        matching = [MavenVersion(v) for v in candidates if self.matches(v)]
        if not matching:
            return None
        return max(matching).raw

    def __repr__(self) -> str:
        return f"VersionRange({self.raw!r})"
