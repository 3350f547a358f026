"""Token parsing utilities for coordinates and version constraints."""

from typing import FrozenSet, Iterable

from .models import Coordinate, Dependency, Exclusion, Module


def parse_coordinate(token: str) -> Coordinate:
    """Parse an ``org:name:version`` token.

    Raises:
        ValueError: if the token does not have exactly three non-empty parts.
    """
    parts = [p.strip() for p in token.strip().split(":")]
    if len(parts) != 3 or not all(parts):
        raise ValueError(f"Malformed coordinate '{token}', expected org:name:version")
    org, name, version = parts
    return Coordinate(Module(org, name), version)


def parse_module(token: str) -> Module:
    """Parse an ``org:name`` token."""
    parts = [p.strip() for p in token.strip().split(":")]
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Malformed module '{token}', expected org:name")
    return Module(parts[0], parts[1])


def parse_dependency(token: str, exclusions: Iterable[Exclusion] = ()) -> Dependency:
    """Parse a seed token into a root dependency."""
    excl: FrozenSet[Exclusion] = frozenset(exclusions)
    return Dependency(coordinate=parse_coordinate(token), exclusions=excl)
