"""Data models for coordinates, dependencies and version requests."""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple


@dataclass(frozen=True, order=True)
class Module:
    """Organization and name: the unit at which version conflicts are settled."""
    organization: str
    name: str

    def __str__(self) -> str:
        return f"{self.organization}:{self.name}"


@dataclass(frozen=True)
class Coordinate:
    """A module at a version or version constraint."""
    module: Module
    version: str

    @property
    def organization(self) -> str:
        return self.module.organization

    @property
    def name(self) -> str:
        return self.module.name

    def __str__(self) -> str:
        return f"{self.module}:{self.version}"


# (organization, name) pair; "*" matches anything on that side.
Exclusion = Tuple[str, str]


def is_excluded(module: Module, exclusions: FrozenSet[Exclusion]) -> bool:
    """Return True if ``module`` matches any exclusion pattern."""
    for org, name in exclusions:
        if org in ("*", module.organization) and name in ("*", module.name):
            return True
    return False


@dataclass(frozen=True)
class Dependency:
    """Target of a dependency edge together with its edge attributes."""
    coordinate: Coordinate
    scope: str = "compile"
    optional: bool = False
    exclusions: FrozenSet[Exclusion] = field(default_factory=frozenset)

    @property
    def module(self) -> Module:
        return self.coordinate.module

    @property
    def version(self) -> str:
        return self.coordinate.version

    def __str__(self) -> str:
        return str(self.coordinate)


@dataclass(frozen=True)
class Descriptor:
    """Parsed metadata of one module version."""
    module: Module
    version: str
    packaging: str = "jar"
    dependencies: Tuple[Dependency, ...] = ()
    parent: Optional[Coordinate] = None

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.module, self.version)


# Type alias for the descriptor cache key.
ModuleVersion = Tuple[Module, str]
