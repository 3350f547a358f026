"""Resolved dependency graph as returned by the resolver."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .errors import JarfetchError
from .repository.chain import FoundDescriptor
from .versioning.models import Coordinate, Dependency, Module


@dataclass(frozen=True)
class Edge:
    """``parent`` is the resolved ``module@version`` the edge came from; None for roots."""
    parent: Optional[Coordinate]
    dependency: Dependency

    @property
    def is_root(self) -> bool:
        return self.parent is None


@dataclass
class DependencyGraph:
    """Modules reachable from the roots with one selected version each.

    ``order`` lists modules root-first, in breadth-first discovery order;
    classpath projection relies on it.
    """
    roots: Tuple[Dependency, ...]
    selected: Dict[Module, str] = field(default_factory=dict)
    edges: List[Edge] = field(default_factory=list)
    order: List[Module] = field(default_factory=list)
    descriptors: Dict[Module, FoundDescriptor] = field(default_factory=dict)

    def version_of(self, module: Module) -> Optional[str]:
        return self.selected.get(module)

    def coordinates(self) -> List[Coordinate]:
        """Selected coordinates in discovery order."""
        return [Coordinate(m, self.selected[m]) for m in self.order if m in self.selected]

    def dependents_of(self, module: Module) -> List[Optional[Coordinate]]:
        """Parents of every edge pointing at ``module`` (None marks a root request)."""
        return [edge.parent for edge in self.edges if edge.dependency.module == module]

    def __contains__(self, module: Module) -> bool:
        return module in self.selected


class ResolutionStatus(Enum):
    """Terminal state of a resolution run."""
    CONVERGED = "converged"
    NON_CONVERGED = "non_converged"
    FAILED = "failed"


@dataclass
class Resolution:
    """Outcome of one resolution run."""
    status: ResolutionStatus
    graph: DependencyGraph
    errors: Dict[str, JarfetchError] = field(default_factory=dict)
    iterations: int = 0

    @property
    def converged(self) -> bool:
        return self.status is ResolutionStatus.CONVERGED
