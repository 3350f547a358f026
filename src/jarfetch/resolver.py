"""Dependency graph resolution as an iterative fixpoint.

Each iteration works on an immutable ``ResolutionState`` snapshot:

1. walk the graph from the roots, expanding every module with the version
   currently selected for it (edges of superseded versions are simply not
   walked any more);
2. select one version per module from the requests found on live edges:
   an explicit override wins, otherwise the highest version;
3. the frontier is every descriptor ``module@selected`` and every version
   listing (for ranges and latest markers) not fetched yet;
4. fetch the whole frontier in parallel, wait for all of it, and build the
   next snapshot.

The run stops when the frontier is empty and the selection is stable, when
the iteration budget is exhausted, or when a selection repeats without any
new data (no progress).
"""
from __future__ import annotations

import functools
import logging
import threading
from collections import deque
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple, Union

from .constants import Constants
from .context import EngineContext
from .errors import (
    ConflictUnresolvable,
    JarfetchError,
    NonConvergence,
    NotFoundError,
    ResolutionCancelled,
)
from .graph import DependencyGraph, Edge, Resolution, ResolutionStatus
from .repository.chain import FoundDescriptor
from .versioning.maven_version import VersionRange, highest
from .versioning.models import (
    Coordinate,
    Dependency,
    Exclusion,
    Module,
    ModuleVersion,
    is_excluded,
)
from .versioning.parser import parse_dependency

logger = logging.getLogger(__name__)

Seed = Union[str, Coordinate, Dependency]


@dataclass(frozen=True)
class ResolveOptions:
    """Knobs of one resolution run; ``max_iterations < 0`` means unbounded."""
    offline: bool = False
    force: bool = False
    max_iterations: int = Constants.DEFAULT_MAX_ITERATIONS
    keep_optional: bool = False
    parallelism: int = Constants.DEFAULT_PARALLEL
    scopes: Tuple[str, ...] = Constants.DEFAULT_SCOPES
    force_versions: Mapping[Module, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ResolutionState:
    """Everything known after a given number of iterations."""
    roots: Tuple[Dependency, ...]
    selected: Mapping[Module, str] = field(default_factory=dict)
    descriptors: Mapping[ModuleVersion, FoundDescriptor] = field(default_factory=dict)
    descriptor_errors: Mapping[ModuleVersion, JarfetchError] = field(default_factory=dict)
    listings: Mapping[Module, Tuple[str, ...]] = field(default_factory=dict)
    listing_errors: Mapping[Module, JarfetchError] = field(default_factory=dict)


@dataclass
class _Walk:
    edges: List[Edge] = field(default_factory=list)
    order: List[Module] = field(default_factory=list)
    requests: Dict[Module, List[Dependency]] = field(default_factory=dict)


@dataclass
class _Selection:
    selected: Dict[Module, str] = field(default_factory=dict)
    needs_listing: List[Module] = field(default_factory=list)
    problems: Dict[Module, JarfetchError] = field(default_factory=dict)


def _as_dependency(seed: Seed) -> Dependency:
    if isinstance(seed, Dependency):
        return seed
    if isinstance(seed, Coordinate):
        return Dependency(coordinate=seed)
    return parse_dependency(seed)


def _walk(state: ResolutionState, options: ResolveOptions) -> _Walk:
    """Breadth-first walk from the roots using the current selection.

    A node is a module together with the exclusions inherited along the
    path that reached it, so one path may exclude a module another includes.
    """
    walk = _Walk()
    seen_modules: Set[Module] = set()
    visited: Set[Tuple[Module, FrozenSet[Exclusion]]] = set()
    seen_edges: Set[Edge] = set()
    queue: deque = deque()

    for root in state.roots:
        seen_edges.add(Edge(None, root))
        walk.edges.append(Edge(None, root))
        walk.requests.setdefault(root.module, []).append(root)
        queue.append((root.module, root.exclusions))

    while queue:
        module, exclusions = queue.popleft()
        if (module, exclusions) in visited:
            continue
        visited.add((module, exclusions))
        if module not in seen_modules:
            seen_modules.add(module)
            walk.order.append(module)

        version = state.selected.get(module)
        found = state.descriptors.get((module, version)) if version is not None else None
        if found is None:
            continue

        parent = Coordinate(module, version)
        for dep in found.descriptor.dependencies:
            if dep.scope not in options.scopes:
                continue
            if dep.optional and not options.keep_optional:
                continue
            if dep.module == module or is_excluded(dep.module, exclusions):
                continue
            # Recorded once even when reached under several exclusion contexts.
            edge = Edge(parent, dep)
            if edge not in seen_edges:
                seen_edges.add(edge)
                walk.edges.append(edge)
                walk.requests.setdefault(dep.module, []).append(dep)
            queue.append((dep.module, exclusions | dep.exclusions))

    return walk


def _select(walk: _Walk, state: ResolutionState, options: ResolveOptions) -> _Selection:
    """Pick one version per requested module."""
    selection = _Selection()
    for module in walk.order:
        requests = walk.requests.get(module, [])
        if module in options.force_versions:
            selection.selected[module] = options.force_versions[module]
            continue

        concrete: List[str] = []
        waiting = False
        for dep in requests:
            try:
                constraint = VersionRange.parse(dep.version)
            except ValueError as exc:
                selection.problems[module] = ConflictUnresolvable(
                    f"Cannot order versions of {module}: {exc}"
                )
                break
            if constraint.is_exact:
                concrete.append(dep.version)
                continue
            listing = state.listings.get(module)
            if listing is None:
                if module not in state.listing_errors:
                    waiting = True
                continue
            picked = constraint.select(listing)
            if picked is None:
                selection.problems.setdefault(module, NotFoundError(
                    f"No version of {module} matches {dep.version}"
                ))
                continue
            concrete.append(picked)

        if module in selection.problems and isinstance(selection.problems[module], ConflictUnresolvable):
            continue
        if waiting:
            selection.needs_listing.append(module)
            if module in state.selected:
                selection.selected[module] = state.selected[module]
            continue
        if not concrete:
            continue
        try:
            selection.selected[module] = highest(concrete)
        except ValueError as exc:
            selection.problems[module] = ConflictUnresolvable(
                f"Cannot order versions of {module} ({', '.join(concrete)}): {exc}"
            )
    return selection


class Resolver:
    """Turns seed coordinates into a conflict-resolved dependency graph."""

    def __init__(self, context: EngineContext) -> None:
        self.context = context
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Abort the current run at its next iteration barrier."""
        self._cancelled.set()

    def resolve(self, seeds: Iterable[Seed], options: Optional[ResolveOptions] = None) -> Resolution:
        """Resolve ``seeds`` against the context's repositories.

        Raises:
            ValueError: a seed string is not ``org:name:version``.
            ResolutionCancelled: ``cancel()`` was called during the run.
        """
        options = options or ResolveOptions()
        self._cancelled.clear()
        self.context.chain.reset()
        roots = tuple(dict.fromkeys(_as_dependency(seed) for seed in seeds))
        state = ResolutionState(roots=roots)
        scheduler = self.context.scheduler(options.parallelism)
        stalled: Set[FrozenSet[Tuple[Module, str]]] = set()
        iterations = 0

        while True:
            if self._cancelled.is_set():
                raise ResolutionCancelled("Resolution cancelled")

            walk = _walk(state, options)
            selection = _select(walk, state, options)
            descriptor_frontier = [
                (module, selection.selected[module])
                for module in walk.order
                if module in selection.selected
                and (module, selection.selected[module]) not in state.descriptors
                and (module, selection.selected[module]) not in state.descriptor_errors
            ]
            listing_frontier = selection.needs_listing

            if not descriptor_frontier and not listing_frontier:
                if selection.selected == dict(state.selected):
                    logger.info("Resolution converged after %d iteration(s)", iterations)
                    return self._finish(ResolutionStatus.CONVERGED, state, walk, selection, options, iterations)
                snapshot = frozenset(selection.selected.items())
                if snapshot in stalled:
                    result = self._finish(ResolutionStatus.FAILED, state, walk, selection, options, iterations)
                    result.errors["<resolution>"] = NonConvergence(
                        f"No progress after {iterations} iteration(s): version selection oscillates"
                    )
                    logger.error("Resolution is not making progress; giving up")
                    return result
                stalled.add(snapshot)

            if 0 <= options.max_iterations <= iterations:
                logger.warning("Maximum number of iterations reached (%d)", options.max_iterations)
                result = self._finish(ResolutionStatus.NON_CONVERGED, state, walk, selection, options, iterations)
                result.errors["<resolution>"] = NonConvergence(
                    f"Maximum number of iterations reached ({options.max_iterations})"
                )
                return result

            logger.debug(
                "Iteration %d: %d descriptor(s), %d listing(s) to fetch",
                iterations + 1, len(descriptor_frontier), len(listing_frontier),
            )
            state = self._advance(state, selection, descriptor_frontier, listing_frontier, scheduler, options)
            iterations += 1

    def _advance(
        self,
        state: ResolutionState,
        selection: _Selection,
        descriptor_frontier: List[ModuleVersion],
        listing_frontier: List[Module],
        scheduler,
        options: ResolveOptions,
    ) -> ResolutionState:
        """Fetch the frontier behind a barrier and return the next snapshot."""
        chain, cache = self.context.chain, self.context.cache
        tasks = {}
        for module, version in descriptor_frontier:
            tasks[("descriptor", module, version)] = functools.partial(
                chain.find_descriptor, Coordinate(module, version), cache,
                offline=options.offline, force=options.force,
            )
        for module in listing_frontier:
            tasks[("listing", module, None)] = functools.partial(
                chain.list_versions, module, cache,
                offline=options.offline, force=options.force,
            )
        results = scheduler.run(tasks)

        if self._cancelled.is_set():
            raise ResolutionCancelled("Resolution cancelled; discarding fetched results")

        descriptors = dict(state.descriptors)
        descriptor_errors = dict(state.descriptor_errors)
        listings = dict(state.listings)
        listing_errors = dict(state.listing_errors)
        for (kind, module, version), outcome in results.items():
            if kind == "descriptor":
                if isinstance(outcome, JarfetchError):
                    logger.debug("Descriptor of %s:%s unavailable: %s", module, version, outcome)
                    descriptor_errors[(module, version)] = outcome
                else:
                    descriptors[(module, version)] = outcome
            elif isinstance(outcome, JarfetchError):
                listing_errors[module] = outcome
            else:
                listings[module] = outcome

        return replace(
            state,
            selected=dict(selection.selected),
            descriptors=descriptors,
            descriptor_errors=descriptor_errors,
            listings=listings,
            listing_errors=listing_errors,
        )

    @staticmethod
    def _finish(
        status: ResolutionStatus,
        state: ResolutionState,
        walk: _Walk,
        selection: _Selection,
        options: ResolveOptions,
        iterations: int,
    ) -> Resolution:
        """Build the graph and per-coordinate errors of the last walk."""
        graph = DependencyGraph(roots=state.roots, edges=list(walk.edges), order=list(walk.order))
        errors: Dict[str, JarfetchError] = {}
        failed: Set[Module] = set()

        for module in walk.order:
            version = selection.selected.get(module)
            if module in selection.problems:
                errors[str(module)] = selection.problems[module]
                failed.add(module)
            if module in state.listing_errors and module not in selection.selected:
                errors.setdefault(str(module), state.listing_errors[module])
                failed.add(module)
            if version is None:
                continue
            graph.selected[module] = version
            found = state.descriptors.get((module, version))
            if found is not None:
                graph.descriptors[module] = found
            elif (module, version) in state.descriptor_errors:
                errors[f"{module}:{version}"] = state.descriptor_errors[(module, version)]
                failed.add(module)

        if status is ResolutionStatus.CONVERGED:
            required = {root.module for root in state.roots if not root.optional}
            if failed & required:
                status = ResolutionStatus.FAILED
        for key, err in errors.items():
            logger.debug("Resolution error for %s: %s", key, err)
        return Resolution(status=status, graph=graph, errors=errors, iterations=iterations)
