"""Ordered repository fallback: first success wins."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence, Tuple

from ..constants import Constants
from ..errors import JarfetchError, MalformedDescriptor, NotFoundError
from ..versioning.models import Coordinate, Descriptor, Module
from .base import Repository
from .descriptor import RawPom, build_pom_descriptor

if TYPE_CHECKING:
    from ..cache import ArtifactCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FoundDescriptor:
    """A parsed descriptor and the repository that served it."""
    descriptor: Descriptor
    repository: Repository


def _pick_error(errors: Sequence[JarfetchError], what: str) -> JarfetchError:
    """Prefer a real failure over "not found" when reporting a miss."""
    for err in errors:
        if not isinstance(err, NotFoundError):
            return err
    return NotFoundError(f"{what} not found in any repository")


class RepositoryChain:
    """Repositories iterated in registry order."""

    def __init__(self, repositories: Iterable[Repository]) -> None:
        self.repositories: List[Repository] = list(repositories)
        # Parsed parent POMs, kept until the next reset().
        self._parents_seen: Dict[Coordinate, RawPom] = {}
        self._lock = threading.Lock()

    def reset(self) -> None:
        """Forget parent POMs memoized by earlier lookups."""
        with self._lock:
            self._parents_seen.clear()

    def __len__(self) -> int:
        return len(self.repositories)

    def __iter__(self):
        return iter(self.repositories)

    def find_descriptor(
        self,
        coordinate: Coordinate,
        cache: "ArtifactCache",
        *,
        offline: bool = False,
        force: bool = False,
    ) -> FoundDescriptor:
        """Fetch and parse the descriptor of ``coordinate``.

        Raises:
            JarfetchError: when no repository yields a usable descriptor.
        """
        errors: List[JarfetchError] = []
        for repo in self.repositories:
            content, error = repo.fetch_descriptor(coordinate, cache, offline=offline, force=force)
            if error is not None:
                logger.debug("%s: %s", repo.root, error)
                errors.append(error)
                continue
            try:
                descriptor = self._build(repo, content, coordinate, cache, offline=offline, force=force)
            except JarfetchError as exc:
                logger.warning("Ignoring descriptor of %s from %s: %s", coordinate, repo.root, exc)
                errors.append(exc)
                continue
            return FoundDescriptor(descriptor, repo)
        if not self.repositories:
            raise NotFoundError("No repositories configured")
        raise _pick_error(errors, str(coordinate))

    def _build(
        self,
        repo: Repository,
        content: bytes,
        coordinate: Coordinate,
        cache: "ArtifactCache",
        *,
        offline: bool,
        force: bool,
    ) -> Descriptor:
        parsed = repo.parse_descriptor(content)
        if isinstance(parsed, RawPom):
            ancestors = self._parents(parsed, coordinate, cache, offline=offline, force=force)
            descriptor = build_pom_descriptor(parsed, ancestors)
        else:
            descriptor = parsed
        if descriptor.module != coordinate.module:
            raise MalformedDescriptor(
                f"Descriptor at {repo.descriptor_url(coordinate)} describes "
                f"{descriptor.module}, expected {coordinate.module}"
            )
        return descriptor

    def _parents(
        self,
        pom: RawPom,
        child: Coordinate,
        cache: "ArtifactCache",
        *,
        offline: bool,
        force: bool,
    ) -> List[RawPom]:
        ancestors: List[RawPom] = []
        seen = {child}
        parent = pom.parent
        while parent is not None:
            if parent in seen or len(ancestors) >= Constants.MAX_PARENT_DEPTH:
                raise MalformedDescriptor(f"Parent chain of {child} is cyclic or too deep")
            seen.add(parent)
            raw = self._parent_pom(parent, cache, offline=offline, force=force)
            ancestors.append(raw)
            parent = raw.parent
        return ancestors

    def _parent_pom(
        self,
        coordinate: Coordinate,
        cache: "ArtifactCache",
        *,
        offline: bool,
        force: bool,
    ) -> RawPom:
        with self._lock:
            raw = self._parents_seen.get(coordinate)
        if raw is None:
            raw = self._fetch_raw_pom(coordinate, cache, offline=offline, force=force)
            with self._lock:
                self._parents_seen.setdefault(coordinate, raw)
        return raw

    def _fetch_raw_pom(
        self,
        coordinate: Coordinate,
        cache: "ArtifactCache",
        *,
        offline: bool,
        force: bool,
    ) -> RawPom:
        errors: List[JarfetchError] = []
        for repo in self.repositories:
            if repo.ivy_like:
                continue
            content, error = repo.fetch_descriptor(coordinate, cache, offline=offline, force=force)
            if error is not None:
                errors.append(error)
                continue
            return repo.parse_descriptor(content)
        raise _pick_error(errors, f"Parent POM {coordinate}")

    def list_versions(
        self,
        module: Module,
        cache: "ArtifactCache",
        *,
        offline: bool = False,
        force: bool = False,
    ) -> Tuple[str, ...]:
        """Union of the versions every repository knows, in first-seen order.

        Raises:
            JarfetchError: when no repository could list ``module``.
        """
        versions: dict = {}
        errors: List[JarfetchError] = []
        listed = False
        for repo in self.repositories:
            found, error = repo.list_versions(module, cache, offline=offline, force=force)
            if error is not None:
                errors.append(error)
                continue
            listed = True
            versions.update(dict.fromkeys(found))
        if not listed:
            raise _pick_error(errors, f"Version listing of {module}")
        return tuple(versions)
