"""Repository capability shared by the Maven-like and Ivy-like layouts."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Tuple

from ..cache import file_url_to_path, is_local_url
from ..errors import JarfetchError, NotFoundError, TransportError
from ..versioning.maven_version import MavenVersion
from ..versioning.models import Coordinate, Module

if TYPE_CHECKING:
    from ..cache import ArtifactCache

logger = logging.getLogger(__name__)


def normalize_root(root: str) -> str:
    """Turn a URL or filesystem path into a URL ending with '/'."""
    root = root.strip()
    if "://" not in root and not root.startswith("file:"):
        root = Path(root).expanduser().resolve().as_uri()
    if not root.endswith("/"):
        root += "/"
    return root


class Repository(ABC):
    """Where descriptors and artifacts of modules live.

    ``descriptor_url`` and ``artifact_url`` are pure functions of the layout.
    The fetch helpers go through the artifact cache and hand errors back as
    values instead of raising them.
    """

    ivy_like = False
    kind = "maven"

    def __init__(self, root: str) -> None:
        self.root = normalize_root(root)

    @property
    def is_local(self) -> bool:
        return is_local_url(self.root)

    @abstractmethod
    def descriptor_url(self, coordinate: Coordinate) -> str:
        """URL of the metadata descriptor for ``coordinate``."""

    @abstractmethod
    def artifact_url(self, coordinate: Coordinate, classifier: Optional[str] = None,
                     extension: str = "jar") -> str:
        """URL of an artifact; ``classifier`` None means the main artifact."""

    @abstractmethod
    def module_url(self, module: Module) -> str:
        """URL of the directory holding every version of ``module``."""

    @abstractmethod
    def parse_descriptor(self, content: bytes):
        """Parse raw descriptor bytes in this repository's format."""

    def listing_url(self, module: Module) -> Optional[str]:
        """URL of a remote version listing, if the layout has one."""
        return None

    def fetch_descriptor(
        self,
        coordinate: Coordinate,
        cache: "ArtifactCache",
        *,
        offline: bool = False,
        force: bool = False,
    ) -> Tuple[Optional[bytes], Optional[JarfetchError]]:
        """Return ``(content, None)`` or ``(None, error)``."""
        return self._read(self.descriptor_url(coordinate), cache, offline=offline, force=force)

    def list_versions(
        self,
        module: Module,
        cache: "ArtifactCache",
        *,
        offline: bool = False,
        force: bool = False,
    ) -> Tuple[List[str], Optional[JarfetchError]]:
        """Return ``(versions, None)`` or ``([], error)``."""
        if self.is_local:
            return self._scan_versions(module)
        url = self.listing_url(module)
        if url is None:
            return [], NotFoundError(f"{self.root} cannot list versions of {module}")
        content, error = self._read(url, cache, offline=offline, force=force)
        if error is not None:
            return [], error
        try:
            return self.parse_listing(content), None
        except JarfetchError as exc:
            return [], exc

    @abstractmethod
    def parse_listing(self, content: bytes) -> List[str]:
        """Parse a remote version listing into version strings."""

    def _scan_versions(self, module: Module) -> Tuple[List[str], Optional[JarfetchError]]:
        directory = file_url_to_path(self.module_url(module))
        if not directory.is_dir():
            return [], NotFoundError(f"No versions of {module} under {directory}")
        versions = []
        for entry in directory.iterdir():
            if not entry.is_dir() or entry.name.startswith("."):
                continue
            try:
                MavenVersion(entry.name)
            except ValueError:
                continue
            versions.append(entry.name)
        return sorted(versions, key=MavenVersion), None

    @staticmethod
    def _read(url: str, cache: "ArtifactCache", *, offline: bool, force: bool
              ) -> Tuple[Optional[bytes], Optional[JarfetchError]]:
        try:
            path = cache.get(url, offline=offline, force=force)
            return path.read_bytes(), None
        except JarfetchError as exc:
            return None, exc
        except OSError as exc:
            return None, TransportError(f"Cannot read {url}: {exc}", url=url)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Repository):
            return NotImplemented
        return (self.kind, self.root) == (other.kind, other.root)

    def __hash__(self) -> int:
        return hash((self.kind, self.root))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.root!r})"
