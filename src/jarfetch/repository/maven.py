"""Maven-like repository layout."""
from __future__ import annotations

from typing import List, Optional

from ..constants import Constants
from ..versioning.models import Coordinate, Module
from .base import Repository
from .descriptor import RawPom, parse_maven_metadata, parse_pom


class MavenRepository(Repository):
    """``org/path/name/version/name-version[-classifier].ext`` layout."""

    kind = "maven"

    def module_url(self, module: Module) -> str:
        return f"{self.root}{module.organization.replace('.', '/')}/{module.name}/"

    def _base(self, coordinate: Coordinate) -> str:
        return (
            f"{self.module_url(coordinate.module)}{coordinate.version}/"
            f"{coordinate.name}-{coordinate.version}"
        )

    def descriptor_url(self, coordinate: Coordinate) -> str:
        return f"{self._base(coordinate)}.pom"

    def artifact_url(self, coordinate: Coordinate, classifier: Optional[str] = None,
                     extension: str = "jar") -> str:
        suffix = f"-{classifier}" if classifier else ""
        return f"{self._base(coordinate)}{suffix}.{extension}"

    def listing_url(self, module: Module) -> Optional[str]:
        return f"{self.module_url(module)}{Constants.MAVEN_METADATA_FILE}"

    def parse_descriptor(self, content: bytes) -> RawPom:
        return parse_pom(content)

    def parse_listing(self, content: bytes) -> List[str]:
        return parse_maven_metadata(content)
