"""Ivy-like repository layout."""
from __future__ import annotations

from typing import List, Optional

from ..constants import Constants
from ..errors import NotFoundError
from ..versioning.models import Coordinate, Descriptor, Module
from .base import Repository
from .descriptor import parse_ivy

# Classifier -> type directory, as laid out by `publishLocal`-style tools.
_TYPE_DIRS = {None: "jars", "sources": "srcs", "javadoc": "docs"}


class IvyRepository(Repository):
    """``org/name/revision/<type>s/name[-classifier].ext`` layout."""

    ivy_like = True
    kind = "ivy"

    def module_url(self, module: Module) -> str:
        return f"{self.root}{module.organization}/{module.name}/"

    def descriptor_url(self, coordinate: Coordinate) -> str:
        return (
            f"{self.module_url(coordinate.module)}{coordinate.version}/ivys/"
            f"{Constants.IVY_DESCRIPTOR_FILE}"
        )

    def artifact_url(self, coordinate: Coordinate, classifier: Optional[str] = None,
                     extension: str = "jar") -> str:
        type_dir = _TYPE_DIRS.get(classifier, f"{classifier}s")
        suffix = f"-{classifier}" if classifier else ""
        return (
            f"{self.module_url(coordinate.module)}{coordinate.version}/{type_dir}/"
            f"{coordinate.name}{suffix}.{extension}"
        )

    def parse_descriptor(self, content: bytes) -> Descriptor:
        return parse_ivy(content)

    def parse_listing(self, content: bytes) -> List[str]:
        raise NotFoundError(f"{self.root} publishes no version listing")
