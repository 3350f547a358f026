"""Projection of a resolved graph onto downloadable artifact files."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from .constants import Classifiers, Constants
from .context import EngineContext
from .errors import JarfetchError
from .graph import DependencyGraph
from .versioning.models import Coordinate

logger = logging.getLogger(__name__)

# Packagings whose main artifact is published under another extension.
PACKAGING_EXTENSIONS = {
    "jar": "jar",
    "bundle": "jar",
    "maven-plugin": "jar",
    "test-jar": "jar",
    "ejb": "jar",
    "war": "war",
    "ear": "ear",
    "aar": "aar",
}


@dataclass(frozen=True)
class Artifact:
    """One downloadable file derived from a resolved coordinate."""
    coordinate: Coordinate
    classifier: Optional[str]
    extension: str
    url: str


def _classifier_value(classifier) -> Optional[str]:
    value = classifier.value if isinstance(classifier, Classifiers) else str(classifier)
    return None if value == Classifiers.MAIN.value else value


class ClasspathProjector:
    """Derives artifacts from a graph and fetches them through the cache."""

    def __init__(self, context: EngineContext) -> None:
        self.context = context

    def artifacts(self, graph: DependencyGraph, classifiers: Iterable = (Classifiers.MAIN,)) -> List[Artifact]:
        """Artifacts in graph discovery order, one per (module, version, classifier).

        Modules whose descriptor could not be fetched have no repository to
        derive URLs from and are skipped; ``pom`` packaging has no main
        artifact.
        """
        wanted = list(dict.fromkeys(_classifier_value(c) for c in classifiers))
        result: List[Artifact] = []
        seen = set()
        for coordinate in graph.coordinates():
            found = graph.descriptors.get(coordinate.module)
            if found is None:
                logger.debug("No descriptor for %s; no artifacts derived", coordinate)
                continue
            packaging = (found.descriptor.packaging or "jar").strip()
            for classifier in wanted:
                key = (coordinate.module, coordinate.version, classifier)
                if key in seen:
                    continue
                if classifier is None:
                    if packaging == "pom":
                        continue
                    extension = PACKAGING_EXTENSIONS.get(packaging, packaging)
                else:
                    extension = "jar"
                seen.add(key)
                url = found.repository.artifact_url(coordinate, classifier, extension)
                result.append(Artifact(coordinate, classifier, extension, url))
        return result

    def project(
        self,
        graph: DependencyGraph,
        classifiers: Iterable = (Classifiers.MAIN,),
        *,
        offline: bool = False,
        force: bool = False,
        parallelism: int = Constants.DEFAULT_PARALLEL,
    ) -> Tuple[List[Path], Dict[str, JarfetchError]]:
        """Fetch every artifact; return local paths in classpath order and errors by URL."""
        artifacts = self.artifacts(graph, classifiers)
        outcomes = self.context.scheduler(parallelism).fetch_all(
            (a.url for a in artifacts), offline=offline, force=force
        )
        paths: List[Path] = []
        errors: Dict[str, JarfetchError] = {}
        for artifact in artifacts:
            outcome = outcomes[artifact.url]
            if isinstance(outcome, JarfetchError):
                errors[artifact.url] = outcome
            else:
                paths.append(outcome)
        logger.info("Projected %d artifact(s), %d error(s)", len(paths), len(errors))
        return paths, errors
