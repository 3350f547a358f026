"""Engine entry points: resolve seeds, then project the graph onto files."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from .classpath import ClasspathProjector
from .common.logging_utils import Timer, extra_context, is_debug_enabled
from .constants import Classifiers
from .context import EngineContext
from .errors import JarfetchError
from .graph import DependencyGraph, Resolution
from .resolver import Resolver, ResolveOptions, Seed

logger = logging.getLogger(__name__)


def resolve(
    seeds: Iterable[Seed],
    context: EngineContext,
    options: Optional[ResolveOptions] = None,
) -> Resolution:
    """Resolve ``seeds`` (``org:name:version`` strings or coordinates)."""
    options = options or ResolveOptions()
    with Timer() as timer:
        resolution = Resolver(context).resolve(seeds, options)
    if is_debug_enabled(logger):
        logger.debug(
            "Resolution finished",
            extra=extra_context(
                event="function_exit",
                component="resolver",
                outcome=resolution.status.value,
                iterations=resolution.iterations,
                modules=len(resolution.graph.selected),
                errors=len(resolution.errors),
                duration_ms=timer.duration_ms(),
            ),
        )
    return resolution


def project(
    graph: DependencyGraph,
    context: EngineContext,
    classifiers: Iterable = (Classifiers.MAIN,),
    options: Optional[ResolveOptions] = None,
) -> Tuple[List[Path], Dict[str, JarfetchError]]:
    """Download the artifacts of ``graph``; paths come back root-first."""
    options = options or ResolveOptions()
    return ClasspathProjector(context).project(
        graph,
        classifiers,
        offline=options.offline,
        force=options.force,
        parallelism=options.parallelism,
    )
