"""jarfetch: resolve and fetch JVM dependencies from Maven and Ivy repositories."""

from .classpath import Artifact, ClasspathProjector
from .constants import Classifiers, ExitCodes
from .context import EngineContext, build_context
from .fetch import project, resolve
from .graph import DependencyGraph, Edge, Resolution, ResolutionStatus
from .resolver import Resolver, ResolveOptions

__version__ = "0.1.0"

__all__ = [
    "Artifact",
    "ClasspathProjector",
    "Classifiers",
    "DependencyGraph",
    "Edge",
    "EngineContext",
    "ExitCodes",
    "Resolution",
    "ResolutionStatus",
    "ResolveOptions",
    "Resolver",
    "build_context",
    "project",
    "resolve",
]
