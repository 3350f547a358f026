"""Explicit engine context: cache location and ordered repositories.

Everything the engine needs from the environment is read once, here, when
the context is built. Nothing is re-read during a resolution.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional

from .cache import ArtifactCache, Transport
from .constants import Constants
from .registry import RepositoryRegistry
from .repository import Repository, RepositoryChain
from .scheduler import DownloadScheduler

logger = logging.getLogger(__name__)


@dataclass
class EngineContext:
    """Shared state of one CLI invocation or one embedding caller."""
    cache_root: Path
    repositories: List[Repository]
    transport: Optional[Transport] = None
    cache: ArtifactCache = field(init=False)
    chain: RepositoryChain = field(init=False)

    def __post_init__(self) -> None:
        self.cache_root = Path(self.cache_root)
        self.cache = ArtifactCache(self.cache_root, self.transport)
        self.chain = RepositoryChain(self.repositories)

    def scheduler(self, parallelism: int = Constants.DEFAULT_PARALLEL) -> DownloadScheduler:
        return DownloadScheduler(self.cache, parallelism)


def default_cache_root(config: Optional[Mapping[str, Any]] = None) -> Path:
    """Cache root from config, then JARFETCH_CACHE, then ~/.jarfetch/cache."""
    configured = (config or {}).get("cache")
    if configured:
        return Path(str(configured)).expanduser()
    env_value = os.environ.get(Constants.ENV_CACHE)
    if env_value:
        return Path(env_value).expanduser()
    return Path(Constants.DEFAULT_CACHE_DIR)


def build_context(
    *,
    cache: Optional[os.PathLike] = None,
    repository_specs: Optional[Iterable[str]] = None,
    config: Optional[Mapping[str, Any]] = None,
    transport: Optional[Transport] = None,
) -> EngineContext:
    """Assemble a context with CLI values taking precedence over config.

    Repository specs are registry ids, raw URLs or ``ivy:URL``. With no
    specs at all, the registry's default list is used.
    """
    cache_root = Path(cache).expanduser() if cache else default_cache_root(config)
    specs = list(repository_specs or [])
    if not specs:
        specs = list((config or {}).get("repositories") or [])

    registry = RepositoryRegistry(cache_root)
    if specs:
        repositories = registry.resolve_specs(specs)
    else:
        repo_map = registry.repository_map()
        repositories = [repo_map[repo_id] for repo_id in registry.default(with_not_found=False)]

    logger.debug("Cache root: %s; repositories: %s", cache_root, [r.root for r in repositories])
    return EngineContext(cache_root=cache_root, repositories=repositories, transport=transport)
