"""Bounded-parallelism runner for cache-backed fetches."""
from __future__ import annotations

import functools
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Dict, Hashable, Iterable, Mapping, TypeVar, Union

from .cache import ArtifactCache
from .constants import Constants
from .errors import JarfetchError

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class DownloadScheduler:
    """Runs up to ``parallelism`` fetches at once and collects every outcome.

    A failing task never cancels the others; its error takes the place of
    its result in the returned mapping.
    """

    def __init__(self, cache: ArtifactCache, parallelism: int = Constants.DEFAULT_PARALLEL) -> None:
        if parallelism < 1:
            raise ValueError(f"parallelism must be at least 1, got {parallelism}")
        self.cache = cache
        self.parallelism = parallelism

    def run(self, tasks: Mapping[K, Callable[[], V]]) -> Dict[K, Union[V, JarfetchError]]:
        """Execute keyed callables; results come back in input order."""
        if not tasks:
            return {}
        results: Dict[K, Union[V, JarfetchError]] = {}
        workers = min(self.parallelism, len(tasks))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="jarfetch") as pool:
            futures = {pool.submit(fn): key for key, fn in tasks.items()}
            for future in as_completed(futures):
                key = futures[future]
                try:
                    results[key] = future.result()
                except JarfetchError as exc:
                    results[key] = exc
        return {key: results[key] for key in tasks}

    def fetch_all(
        self,
        urls: Iterable[str],
        *,
        offline: bool = False,
        force: bool = False,
    ) -> Dict[str, Union[Path, JarfetchError]]:
        """Fetch every URL through the cache; return ``{url: path | error}``."""
        tasks = {
            url: functools.partial(self.cache.get, url, offline=offline, force=force)
            for url in dict.fromkeys(urls)
        }
        results = self.run(tasks)
        failed = [url for url, res in results.items() if isinstance(res, JarfetchError)]
        if failed:
            logger.warning(
                "Fetch summary: %d succeeded, %d failed",
                len(results) - len(failed),
                len(failed),
            )
        return results
