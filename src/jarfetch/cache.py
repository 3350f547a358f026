"""Persistent artifact cache shared across runs and processes.

A remote URL maps to ``<root>/<scheme>/<host>/<path>``. Entries are written
to a temporary sibling file and moved into place with ``os.replace``, so
readers in other processes never observe partial content. Within one
process, concurrent requests for the same URL share a single transfer.
Entries are never deleted here.
"""
from __future__ import annotations

import logging
import os
import threading
import urllib.parse
import urllib.request
import uuid
from concurrent.futures import Future
from pathlib import Path
from typing import BinaryIO, Dict, Optional, Protocol

from .common.http_client import HttpTransport
from .common.logging_utils import extra_context, is_debug_enabled, safe_url
from .constants import Constants
from .errors import CacheWriteError, NotFoundError, OfflineViolation, TransportError

logger = logging.getLogger(__name__)

_REMOTE_SCHEMES = ("http", "https")


class Transport(Protocol):
    """Anything able to stream a URL into a binary file object."""

    def download(self, url: str, out: BinaryIO) -> int:
        ...


def is_local_url(url: str) -> bool:
    """Return True for ``file:`` URLs."""
    return url.startswith("file:")


def file_url_to_path(url: str) -> Path:
    """Convert a ``file:`` URL to a filesystem path."""
    parts = urllib.parse.urlsplit(url)
    return Path(urllib.request.url2pathname(parts.path))


class ArtifactCache:
    """Maps fetch URLs to local files, downloading on a miss."""

    def __init__(self, root: os.PathLike, transport: Optional[Transport] = None) -> None:
        self.root = Path(root)
        self.transport = transport if transport is not None else HttpTransport()
        self._inflight: Dict[str, Future] = {}
        self._lock = threading.Lock()

    def local_path(self, url: str) -> Path:
        """Return where ``url`` lives (or would live) on disk.

        Raises:
            TransportError: for unsupported schemes or unsafe paths.
        """
        if is_local_url(url):
            return file_url_to_path(url)
        parts = urllib.parse.urlsplit(url)
        if parts.scheme not in _REMOTE_SCHEMES or not parts.hostname:
            raise TransportError(f"Unsupported URL: {safe_url(url)}", url=url)
        host = parts.hostname if parts.port is None else f"{parts.hostname}_{parts.port}"
        segments = [urllib.parse.unquote(s) for s in parts.path.split("/") if s]
        if not segments or any(s in (".", "..") for s in segments):
            raise TransportError(f"Unsafe URL path: {safe_url(url)}", url=url)
        return self.root.joinpath(parts.scheme, host, *segments)

    def get(self, url: str, *, offline: bool = False, force: bool = False) -> Path:
        """Return the local path of ``url``, fetching it when needed.

        Local ``file:`` URLs are served in place and ignore ``offline`` and
        ``force``. Otherwise an existing entry is trusted unless ``force``
        is set. ``offline`` wins over ``force``: an existing entry is served and
        a miss fails without touching the network.

        Raises:
            OfflineViolation: cache miss in offline mode.
            NotFoundError: the resource does not exist.
            TransportError: the transfer failed.
            CacheWriteError: the entry could not be written.
        """
        if is_local_url(url):
            path = file_url_to_path(url)
            if path.is_file():
                return path
            raise NotFoundError(f"Not found: {path}", url=url)

        dest = self.local_path(url)
        with self._lock:
            future = self._inflight.get(url)
            owner = future is None
            if owner:
                if dest.is_file() and (offline or not force):
                    if is_debug_enabled(logger):
                        logger.debug("Cache hit", extra=extra_context(
                            event="cache_hit", component="cache", target=safe_url(url)))
                    return dest
                if offline:
                    raise OfflineViolation(f"Not in cache (offline mode): {safe_url(url)}", url=url)
                future = Future()
                self._inflight[url] = future

        if not owner:
            if is_debug_enabled(logger):
                logger.debug("Joining in-flight download", extra=extra_context(
                    event="cache_join", component="cache", target=safe_url(url)))
            return future.result()

        try:
            path = self._download(url, dest)
        except BaseException as exc:
            future.set_exception(exc)
            raise
        else:
            future.set_result(path)
            return path
        finally:
            with self._lock:
                self._inflight.pop(url, None)

    def _download(self, url: str, dest: Path) -> Path:
        logger.info("Downloading %s", safe_url(url))
        tmp = dest.with_name(f"{dest.name}.{uuid.uuid4().hex}{Constants.TEMP_SUFFIX}")
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "wb") as out:
                self.transport.download(url, out)
            os.replace(tmp, dest)
        except OSError as exc:
            raise CacheWriteError(f"Cannot write {dest}: {exc}", url=url) from exc
        finally:
            try:
                tmp.unlink()
            except FileNotFoundError:
                pass
            except OSError:
                logger.warning("Could not remove temporary file %s", tmp)
        return dest
