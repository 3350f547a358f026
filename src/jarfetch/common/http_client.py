"""Shared HTTP transport used by the artifact cache.

Encapsulates request/timeout error handling so the cache only ever sees the
jarfetch error taxonomy. Nothing here retries: a failed transfer is reported
to the caller, which decides whether to schedule a fresh attempt.
"""
from __future__ import annotations

import logging
import threading
from typing import BinaryIO, Optional

import requests

from ..constants import Constants
from ..errors import NotFoundError, TransportError
from .logging_utils import Timer, extra_context, is_debug_enabled, safe_url

logger = logging.getLogger(__name__)

_NOT_FOUND_STATUSES = (404, 410)


class HttpTransport:
    """Streams remote resources into caller-provided file objects."""

    def __init__(
        self,
        timeout: int = Constants.REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = timeout
        self._session = session
        self._session_lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        """Lazily created shared session; requests sessions are thread-safe for GETs."""
        with self._session_lock:
            if self._session is None:
                self._session = requests.Session()
                self._session.headers.update({"User-Agent": Constants.USER_AGENT})
            return self._session

    def download(self, url: str, out: BinaryIO) -> int:
        """Write the body of ``url`` into ``out`` and return the byte count.

        Raises:
            NotFoundError: the server answered 404 or 410.
            TransportError: any other HTTP status or connection failure.
        """
        safe_target = safe_url(url)
        with Timer() as t:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request",
                    extra=extra_context(
                        event="http_request",
                        component="http_client",
                        action="GET",
                        target=safe_target,
                    ),
                )
            try:
                with self.session.get(url, timeout=self.timeout, stream=True) as res:
                    if res.status_code in _NOT_FOUND_STATUSES:
                        raise NotFoundError(f"Not found: {safe_target}", url=url)
                    if res.status_code != 200:
                        raise TransportError(
                            f"Unexpected HTTP status {res.status_code} for {safe_target}",
                            url=url,
                        )
                    written = 0
                    for chunk in res.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            out.write(chunk)
                            written += len(chunk)
            except requests.Timeout as exc:
                raise TransportError(
                    f"Request to {safe_target} timed out after {self.timeout} seconds",
                    url=url,
                ) from exc
            except requests.RequestException as exc:  # includes ConnectionError
                raise TransportError(f"Connection error for {safe_target}: {exc}", url=url) from exc

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response ok",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    outcome="success",
                    status_code=200,
                    bytes=written,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                ),
            )
        return written

    def close(self) -> None:
        """Release pooled connections."""
        with self._session_lock:
            if self._session is not None:
                self._session.close()
                self._session = None
