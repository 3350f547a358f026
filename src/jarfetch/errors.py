"""Error taxonomy shared by the resolution and fetch layers.

Engine components record these per coordinate or per URL and hand them back
to the caller; only the command-line layer turns them into exit codes.
"""
from __future__ import annotations

from typing import Optional


class JarfetchError(Exception):
    """Base class for all errors raised by jarfetch."""

    def __init__(self, message: str, *, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.url = url

    def __str__(self) -> str:
        return self.message


class TransportError(JarfetchError):
    """Network or IO failure while fetching one resource."""


class NotFoundError(JarfetchError):
    """Resource absent at one repository (or at all of them)."""


class OfflineViolation(JarfetchError):
    """Cache miss while running in offline mode."""


class ConflictUnresolvable(JarfetchError):
    """Version ordering failed for a module, usually a malformed version."""


class CacheWriteError(JarfetchError):
    """A fetched resource could not be persisted in the local cache."""


class RegistryError(JarfetchError):
    """Invalid or conflicting repository registry operation."""


class RepositoryExists(RegistryError):
    """A repository id is already registered."""


class ConfigError(JarfetchError):
    """Unreadable or invalid configuration file."""


class ResolutionCancelled(JarfetchError):
    """The caller aborted a resolution run."""


class MalformedDescriptor(JarfetchError):
    """A descriptor was fetched but could not be parsed."""


class NonConvergence(JarfetchError):
    """Resolution stopped before reaching a fixpoint."""
