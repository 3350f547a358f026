"""Repository layouts and the ordered fallback chain."""

from .base import Repository, normalize_root
from .chain import FoundDescriptor, RepositoryChain
from .ivy import IvyRepository
from .maven import MavenRepository


def make_repository(root: str, ivy_like: bool = False) -> Repository:
    """Build a repository of the requested layout for ``root``."""
    if ivy_like:
        return IvyRepository(root)
    return MavenRepository(root)


__all__ = [
    "FoundDescriptor",
    "IvyRepository",
    "MavenRepository",
    "Repository",
    "RepositoryChain",
    "make_repository",
    "normalize_root",
]
