"""Named repositories persisted under the cache directory.

Layout::

    <cache>/repositories/<id>/repository.yml   root + ivy_like
    <cache>/repositories/default.yml           ordered list of default ids
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

import yaml

from .constants import Constants
from .errors import RegistryError, RepositoryExists
from .repository import Repository, make_repository, normalize_root

logger = logging.getLogger(__name__)

BUILTIN_REPOSITORIES = {
    "central": (Constants.REPOSITORY_URL_CENTRAL, False),
    "ivy2local": (Constants.IVY2_LOCAL_DIR, True),
    "sonatype-snapshots": (Constants.REPOSITORY_URL_SONATYPE_SNAPSHOTS, False),
}

IVY_PREFIX = "ivy:"


def _validate_id(repo_id: str) -> None:
    if not repo_id:
        raise RegistryError("Repository id must not be empty")
    if repo_id.startswith("."):
        raise RegistryError(f"Repository id must not start with '.': {repo_id}")
    if "/" in repo_id or os.sep in repo_id:
        raise RegistryError(f"Repository id must not contain a path separator: {repo_id}")


class RepositoryRegistry:
    """Reads and writes the on-disk repository registry.

    There is no locking: ``add`` checks for the id and then creates it, and
    the directory creation itself is what rejects a concurrent duplicate.
    """

    def __init__(self, cache_root: os.PathLike) -> None:
        self.base = Path(cache_root) / Constants.REGISTRY_SUBDIR

    @property
    def default_file(self) -> Path:
        return self.base / Constants.REGISTRY_DEFAULT_FILE

    def _entry_file(self, repo_id: str) -> Path:
        return self.base / repo_id / Constants.REGISTRY_ENTRY_FILE

    def init(self) -> None:
        """Seed built-in repositories and the default list if absent."""
        for repo_id, (root, ivy_like) in BUILTIN_REPOSITORIES.items():
            if not self._entry_file(repo_id).exists():
                self._write_entry(repo_id, root, ivy_like)
        if not self.default_file.exists():
            self._write_yaml(self.default_file, list(Constants.DEFAULT_REPOSITORIES))
            logger.info("Initialized repository registry in %s", self.base)

    def add(self, repo_id: str, base_url: str, ivy_like: bool = False) -> Repository:
        """Register a new repository id.

        Raises:
            RegistryError: invalid id.
            RepositoryExists: the id is already registered.
        """
        _validate_id(repo_id)
        self.init()
        if self._entry_file(repo_id).exists():
            raise RepositoryExists(f"Repository {repo_id} already exists")
        try:
            (self.base / repo_id).mkdir(parents=True, exist_ok=False)
        except FileExistsError as e:
            raise RepositoryExists(f"Repository {repo_id} already exists") from e
        self._write_entry(repo_id, base_url, ivy_like)
        logger.info("Added repository %s: %s", repo_id, normalize_root(base_url))
        return make_repository(base_url, ivy_like)

    def list(self) -> List[Tuple[str, Repository, Path]]:
        """Registered repositories as ``(id, repository, source file)``, sorted by id."""
        self.init()
        entries = []
        for child in sorted(self.base.iterdir()):
            entry = child / Constants.REGISTRY_ENTRY_FILE
            if not child.is_dir() or not entry.is_file():
                continue
            entries.append((child.name, self._read_entry(entry), entry))
        return entries

    def repository_map(self) -> Dict[str, Repository]:
        return {repo_id: repo for repo_id, repo, _ in self.list()}

    def default(self, with_not_found: bool = False) -> List[str]:
        """Ordered default ids; unknown ids are dropped unless ``with_not_found``."""
        self.init()
        data = self._read_yaml(self.default_file)
        if not isinstance(data, list):
            raise RegistryError(f"{self.default_file} must contain a list of ids")
        ids = [str(item) for item in data]
        if with_not_found:
            return ids
        known = self.repository_map()
        missing = [repo_id for repo_id in ids if repo_id not in known]
        for repo_id in missing:
            logger.warning("Default repository %s not found in registry", repo_id)
        return [repo_id for repo_id in ids if repo_id in known]

    def resolve_specs(self, specs: Iterable[str]) -> List[Repository]:
        """Turn ``-r`` values (ids, URLs, paths, ``ivy:URL``; comma separated) into repositories."""
        known = None
        repositories: List[Repository] = []
        for spec in specs:
            for token in (t.strip() for t in str(spec).split(",")):
                if not token:
                    continue
                if token.startswith(IVY_PREFIX):
                    repositories.append(make_repository(token[len(IVY_PREFIX):], ivy_like=True))
                elif "://" in token or token.startswith(("file:", "~", ".")) or "/" in token or os.sep in token:
                    repositories.append(make_repository(token))
                else:
                    if known is None:
                        known = self.repository_map()
                    if token not in known:
                        raise RegistryError(f"Repository {token} not found")
                    repositories.append(known[token])
        return list(dict.fromkeys(repositories))

    def _write_entry(self, repo_id: str, root: str, ivy_like: bool) -> None:
        self._write_yaml(self._entry_file(repo_id), {"root": normalize_root(root), "ivy_like": bool(ivy_like)})

    def _read_entry(self, path: Path) -> Repository:
        data = self._read_yaml(path)
        if not isinstance(data, dict) or not data.get("root"):
            raise RegistryError(f"Malformed repository entry: {path}")
        return make_repository(str(data["root"]), bool(data.get("ivy_like", False)))

    @staticmethod
    def _read_yaml(path: Path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                return yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise RegistryError(f"Cannot read {path}: {e}") from e

    @staticmethod
    def _write_yaml(path: Path, data) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False)
        except OSError as e:
            raise RegistryError(f"Cannot write {path}: {e}") from e
