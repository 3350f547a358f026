"""Tests for the on-disk repository registry."""

import pytest

from jarfetch.errors import RegistryError, RepositoryExists
from jarfetch.registry import RepositoryRegistry
from jarfetch.repository import IvyRepository, MavenRepository


@pytest.fixture
def registry(tmp_path):
    return RepositoryRegistry(tmp_path)


class TestRegistry:

    def test_init_seeds_builtins_and_defaults(self, registry, tmp_path):
        registry.init()
        assert (tmp_path / "repositories" / "central" / "repository.yml").is_file()
        assert registry.default() == ["ivy2local", "central"]
        repos = registry.repository_map()
        assert isinstance(repos["ivy2local"], IvyRepository)
        assert repos["central"].root == "https://repo1.maven.org/maven2/"

    def test_list_is_sorted_with_sources(self, registry, tmp_path):
        ids = [repo_id for repo_id, _, _ in registry.list()]
        assert ids == sorted(ids)
        _, _, source = registry.list()[0]
        assert source.parent.parent == tmp_path / "repositories"

    def test_add_normalizes_url(self, registry):
        repo = registry.add("corp", "https://maven.corp.test/releases")
        assert isinstance(repo, MavenRepository)
        assert registry.repository_map()["corp"].root == "https://maven.corp.test/releases/"

    def test_add_ivy_like(self, registry):
        registry.add("corp-ivy", "https://ivy.corp.test/", ivy_like=True)
        assert registry.repository_map()["corp-ivy"].ivy_like

    @pytest.mark.parametrize("repo_id", ["", ".hidden", "a/b"])
    def test_add_rejects_invalid_ids(self, registry, repo_id):
        with pytest.raises(RegistryError):
            registry.add(repo_id, "https://x.test/")

    def test_add_rejects_duplicates(self, registry):
        registry.add("corp", "https://x.test/")
        with pytest.raises(RepositoryExists):
            registry.add("corp", "https://y.test/")
        with pytest.raises(RepositoryExists):
            registry.add("central", "https://y.test/")

    def test_default_with_not_found(self, registry, tmp_path):
        registry.init()
        (tmp_path / "repositories" / "default.yml").write_text("- central\n- ghost\n")
        assert registry.default() == ["central"]
        assert registry.default(with_not_found=True) == ["central", "ghost"]

    def test_resolve_specs(self, registry, tmp_path):
        repos = registry.resolve_specs(["central", "ivy:https://ivy.test/,https://m.test/", str(tmp_path)])
        assert [type(r).__name__ for r in repos] == [
            "MavenRepository", "IvyRepository", "MavenRepository", "MavenRepository",
        ]
        assert repos[1].ivy_like
        assert repos[3].is_local

    def test_resolve_specs_unknown_id(self, registry):
        with pytest.raises(RegistryError):
            registry.resolve_specs(["nowhere"])
