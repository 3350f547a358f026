"""Shared fixtures: an in-memory counting transport and POM builders."""

import threading
import time
from collections import Counter

import pytest

from jarfetch.context import EngineContext
from jarfetch.errors import NotFoundError
from jarfetch.repository import MavenRepository

REPO_ROOT = "https://repo.test/maven2/"


class StubTransport:
    """Serves ``url -> bytes`` from a dict and counts every transfer."""

    def __init__(self, files=None, delay=0.0):
        self.files = dict(files or {})
        self.delay = delay
        self.calls = Counter()
        self._lock = threading.Lock()

    def download(self, url, out):
        with self._lock:
            self.calls[url] += 1
        if self.delay:
            time.sleep(self.delay)
        if url not in self.files:
            raise NotFoundError(f"Not found: {url}", url=url)
        data = self.files[url]
        out.write(data)
        return len(data)

    @property
    def total_calls(self):
        return sum(self.calls.values())


def pom(group, artifact, version, dependencies=(), packaging=None, parent=None,
        properties=None, managed=()):
    """Build POM bytes.

    ``dependencies`` and ``managed`` hold dicts with group/artifact/version and
    optional scope, optional and exclusions ``[(group, artifact)]`` keys.
    """
    def dep_xml(dep):
        parts = [f"<groupId>{dep['group']}</groupId>", f"<artifactId>{dep['artifact']}</artifactId>"]
        if dep.get("version"):
            parts.append(f"<version>{dep['version']}</version>")
        if dep.get("scope"):
            parts.append(f"<scope>{dep['scope']}</scope>")
        if dep.get("optional"):
            parts.append("<optional>true</optional>")
        if dep.get("exclusions"):
            excl = "".join(
                f"<exclusion><groupId>{g}</groupId><artifactId>{a}</artifactId></exclusion>"
                for g, a in dep["exclusions"]
            )
            parts.append(f"<exclusions>{excl}</exclusions>")
        return "<dependency>" + "".join(parts) + "</dependency>"

    body = []
    if parent:
        body.append(
            f"<parent><groupId>{parent[0]}</groupId><artifactId>{parent[1]}</artifactId>"
            f"<version>{parent[2]}</version></parent>"
        )
    if group:
        body.append(f"<groupId>{group}</groupId>")
    body.append(f"<artifactId>{artifact}</artifactId>")
    if version:
        body.append(f"<version>{version}</version>")
    if packaging:
        body.append(f"<packaging>{packaging}</packaging>")
    if properties:
        body.append("<properties>" + "".join(f"<{k}>{v}</{k}>" for k, v in properties.items())
                    + "</properties>")
    if managed:
        body.append("<dependencyManagement><dependencies>"
                    + "".join(dep_xml(d) for d in managed)
                    + "</dependencies></dependencyManagement>")
    if dependencies:
        body.append("<dependencies>" + "".join(dep_xml(d) for d in dependencies) + "</dependencies>")
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<project xmlns="http://maven.apache.org/POM/4.0.0">'
        "<modelVersion>4.0.0</modelVersion>" + "".join(body) + "</project>"
    ).encode("utf-8")


def dep(coordinate, **extra):
    """``dep("g:a:v", scope="test")`` -> dependency dict for :func:`pom`."""
    group, artifact, version = coordinate.split(":", 2)
    return dict(group=group, artifact=artifact, version=version, **extra)


class FakeMavenRepo:
    """Publishes POMs, jars and listings into a StubTransport under one root."""

    def __init__(self, transport, root=REPO_ROOT):
        self.transport = transport
        self.repository = MavenRepository(root)
        self.root = self.repository.root

    def _dir(self, group, artifact):
        return f"{self.root}{group.replace('.', '/')}/{artifact}/"

    def publish(self, coordinate, dependencies=(), packaging=None, jar=True, classifiers=(), **kwargs):
        group, artifact, version = coordinate.split(":")
        base = f"{self._dir(group, artifact)}{version}/{artifact}-{version}"
        self.transport.files[f"{base}.pom"] = pom(
            group, artifact, version, dependencies, packaging=packaging, **kwargs
        )
        if jar:
            self.transport.files[f"{base}.jar"] = f"jar {coordinate}".encode()
        for classifier in classifiers:
            self.transport.files[f"{base}-{classifier}.jar"] = f"{classifier} {coordinate}".encode()
        return f"{base}.pom"

    def listing(self, module, versions):
        group, artifact = module.split(":")
        items = "".join(f"<version>{v}</version>" for v in versions)
        self.transport.files[f"{self._dir(group, artifact)}maven-metadata.xml"] = (
            f"<metadata><groupId>{group}</groupId><artifactId>{artifact}</artifactId>"
            f"<versioning><versions>{items}</versions></versioning></metadata>"
        ).encode()


@pytest.fixture
def transport():
    return StubTransport()


@pytest.fixture
def maven(transport):
    return FakeMavenRepo(transport)


@pytest.fixture
def context(tmp_path, transport, maven):
    return EngineContext(cache_root=tmp_path / "cache", repositories=[maven.repository], transport=transport)
