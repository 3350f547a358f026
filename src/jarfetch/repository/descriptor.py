"""POM and Ivy descriptor parsing.

Only the parts needed to walk a dependency graph are extracted: the module's
own coordinates and packaging, its parent, properties, managed versions and
declared dependencies with their scope, optional flag and exclusions.
"""
from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from ..constants import Constants
from ..errors import MalformedDescriptor
from ..versioning.models import Coordinate, Dependency, Descriptor, Exclusion, Module

logger = logging.getLogger(__name__)

_PROPERTY_REF = re.compile(r"\$\{([^}]+)\}")
_MAX_INTERPOLATION_PASSES = 10


@dataclass
class RawDependency:
    """A dependency entry before property interpolation and management."""
    group: str
    artifact: str
    version: Optional[str] = None
    scope: Optional[str] = None
    optional: bool = False
    exclusions: Tuple[Exclusion, ...] = ()


@dataclass
class RawPom:
    """Uninterpolated content of a single POM file."""
    group: Optional[str]
    artifact: str
    version: Optional[str]
    packaging: str = "jar"
    parent: Optional[Coordinate] = None
    properties: Dict[str, str] = field(default_factory=dict)
    managed: List[RawDependency] = field(default_factory=list)
    dependencies: List[RawDependency] = field(default_factory=list)


def _strip_namespaces(root: ET.Element) -> ET.Element:
    for elem in root.iter():
        if isinstance(elem.tag, str) and elem.tag.startswith("{"):
            elem.tag = elem.tag.split("}", 1)[1]
    return root


def _text(elem: Optional[ET.Element], tag: str) -> Optional[str]:
    if elem is None:
        return None
    child = elem.find(tag)
    if child is None or child.text is None:
        return None
    value = child.text.strip()
    return value or None


def _parse_xml(content: bytes, what: str) -> ET.Element:
    try:
        return _strip_namespaces(ET.fromstring(content))
    except ET.ParseError as exc:
        raise MalformedDescriptor(f"Unparseable {what}: {exc}") from exc


def _parse_dependency_list(parent: Optional[ET.Element]) -> List[RawDependency]:
    result: List[RawDependency] = []
    if parent is None:
        return result
    for dep in parent.findall("dependency"):
        group = _text(dep, "groupId")
        artifact = _text(dep, "artifactId")
        if not group or not artifact:
            continue
        exclusions = []
        for excl in dep.findall("exclusions/exclusion"):
            excl_group = _text(excl, "groupId") or "*"
            excl_artifact = _text(excl, "artifactId") or "*"
            exclusions.append((excl_group, excl_artifact))
        result.append(RawDependency(
            group=group,
            artifact=artifact,
            version=_text(dep, "version"),
            scope=_text(dep, "scope"),
            optional=(_text(dep, "optional") or "").lower() == "true",
            exclusions=tuple(exclusions),
        ))
    return result


def parse_pom(content: bytes) -> RawPom:
    """Parse POM bytes.

    Raises:
        MalformedDescriptor: on invalid XML or a missing artifactId.
    """
    root = _parse_xml(content, "POM")
    if root.tag != "project":
        raise MalformedDescriptor(f"Unexpected POM root element <{root.tag}>")

    parent_elem = root.find("parent")
    parent = None
    if parent_elem is not None:
        p_group = _text(parent_elem, "groupId")
        p_artifact = _text(parent_elem, "artifactId")
        p_version = _text(parent_elem, "version")
        if p_group and p_artifact and p_version:
            parent = Coordinate(Module(p_group, p_artifact), p_version)

    artifact = _text(root, "artifactId")
    if not artifact:
        raise MalformedDescriptor("POM has no artifactId")

    properties: Dict[str, str] = {}
    props_elem = root.find("properties")
    if props_elem is not None:
        for prop in props_elem:
            if isinstance(prop.tag, str):
                properties[prop.tag] = (prop.text or "").strip()

    return RawPom(
        group=_text(root, "groupId") or (parent.organization if parent else None),
        artifact=artifact,
        version=_text(root, "version") or (parent.version if parent else None),
        packaging=_text(root, "packaging") or "jar",
        parent=parent,
        properties=properties,
        managed=_parse_dependency_list(root.find("dependencyManagement/dependencies")),
        dependencies=_parse_dependency_list(root.find("dependencies")),
    )


def _interpolate(value: Optional[str], props: Dict[str, str]) -> Optional[str]:
    if value is None:
        return None
    for _ in range(_MAX_INTERPOLATION_PASSES):
        replaced = _PROPERTY_REF.sub(lambda m: props.get(m.group(1), m.group(0)), value)
        if replaced == value:
            break
        value = replaced
    return value


def _project_properties(pom: RawPom) -> Dict[str, str]:
    props: Dict[str, str] = {}
    for prefix in ("project.", "pom.", ""):
        if pom.group:
            props[f"{prefix}groupId"] = pom.group
        props[f"{prefix}artifactId"] = pom.artifact
        if pom.version:
            props[f"{prefix}version"] = pom.version
    if pom.parent is not None:
        for prefix in ("project.parent.", "parent."):
            props[f"{prefix}groupId"] = pom.parent.organization
            props[f"{prefix}artifactId"] = pom.parent.name
            props[f"{prefix}version"] = pom.parent.version
    return props


def build_pom_descriptor(pom: RawPom, ancestors: Sequence[RawPom] = ()) -> Descriptor:
    """Merge a POM with its parent chain (nearest parent first) into a Descriptor.

    Child properties, managed versions and dependencies override those of
    its ancestors. Dependencies whose version stays unknown are dropped.
    """
    chain = [pom, *ancestors]

    props: Dict[str, str] = {}
    for raw in reversed(chain):
        props.update(raw.properties)
    props.update(_project_properties(pom))

    managed: Dict[Tuple[str, str], RawDependency] = {}
    inherited: Dict[Tuple[str, str], RawDependency] = {}
    for raw in chain:
        for dep in raw.managed:
            key = (_interpolate(dep.group, props), _interpolate(dep.artifact, props))
            managed.setdefault(key, dep)
        for dep in raw.dependencies:
            key = (_interpolate(dep.group, props), _interpolate(dep.artifact, props))
            inherited.setdefault(key, dep)

    dependencies: List[Dependency] = []
    for (group, artifact), dep in inherited.items():
        mgmt = managed.get((group, artifact))
        version = _interpolate(dep.version or (mgmt.version if mgmt else None), props)
        if not version:
            logger.warning(
                "Dropping %s:%s from %s:%s: no version declared or managed",
                group, artifact, pom.group, pom.artifact,
            )
            continue
        scope = _interpolate(dep.scope or (mgmt.scope if mgmt else None), props) or "compile"
        exclusions: FrozenSet[Exclusion] = frozenset(dep.exclusions) | frozenset(
            mgmt.exclusions if mgmt else ()
        )
        dependencies.append(Dependency(
            coordinate=Coordinate(Module(group, artifact), version),
            scope=scope,
            optional=dep.optional,
            exclusions=exclusions,
        ))

    return Descriptor(
        module=Module(_interpolate(pom.group, props) or "", pom.artifact),
        version=_interpolate(pom.version, props) or "",
        packaging=_interpolate(pom.packaging, props) or "jar",
        dependencies=tuple(dependencies),
        parent=pom.parent,
    )


def _ivy_scope(conf: Optional[str]) -> Tuple[str, bool]:
    """Map an Ivy ``conf`` mapping to a (scope, optional) pair."""
    if not conf:
        return "compile", False
    master_confs = set()
    for mapping in conf.split(";"):
        left = mapping.split("->", 1)[0]
        master_confs.update(c.strip() for c in left.split(",") if c.strip())
    if master_confs & {"compile", "default", "*", "master"}:
        return "compile", False
    if "runtime" in master_confs:
        return "runtime", False
    if "optional" in master_confs:
        return "compile", True
    if "provided" in master_confs:
        return "provided", False
    if master_confs and all(c.startswith("test") for c in master_confs):
        return "test", False
    return "compile", False


def parse_ivy(content: bytes) -> Descriptor:
    """Parse an ivy.xml file into a Descriptor.

    Raises:
        MalformedDescriptor: on invalid XML or a missing <info> element.
    """
    root = _parse_xml(content, "Ivy file")
    info = root.find("info")
    if root.tag != "ivy-module" or info is None:
        raise MalformedDescriptor("Ivy file has no <info> element")
    module = Module(info.get("organisation", ""), info.get("module", ""))
    if not module.organization or not module.name:
        raise MalformedDescriptor("Ivy <info> lacks organisation or module")

    packaging = "jar"
    publications = root.find("publications")
    if publications is not None:
        artifacts = publications.findall("artifact")
        if not artifacts:
            packaging = "pom"
        else:
            packaging = artifacts[0].get("type", "jar")

    deps_elem = root.find("dependencies")
    global_excludes: List[Exclusion] = []
    dependencies: List[Dependency] = []
    if deps_elem is not None:
        for excl in deps_elem.findall("exclude"):
            global_excludes.append((excl.get("org", "*"), excl.get("module", "*")))
        for dep in deps_elem.findall("dependency"):
            org = dep.get("org") or module.organization
            name = dep.get("name")
            rev = dep.get("rev")
            if not name or not rev:
                continue
            scope, optional = _ivy_scope(dep.get("conf"))
            exclusions = {(e.get("org", "*"), e.get("module", e.get("name", "*")))
                          for e in dep.findall("exclude")}
            dependencies.append(Dependency(
                coordinate=Coordinate(Module(org, name), rev),
                scope=scope,
                optional=optional,
                exclusions=frozenset(exclusions) | frozenset(global_excludes),
            ))

    return Descriptor(
        module=module,
        version=info.get("revision", ""),
        packaging=packaging,
        dependencies=tuple(dependencies),
    )


def parse_maven_metadata(content: bytes) -> List[str]:
    """Return versions listed in maven-metadata.xml in source order."""
    root = _parse_xml(content, Constants.MAVEN_METADATA_FILE)
    versions = []
    for item in root.findall("versioning/versions/version"):
        if item.text and item.text.strip():
            versions.append(item.text.strip())
    return versions
