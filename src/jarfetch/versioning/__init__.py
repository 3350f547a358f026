"""Coordinates, version constraints and Maven version ordering."""

from .maven_version import MavenVersion, VersionRange, highest
from .models import (
    Coordinate,
    Dependency,
    Descriptor,
    Module,
    ModuleVersion,
    is_excluded,
)
from .parser import parse_coordinate, parse_dependency, parse_module

__all__ = [
    "Coordinate",
    "Dependency",
    "Descriptor",
    "MavenVersion",
    "Module",
    "ModuleVersion",
    "VersionRange",
    "highest",
    "is_excluded",
    "parse_coordinate",
    "parse_dependency",
    "parse_module",
]
