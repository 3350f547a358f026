"""Constants used in the project."""

import os
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 3
    NON_CONVERGENCE = 4
    USAGE_ERROR = 255


class Classifiers(Enum):
    """Artifact variants that can be projected onto a classpath."""

    MAIN = "main"
    SOURCES = "sources"
    JAVADOC = "javadoc"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REPOSITORY_URL_CENTRAL = "https://repo1.maven.org/maven2/"
    REPOSITORY_URL_SONATYPE_SNAPSHOTS = "https://oss.sonatype.org/content/repositories/snapshots/"
    IVY2_LOCAL_DIR = os.path.join(os.path.expanduser("~"), ".ivy2", "local")
    DEFAULT_REPOSITORIES = ["ivy2local", "central"]

    ENV_CACHE = "JARFETCH_CACHE"
    ENV_LOG_LEVEL = "JARFETCH_LOG_LEVEL"
    DEFAULT_CACHE_DIR = os.path.join(os.path.expanduser("~"), ".jarfetch", "cache")
    REGISTRY_SUBDIR = "repositories"
    REGISTRY_ENTRY_FILE = "repository.yml"
    REGISTRY_DEFAULT_FILE = "default.yml"

    DEFAULT_PARALLEL = 6
    DEFAULT_MAX_ITERATIONS = 100
    DEFAULT_SCOPES = ("compile", "runtime")
    MAX_PARENT_DEPTH = 10

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    DOWNLOAD_CHUNK_SIZE = 64 * 1024
    USER_AGENT = "jarfetch/0.1"
    TEMP_SUFFIX = ".part"

    POM_NAMESPACE = "{http://maven.apache.org/POM/4.0.0}"
    MAVEN_METADATA_FILE = "maven-metadata.xml"
    IVY_DESCRIPTOR_FILE = "ivy.xml"
