"""Argument parsing for jarfetch."""

import argparse

from .constants import Constants


def _add_common_options(parser):
    """Options shared by the fetch and classpath commands."""
    parser.add_argument("coordinates",
                        metavar="org:name:version",
                        help="Seed coordinates to resolve",
                        nargs="+")
    parser.add_argument("--keep-optional",
                        dest="KEEP_OPTIONAL",
                        help="Follow optional dependencies",
                        action="store_true")
    parser.add_argument("-c", "--offline",
                        dest="OFFLINE",
                        help="Only use cached files; fail on cache misses",
                        action="store_true")
    parser.add_argument("-f", "--force",
                        dest="FORCE",
                        help="Re-download files even if they are cached",
                        action="store_true")
    parser.add_argument("-N", "--max-iterations",
                        dest="MAX_ITERATIONS",
                        help=f"Maximum number of resolution iterations; negative for unlimited "
                             f"(default: {Constants.DEFAULT_MAX_ITERATIONS})",
                        action="store",
                        type=int)
    parser.add_argument("-r", "--repository",
                        dest="REPOSITORIES",
                        help="Repository id, URL or ivy:URL (repeatable, comma separated)",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("-n", "--parallel",
                        dest="PARALLEL",
                        help=f"Maximum number of parallel downloads (default: {Constants.DEFAULT_PARALLEL})",
                        action="store",
                        type=int)
    parser.add_argument("--force-version",
                        dest="FORCE_VERSIONS",
                        metavar="org:name:version",
                        help="Force the version of a module (repeatable)",
                        action="append",
                        type=str,
                        default=[])


def _add_global_options(parser):
    parser.add_argument("-C", "--cache",
                        dest="CACHE",
                        help="Cache directory (default: $JARFETCH_CACHE or ~/.jarfetch/cache)",
                        action="store",
                        type=str)
    parser.add_argument("--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Only log errors.",
                        action="store_true")
    parser.add_argument("-v", "--verbose",
                        dest="VERBOSE",
                        help="Increase verbosity (repeatable)",
                        action="count",
                        default=0)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)


def build_parser():
    """Build the top-level parser with its sub-commands."""
    parser = argparse.ArgumentParser(
        prog="jarfetch",
        description="Resolve and fetch JVM dependencies from Maven and Ivy repositories",
        add_help=True,
    )
    subparsers = parser.add_subparsers(dest="COMMAND", metavar="command")
    subparsers.required = True

    fetch = subparsers.add_parser("fetch", help="Fetch artifacts and print their paths, one per line")
    _add_global_options(fetch)
    _add_common_options(fetch)
    fetch.add_argument("-S", "--sources",
                       dest="SOURCES",
                       help="Fetch source artifacts",
                       action="store_true")
    fetch.add_argument("-D", "--javadoc",
                       dest="JAVADOC",
                       help="Fetch javadoc artifacts",
                       action="store_true")

    classpath = subparsers.add_parser("classpath", help="Print the classpath of the resolved artifacts")
    _add_global_options(classpath)
    _add_common_options(classpath)

    repository = subparsers.add_parser("repository", help="Manage named repositories")
    _add_global_options(repository)
    repository.add_argument("-a", "--add",
                            dest="ADD",
                            metavar="id:url",
                            help="Register a repository",
                            action="append",
                            type=str,
                            default=[])
    repository.add_argument("-L", "--list",
                            dest="LIST",
                            help="List registered repositories",
                            action="store_true")
    repository.add_argument("-l", "--default-list",
                            dest="DEFAULT_LIST",
                            help="List default repositories",
                            action="store_true")
    repository.add_argument("--ivy-like",
                            dest="IVY_LIKE",
                            help="Repositories added with --add use the Ivy layout",
                            action="store_true")
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
