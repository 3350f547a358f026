"""Command-line entry point: option plumbing, dispatch and exit codes."""
from __future__ import annotations

import logging
import os
import sys
from typing import Dict, List, Optional

from .args import parse_args
from .common.logging_utils import configure_logging, extra_context, is_debug_enabled
from .config import load_config
from .constants import Classifiers, Constants, ExitCodes
from .context import build_context, default_cache_root
from .errors import (
    CacheWriteError,
    ConfigError,
    JarfetchError,
    RegistryError,
    RepositoryExists,
    TransportError,
)
from .fetch import project, resolve
from .graph import ResolutionStatus
from .registry import RepositoryRegistry
from .resolver import ResolveOptions
from .versioning.parser import parse_coordinate

logger = logging.getLogger(__name__)


def _log_level(args) -> str:
    if getattr(args, "LOG_LEVEL", None):
        return args.LOG_LEVEL
    if getattr(args, "QUIET", False):
        return "ERROR"
    verbose = getattr(args, "VERBOSE", 0) or 0
    if verbose >= 2:
        return "DEBUG"
    if verbose == 1:
        return "INFO"
    return os.environ.get(Constants.ENV_LOG_LEVEL, "WARNING")


def _pick(cli_value, config: Dict, key: str, default):
    """CLI value, else config value, else default."""
    if cli_value is not None:
        return cli_value
    if config.get(key) is not None:
        return config[key]
    return default


def _options(args, config: Dict) -> ResolveOptions:
    force_versions = {}
    for token in args.FORCE_VERSIONS:
        coordinate = parse_coordinate(token)
        force_versions[coordinate.module] = coordinate.version
    return ResolveOptions(
        offline=bool(args.OFFLINE or config.get("offline", False)),
        force=bool(args.FORCE),
        max_iterations=int(_pick(args.MAX_ITERATIONS, config, "max_iterations",
                                 Constants.DEFAULT_MAX_ITERATIONS)),
        keep_optional=bool(args.KEEP_OPTIONAL or config.get("keep_optional", False)),
        parallelism=int(_pick(args.PARALLEL, config, "parallel", Constants.DEFAULT_PARALLEL)),
        force_versions=force_versions,
    )


def _classifiers(args) -> List[Classifiers]:
    wanted = [Classifiers.MAIN]
    if getattr(args, "SOURCES", False):
        wanted.append(Classifiers.SOURCES)
    if getattr(args, "JAVADOC", False):
        wanted.append(Classifiers.JAVADOC)
    return wanted


def _exit_code_for(errors) -> ExitCodes:
    """Most specific exit code for a set of per-URL or per-coordinate errors."""
    if any(isinstance(e, CacheWriteError) for e in errors):
        return ExitCodes.FILE_ERROR
    if any(isinstance(e, TransportError) for e in errors):
        return ExitCodes.CONNECTION_ERROR
    return ExitCodes.RESOLUTION_ERROR


def _report_errors(title: str, errors: Dict[str, JarfetchError]) -> None:
    for key, err in errors.items():
        logger.error("%s %s: %s", title, key, err)


def run_resolve_command(args, config: Dict) -> ExitCodes:
    """Shared body of the ``fetch`` and ``classpath`` commands."""
    options = _options(args, config)
    if options.parallelism < 1:
        logger.error("--parallel must be at least 1")
        return ExitCodes.USAGE_ERROR
    context = build_context(cache=args.CACHE, repository_specs=args.REPOSITORIES, config=config)

    resolution = resolve(args.coordinates, context, options)
    if resolution.status is ResolutionStatus.NON_CONVERGED:
        logger.error("Resolution did not converge after %d iteration(s)", resolution.iterations)
        _report_errors("Error for", resolution.errors)
        return ExitCodes.NON_CONVERGENCE
    if resolution.status is ResolutionStatus.FAILED:
        _report_errors("Cannot resolve", resolution.errors)
        return ExitCodes.RESOLUTION_ERROR
    _report_errors("Cannot resolve", resolution.errors)

    paths, fetch_errors = project(resolution.graph, context, _classifiers(args), options)
    _report_errors("Cannot fetch", fetch_errors)

    separator = "\n" if args.COMMAND == "fetch" else os.pathsep
    if paths:
        print(separator.join(str(p) for p in paths))

    if fetch_errors:
        return _exit_code_for(fetch_errors.values())
    if resolution.errors:
        return _exit_code_for(resolution.errors.values())
    return ExitCodes.SUCCESS


def _describe(repo_id: str, repo) -> str:
    suffix = " (Ivy-like)" if repo.ivy_like else ""
    return f"{repo_id}: {repo.root}{suffix}"


def run_repository_command(args, config: Dict) -> ExitCodes:
    """Handle ``repository``: add entries, then print the requested listings."""
    cache_root = args.CACHE or default_cache_root(config)
    registry = RepositoryRegistry(cache_root)
    for spec in args.ADD:
        repo_id, sep, url = spec.partition(":")
        if not sep or not url:
            logger.error("Expected id:url, got %s", spec)
            return ExitCodes.USAGE_ERROR
        registry.add(repo_id, url, ivy_like=args.IVY_LIKE)

    if args.LIST:
        for repo_id, repo, _ in registry.list():
            print(_describe(repo_id, repo))
    if args.DEFAULT_LIST:
        known = registry.repository_map()
        for repo_id in registry.default(with_not_found=True):
            repo = known.get(repo_id)
            print(_describe(repo_id, repo) if repo is not None else f"{repo_id} (not found)")
    return ExitCodes.SUCCESS


def run(argv: Optional[List[str]] = None) -> ExitCodes:
    """Parse ``argv``, run the command and return its exit code."""
    args = parse_args(argv)
    configure_logging(_log_level(args), getattr(args, "LOG_FILE", None))
    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.COMMAND),
        )

    try:
        config = load_config(args.CONFIG)
        if args.COMMAND == "repository":
            return run_repository_command(args, config)
        return run_resolve_command(args, config)
    except RepositoryExists as e:
        logger.error("%s", e)
        return ExitCodes.FILE_ERROR
    except (ConfigError, RegistryError, ValueError) as e:
        logger.error("%s", e)
        return ExitCodes.USAGE_ERROR
    except JarfetchError as e:
        logger.error("%s", e)
        return _exit_code_for([e])


def main(argv: Optional[List[str]] = None) -> None:
    """Main function of the program."""
    sys.exit(run(argv).value)
