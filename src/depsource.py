"""DepSource - Dependency source acquisition and provenance

    Returns:
        int: Exit code
"""
import json
import logging
import os
import sys

from constants import Constants, ExitCodes
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from args import parse_args
from cli_config import apply_cli_overrides, setup_logging
from vcs.download import Downloader
from vcs.errors import DownloadError
from vcs.models import Identifier, Package, VcsInfo, VcsType
from vcs.registry import default_registry

logger = logging.getLogger(__name__)


def _print_json(data):
    sys.stdout.write(json.dumps(data, indent=2) + "\n")


def build_package(args):
    """Build the package description from the download arguments.

    Args:
        args (argparse.Namespace): Parsed CLI arguments.

    Returns:
        Package: Package with its processed VCS information.
    """
    vcs = VcsInfo(
        type=VcsType.for_name(args.VCS_TYPE) if args.VCS_TYPE else VcsType.UNKNOWN,
        url=args.URL,
        revision=args.REVISION,
        path=args.VCS_PATH,
    )
    pkg_id = Identifier(
        type=args.PACKAGE_TYPE,
        namespace=args.NAMESPACE,
        name=args.NAME,
        version=args.VERSION,
    )
    return Package(id=pkg_id, vcs_processed=vcs)


def run_download(args, registry):
    """Download the package described by args.

    Returns:
        int: Exit code
    """
    try:
        package = build_package(args)
    except ValueError as e:
        logger.error("Invalid package description: %s", e)
        return ExitCodes.FILE_ERROR.value

    if is_debug_enabled(logger):
        logger.debug("Download requested", extra=extra_context(
            event="function_entry", component="cli", action="download",
            target=safe_url(package.vcs_processed.url)
        ))

    try:
        working_tree = Downloader(registry).download(
            package,
            args.TARGET,
            allow_moving_revisions=Constants.DEFAULT_ALLOW_MOVING_REVISIONS,
            recursive=Constants.DEFAULT_RECURSIVE,
        )
    except DownloadError as e:
        logger.error("Download of '%s' failed: %s", package.id.to_coordinates(), e)
        return ExitCodes.DOWNLOAD_ERROR.value

    info = working_tree.get_info()
    _print_json({"working_dir": working_tree.working_dir, "vcs": info.to_dict()})
    return ExitCodes.SUCCESS.value


def run_info(args, registry):
    """Print the provenance of a local path.

    Returns:
        int: Exit code
    """
    info = registry.get_path_info(args.PATH)
    if info.is_empty:
        logger.warning("No VCS working tree found for '%s'.", args.PATH)
        return ExitCodes.NOT_FOUND.value
    data = info.to_dict()
    if args.NESTED:
        directory = args.PATH if os.path.isdir(args.PATH) else os.path.dirname(os.path.abspath(args.PATH))
        nested = registry.get_nested_info(directory)
        data["nested"] = {sub_path: sub_info.to_dict() for sub_path, sub_info in sorted(nested.items())}
    _print_json(data)
    return ExitCodes.SUCCESS.value


def run_detect(args, registry):
    """Print the VCS type handling a URL.

    Returns:
        int: Exit code
    """
    backend = registry.for_url(args.URL)
    if backend is None:
        logger.warning("No VCS backend is applicable to '%s'.", safe_url(args.URL))
        return ExitCodes.NOT_FOUND.value
    sys.stdout.write(backend.type.value + "\n")
    return ExitCodes.SUCCESS.value


def run_backends(_args, registry):
    """Print the registered backends in lookup order.

    Returns:
        int: Exit code
    """
    rows = []
    for backend in registry.backends:
        available = backend.is_available()
        rows.append({
            "type": backend.type.value,
            "priority": backend.priority,
            "available": available,
            "version": backend.get_version() if available else "",
        })
    _print_json(rows)
    return ExitCodes.SUCCESS.value


COMMANDS = {
    "download": run_download,
    "info": run_info,
    "detect": run_detect,
    "backends": run_backends,
}


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    setup_logging(args)
    apply_cli_overrides(args)

    if is_debug_enabled(logger):
        logger.debug("CLI start", extra=extra_context(
            event="function_entry", component="cli", action="main", target=args.COMMAND
        ))

    registry = default_registry()
    code = COMMANDS[args.COMMAND](args, registry)
    if is_debug_enabled(logger):
        logger.debug("CLI finished", extra=extra_context(
            event="function_exit", component="cli", action="main", target=args.COMMAND,
            exit_code=code, cache_stats=registry.cache_stats()
        ))
    sys.exit(code)


if __name__ == "__main__":
    main()
