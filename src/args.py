"""Argument parsing functionality for DepSource."""

import argparse

from vcs.models import VcsType


def _add_common_arguments(parser):
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML)",
                        action="store",
                        type=str)
    parser.add_argument("--no-probe",
                        dest="NO_PROBE",
                        help="Never contact remotes to decide which VCS handles a URL.",
                        action="store_true")


def parse_args(argv=None):
    """Parses the arguments passed to the program.

    Args:
        argv (list, optional): Arguments to parse instead of sys.argv.

    Returns:
        argparse.Namespace: Parsed arguments.
    """
    parser = argparse.ArgumentParser(
        prog="depsource",
        description="DepSource - Dependency source acquisition and provenance",
        add_help=True,
    )
    _add_common_arguments(parser)

    sub = parser.add_subparsers(dest="COMMAND", required=True)

    dl = sub.add_parser("download", help="Check out the sources of a package.")
    dl.add_argument("-u", "--url",
                    dest="URL",
                    help="VCS URL of the package",
                    action="store", type=str, required=True)
    dl.add_argument("-t", "--type",
                    dest="VCS_TYPE",
                    help="VCS type, i.e: Git, GitRepo, Mercurial, Subversion (default: detect from URL)",
                    action="store", type=str, default="")
    dl.add_argument("-r", "--revision",
                    dest="REVISION",
                    help="Revision declared in the package metadata",
                    action="store", type=str, default="")
    dl.add_argument("-p", "--path",
                    dest="VCS_PATH",
                    help="Path of the package within the repository",
                    action="store", type=str, default="")
    dl.add_argument("-n", "--name",
                    dest="NAME",
                    help="Package name",
                    action="store", type=str, required=True)
    dl.add_argument("-v", "--version",
                    dest="VERSION",
                    help="Package version",
                    action="store", type=str, required=True)
    dl.add_argument("--namespace",
                    dest="NAMESPACE",
                    help="Package namespace, e.g. a Maven groupId or npm scope",
                    action="store", type=str, default="")
    dl.add_argument("--package-type",
                    dest="PACKAGE_TYPE",
                    help="Package type used in the coordinates, e.g. NPM",
                    action="store", type=str, default="Unknown")
    dl.add_argument("-o", "--target",
                    dest="TARGET",
                    help="Directory to check out to",
                    action="store", type=str, required=True)
    dl.add_argument("--allow-moving-revisions",
                    dest="ALLOW_MOVING_REVISIONS",
                    help="Accept revisions that may move, e.g. branch names",
                    action="store_true",
                    default=None)
    dl.add_argument("--no-recursive",
                    dest="RECURSIVE",
                    help="Do not check out nested repositories",
                    action="store_false",
                    default=None)

    info = sub.add_parser("info", help="Show the VCS provenance of a local path.")
    info.add_argument("PATH", help="File or directory", type=str)
    info.add_argument("--nested",
                      dest="NESTED",
                      help="Also list the repositories nested in the working tree containing PATH",
                      action="store_true")

    detect = sub.add_parser("detect", help="Show which VCS handles a URL.")
    detect.add_argument("URL", help="Repository URL", type=str)

    sub.add_parser("backends", help="List the registered VCS backends.")

    args = parser.parse_args(argv)
    if getattr(args, "VCS_TYPE", None):
        vcs_type = VcsType.for_name(args.VCS_TYPE)
        if vcs_type is VcsType.UNKNOWN:
            parser.error(f"unknown VCS type '{args.VCS_TYPE}'")
    return args
