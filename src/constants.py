"""Constants used in the project."""

import logging
import os
from enum import Enum

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    DOWNLOAD_ERROR = 2
    NOT_FOUND = 3


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_CONFIG = "DEPSOURCE_CONFIG"
    ENV_LOG_LEVEL = "DEPSOURCE_LOG_LEVEL"
    CONFIG_FILE_NAMES = ["depsource.yml", "depsource.yaml"]

    # URLs pointing at documentation pages are never repository URLs.
    HTML_URL_SUFFIXES = (".html", ".htm")

    DEFAULT_ALLOW_MOVING_REVISIONS = False
    DEFAULT_RECURSIVE = True

    # Backends may contact a remote to decide whether they can handle a URL.
    PROBE_REMOTE_URLS = True
    # Ordered backend names to register; empty means all.
    ENABLED_BACKENDS = []

    GIT_FETCH_DEPTH = 50
    COMMAND_TIMEOUT_SEC = None


def _candidate_config_paths(path=None):
    """Return config file locations in lookup order."""
    paths = []
    if path:
        paths.append(path)
    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path:
        paths.append(env_path)
    for name in Constants.CONFIG_FILE_NAMES:
        paths.append(os.path.join(os.getcwd(), name))
    for name in Constants.CONFIG_FILE_NAMES:
        paths.append(os.path.join(os.path.expanduser("~"), ".config", "depsource", name))
    return paths


def _load_yaml_config(path=None):
    """Load the first existing YAML config file.

    Args:
        path (str, optional): Explicit config path, checked first.

    Returns:
        dict: Parsed configuration, empty if no usable file was found.
    """
    import yaml  # pylint: disable=import-outside-toplevel

    for candidate in _candidate_config_paths(path):
        if not os.path.isfile(candidate):
            continue
        try:
            with open(candidate, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Failed to read config file %s: %s", candidate, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring config file %s: top level is not a mapping", candidate)
            return {}
        logger.debug("Loaded config file %s", candidate)
        return data
    return {}


def apply_config(cfg):
    """Apply recognized keys of a loaded config onto Constants.

    Args:
        cfg (dict): Configuration as returned by _load_yaml_config.
    """
    if not isinstance(cfg, dict):
        return

    vcs = cfg.get("vcs")
    if isinstance(vcs, dict):
        if "probe_remote_urls" in vcs:
            Constants.PROBE_REMOTE_URLS = bool(vcs["probe_remote_urls"])
        backends = vcs.get("backends")
        if isinstance(backends, list):
            Constants.ENABLED_BACKENDS = [str(b) for b in backends]
        if "git_fetch_depth" in vcs:
            try:
                Constants.GIT_FETCH_DEPTH = int(vcs["git_fetch_depth"])
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid vcs.git_fetch_depth: %r", vcs["git_fetch_depth"])
        if "command_timeout" in vcs:
            try:
                Constants.COMMAND_TIMEOUT_SEC = float(vcs["command_timeout"])
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid vcs.command_timeout: %r", vcs["command_timeout"])

    download = cfg.get("download")
    if isinstance(download, dict):
        if "allow_moving_revisions" in download:
            Constants.DEFAULT_ALLOW_MOVING_REVISIONS = bool(download["allow_moving_revisions"])
        if "recursive" in download:
            Constants.DEFAULT_RECURSIVE = bool(download["recursive"])
