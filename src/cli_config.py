"""Configuration layering for the CLI.

Precedence, highest first: CLI arguments, the YAML config file, built-in
defaults in Constants.
"""

from __future__ import annotations

import logging
import os

from constants import Constants, _load_yaml_config, apply_config
from common.logging_utils import configure_logging

logger = logging.getLogger(__name__)


def setup_logging(args) -> None:
    """Configure logging based on CLI arguments.

    Args:
        args: Parsed CLI arguments.
    """
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()

    configure_logging()

    level_name = str(getattr(args, "LOG_LEVEL", None) or "INFO").upper()
    logging.getLogger().setLevel(getattr(logging, level_name, logging.INFO))

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
        except OSError as exc:
            logger.warning("Unable to log to file %s: %s", log_file, exc)
            return
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def apply_cli_overrides(args) -> dict:
    """Load the config file, apply it, then apply CLI overrides on top.

    Args:
        args: Parsed CLI arguments.

    Returns:
        dict: The loaded configuration (empty if none was found).
    """
    cfg = _load_yaml_config(getattr(args, "CONFIG", None))
    apply_config(cfg)

    if getattr(args, "NO_PROBE", False):
        Constants.PROBE_REMOTE_URLS = False
    if getattr(args, "ALLOW_MOVING_REVISIONS", None) is not None:
        Constants.DEFAULT_ALLOW_MOVING_REVISIONS = bool(args.ALLOW_MOVING_REVISIONS)
    if getattr(args, "RECURSIVE", None) is not None:
        Constants.DEFAULT_RECURSIVE = bool(args.RECURSIVE)
    return cfg
