"""Provenance resolution: which VCS, URL, revision and path produced a local path."""
from __future__ import annotations

import dataclasses
import logging
import os
from typing import TYPE_CHECKING, Dict

from .errors import Outcome, VcsIOError
from .models import VcsInfo

if TYPE_CHECKING:
    from .registry import VcsRegistry

logger = logging.getLogger(__name__)


class ProvenanceResolver:
    """Answers where a file or directory came from, honoring nested repositories."""

    def __init__(self, registry: "VcsRegistry"):
        self._registry = registry

    def get_clone_info(self, working_dir: str) -> VcsInfo:
        """Return all VCS information about working_dir.

        Like get_path_info, this returns VcsInfo.EMPTY both when no VCS applies
        and when the VCS tool fails to report on the working tree.
        """
        working_tree = self._registry.for_directory(working_dir)
        if working_tree is None:
            return VcsInfo.EMPTY
        try:
            return working_tree.get_info()
        except VcsIOError as exc:
            logger.debug("Unable to get VCS information for '%s': %s", working_dir, exc)
            return VcsInfo.EMPTY

    def get_nested_info(self, working_dir: str) -> Dict[str, VcsInfo]:
        """Return the nested repositories of the working tree at working_dir, {} if there are none."""
        working_tree = self._registry.for_directory(working_dir)
        if working_tree is None:
            return {}
        try:
            return working_tree.get_nested()
        except VcsIOError as exc:
            logger.debug("Unable to list nested repositories of '%s': %s", working_dir, exc)
            return {}

    def resolve(self, path: str) -> Outcome[VcsInfo]:
        """Resolve the provenance of path.

        If path points into a nested repository (e.g. a Git submodule or a
        project of a GitRepo checkout), the nested repository's information is
        returned with the path relative to the nested root.
        """
        absolute = os.path.abspath(path)
        directory = absolute if os.path.isdir(absolute) else os.path.dirname(absolute)

        working_tree = self._registry.for_directory(directory)
        if working_tree is None:
            return Outcome.not_applicable(f"No working tree applies to '{directory}'.")

        try:
            info = working_tree.get_info()
            relative = working_tree.get_path_to_root(absolute)
        except VcsIOError as exc:
            logger.debug("Unable to get VCS information for '%s': %s", absolute, exc)
            return Outcome.not_applicable(str(exc))

        return Outcome.success(dataclasses.replace(info, path=relative))

    def get_path_info(self, path: str) -> VcsInfo:
        """Return all VCS information about a specific path, VcsInfo.EMPTY if no VCS applies."""
        outcome = self.resolve(path)
        return outcome.value if outcome.is_success else VcsInfo.EMPTY
