"""Working tree abstraction: one checkout on local disk for one VCS."""
from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Dict, Set

from .errors import VcsIOError
from .models import VcsInfo, VcsType
from .version_match import VersionMatcher

logger = logging.getLogger(__name__)


class WorkingTree(ABC):
    """A handle bound to one directory and one VCS type.

    Operations may change the directory's content but never the handle's identity.
    """

    def __init__(self, working_dir: str, vcs_type: VcsType):
        self._working_dir = os.path.abspath(working_dir)
        self._vcs_type = vcs_type

    @property
    def working_dir(self) -> str:
        return self._working_dir

    @property
    def vcs_type(self) -> VcsType:
        return self._vcs_type

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._working_dir!r}, {self._vcs_type.value!r})"

    @abstractmethod
    def is_valid(self) -> bool:
        """Return True if the directory is inside a working tree of this VCS.

        Raises:
            VcsIOError: If the check could not be performed.
        """

    @abstractmethod
    def get_remote_url(self) -> str:
        """Return the URL the working tree was cloned from, empty if there is none."""

    @abstractmethod
    def get_revision(self) -> str:
        """Return the currently checked out revision."""

    @abstractmethod
    def get_root_path(self) -> str:
        """Return the absolute root directory of the working tree."""

    @abstractmethod
    def list_remote_branches(self) -> Set[str]:
        """Return the names of all branches on the remote."""

    @abstractmethod
    def list_remote_tags(self) -> Set[str]:
        """Return the names of all tags on the remote."""

    def is_shallow(self) -> bool:
        """Return True if the working tree lacks parts of the history."""
        return False

    def get_nested(self) -> Dict[str, VcsInfo]:
        """Return nested repositories keyed by their path relative to the root."""
        return {}

    def get_info(self) -> VcsInfo:
        """Return the provenance of the working directory."""
        return VcsInfo(
            type=self._vcs_type,
            url=self.get_remote_url(),
            revision=self.get_revision(),
            path=self.get_path_to_root(self._working_dir),
        )

    def get_path_to_root(self, path: str) -> str:
        """Return path relative to the working tree root, POSIX-separated, empty for the root itself."""
        root = os.path.realpath(self.get_root_path())
        target = os.path.realpath(os.path.abspath(path))
        relative = os.path.relpath(target, root)
        if relative == os.curdir:
            return ""
        if relative == os.pardir or relative.startswith(os.pardir + os.sep):
            raise VcsIOError(f"Path '{path}' is not inside the working tree at '{root}'.")
        return relative.replace(os.sep, "/")

    def guess_revision_name(self, project: str, version: str) -> str:
        """Guess the revision name for a version from the remote tag names.

        Raises:
            VcsIOError: If no tag or more than one tag matches.
        """
        tags = sorted(self.list_remote_tags())
        names = VersionMatcher().filter_version_names(version, tags, project)
        if not names:
            raise VcsIOError(
                f"No matching tag found for version '{version}'. "
                "Please create a tag whose name contains the version."
            )
        if len(names) > 1:
            raise VcsIOError(
                f"Multiple matching tags found for version '{version}': {names}."
            )
        logger.debug("Guessed revision '%s' for version '%s' of '%s'.", names[0], version, project)
        return names[0]
