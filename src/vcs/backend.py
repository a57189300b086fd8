"""VCS backend contract and the behavior shared by all backends."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import FrozenSet

import semantic_version

from constants import Constants
from common.process import CommandLineTool

from .models import VcsInfo, VcsType
from .working_tree import WorkingTree

logger = logging.getLogger(__name__)


def _parse_loose_version(text: str):
    """Parse a version leniently, returning None for malformed input."""
    try:
        return semantic_version.Version.coerce((text or "").strip())
    except ValueError:
        return None


class VersionControlSystem(ABC):
    """Base class for VCS backends.

    Concrete backends declare their identity and implement working tree
    creation and updates; applicability checks and revision fixedness are
    shared here.
    """

    # Lookup order among applicable backends; higher comes first.
    priority: int = 0

    @property
    @abstractmethod
    def type(self) -> VcsType:
        """The VCS type this backend handles."""

    @property
    @abstractmethod
    def default_branch_name(self) -> str:
        """Name of the branch checked out by default."""

    @property
    @abstractmethod
    def latest_revision_names(self) -> FrozenSet[str]:
        """Symbolic names that always point to the latest revision."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(type={self.type.value!r}, priority={self.priority})"

    @abstractmethod
    def get_version(self) -> str:
        """Return the VCS tool's version string, or an empty string if undeterminable."""

    @abstractmethod
    def get_working_tree(self, vcs_directory: str) -> WorkingTree:
        """Return a working tree handle for an existing directory (not validated)."""

    @abstractmethod
    def _is_applicable_url_core(self, vcs_url: str) -> bool:
        """Backend specific URL check.

        Must only return True when the URL is almost unambiguous, e.g. it ends
        in ".git" for Git, never because "git" appears in a host name.
        """

    @abstractmethod
    def init_working_tree(self, target_dir: str, vcs: VcsInfo) -> WorkingTree:
        """Prepare target_dir for a checkout without fetching any files.

        Raises:
            VcsIOError: If the directory cannot be prepared.
        """

    @abstractmethod
    def update_working_tree(
        self,
        working_tree: WorkingTree,
        revision: str,
        path: str = "",
        recursive: bool = False,
    ) -> bool:
        """Check out revision, optionally limited to path and recursing into nested repositories.

        Returns:
            True on success, False if the revision could not be checked out.

        Raises:
            VcsIOError: On fatal I/O failures.
        """

    def is_applicable_type(self, vcs_type: VcsType) -> bool:
        return vcs_type == self.type

    def is_applicable_url(self, vcs_url: str) -> bool:
        """Return True if this backend can download from vcs_url."""
        if not isinstance(vcs_url, str):
            return False
        url = vcs_url.strip()
        if not url or url.lower().endswith(Constants.HTML_URL_SUFFIXES):
            return False
        try:
            return bool(self._is_applicable_url_core(url))
        except ValueError as exc:
            logger.debug("Treating malformed %s URL '%s' as not applicable: %s", self.type.value, url, exc)
            return False

    def is_available(self) -> bool:
        """Return True unless the backend needs a command-line tool that is not on PATH."""
        return not isinstance(self, CommandLineTool) or self.is_in_path()

    def is_fixed_revision(self, working_tree: WorkingTree, revision: str) -> bool:
        """Check whether revision likely names a fixed revision that does not move.

        Raises:
            VcsIOError: If the remote branches cannot be listed.
        """
        if not revision or not revision.strip():
            return False
        if revision in self.latest_revision_names:
            return False
        return revision not in working_tree.list_remote_branches()

    def is_at_least_version(self, expected_version: str) -> bool:
        """Check whether the VCS tool is at least of expected_version."""
        expected = _parse_loose_version(expected_version)
        if expected is None:
            raise ValueError(f"Invalid expected version '{expected_version}'.")
        actual = _parse_loose_version(self.get_version())
        if actual is None:
            return False
        return actual >= expected
