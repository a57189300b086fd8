"""Subversion backend driving the ``svn`` command-line tool."""
from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET
from typing import FrozenSet, Optional, Set

from constants import Constants
from common.logging_utils import safe_url
from common.process import CommandLineTool

from ..backend import VersionControlSystem
from ..errors import VcsIOError
from ..models import VcsInfo, VcsType
from ..working_tree import WorkingTree
from .url_hints import structural_vcs_type

logger = logging.getLogger(__name__)


def _info_field(xml_text: str, tag: str) -> Optional[str]:
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise VcsIOError(f"Unable to parse 'svn info' output: {exc}") from exc
    entry = root.find("entry")
    if entry is None:
        return None
    if tag == "revision":
        return entry.get("revision")
    node = entry.find(tag)
    return node.text if node is not None else None


class SubversionWorkingTree(WorkingTree):
    """Working copy of a Subversion repository."""

    def __init__(self, working_dir: str, vcs: "Subversion"):
        super().__init__(working_dir, VcsType.SUBVERSION)
        self._vcs = vcs
        self._repository_url = ""

    def run_svn(self, *args: str):
        return self._vcs.run(*args, "--non-interactive", cwd=self.working_dir)

    def _info(self, *args: str) -> str:
        return self.run_svn("info", "--xml", *args).require_success().stdout

    def is_valid(self) -> bool:
        if not os.path.isdir(self.working_dir):
            return False
        return self.run_svn("info").is_success

    def get_remote_url(self) -> str:
        if self._repository_url:
            return self._repository_url
        result = self.run_svn("info", "--xml")
        if not result.is_success:
            return ""
        return _info_field(result.stdout, "url") or ""

    def get_revision(self) -> str:
        return _info_field(self._info(), "revision") or ""

    def get_root_path(self) -> str:
        root = _info_field(self._info(), "wc-info/wcroot-abspath")
        if not root:
            raise VcsIOError(f"Unable to determine the working copy root of '{self.working_dir}'.")
        return root

    def _repository_root_url(self) -> str:
        if self._repository_url:
            return self._repository_url.rstrip("/")
        return (_info_field(self._info(), "repository/root") or "").rstrip("/")

    def set_repository_url(self, url: str) -> None:
        """Remember the repository URL for a working copy that has not been checked out yet."""
        self._repository_url = url

    def _list_dir(self, name: str = "") -> Set[str]:
        root = self._repository_root_url()
        if not root:
            return set()
        url = f"{root}/{name}" if name else root
        result = self._vcs.run("list", "--non-interactive", url)
        if not result.is_success:
            # Repositories without the standard layout simply have no such directory.
            return set()
        return {line.strip().rstrip("/") for line in result.stdout.splitlines() if line.strip()}

    def has_standard_layout(self) -> bool:
        """Return True if the repository uses the trunk/branches/tags layout."""
        return "trunk" in self._list_dir()

    def list_remote_branches(self) -> Set[str]:
        return self._list_dir("branches")

    def list_remote_tags(self) -> Set[str]:
        return self._list_dir("tags")


class Subversion(CommandLineTool, VersionControlSystem):
    """Backend for Subversion repositories."""

    command = "svn"
    version_args = ("--version", "--quiet")

    @property
    def type(self) -> VcsType:
        return VcsType.SUBVERSION

    @property
    def default_branch_name(self) -> str:
        return "trunk"

    @property
    def latest_revision_names(self) -> FrozenSet[str]:
        return frozenset({"HEAD"})

    def get_working_tree(self, vcs_directory: str) -> WorkingTree:
        return SubversionWorkingTree(vcs_directory, self)

    def _is_applicable_url_core(self, vcs_url: str) -> bool:
        hint = structural_vcs_type(vcs_url)
        if hint is not None:
            return hint is self.type
        if not Constants.PROBE_REMOTE_URLS or not vcs_url.lower().startswith(("http://", "https://", "file://")):
            return False
        try:
            return self.run("info", "--non-interactive", vcs_url).is_success
        except VcsIOError as exc:
            logger.debug("Querying '%s' with svn failed: %s", safe_url(vcs_url), exc)
            return False

    def init_working_tree(self, target_dir: str, vcs: VcsInfo) -> WorkingTree:
        try:
            os.makedirs(target_dir, exist_ok=True)
        except OSError as exc:
            raise VcsIOError(f"Unable to create directory '{target_dir}': {exc}") from exc
        working_tree = SubversionWorkingTree(target_dir, self)
        working_tree.set_repository_url(vcs.url)
        return working_tree

    def update_working_tree(
        self,
        working_tree: WorkingTree,
        revision: str,
        path: str = "",
        recursive: bool = False,
    ) -> bool:
        tree = working_tree if isinstance(working_tree, SubversionWorkingTree) else SubversionWorkingTree(
            working_tree.working_dir, self
        )
        base = tree.get_remote_url().rstrip("/")
        tags, branches = tree.list_remote_tags(), tree.list_remote_branches()
        if revision in tags:
            source, peg = f"{base}/tags/{revision}", "HEAD"
        elif revision in branches:
            source, peg = f"{base}/branches/{revision}", "HEAD"
        elif tree.has_standard_layout():
            source, peg = f"{base}/trunk", revision
        else:
            source, peg = base, revision

        target = tree.working_dir
        if path:
            source = f"{source}/{path.strip('/')}"
            target = os.path.join(tree.working_dir, path)

        args = ["checkout", "--non-interactive", "--force", f"{source}@{peg}", target]
        if not recursive:
            args.insert(1, "--ignore-externals")
        result = self.run(*args)
        if not result.is_success:
            logger.info("Could not check out revision '%s': %s", revision, result.stderr.strip())
        return result.is_success
