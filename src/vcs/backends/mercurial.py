"""Mercurial backend driving the ``hg`` command-line tool."""
from __future__ import annotations

import logging
import os
from typing import Dict, FrozenSet, Set

from constants import Constants
from common.logging_utils import safe_url
from common.process import CommandLineTool

from ..backend import VersionControlSystem
from ..errors import VcsIOError
from ..models import VcsInfo, VcsType
from ..working_tree import WorkingTree
from .url_hints import structural_vcs_type

logger = logging.getLogger(__name__)


class MercurialWorkingTree(WorkingTree):
    """Working tree of a Mercurial repository."""

    def __init__(self, working_dir: str, vcs: "Mercurial"):
        super().__init__(working_dir, VcsType.MERCURIAL)
        self._vcs = vcs

    def run_hg(self, *args: str):
        return self._vcs.run(*args, cwd=self.working_dir)

    def is_valid(self) -> bool:
        if not os.path.isdir(self.working_dir):
            return False
        return self.run_hg("root").is_success

    def get_remote_url(self) -> str:
        result = self.run_hg("paths", "default")
        return result.stdout.strip() if result.is_success else ""

    def get_revision(self) -> str:
        return self.run_hg("--debug", "id", "-i").require_success().stdout.strip().rstrip("+")

    def get_root_path(self) -> str:
        return self.run_hg("root").require_success().stdout.strip()

    def list_remote_branches(self) -> Set[str]:
        # Mercurial has no listing of remote names without pulling first.
        self.run_hg("pull", "--quiet").require_success()
        result = self.run_hg("branches", "--template", "{branch}\n").require_success()
        return {line.strip() for line in result.stdout.splitlines() if line.strip()}

    def list_remote_tags(self) -> Set[str]:
        self.run_hg("pull", "--quiet").require_success()
        result = self.run_hg("tags", "--template", "{tag}\n").require_success()
        return {line.strip() for line in result.stdout.splitlines() if line.strip() and line.strip() != "tip"}

    def get_nested(self) -> Dict[str, VcsInfo]:
        state_file = os.path.join(self.get_root_path(), ".hgsubstate")
        if not os.path.isfile(state_file):
            return {}
        nested = {}
        with open(state_file, encoding="utf-8") as fh:
            for line in fh:
                parts = line.split()
                if len(parts) != 2:
                    continue
                revision, sub_path = parts
                sub_tree = MercurialWorkingTree(os.path.join(self.get_root_path(), sub_path), self._vcs)
                nested[sub_path] = VcsInfo(VcsType.MERCURIAL, sub_tree.get_remote_url(), revision)
        return nested


class Mercurial(CommandLineTool, VersionControlSystem):
    """Backend for Mercurial repositories."""

    command = "hg"
    version_args = ("--version", "--quiet")

    @property
    def type(self) -> VcsType:
        return VcsType.MERCURIAL

    @property
    def default_branch_name(self) -> str:
        return "default"

    @property
    def latest_revision_names(self) -> FrozenSet[str]:
        return frozenset({"tip"})

    def get_working_tree(self, vcs_directory: str) -> WorkingTree:
        return MercurialWorkingTree(vcs_directory, self)

    def _is_applicable_url_core(self, vcs_url: str) -> bool:
        hint = structural_vcs_type(vcs_url)
        if hint is not None:
            return hint is self.type
        if not Constants.PROBE_REMOTE_URLS or not vcs_url.lower().startswith(("http://", "https://", "ssh://")):
            return False
        try:
            return self.run("identify", vcs_url).is_success
        except VcsIOError as exc:
            logger.debug("Querying '%s' with hg failed: %s", safe_url(vcs_url), exc)
            return False

    def init_working_tree(self, target_dir: str, vcs: VcsInfo) -> WorkingTree:
        try:
            os.makedirs(target_dir, exist_ok=True)
        except OSError as exc:
            raise VcsIOError(f"Unable to create directory '{target_dir}': {exc}") from exc

        url = vcs.url[len("hg::"):] if vcs.url.lower().startswith("hg::") else vcs.url
        working_tree = MercurialWorkingTree(target_dir, self)
        working_tree.run_hg("init").require_success()
        try:
            with open(os.path.join(target_dir, ".hg", "hgrc"), "w", encoding="utf-8") as fh:
                fh.write(f"[paths]\ndefault = {url}\n")
                if vcs.path:
                    fh.write("\n[extensions]\nsparse =\n")
        except OSError as exc:
            raise VcsIOError(f"Unable to configure Mercurial repository at '{target_dir}': {exc}") from exc

        if vcs.path:
            logger.info("Configuring Mercurial to do sparse checkout of path '%s'.", vcs.path)
            working_tree.run_hg("debugsparse", "--include", vcs.path).require_success()

        return working_tree

    def update_working_tree(
        self,
        working_tree: WorkingTree,
        revision: str,
        path: str = "",
        recursive: bool = False,
    ) -> bool:
        tree = working_tree if isinstance(working_tree, MercurialWorkingTree) else MercurialWorkingTree(
            working_tree.working_dir, self
        )
        pull = tree.run_hg("pull", "--quiet", "-r", revision)
        if not pull.is_success:
            logger.info("Could not pull revision '%s': %s", revision, pull.stderr.strip())
            return False
        # Subrepositories are updated along with their parent unless disabled.
        update_args = ["update", "--quiet", "-r", revision]
        if not recursive:
            update_args = ["--config", "subrepos.allowed=false", *update_args]
        update = tree.run_hg(*update_args)
        if not update.is_success:
            logger.info("Could not update to revision '%s': %s", revision, update.stderr.strip())
        return update.is_success
