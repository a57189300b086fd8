"""GitRepo backend: checkouts composed by the ``repo`` tool from a manifest repository."""
from __future__ import annotations

import logging
import os
from typing import Dict, FrozenSet, Optional, Set

from common.process import CommandLineTool

from ..backend import VersionControlSystem
from ..errors import VcsIOError
from ..models import VcsInfo, VcsType
from ..working_tree import WorkingTree
from .git import Git, GitWorkingTree
from .url_hints import structural_vcs_type

logger = logging.getLogger(__name__)


def _find_repo_root(directory: str) -> Optional[str]:
    current = os.path.abspath(directory)
    while True:
        if os.path.isdir(os.path.join(current, ".repo")):
            return current
        parent = os.path.dirname(current)
        if parent == current:
            return None
        current = parent


class GitRepoWorkingTree(WorkingTree):
    """Working tree of a repo checkout; its provenance is the manifest repository."""

    def __init__(self, working_dir: str, vcs: "GitRepo", manifest_url: str = ""):
        super().__init__(working_dir, VcsType.GIT_REPO)
        self._vcs = vcs
        self.manifest_url = manifest_url

    def _manifest_tree(self) -> GitWorkingTree:
        return GitWorkingTree(os.path.join(self.get_root_path(), ".repo", "manifests"), Git())

    def is_valid(self) -> bool:
        return _find_repo_root(self.working_dir) is not None

    def get_root_path(self) -> str:
        root = _find_repo_root(self.working_dir)
        if root is None:
            raise VcsIOError(f"'{self.working_dir}' is not inside a repo checkout.")
        return root

    def get_remote_url(self) -> str:
        if _find_repo_root(self.working_dir) is None:
            return self.manifest_url
        return self._manifest_tree().get_remote_url()

    def get_revision(self) -> str:
        return self._manifest_tree().get_revision()

    def list_remote_branches(self) -> Set[str]:
        if _find_repo_root(self.working_dir) is None:
            # Nothing initialized yet; ask the manifest remote directly.
            return self._list_manifest_refs("--heads", "refs/heads/")
        return self._manifest_tree().list_remote_branches()

    def list_remote_tags(self) -> Set[str]:
        if _find_repo_root(self.working_dir) is None:
            return self._list_manifest_refs("--tags", "refs/tags/")
        return self._manifest_tree().list_remote_tags()

    def _list_manifest_refs(self, kind: str, prefix: str) -> Set[str]:
        result = Git().run("ls-remote", kind, self.manifest_url).require_success()
        names = set()
        for line in result.stdout.splitlines():
            parts = line.split()
            if len(parts) == 2 and parts[1].startswith(prefix) and not parts[1].endswith("^{}"):
                names.add(parts[1][len(prefix):])
        return names

    def get_nested(self) -> Dict[str, VcsInfo]:
        result = self._vcs.run(
            "forall", "-c", "echo $REPO_PATH $REPO_REMOTE_URL $REPO_LREV",
            cwd=self.get_root_path(),
        )
        if not result.is_success:
            return {}
        nested = {}
        for line in result.stdout.splitlines():
            parts = line.split()
            if len(parts) == 3:
                nested[parts[0]] = VcsInfo(VcsType.GIT, parts[1], parts[2])
        return nested


class GitRepo(CommandLineTool, VersionControlSystem):
    """Backend for checkouts managed by Google's repo tool."""

    command = "repo"
    priority = 50

    @property
    def type(self) -> VcsType:
        return VcsType.GIT_REPO

    @property
    def default_branch_name(self) -> str:
        return "master"

    @property
    def latest_revision_names(self) -> FrozenSet[str]:
        return frozenset({"HEAD"})

    def get_working_tree(self, vcs_directory: str) -> WorkingTree:
        return GitRepoWorkingTree(vcs_directory, self)

    def _is_applicable_url_core(self, vcs_url: str) -> bool:
        return structural_vcs_type(vcs_url) is self.type

    def init_working_tree(self, target_dir: str, vcs: VcsInfo) -> WorkingTree:
        try:
            os.makedirs(target_dir, exist_ok=True)
        except OSError as exc:
            raise VcsIOError(f"Unable to create directory '{target_dir}': {exc}") from exc
        # "repo init" needs the revision, so it runs as part of the update.
        return GitRepoWorkingTree(target_dir, self, manifest_url=vcs.url)

    def update_working_tree(
        self,
        working_tree: WorkingTree,
        revision: str,
        path: str = "",
        recursive: bool = False,
    ) -> bool:
        manifest_url = getattr(working_tree, "manifest_url", "") or working_tree.get_remote_url()
        init = self.run("init", "--no-repo-verify", "-u", manifest_url, "-b", revision,
                        cwd=working_tree.working_dir)
        if not init.is_success:
            logger.info("Could not initialize repo for revision '%s': %s", revision, init.stderr.strip())
            return False

        sync_args = ["sync", "--current-branch"]
        if recursive:
            sync_args.append("--fetch-submodules")
        if path:
            sync_args.append(path)
        sync = self.run(*sync_args, cwd=working_tree.working_dir)
        if not sync.is_success:
            logger.info("Could not sync repo for revision '%s': %s", revision, sync.stderr.strip())
        return sync.is_success
