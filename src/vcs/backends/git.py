"""Git backend driving the ``git`` command-line tool."""
from __future__ import annotations

import logging
import os
from typing import Dict, FrozenSet, List, Set

from constants import Constants
from common.logging_utils import safe_url
from common.process import CommandLineTool

from ..backend import VersionControlSystem
from ..errors import VcsIOError
from ..models import VcsInfo, VcsType
from ..working_tree import WorkingTree
from .url_hints import structural_vcs_type

logger = logging.getLogger(__name__)

# Never use configured credential helpers or prompts when querying remotes.
_NO_PROMPT_ARGS = ("-c", "credential.helper=", "-c", "core.askpass=echo")


def _parse_ls_remote(output: str, prefix: str) -> Set[str]:
    names = set()
    for line in output.splitlines():
        parts = line.split()
        if len(parts) != 2 or not parts[1].startswith(prefix):
            continue
        name = parts[1][len(prefix):]
        # Annotated tags are listed twice, once peeled.
        if name.endswith("^{}"):
            name = name[:-3]
        names.add(name)
    return names


class GitWorkingTree(WorkingTree):
    """Working tree of a Git repository."""

    def __init__(self, working_dir: str, vcs: "Git"):
        super().__init__(working_dir, VcsType.GIT)
        self._vcs = vcs

    def run_git(self, *args: str):
        return self._vcs.run(*args, cwd=self.working_dir)

    def is_valid(self) -> bool:
        if not os.path.isdir(self.working_dir):
            return False
        result = self.run_git("rev-parse", "--is-inside-work-tree")
        return result.is_success and result.stdout.strip() == "true"

    def is_shallow(self) -> bool:
        result = self.run_git("rev-parse", "--is-shallow-repository")
        return result.is_success and result.stdout.strip() == "true"

    def get_remote_url(self) -> str:
        result = self.run_git("remote", "get-url", "origin")
        if not result.is_success:
            # No "origin" remote, e.g. for a purely local repository.
            return ""
        return result.stdout.strip()

    def get_revision(self) -> str:
        return self.run_git("rev-parse", "HEAD").require_success().stdout.strip()

    def get_root_path(self) -> str:
        return self.run_git("rev-parse", "--show-toplevel").require_success().stdout.strip()

    def list_remote_branches(self) -> Set[str]:
        result = self.run_git(*_NO_PROMPT_ARGS, "ls-remote", "--heads", "origin").require_success()
        return _parse_ls_remote(result.stdout, "refs/heads/")

    def list_remote_tags(self) -> Set[str]:
        result = self.run_git(*_NO_PROMPT_ARGS, "ls-remote", "--tags", "origin").require_success()
        return _parse_ls_remote(result.stdout, "refs/tags/")

    def get_nested(self) -> Dict[str, VcsInfo]:
        result = self.run_git("submodule", "status", "--recursive")
        if not result.is_success:
            return {}
        root = self.get_root_path()
        nested = {}
        for line in result.stdout.splitlines():
            parts = line.strip().lstrip("+-U").split()
            if len(parts) < 2:
                continue
            sub_path = parts[1]
            sub_tree = GitWorkingTree(os.path.join(root, sub_path), self._vcs)
            try:
                nested[sub_path] = sub_tree.get_info()
            except VcsIOError as exc:
                logger.debug("Skipping uninitialized submodule '%s': %s", sub_path, exc)
        return nested


class Git(CommandLineTool, VersionControlSystem):
    """Backend for Git repositories."""

    command = "git"
    priority = 100

    @property
    def type(self) -> VcsType:
        return VcsType.GIT

    @property
    def default_branch_name(self) -> str:
        return "master"

    @property
    def latest_revision_names(self) -> FrozenSet[str]:
        return frozenset({"HEAD", "@"})

    def get_working_tree(self, vcs_directory: str) -> WorkingTree:
        return GitWorkingTree(vcs_directory, self)

    def _is_applicable_url_core(self, vcs_url: str) -> bool:
        hint = structural_vcs_type(vcs_url)
        if hint is not None:
            return hint is self.type
        if not Constants.PROBE_REMOTE_URLS or not vcs_url.lower().startswith(("http://", "https://", "file://")):
            return False
        try:
            return self.run(*_NO_PROMPT_ARGS, "ls-remote", vcs_url).is_success
        except VcsIOError as exc:
            logger.debug("Querying '%s' with git failed: %s", safe_url(vcs_url), exc)
            return False

    def init_working_tree(self, target_dir: str, vcs: VcsInfo) -> WorkingTree:
        try:
            os.makedirs(target_dir, exist_ok=True)
        except OSError as exc:
            raise VcsIOError(f"Unable to create directory '{target_dir}': {exc}") from exc

        working_tree = GitWorkingTree(target_dir, self)
        working_tree.run_git("init", "--quiet").require_success()
        working_tree.run_git("remote", "add", "origin", _strip_git_prefix(vcs.url)).require_success()

        if vcs.path:
            logger.info("Configuring Git to do sparse checkout of path '%s'.", vcs.path)
            working_tree.run_git("config", "core.sparseCheckout", "true").require_success()
            sparse_file = os.path.join(target_dir, ".git", "info", "sparse-checkout")
            try:
                os.makedirs(os.path.dirname(sparse_file), exist_ok=True)
                with open(sparse_file, "w", encoding="utf-8") as fh:
                    fh.write(vcs.path.strip("/") + "\n")
                    # Licenses at the root apply to the sub-path, too.
                    for pattern in ("/LICENSE*", "/LICENCE*", "/COPYING*"):
                        fh.write(pattern + "\n")
            except OSError as exc:
                raise VcsIOError(f"Unable to write sparse-checkout file: {exc}") from exc

        return working_tree

    def update_working_tree(
        self,
        working_tree: WorkingTree,
        revision: str,
        path: str = "",
        recursive: bool = False,
    ) -> bool:
        tree = working_tree if isinstance(working_tree, GitWorkingTree) else GitWorkingTree(
            working_tree.working_dir, self
        )
        if not (self._fetch_and_checkout_shallow(tree, revision) or self._fetch_and_checkout_full(tree, revision)):
            return False

        if recursive:
            result = tree.run_git("submodule", "update", "--init", "--recursive")
            if not result.is_success:
                logger.warning("Updating submodules of '%s' failed: %s", tree.working_dir, result.stderr.strip())
                return False
        return True

    def _fetch_and_checkout_shallow(self, tree: GitWorkingTree, revision: str) -> bool:
        args: List[str] = [*_NO_PROMPT_ARGS, "fetch", "--quiet"]
        if Constants.GIT_FETCH_DEPTH > 0:
            args += ["--depth", str(Constants.GIT_FETCH_DEPTH)]
        args += ["origin", revision]
        result = tree.run_git(*args)
        if not result.is_success:
            logger.info("Could not fetch only revision '%s': %s", revision, result.stderr.strip())
            return False
        return tree.run_git("checkout", "--quiet", "FETCH_HEAD").is_success

    def _fetch_and_checkout_full(self, tree: GitWorkingTree, revision: str) -> bool:
        logger.info("Falling back to fetching all branches and tags.")
        fetch_args = [*_NO_PROMPT_ARGS, "fetch", "--quiet", "--tags", "origin",
                      "+refs/heads/*:refs/remotes/origin/*"]
        if tree.is_shallow():
            fetch_args.insert(fetch_args.index("fetch") + 1, "--unshallow")
        if not tree.run_git(*fetch_args).is_success:
            return False
        for ref in (revision, f"origin/{revision}"):
            if tree.run_git("checkout", "--quiet", ref).is_success:
                return True
        return False


def _strip_git_prefix(url: str) -> str:
    """Turn pip-style "git+https://..." URLs into URLs git understands."""
    return url[len("git+"):] if url.startswith("git+") else url
