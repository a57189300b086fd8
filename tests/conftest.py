"""Shared fixtures and test doubles for the VCS core."""

import os

import pytest

from constants import Constants
from vcs.backend import VersionControlSystem
from vcs.errors import VcsIOError
from vcs.models import Identifier, Package, VcsInfo, VcsType
from vcs.working_tree import WorkingTree


class FakeWorkingTree(WorkingTree):
    """Working tree double with scripted answers."""

    def __init__(self, working_dir, vcs_type=VcsType.GIT, root=None, url="", revision="",
                 branches=(), tags=(), valid=True, branches_error=False, revision_error=False,
                 nested=None):
        super().__init__(working_dir, vcs_type)
        self.root = os.path.abspath(root or working_dir)
        self.url = url
        self.revision = revision
        self.branches = set(branches)
        self.tags = set(tags)
        self.valid = valid
        self.branches_error = branches_error
        self.branch_calls = 0
        self.revision_error = revision_error
        self.nested = nested if isinstance(nested, Exception) else dict(nested or {})

    def is_valid(self):
        if isinstance(self.valid, Exception):
            raise self.valid
        return self.valid

    def get_remote_url(self):
        return self.url

    def get_revision(self):
        if self.revision_error:
            raise VcsIOError("revision not readable")
        return self.revision

    def get_root_path(self):
        return self.root

    def list_remote_branches(self):
        self.branch_calls += 1
        if self.branches_error:
            raise VcsIOError("remote not reachable")
        return set(self.branches)

    def list_remote_tags(self):
        return set(self.tags)

    def get_nested(self):
        if isinstance(self.nested, Exception):
            raise self.nested
        return dict(self.nested)


class FakeBackend(VersionControlSystem):
    """Backend double that records calls and returns scripted results."""

    def __init__(self, vcs_type=VcsType.GIT, priority=0, url_check=None, available=True,
                 tree_factory=None, update_results=None, init_error=None, latest=("HEAD",),
                 version="2.30.1", create_paths=()):
        self._type = vcs_type
        self.priority = priority
        self.url_check = url_check or (lambda url: False)
        self.available = available
        self.tree_factory = tree_factory
        self.update_results = dict(update_results or {})
        self.init_error = init_error
        self._latest = frozenset(latest)
        self.version = version
        self.create_paths = list(create_paths)
        self.url_checks = []
        self.tree_requests = []
        self.updates = []
        self.init_requests = []

    @property
    def type(self):
        return self._type

    @property
    def default_branch_name(self):
        return "main"

    @property
    def latest_revision_names(self):
        return self._latest

    def get_version(self):
        return self.version

    def is_available(self):
        return self.available

    def get_working_tree(self, vcs_directory):
        self.tree_requests.append(vcs_directory)
        if self.tree_factory is not None:
            return self.tree_factory(vcs_directory)
        return FakeWorkingTree(vcs_directory, self._type, valid=False)

    def _is_applicable_url_core(self, vcs_url):
        self.url_checks.append(vcs_url)
        return self.url_check(vcs_url)

    def init_working_tree(self, target_dir, vcs):
        self.init_requests.append((target_dir, vcs))
        if self.init_error is not None:
            raise self.init_error
        if self.tree_factory is not None:
            return self.tree_factory(target_dir)
        return FakeWorkingTree(target_dir, self._type, url=vcs.url)

    def update_working_tree(self, working_tree, revision, path="", recursive=False):
        self.updates.append((revision, path, recursive))
        ok = self.update_results.get(revision, False)
        if ok:
            working_tree.revision = revision
            for rel in self.create_paths:
                os.makedirs(os.path.join(working_tree.working_dir, rel), exist_ok=True)
        return ok


def make_package(name="foo", version="1.2.0", vcs_type=VcsType.GIT,
                 url="https://example.com/foo.git", revision="deadbeef", path=""):
    return Package(
        id=Identifier(type="NPM", namespace="", name=name, version=version),
        vcs_processed=VcsInfo(type=vcs_type, url=url, revision=revision, path=path),
    )


@pytest.fixture(autouse=True)
def restore_constants():
    """Undo any Constants overrides made by a test."""
    saved = {k: v for k, v in vars(Constants).items() if not k.startswith("__")}
    yield
    for key, value in saved.items():
        setattr(Constants, key, value)


@pytest.fixture
def package():
    return make_package()
