"""Tests for the behavior shared by all VCS backends."""

from unittest.mock import patch

import pytest

from conftest import FakeBackend, FakeWorkingTree
from constants import Constants
from vcs.backends import Git, GitRepo, Mercurial, Subversion, default_backends
from vcs.errors import VcsIOError
from vcs.models import VcsType
from vcs.registry import VcsRegistry

ALL_BACKENDS = [Git(), GitRepo(), Mercurial(), Subversion(), FakeBackend(url_check=lambda url: True)]

BLANK_OR_HTML = [
    "",
    "   ",
    "\t\n",
    "https://github.com/foo/bar/blob/master/README.html",
    "https://example.com/svn/docs/index.htm",
    "https://example.com/manifest/index.HTML",
]


class TestIsApplicableUrl:
    """Blank and HTML URLs are never applicable."""

    @pytest.mark.parametrize("backend", ALL_BACKENDS, ids=lambda b: type(b).__name__)
    @pytest.mark.parametrize("url", BLANK_OR_HTML)
    def test_blank_or_html_rejected(self, backend, url):
        assert backend.is_applicable_url(url) is False

    def test_core_check_not_reached_for_html(self):
        backend = FakeBackend(url_check=lambda url: True)
        backend.is_applicable_url("https://example.com/repo.html")
        assert backend.url_checks == []

    def test_non_string_rejected(self):
        assert FakeBackend(url_check=lambda url: True).is_applicable_url(None) is False

    def test_malformed_url_degrades_to_false(self):
        def _raise(url):
            raise ValueError("bad url")
        assert FakeBackend(url_check=_raise).is_applicable_url("http://[::1") is False


class TestStructuralUrlChecks:
    """URL heuristics of the concrete backends without contacting remotes."""

    @pytest.fixture(autouse=True)
    def structural_only(self):
        Constants.PROBE_REMOTE_URLS = False

    @pytest.mark.parametrize("url", [
        "https://github.com/oss-review-toolkit/ort.git",
        "git://example.com/foo",
        "git+https://example.com/foo",
        "git@github.com:foo/bar.git",
        "ssh://git@example.com/foo",
    ])
    def test_git_urls(self, url):
        assert Git().is_applicable_url(url)
        assert not Mercurial().is_applicable_url(url)
        assert not Subversion().is_applicable_url(url)
        assert not GitRepo().is_applicable_url(url)

    def test_git_host_name_alone_is_not_enough(self):
        assert not Git().is_applicable_url("https://gitlab.example.com/foo/bar")

    @pytest.mark.parametrize("url", [
        "https://android.googlesource.com/platform/manifest",
        "https://example.com/tools/manifest.git",
        "git@example.com:platform/manifests.git",
    ])
    def test_manifest_urls_belong_to_git_repo(self, url):
        assert GitRepo().is_applicable_url(url)
        assert not Git().is_applicable_url(url)

    def test_mercurial_urls(self):
        assert Mercurial().is_applicable_url("https://hg.mozilla.org/hg/mozilla-central")
        assert Mercurial().is_applicable_url("hg::https://example.com/repo")
        assert not Mercurial().is_applicable_url("https://hg.example.com/repo")

    def test_subversion_urls(self):
        assert Subversion().is_applicable_url("svn://svn.example.com/project")
        assert Subversion().is_applicable_url("https://example.com/svn/project/trunk")
        assert not Subversion().is_applicable_url("https://svn.example.com/project")

    @pytest.mark.parametrize("url,expected", [
        ("https://example.com/svn/project.git", VcsType.GIT),
        ("https://example.com/hg/project.git", VcsType.GIT),
        ("https://example.com/project/trunk/foo.git", VcsType.GIT),
        ("ssh://git@example.com/hg/project", VcsType.GIT),
        ("git@example.com:svn/trunk", VcsType.GIT),
        ("https://example.com/hg/manifest", VcsType.GIT_REPO),
        ("https://example.com/svn/manifests.git", VcsType.GIT_REPO),
        ("hg::https://example.com/svn/project", VcsType.MERCURIAL),
        ("https://example.com/hg/svn/project", VcsType.MERCURIAL),
        ("https://example.com/hg/project/trunk", VcsType.MERCURIAL),
        ("svn://example.com/hg/project", VcsType.SUBVERSION),
        ("svn+ssh://example.com/repos/project", VcsType.SUBVERSION),
        ("https://example.com/svn/hg", VcsType.SUBVERSION),
        ("https://example.com/project/trunk", VcsType.SUBVERSION),
        ("https://hg.example.com/repo", None),
        ("https://svn.example.com/project", None),
    ])
    def test_at_most_one_default_backend_claims_a_url(self, url, expected):
        claimed = [b.type for b in default_backends() if b.is_applicable_url(url)]
        assert claimed == ([] if expected is None else [expected])


class TestDefaultBackends:
    """The statically configured backends."""

    def test_all_backends_are_constructible(self):
        registry = VcsRegistry(default_backends())
        assert [b.type for b in registry.backends] == [
            VcsType.GIT, VcsType.GIT_REPO, VcsType.MERCURIAL, VcsType.SUBVERSION,
        ]


class TestIsFixedRevision:
    """Tests for is_fixed_revision."""

    @pytest.mark.parametrize("backend", ALL_BACKENDS, ids=lambda b: type(b).__name__)
    def test_latest_names_are_never_fixed(self, backend, tmp_path):
        tree = FakeWorkingTree(str(tmp_path), branches_error=True)
        for name in backend.latest_revision_names:
            assert backend.is_fixed_revision(tree, name) is False
        assert tree.branch_calls == 0

    def test_blank_is_not_fixed(self, tmp_path):
        tree = FakeWorkingTree(str(tmp_path))
        assert FakeBackend().is_fixed_revision(tree, "") is False
        assert FakeBackend().is_fixed_revision(tree, "  ") is False
        assert tree.branch_calls == 0

    def test_remote_branch_is_not_fixed(self, tmp_path):
        tree = FakeWorkingTree(str(tmp_path), branches={"main", "release/1.x"})
        backend = FakeBackend()
        assert backend.is_fixed_revision(tree, "main") is False
        assert backend.is_fixed_revision(tree, "release/1.x") is False
        assert backend.is_fixed_revision(tree, "deadbeef") is True

    def test_io_error_propagates(self, tmp_path):
        tree = FakeWorkingTree(str(tmp_path), branches_error=True)
        with pytest.raises(VcsIOError):
            FakeBackend().is_fixed_revision(tree, "deadbeef")


class TestIsAtLeastVersion:
    """Tests for is_at_least_version."""

    def test_compares_loosely(self):
        backend = FakeBackend(version="2.30")
        assert backend.is_at_least_version("2.30.0")
        assert backend.is_at_least_version("2.9")
        assert not backend.is_at_least_version("2.31")

    def test_malformed_actual_version_is_lower(self):
        assert not FakeBackend(version="").is_at_least_version("0.0.1")
        assert not FakeBackend(version="unknown").is_at_least_version("1.0")

    def test_invalid_expected_version(self):
        with pytest.raises(ValueError):
            FakeBackend(version="1.0").is_at_least_version("not a version")


class TestIsAvailable:
    """Tests for tool availability."""

    def test_command_line_backend_requires_tool_in_path(self):
        with patch("common.process.shutil.which", return_value=None):
            assert Git().is_available() is False
        with patch("common.process.shutil.which", return_value="/usr/bin/git"):
            assert Git().is_available() is True

    def test_applicable_type_is_exact(self):
        assert Git().is_applicable_type(VcsType.GIT)
        assert not Git().is_applicable_type(VcsType.GIT_REPO)
        assert GitRepo().is_applicable_type(VcsType.GIT_REPO)
