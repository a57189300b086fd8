"""Tests for the download engine."""

import logging
import os

import pytest

from conftest import FakeBackend, FakeWorkingTree, make_package
from vcs.download import Downloader, download_with, revision_candidates
from vcs.errors import DownloadError, FailureKind, Outcome, VcsIOError, attempt
from vcs.models import VcsInfo, VcsType
from vcs.registry import VcsRegistry


def _backend(tags=("v1.2.0",), branches=("main",), branches_error=False, **kwargs):
    """Backend whose working trees know the given remote tags and branches."""
    return FakeBackend(
        tree_factory=lambda d: FakeWorkingTree(
            d, VcsType.GIT, tags=tags, branches=branches, branches_error=branches_error
        ),
        **kwargs,
    )


def _tried(backend):
    return [revision for revision, _, _ in backend.updates]


class TestRevisionCandidates:
    """Tests for revision_candidates."""

    def test_declared_then_guessed(self, tmp_path, package):
        backend = _backend()
        tree = backend.init_working_tree(str(tmp_path), package.vcs_processed)
        assert revision_candidates(backend, tree, package) == ["deadbeef", "v1.2.0"]

    def test_declared_equal_to_guessed_is_listed_once(self, tmp_path):
        pkg = make_package(revision="v1.2.0")
        backend = _backend()
        tree = backend.init_working_tree(str(tmp_path), pkg.vcs_processed)
        assert revision_candidates(backend, tree, pkg) == ["v1.2.0"]

    def test_moving_revision_is_skipped_by_default(self, tmp_path):
        pkg = make_package(revision="main")
        backend = _backend()
        tree = backend.init_working_tree(str(tmp_path), pkg.vcs_processed)
        assert revision_candidates(backend, tree, pkg) == ["v1.2.0"]

    def test_moving_revision_allowed_on_request(self, tmp_path):
        pkg = make_package(revision="main")
        backend = _backend()
        tree = backend.init_working_tree(str(tmp_path), pkg.vcs_processed)
        assert revision_candidates(backend, tree, pkg, allow_moving_revisions=True) == ["main", "v1.2.0"]
        assert tree.branch_calls == 0

    def test_latest_name_is_moving(self, tmp_path):
        pkg = make_package(revision="HEAD")
        backend = _backend()
        tree = backend.init_working_tree(str(tmp_path), pkg.vcs_processed)
        assert revision_candidates(backend, tree, pkg) == ["v1.2.0"]

    def test_io_error_while_checking_fixedness_drops_declared(self, tmp_path, package):
        backend = _backend(branches_error=True)
        tree = backend.init_working_tree(str(tmp_path), package.vcs_processed)
        assert revision_candidates(backend, tree, package) == ["v1.2.0"]

    def test_ambiguous_tags_drop_guess(self, tmp_path, package):
        backend = _backend(tags=("bar-1.2.0", "baz-1.2.0"))
        tree = backend.init_working_tree(str(tmp_path), package.vcs_processed)
        assert revision_candidates(backend, tree, package) == ["deadbeef"]

    def test_no_candidates(self, tmp_path):
        pkg = make_package(revision="")
        backend = _backend(tags=())
        tree = backend.init_working_tree(str(tmp_path), pkg.vcs_processed)
        assert revision_candidates(backend, tree, pkg) == []


class TestDownloadWith:
    """Tests for download_with."""

    def test_fixed_declared_revision_succeeds_first(self, tmp_path, package):
        backend = _backend(update_results={"deadbeef": True, "v1.2.0": True})
        tree = download_with(backend, package, str(tmp_path))
        assert _tried(backend) == ["deadbeef"]
        assert tree.get_revision() == "deadbeef"
        assert tree.working_dir == str(tmp_path)

    def test_falls_back_to_guessed_revision(self, tmp_path, package, caplog):
        backend = _backend(update_results={"deadbeef": False, "v1.2.0": True})
        with caplog.at_level(logging.INFO, logger="vcs.download"):
            tree = download_with(backend, package, str(tmp_path))
        assert _tried(backend) == ["deadbeef", "v1.2.0"]
        assert tree.get_revision() == "v1.2.0"
        assert "Trying revision candidate 'v1.2.0' (2 of 2)..." in caplog.text
        assert "Successfully downloaded revision v1.2.0 for package 'NPM::foo:1.2.0'." in caplog.text

    def test_duplicate_candidate_tried_once(self, tmp_path):
        pkg = make_package(revision="v1.2.0")
        backend = _backend(update_results={})
        with pytest.raises(DownloadError):
            download_with(backend, pkg, str(tmp_path))
        assert _tried(backend) == ["v1.2.0"]

    def test_no_candidates_never_updates(self, tmp_path):
        pkg = make_package(revision="")
        backend = _backend(tags=())
        with pytest.raises(DownloadError, match="Unable to determine a revision to checkout."):
            download_with(backend, pkg, str(tmp_path))
        assert backend.updates == []

    def test_all_candidates_fail(self, tmp_path, package):
        backend = _backend(update_results={})
        with pytest.raises(DownloadError, match="failed to download from URL") as excinfo:
            download_with(backend, package, str(tmp_path))
        assert excinfo.value.vcs_type is VcsType.GIT
        assert _tried(backend) == ["deadbeef", "v1.2.0"]

    def test_init_failure(self, tmp_path, package):
        cause = VcsIOError("disk full")
        backend = FakeBackend(init_error=cause)
        with pytest.raises(DownloadError, match="Failed to initialize Git working tree") as excinfo:
            download_with(backend, package, str(tmp_path))
        assert excinfo.value.cause is cause
        assert backend.updates == []

    def test_update_io_error_is_wrapped(self, tmp_path, package):
        class _Broken(FakeBackend):
            def update_working_tree(self, working_tree, revision, path="", recursive=False):
                self.updates.append((revision, path, recursive))
                raise VcsIOError("network unreachable")

        backend = _Broken(tree_factory=lambda d: FakeWorkingTree(d, tags=("v1.2.0",)))
        with pytest.raises(DownloadError, match="Git failed to update the working tree") as excinfo:
            download_with(backend, package, str(tmp_path))
        assert isinstance(excinfo.value.cause, VcsIOError)
        assert excinfo.value.__cause__ is excinfo.value.cause
        assert _tried(backend) == ["deadbeef"]

    def test_path_and_recursion_are_passed_through(self, tmp_path):
        pkg = make_package(path="sub/dir")
        backend = _backend(update_results={"deadbeef": True}, create_paths=("sub/dir",))
        download_with(backend, pkg, str(tmp_path), recursive=False)
        assert backend.updates == [("deadbeef", "sub/dir", False)]
        assert os.path.isdir(tmp_path / "sub" / "dir")

    def test_missing_sub_path_fails(self, tmp_path):
        pkg = make_package(path="missing")
        backend = _backend(update_results={"deadbeef": True})
        with pytest.raises(DownloadError, match="does not contain the requested path 'missing'"):
            download_with(backend, pkg, str(tmp_path))


class TestDownloader:
    """Tests for backend selection in Downloader."""

    def test_backend_by_declared_type(self, tmp_path, package):
        git = _backend(update_results={"deadbeef": True})
        hg = FakeBackend(VcsType.MERCURIAL, priority=100)
        Downloader(VcsRegistry([hg, git])).download(package, str(tmp_path))
        assert _tried(git) == ["deadbeef"]
        assert hg.updates == []

    def test_unknown_type_falls_back_to_url(self, tmp_path):
        pkg = make_package(vcs_type=VcsType.UNKNOWN, url="https://example.com/repo.git")
        git = _backend(update_results={"deadbeef": True}, url_check=lambda url: url.endswith(".git"))
        Downloader(VcsRegistry([git])).download(pkg, str(tmp_path))
        assert git.url_checks == ["https://example.com/repo.git"]
        assert _tried(git) == ["deadbeef"]
        [(_, vcs)] = git.init_requests
        assert vcs == VcsInfo(VcsType.GIT, "https://example.com/repo.git", "deadbeef")

    def test_declared_type_is_kept_for_init(self, tmp_path, package):
        git = _backend(update_results={"deadbeef": True})
        Downloader(VcsRegistry([git])).download(package, str(tmp_path))
        assert git.init_requests == [(str(tmp_path), package.vcs_processed)]

    def test_no_backend(self, tmp_path, package):
        registry = VcsRegistry([FakeBackend(VcsType.SUBVERSION)])
        with pytest.raises(DownloadError, match="No applicable VCS backend"):
            Downloader(registry).download(package, str(tmp_path))

    def test_unavailable_backend_is_not_used(self, tmp_path, package):
        registry = VcsRegistry([_backend(available=False)])
        with pytest.raises(DownloadError):
            Downloader(registry).download(package, str(tmp_path))


class TestOutcome:
    """Tests for Outcome and attempt."""

    def test_attempt_maps_io_error_to_not_applicable(self):
        def _fail():
            raise VcsIOError("no tags")

        outcome = attempt(_fail)
        assert outcome.failure is FailureKind.NOT_APPLICABLE
        assert not outcome.is_fatal
        assert outcome.reason == "no tags"
        assert attempt(len, "abc") == Outcome.success(3)

    def test_fatal_carries_error(self):
        cause = VcsIOError("disk full")
        outcome = Outcome.fatal("init failed", cause)
        assert outcome.is_fatal and not outcome.is_success
        assert outcome.error is cause
        assert outcome.value is None
