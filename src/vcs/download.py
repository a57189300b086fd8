"""Download engine: check out the sources of a package from its VCS.

The declared revision from package metadata is tried first when it is
usable; a revision guessed from the package version (by matching tag names)
serves as fallback, as registry metadata often points to commits that can no
longer be fetched while a tag for the version still exists.
"""
from __future__ import annotations

import logging
import os
from typing import List, Optional

from common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url

from .backend import VersionControlSystem
from .errors import DownloadError, Outcome, VcsIOError, attempt
from .models import Package, VcsInfo, VcsType
from .registry import VcsRegistry, default_registry
from .working_tree import WorkingTree

logger = logging.getLogger(__name__)


class Downloader:
    """Produces validated local checkouts for packages."""

    def __init__(self, registry: Optional[VcsRegistry] = None):
        self._registry = registry or default_registry()

    def resolve_backend(self, package: Package) -> Outcome[VersionControlSystem]:
        """Pick the backend by declared VCS type, falling back to the URL."""
        vcs = package.vcs_processed
        backend = None
        if vcs.type is not VcsType.UNKNOWN:
            backend = self._registry.for_type(vcs.type)
        elif vcs.url:
            backend = self._registry.for_url(vcs.url)
        if backend is None:
            return Outcome.not_applicable(
                f"No applicable VCS backend for type '{vcs.type.value}' and URL '{safe_url(vcs.url)}'."
            )
        return Outcome.success(backend)

    def download(
        self,
        package: Package,
        target_dir: str,
        allow_moving_revisions: bool = False,
        recursive: bool = True,
    ) -> WorkingTree:
        """Download the sources of package to target_dir.

        Args:
            package: Package whose processed VCS information to use
            target_dir: Directory to check out to, owned by this call
            allow_moving_revisions: Accept revisions whose target may change (branches, "latest" names)
            recursive: Also check out nested repositories (e.g. Git submodules)

        Returns:
            The working tree of the checkout.

        Raises:
            DownloadError: If no revision could be checked out.
        """
        resolved = self.resolve_backend(package)
        if not resolved.is_success:
            raise DownloadError(resolved.reason, vcs_type=package.vcs_processed.type,
                                target=package.vcs_processed.url)
        return download_with(resolved.value, package, target_dir, allow_moving_revisions, recursive)


def _declared_candidate(backend: VersionControlSystem, working_tree: WorkingTree, package: Package,
                        allow_moving_revisions: bool) -> Outcome[str]:
    revision = package.vcs_processed.revision
    if not revision or not revision.strip():
        return Outcome.not_applicable("No revision in package metadata.")
    if allow_moving_revisions:
        return Outcome.success(revision)
    fixed = attempt(backend.is_fixed_revision, working_tree, revision)
    if not fixed.is_success:
        return Outcome.not_applicable(f"Metadata has invalid {backend.type.value} revision '{revision}': {fixed.reason}")
    if not fixed.value:
        return Outcome.not_applicable(f"Revision '{revision}' is a moving revision.")
    return Outcome.success(revision)


def _guessed_candidate(backend: VersionControlSystem, working_tree: WorkingTree, package: Package) -> Outcome[str]:
    guessed = attempt(working_tree.guess_revision_name, package.name, package.version)
    if not guessed.is_success:
        return Outcome.not_applicable(
            f"No {backend.type.value} revision for version '{package.version}' found: {guessed.reason}"
        )
    if not guessed.value or not guessed.value.strip():
        return Outcome.not_applicable(f"Guessed an empty revision for version '{package.version}'.")
    return guessed


def revision_candidates(backend: VersionControlSystem, working_tree: WorkingTree, package: Package,
                        allow_moving_revisions: bool = False) -> List[str]:
    """Return the ordered, duplicate-free revisions to try for package."""
    candidates: List[str] = []

    declared = _declared_candidate(backend, working_tree, package, allow_moving_revisions)
    if declared.is_success:
        candidates.append(declared.value)
        logger.info("Adding %s revision '%s' (taken from package meta-data) as a candidate.",
                    backend.type.value, declared.value)
    else:
        logger.info(declared.reason)

    guessed = _guessed_candidate(backend, working_tree, package)
    if guessed.is_success:
        if guessed.value not in candidates:
            candidates.append(guessed.value)
            logger.info("Adding %s revision '%s' (guessed from version '%s') as a candidate.",
                        backend.type.value, guessed.value, package.version)
    else:
        logger.info(guessed.reason)

    return candidates


def _init_working_tree(backend: VersionControlSystem, target_dir: str, vcs: VcsInfo) -> Outcome[WorkingTree]:
    try:
        return Outcome.success(backend.init_working_tree(target_dir, vcs))
    except VcsIOError as exc:
        return Outcome.fatal(f"Failed to initialize {backend.type.value} working tree at '{target_dir}'.", exc)


def _update_working_tree(backend: VersionControlSystem, working_tree: WorkingTree, revision: str, path: str,
                         recursive: bool) -> Outcome[bool]:
    try:
        return Outcome.success(backend.update_working_tree(working_tree, revision, path, recursive))
    except VcsIOError as exc:
        return Outcome.fatal(
            f"{backend.type.value} failed to update the working tree at '{working_tree.working_dir}'.", exc
        )


def download_with(
    backend: VersionControlSystem,
    package: Package,
    target_dir: str,
    allow_moving_revisions: bool = False,
    recursive: bool = True,
) -> WorkingTree:
    """Download package to target_dir using the given backend; see Downloader.download."""
    # A package without a declared type gets the type of the backend picked by URL.
    vcs = package.vcs_processed.merge(VcsInfo(backend.type, "", ""))
    vcs_type = backend.type.value

    initialized = _init_working_tree(backend, target_dir, vcs)
    if initialized.is_fatal:
        raise DownloadError(initialized.reason, vcs_type=backend.type, target=target_dir,
                            cause=initialized.error) from initialized.error
    working_tree = initialized.value

    candidates = revision_candidates(backend, working_tree, package, allow_moving_revisions)
    if not candidates:
        raise DownloadError("Unable to determine a revision to checkout.", vcs_type=backend.type, target=target_dir)

    checked_out = None
    with Timer() as t:
        for index, revision in enumerate(candidates, start=1):
            logger.info("Trying revision candidate '%s' (%d of %d)...", revision, index, len(candidates))
            updated = _update_working_tree(backend, working_tree, revision, vcs.path, recursive)
            if updated.is_fatal:
                raise DownloadError(updated.reason, vcs_type=backend.type, target=target_dir,
                                    cause=updated.error) from updated.error
            if updated.value:
                checked_out = revision
                break
            logger.info("Checking out %s revision '%s' failed.", vcs_type, revision)

    if checked_out is None:
        raise DownloadError(f"{vcs_type} failed to download from URL '{safe_url(vcs.url)}'.",
                            vcs_type=backend.type, target=vcs.url)

    if vcs.path and vcs.path.strip():
        if not os.path.exists(os.path.join(working_tree.working_dir, vcs.path)):
            raise DownloadError(
                f"The {vcs_type} working directory at '{working_tree.working_dir}' does not contain the "
                f"requested path '{vcs.path}'.",
                vcs_type=backend.type, target=working_tree.working_dir,
            )

    logger.info("Successfully downloaded revision %s for package '%s'.", checked_out, package.id.to_coordinates())
    if is_debug_enabled(logger):
        logger.debug("Download finished", extra=extra_context(
            event="function_exit", component="download", action="download", target=safe_url(vcs.url),
            outcome="success", revision=checked_out, duration_ms=t.duration_ms()
        ))
    return working_tree


def download(
    package: Package,
    target_dir: str,
    allow_moving_revisions: bool = False,
    recursive: bool = True,
) -> WorkingTree:
    """Download package with the process-wide default registry."""
    return Downloader(default_registry()).download(package, target_dir, allow_moving_revisions, recursive)
