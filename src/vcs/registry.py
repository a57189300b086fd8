"""Backend registry: which VCS backend (or working tree) applies to a type, URL or directory."""
from __future__ import annotations

import logging
import os
import threading
from typing import Dict, Iterable, Optional, Tuple

from common.logging_utils import extra_context, is_debug_enabled, safe_url

from .backend import VersionControlSystem
from .cache import LookupCache
from .errors import VcsIOError
from .models import VcsInfo, VcsType
from .provenance import ProvenanceResolver
from .working_tree import WorkingTree

logger = logging.getLogger(__name__)


class VcsRegistry:
    """Prioritized, immutable collection of VCS backends with memoized lookups.

    Backends are ordered by descending priority; backends of equal priority
    keep their registration order so resolution stays reproducible.
    """

    def __init__(self, backends: Iterable[VersionControlSystem]):
        self._backends: Tuple[VersionControlSystem, ...] = tuple(
            sorted(backends, key=lambda b: -b.priority)
        )
        self._url_cache: LookupCache[VersionControlSystem] = LookupCache()
        self._dir_cache: LookupCache[WorkingTree] = LookupCache()
        self._provenance = ProvenanceResolver(self)

    @property
    def backends(self) -> Tuple[VersionControlSystem, ...]:
        return self._backends

    def cache_stats(self) -> Dict[str, Dict[str, int]]:
        """Return the statistics of the URL and directory lookup caches."""
        return {"urls": self._url_cache.stats(), "directories": self._dir_cache.stats()}

    def for_type(self, vcs_type: VcsType) -> Optional[VersionControlSystem]:
        """Return the first available backend handling vcs_type, or None."""
        for backend in self._backends:
            if backend.is_available() and backend.is_applicable_type(vcs_type):
                return backend
        return None

    def for_url(self, vcs_url: str) -> Optional[VersionControlSystem]:
        """Return the first available backend that can download from vcs_url, or None.

        Results (including misses) are cached per URL for the process lifetime,
        as applicability checks may need network access.
        """
        found, backend = self._url_cache.lookup(vcs_url)
        if found:
            if is_debug_enabled(logger):
                logger.debug("URL cache hit", extra=extra_context(
                    event="cache_hit", component="registry", action="for_url", target=safe_url(vcs_url)
                ))
            return backend
        return self._url_cache.store(vcs_url, self._resolve_url(vcs_url))

    def _resolve_url(self, vcs_url: str) -> Optional[VersionControlSystem]:
        for backend in self._backends:
            if backend.is_available() and backend.is_applicable_url(vcs_url):
                logger.debug("URL '%s' is handled by %s.", safe_url(vcs_url), backend.type.value)
                return backend
        logger.debug("No VCS backend is applicable to URL '%s'.", safe_url(vcs_url))
        return None

    def for_directory(self, vcs_directory: str) -> Optional[WorkingTree]:
        """Return the working tree of the first backend that validates vcs_directory, or None.

        Results (including misses) are cached per absolute path for the process
        lifetime. Symbolic links are not resolved, so different spellings of the
        same directory are cached independently.
        """
        absolute_dir = os.path.abspath(vcs_directory)
        found, working_tree = self._dir_cache.lookup(absolute_dir)
        if found:
            if is_debug_enabled(logger):
                logger.debug("Directory cache hit", extra=extra_context(
                    event="cache_hit", component="registry", action="for_directory", target=absolute_dir
                ))
            return working_tree
        return self._dir_cache.store(absolute_dir, self._resolve_directory(absolute_dir))

    def _resolve_directory(self, absolute_dir: str) -> Optional[WorkingTree]:
        for backend in self._backends:
            if not backend.is_available():
                continue
            try:
                working_tree = backend.get_working_tree(absolute_dir)
                if working_tree.is_valid():
                    return working_tree
            except VcsIOError as exc:
                logger.debug(
                    "Exception while validating %s working tree, treating it as non-applicable: %s",
                    backend.type.value, exc,
                    extra=extra_context(
                        event="validation_failed", component="registry", action="for_directory",
                        target=absolute_dir, outcome="not_applicable"
                    ),
                )
        return None

    def get_clone_info(self, working_dir: str) -> VcsInfo:
        """Return the VCS information of working_dir, or VcsInfo.EMPTY."""
        return self._provenance.get_clone_info(working_dir)

    def get_path_info(self, path: str) -> VcsInfo:
        """Return the VCS information of path, relative to its nearest enclosing working tree."""
        return self._provenance.get_path_info(path)

    def get_nested_info(self, working_dir: str) -> Dict[str, VcsInfo]:
        """Return the nested repositories of the working tree at working_dir by path."""
        return self._provenance.get_nested_info(working_dir)


_default_registry: Optional[VcsRegistry] = None
_default_registry_lock = threading.Lock()


def default_registry() -> VcsRegistry:
    """Return the process-wide registry over the statically configured backends."""
    global _default_registry  # pylint: disable=global-statement
    with _default_registry_lock:
        if _default_registry is None:
            from .backends import default_backends  # pylint: disable=import-outside-toplevel
            _default_registry = VcsRegistry(default_backends())
        return _default_registry


def reset_default_registry() -> None:
    """Forget the process-wide registry, e.g. after changing the enabled backends."""
    global _default_registry  # pylint: disable=global-statement
    with _default_registry_lock:
        _default_registry = None
