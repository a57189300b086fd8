"""Concrete VCS backends."""

import logging

from constants import Constants

from .git import Git
from .git_repo import GitRepo
from .mercurial import Mercurial
from .subversion import Subversion

logger = logging.getLogger(__name__)

# Registration order; it breaks ties between backends of equal priority.
_BACKEND_FACTORIES = {
    "git": Git,
    "gitrepo": GitRepo,
    "mercurial": Mercurial,
    "subversion": Subversion,
}

_ALIASES = {"repo": "gitrepo", "git-repo": "gitrepo", "hg": "mercurial", "svn": "subversion"}


def default_backends():
    """Return the statically configured backends, filtered by Constants.ENABLED_BACKENDS."""
    enabled = Constants.ENABLED_BACKENDS
    if not enabled:
        return [factory() for factory in _BACKEND_FACTORIES.values()]

    backends = []
    for name in enabled:
        key = _ALIASES.get(name.lower(), name.lower())
        factory = _BACKEND_FACTORIES.get(key)
        if factory is None:
            logger.warning("Ignoring unknown VCS backend '%s'.", name)
            continue
        backends.append(factory())
    return backends


__all__ = ["Git", "GitRepo", "Mercurial", "Subversion", "default_backends"]
