"""Structural classification of repository URLs.

Decides which VCS a URL belongs to from its shape alone, without contacting
the remote. Exactly one type (or none) is returned per URL, so backends that
consult this module never both claim the same URL.
"""
from __future__ import annotations

import re
from typing import List, Optional
from urllib.parse import urlsplit

from ..models import VcsType

SCP_LIKE_RE = re.compile(r"^[\w.-]+@[\w.-]+:(?!//)")


def _url_path(url: str) -> str:
    if SCP_LIKE_RE.match(url):
        return url.split(":", 1)[1]
    return urlsplit(url).path


def _segments(url: str) -> List[str]:
    return [s.lower() for s in _url_path(url).split("/")]


def is_manifest_url(url: str) -> bool:
    """Return True if the URL points to a repo tool manifest repository."""
    path = _url_path(url).rstrip("/").lower()
    if path.endswith(".git"):
        path = path[:-len(".git")]
    return path.rsplit("/", 1)[-1] in ("manifest", "manifests")


def _is_git_like(url: str) -> bool:
    lower = url.lower()
    if lower.startswith(("git://", "git+", "ssh://git@")) or SCP_LIKE_RE.match(url):
        return True
    return _url_path(url).rstrip("/").lower().endswith(".git")


def structural_vcs_type(url: str) -> Optional[VcsType]:
    """Return the VCS type the URL's shape points to, or None if it is inconclusive.

    Markers are checked in a fixed order; the first one found decides:
    manifest repositories, Git schemes and ".git" paths, Mercurial's "hg::"
    prefix, Subversion schemes, then "hg" and "svn" / "trunk" path segments.
    """
    lower = url.lower()
    if is_manifest_url(url):
        return VcsType.GIT_REPO
    if _is_git_like(url):
        return VcsType.GIT
    if lower.startswith("hg::"):
        return VcsType.MERCURIAL
    if lower.startswith(("svn://", "svn+")):
        return VcsType.SUBVERSION
    segments = _segments(url)
    if "hg" in segments[:-1]:
        return VcsType.MERCURIAL
    if "svn" in segments[:-1] or "trunk" in segments:
        return VcsType.SUBVERSION
    return None
