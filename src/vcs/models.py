"""Data models for VCS provenance and package descriptions."""
from __future__ import annotations

import posixpath
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, ClassVar, Dict


class VcsType(Enum):
    """Enum for supported version control systems."""
    GIT = "Git"
    GIT_REPO = "GitRepo"
    MERCURIAL = "Mercurial"
    SUBVERSION = "Subversion"
    UNKNOWN = ""

    @classmethod
    def for_name(cls, name: str) -> "VcsType":
        """Return the type for a (case-insensitive) name or alias, UNKNOWN if not recognized."""
        key = (name or "").strip().lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        return _ALIASES.get(key, cls.UNKNOWN)

    def __str__(self) -> str:
        return self.value


_ALIASES = {
    "git-repo": VcsType.GIT_REPO,
    "repo": VcsType.GIT_REPO,
    "hg": VcsType.MERCURIAL,
    "svn": VcsType.SUBVERSION,
}


def _has_drive(path: str) -> bool:
    # "C:", "C:/x" or "C:\x", but not a relative name like "a:b".
    return (len(path) >= 2 and path[0].isalpha() and path[1] == ":"
            and (len(path) == 2 or path[2] in "/\\"))


@dataclass(frozen=True)
class VcsInfo:
    """Provenance of source code: VCS type, URL, revision and path within the repository.

    ``path`` is relative to the repository root and empty for the whole repository.
    """
    type: VcsType
    url: str
    revision: str
    path: str = ""

    EMPTY: ClassVar["VcsInfo"]

    def __post_init__(self):
        if self.path and (posixpath.isabs(self.path.replace("\\", "/")) or _has_drive(self.path)):
            raise ValueError(f"VCS path must be relative to the repository root, got '{self.path}'.")

    @property
    def is_empty(self) -> bool:
        return self == VcsInfo.EMPTY

    def merge(self, other: "VcsInfo") -> "VcsInfo":
        """Return a copy with blank fields filled from ``other``."""
        return replace(
            self,
            type=self.type if self.type is not VcsType.UNKNOWN else other.type,
            url=self.url or other.url,
            revision=self.revision or other.revision,
            path=self.path or other.path,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "url": self.url,
            "revision": self.revision,
            "path": self.path,
        }


VcsInfo.EMPTY = VcsInfo(type=VcsType.UNKNOWN, url="", revision="", path="")


@dataclass(frozen=True)
class Identifier:
    """Package coordinates."""
    type: str
    namespace: str
    name: str
    version: str

    def to_coordinates(self) -> str:
        return f"{self.type}:{self.namespace}:{self.name}:{self.version}"


@dataclass(frozen=True)
class Package:
    """Package description as handed over by metadata collaborators.

    ``vcs_processed`` is expected to be normalized already (shortcut URLs expanded etc.).
    """
    id: Identifier
    vcs_processed: VcsInfo = field(default=VcsInfo.EMPTY)

    @property
    def name(self) -> str:
        return self.id.name

    @property
    def version(self) -> str:
        return self.id.version
