"""Version matching against VCS tag names.

Provides utilities for finding the tag (or other revision name) that most
likely corresponds to a released package version.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

VERSION_SEPARATORS: Tuple[str, ...] = ("-", "_", ".")


@dataclass(frozen=True)
class VersionVariant:
    """A spelling of a version together with the separators it uses."""
    name: str
    separators: Tuple[str, ...]


class VersionMatcher:
    """Handles matching of package versions against repository revision names.

    Tries a case-insensitive exact match first, then accepts names that embed
    the version (or a variant of it using a single separator kind) with only
    ignorable prefixes and suffixes, e.g. ``v1.2.0`` or ``foo-1.2.0`` for
    version ``1.2.0``.
    """

    def __init__(self, separators: Optional[Iterable[str]] = None):
        """Initialize version matcher.

        Args:
            separators: Characters that separate version components (defaults to "-", "_" and ".")
        """
        self.separators = tuple(separators) if separators else VERSION_SEPARATORS

    def version_variants(self, version: str) -> List[VersionVariant]:
        """Return the lowercase version plus one variant per separator kind."""
        lower = version.lower()
        variants = [VersionVariant(lower, self.separators)]
        for sep in self.separators:
            normalized = "".join(sep if c in self.separators else c for c in lower)
            variant = VersionVariant(normalized, (sep,))
            if variant not in variants:
                variants.append(variant)
        return variants

    def filter_version_names(
        self,
        version: str,
        names: Iterable[str],
        project: Optional[str] = None,
    ) -> List[str]:
        """Return the names that likely denote the given version.

        Args:
            version: Package version to match
            names: Candidate revision names, e.g. tag names
            project: Optional project name used to narrow down ambiguous results

        Returns:
            List of matching names, empty if nothing matched
        """
        candidates = list(names)
        if not version or not version.strip() or not candidates:
            return []

        # Full matches win right away.
        exact = [n for n in candidates if n.lower() == version.lower()]
        if exact:
            return exact

        variants = self.version_variants(version)
        matches = [n for n in candidates if any(self._embeds(n.lower(), v) for v in variants)]

        if len(matches) <= 1 or not project:
            return matches

        project_lower = project.lower()
        return [n for n in matches if project_lower in n.lower()]

    def _embeds(self, name: str, variant: VersionVariant) -> bool:
        """Check whether name contains variant with only ignorable prefix and suffix."""
        start = name.find(variant.name)
        while start != -1:
            end = start + len(variant.name)
            before = name[start - 1] if start > 0 else ""
            after = name[end] if end < len(name) else ""
            if self._is_ignorable_boundary(before, variant) and self._is_ignorable_boundary(after, variant):
                return True
            start = name.find(variant.name, start + 1)
        return False

    @staticmethod
    def _is_ignorable_boundary(char: str, variant: VersionVariant) -> bool:
        """A boundary may be empty or any character that does not continue the version."""
        if not char:
            return True
        return char not in variant.separators and not char.isdigit()
