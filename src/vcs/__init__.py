"""Version control abstraction and source acquisition.

Provides the backend contract (vcs.backend), a prioritized backend registry
with memoized URL and directory lookups (vcs.registry), a download engine
checking out package sources (vcs.download) and a provenance resolver for
local paths (vcs.provenance).
"""
