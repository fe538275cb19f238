"""Graph builders for local workspaces and runtime environments."""

from .local import (
    LocalBuildResult,
    LocalGraphBuilder,
    SkippedRecord,
    UnresolvedReference,
    add_reference_edges,
    unresolved_from_metadata,
)
from .runtime import ALL_TYPES, RuntimeBuildResult, RuntimeGraphBuilder, TypeFetchResult
from .sources import DEFAULT_SEARCH_DIRS, ComponentSource, FileTreeSource, LocalRecord

__all__ = [
    "LocalGraphBuilder",
    "LocalBuildResult",
    "SkippedRecord",
    "UnresolvedReference",
    "unresolved_from_metadata",
    "add_reference_edges",
    "RuntimeGraphBuilder",
    "RuntimeBuildResult",
    "TypeFetchResult",
    "ALL_TYPES",
    "ComponentSource",
    "FileTreeSource",
    "LocalRecord",
    "DEFAULT_SEARCH_DIRS",
]
