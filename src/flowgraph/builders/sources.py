from __future__ import annotations

import fnmatch
import json
import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from ..models import ComponentType

logger = logging.getLogger(__name__)

# Directory names searched per component type, relative to the workspace root.
DEFAULT_SEARCH_DIRS: dict[ComponentType, tuple[str, ...]] = {
    ComponentType.TASK: ("Tasks", "tasks"),
    ComponentType.SCHEMA: ("Schemas", "schemas"),
    ComponentType.VIEW: ("Views", "views"),
    ComponentType.FUNCTION: ("Functions", "functions"),
    ComponentType.EXTENSION: ("Extensions", "extensions"),
    ComponentType.WORKFLOW: ("Workflows", "workflows", "Flows", "flows"),
}

DEFAULT_EXCLUDE_PATTERNS = ("*.diagram.json",)
DEFAULT_EXCLUDE_DIRS = (".git", ".vscode", "node_modules")


@dataclass(frozen=True, slots=True)
class LocalRecord:
    """One parsed component file."""

    path: Path
    data: dict[str, Any]
    # Type implied by the directory the file was found under, if any.
    component_type: ComponentType | None = None


class ComponentSource(Protocol):
    def iter_records(self) -> Iterable[LocalRecord]: ...


@dataclass
class FileTreeSource:
    """Read component JSON files from the per-type directories of a workspace.

    Files are visited in sorted order so repeated runs see the same sequence.
    A file reachable through two search directories (case-insensitive file
    systems) is yielded once.
    """

    root: Path
    search_dirs: Mapping[ComponentType, tuple[str, ...]] = field(default_factory=lambda: dict(DEFAULT_SEARCH_DIRS))
    exclude_patterns: tuple[str, ...] = DEFAULT_EXCLUDE_PATTERNS
    exclude_dirs: tuple[str, ...] = DEFAULT_EXCLUDE_DIRS

    def __post_init__(self):
        self.root = Path(self.root)

    def _json_files(self, directory: Path) -> Iterable[Path]:
        for dirpath, dirnames, filenames in os.walk(directory):
            dirnames[:] = sorted(d for d in dirnames if d not in self.exclude_dirs)
            for name in sorted(filenames):
                if not name.lower().endswith(".json"):
                    continue
                if any(fnmatch.fnmatch(name, pat) for pat in self.exclude_patterns):
                    continue
                yield Path(dirpath) / name

    def iter_records(self) -> Iterable[LocalRecord]:
        # (device, inode) identifies a file however its path is spelled.
        seen: set[tuple[int, int]] = set()
        for component_type, dirs in self.search_dirs.items():
            for d in dirs:
                directory = self.root / d
                if not directory.is_dir():
                    continue
                for path in self._json_files(directory):
                    try:
                        st = path.stat()
                        if (st.st_dev, st.st_ino) in seen:
                            continue
                        seen.add((st.st_dev, st.st_ino))
                        data = json.loads(path.read_text(encoding="utf-8"))
                    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
                        logger.debug(f"Skipping unreadable component file {path}: {exc}")
                        continue
                    if not isinstance(data, dict):
                        logger.debug(f"Skipping {path}: top-level JSON is not an object")
                        continue
                    yield LocalRecord(path=path, data=data, component_type=component_type)
