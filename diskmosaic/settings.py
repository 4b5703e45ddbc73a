from __future__ import annotations
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Tuple

from .utils import nfc

logger = logging.getLogger(__name__)

BIG_FILE_THRESHOLD = 10_000_000

# Special mount roots that usually hold network, removable or sandboxed storage.
LINUX_MOUNT_PREFIXES = ("/run/user", "/media", "/mnt", "/snap")

CLOUD_FOLDER_NAMES = frozenset({
    "Dropbox",
    "OneDrive",
    "OneDrive - Personal",
    "Google Drive",
    "Google Drive (Shared)",
    "Box",
    "Nextcloud",
    "SynologyDrive",
    "pCloud Drive",
    "MEGA",
})

ICLOUD_PARTS = ("Library", "Mobile Documents", "com~apple~CloudDocs")


def _norm(path: str) -> str:
    return nfc(os.path.normpath(os.path.abspath(os.path.expanduser(path))))


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix.rstrip(os.sep) + os.sep)


@dataclass(frozen=True)
class PathFilter:
    """Immutable snapshot of the ignore configuration for one scan."""
    ignored: FrozenSet[str] = frozenset()
    ignore_cloud_mounts: bool = True
    home: Optional[str] = None
    mount_prefixes: Tuple[str, ...] = ()
    check_icloud: bool = False
    root: Optional[str] = None

    def is_path_ignored(self, path: str) -> bool:
        path = _norm(path)
        if path in self.ignored:
            return True
        if self.ignore_cloud_mounts and self._is_common_cloud_path(path):
            return True
        return False

    def _matches(self, path: str, prefix: str) -> bool:
        # A heuristic never hides the tree the user explicitly asked for.
        if self.root and _under(self.root, prefix):
            return False
        return _under(path, prefix)

    def _is_common_cloud_path(self, path: str) -> bool:
        for prefix in self.mount_prefixes:
            if self._matches(path, prefix):
                return True
        if not self.home or path == self.home or not _under(path, self.home):
            return False
        parts = os.path.relpath(path, self.home).split(os.sep)
        if self.check_icloud and tuple(parts[:3]) == ICLOUD_PARTS:
            return self._matches(path, os.path.join(self.home, *ICLOUD_PARTS))
        if parts[0] in CLOUD_FOLDER_NAMES:
            return self._matches(path, os.path.join(self.home, parts[0]))
        return False


@dataclass
class Settings:
    """In-memory user settings; persisting them is left to the embedding app."""
    ignored_paths: List[str] = field(default_factory=list)
    ignore_cloud_mounts: bool = True
    big_file_threshold: int = BIG_FILE_THRESHOLD
    dirty: bool = field(default=False, compare=False)

    def add_ignored_path(self, path: str) -> None:
        path = _norm(path)
        logger.info("add ignored path: %s", path)
        if path not in self.ignored_paths:
            self.ignored_paths.append(path)
            self.dirty = True

    def remove_ignored_path(self, path: str) -> bool:
        path = _norm(path)
        if path not in self.ignored_paths:
            return False
        logger.info("remove ignored path: %s", path)
        self.ignored_paths.remove(path)
        self.dirty = True
        return True

    def reset_big_file_threshold(self) -> None:
        self.big_file_threshold = BIG_FILE_THRESHOLD
        self.dirty = True

    def path_filter(self, root: Optional[str] = None, home: Optional[str] = None,
                    platform: Optional[str] = None) -> PathFilter:
        """Freeze the current settings for a scan of `root`.

        Cloud and mount heuristics that already contain the scan root are not
        applied, so scanning /mnt/data still descends into it.
        """
        platform = platform or sys.platform
        if home is None:
            home = os.path.expanduser("~")
        return PathFilter(
            ignored=frozenset(_norm(p) for p in self.ignored_paths),
            ignore_cloud_mounts=self.ignore_cloud_mounts,
            home=_norm(home) if home else None,
            mount_prefixes=LINUX_MOUNT_PREFIXES if platform.startswith("linux") else (),
            check_icloud=platform == "darwin",
            root=_norm(root) if root else None,
        )
