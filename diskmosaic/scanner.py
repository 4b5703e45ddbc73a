from __future__ import annotations
import logging
import os
import stat as statmod
import time
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

import psutil

from .errors import ScanAborted, ScanError
from .models import AnalysisResult, Node, ScanStats
from .settings import PathFilter
from .utils import allocated_bytes, clamp, on_disk_size

logger = logging.getLogger(__name__)

PROGRESS_INTERVAL = 0.10  # seconds between progress events

FILE = "file"
DIR = "dir"
SYMLINK = "symlink"
ERROR = "error"  # entry listed but unreadable


@dataclass(frozen=True)
class Entry:
    name: str
    path: str
    kind: str
    allocated: Optional[int]
    length: int

    @property
    def size(self) -> int:
        return on_disk_size(self.allocated, self.length)


@dataclass(frozen=True)
class ScanProgress:
    current_path: str
    files: int
    dirs: int
    bytes_scanned: int
    errors: int
    estimated_total: int = 0

    @property
    def fraction(self) -> float:
        if self.estimated_total <= 0:
            return 0.0
        return clamp(self.bytes_scanned / self.estimated_total, 0.0, 1.0)


ProgressCb = Callable[[ScanProgress], None]
CancelCb = Callable[[], bool]


class OsEntrySource:
    """Lists directories with os.scandir; symlinks are reported, never followed."""

    def list_dir(self, path: str) -> List[Entry]:
        with os.scandir(path) as it:
            return [self._entry(entry) for entry in it]

    def _entry(self, entry: os.DirEntry) -> Entry:
        try:
            st = entry.stat(follow_symlinks=False)
        except OSError:
            # vanished between listing and stat
            return Entry(name=entry.name, path=entry.path, kind=ERROR, allocated=None, length=0)
        mode = st.st_mode
        if statmod.S_ISLNK(mode):
            kind = SYMLINK
        elif statmod.S_ISDIR(mode):
            kind = DIR
        else:
            kind = FILE
        return Entry(name=entry.name, path=entry.path, kind=kind,
                     allocated=allocated_bytes(st), length=int(st.st_size))


def estimate_total_bytes(path: str) -> int:
    # Used space of the containing volume; only a rough ceiling for progress.
    try:
        return int(psutil.disk_usage(path).used)
    except OSError:
        return 0


class Scanner:
    """Depth-first sizing walk over one root.

    The filter is consulted for every entry before it is sized or entered.
    Failures below the root are counted in stats.errors and skipped.
    """

    def __init__(self, path_filter: Optional[PathFilter] = None,
                 cancel: Optional[CancelCb] = None,
                 progress: Optional[ProgressCb] = None,
                 source=None,
                 estimate_total: bool = True):
        self.path_filter = path_filter or PathFilter(ignore_cloud_mounts=False)
        self.cancel = cancel
        self.progress = progress
        self.source = source or OsEntrySource()
        self.estimate_total = estimate_total
        self.stats = ScanStats()
        self._estimated = 0
        self._last_emit = 0.0

    def scan(self, root: str) -> AnalysisResult:
        t0 = time.time()
        # list with the raw path; only stored names are NFC
        root = os.path.abspath(root)
        self.stats = ScanStats()
        if self.estimate_total:
            self._estimated = estimate_total_bytes(root)
        logger.info("scan started: %s", root)
        try:
            entries = list(self.source.list_dir(root))
        except NotADirectoryError:
            raise ScanError(root, "not a directory")
        except OSError as e:
            raise ScanError(root, e.strerror or str(e))

        children = self._collect(entries)
        node = Node(name=os.path.basename(root.rstrip(os.sep)) or root, is_dir=True,
                    size=sum(c.size for c in children), children=children)
        self.stats.dirs += 1
        self._emit(root, force=True)
        elapsed = time.time() - t0
        logger.info("scan finished: %s, %d files, %d dirs, %d errors in %.1fs",
                    root, self.stats.files, self.stats.dirs, self.stats.errors, elapsed)
        return AnalysisResult(root, node, stats=self.stats, elapsed_sec=elapsed)

    def _check_cancel(self):
        if self.cancel and self.cancel():
            raise ScanAborted()

    def _collect(self, entries: Iterable[Entry]) -> List[Node]:
        children: List[Node] = []
        for entry in entries:
            self._check_cancel()
            if self.path_filter.is_path_ignored(entry.path):
                self.stats.skipped += 1
                continue
            child = self._visit(entry)
            if child is not None:
                children.append(child)
        children.sort(key=lambda n: n.size, reverse=True)
        return children

    def _visit(self, entry: Entry) -> Optional[Node]:
        if entry.kind == ERROR:
            self.stats.errors += 1
            logger.debug("skipping unreadable entry %s", entry.path)
            return None
        if entry.kind == DIR:
            try:
                sub = list(self.source.list_dir(entry.path))
            except OSError as e:
                self.stats.errors += 1
                logger.debug("skipping %s: %s", entry.path, e)
                return None
            children = self._collect(sub)
            self.stats.dirs += 1
            self._emit(entry.path)
            return Node(name=entry.name, is_dir=True,
                        size=sum(c.size for c in children), children=children)

        size = entry.size
        self.stats.files += 1
        self.stats.bytes_scanned += size
        self._emit(entry.path)
        return Node(name=entry.name, is_dir=False, size=size)

    def _emit(self, current: str, force: bool = False):
        if not self.progress:
            return
        now = time.time()
        if not force and now - self._last_emit < PROGRESS_INTERVAL:
            return
        self._last_emit = now
        s = self.stats
        self.progress(ScanProgress(current, s.files, s.dirs, s.bytes_scanned, s.errors,
                                   self._estimated))


def scan_tree(root: str,
              path_filter: Optional[PathFilter] = None,
              cancel: Optional[CancelCb] = None,
              progress: Optional[ProgressCb] = None,
              source=None) -> AnalysisResult:
    return Scanner(path_filter, cancel=cancel, progress=progress, source=source).scan(root)
