from __future__ import annotations
import logging
import queue
import threading
from dataclasses import dataclass
from typing import List, Optional

from .errors import ReceiverDropped, ScanAborted, ScanError
from .models import AnalysisResult
from .scanner import ScanProgress, Scanner
from .settings import PathFilter, Settings

logger = logging.getLogger(__name__)


# -------------------- Events --------------------
@dataclass(frozen=True)
class Progress:
    info: ScanProgress


@dataclass(frozen=True)
class Completed:
    result: AnalysisResult


@dataclass(frozen=True)
class Cancelled:
    pass


@dataclass(frozen=True)
class Failed:
    path: str
    message: str


# -------------------- Cancel token --------------------
class CancelToken:
    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def __call__(self):
        return self._event.is_set()


# -------------------- Channel --------------------
class Channel:
    """One-way worker -> consumer queue. Sending after close() raises ReceiverDropped."""

    def __init__(self):
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._closed = threading.Event()

    def send(self, event) -> None:
        if self._closed.is_set():
            raise ReceiverDropped()
        self._queue.put(event)

    def drain(self) -> List[object]:
        out = []
        while True:
            try:
                out.append(self._queue.get_nowait())
            except queue.Empty:
                return out

    def close(self):
        self._closed.set()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()


# -------------------- Worker --------------------
class ScanWorker(threading.Thread):
    def __init__(self, root: str, path_filter: PathFilter, channel: Channel, token: CancelToken,
                 source=None):
        super().__init__(name="diskmosaic-scan", daemon=True)
        self.root = root
        self.path_filter = path_filter
        self.channel = channel
        self.token = token
        self.source = source

    def run(self):
        def prog(info: ScanProgress):
            self.channel.send(Progress(info))

        try:
            scanner = Scanner(self.path_filter, cancel=self.token, progress=prog,
                              source=self.source)
            try:
                result = scanner.scan(self.root)
            except ReceiverDropped:
                raise
            except ScanAborted:
                logger.info("scan cancelled: %s", self.root)
                self.channel.send(Cancelled())
                return
            except ScanError as e:
                logger.error("scan failed: %s", e)
                self.channel.send(Failed(e.path, e.message))
                return
            except Exception as e:
                logger.exception("scan crashed: %s", self.root)
                self.channel.send(Failed(self.root, str(e)))
                return
            self.channel.send(Completed(result))
        except ReceiverDropped:
            logger.debug("receiver dropped, stopping scan of %s", self.root)


# -------------------- Session (consumer side) --------------------
IDLE = "idle"
RUNNING = "running"
DONE = "done"
CANCELLED = "cancelled"
FAILED = "failed"


class ScanSession:
    """Consumer handle: starts scans and polls their events without blocking.

    Only one scan is live at a time; starting another invalidates the old
    worker's channel.
    """

    def __init__(self, settings: Optional[Settings] = None, source=None):
        self.settings = settings or Settings()
        self.source = source
        self.state = IDLE
        self.result: Optional[AnalysisResult] = None
        self.last_progress: Optional[ScanProgress] = None
        self.error: Optional[Failed] = None
        self._channel: Optional[Channel] = None
        self._token: Optional[CancelToken] = None
        self._worker: Optional[ScanWorker] = None

    def start_scan(self, root: str) -> ScanWorker:
        self._drop_worker()
        self.result = None
        self.last_progress = None
        self.error = None
        # snapshot: later settings edits do not reach this scan
        path_filter = self.settings.path_filter(root)
        self._channel = Channel()
        self._token = CancelToken()
        self._worker = ScanWorker(root, path_filter, self._channel, self._token, self.source)
        self.state = RUNNING
        self._worker.start()
        return self._worker

    def cancel(self):
        if self.state == RUNNING and self._token:
            self._token.cancel()

    def discard(self):
        """Forget the current scan and its result."""
        self._drop_worker()
        self.result = None
        self.state = IDLE

    def _drop_worker(self):
        if self._token:
            self._token.cancel()
        if self._channel:
            self._channel.close()
        self._channel = None
        self._token = None
        self._worker = None

    @property
    def running(self) -> bool:
        return self.state == RUNNING

    def poll(self) -> List[object]:
        """Drain pending events; terminal events update state/result."""
        if self._channel is None:
            return []
        events = []
        for ev in self._channel.drain():
            if self.state != RUNNING:
                break
            if isinstance(ev, Completed) and self._token and self._token.cancelled:
                # cancel requested after the tree was built: report the cancel
                ev = Cancelled()
            if isinstance(ev, Progress):
                self.last_progress = ev.info
            elif isinstance(ev, Completed):
                self.result = ev.result
                self.state = DONE
            elif isinstance(ev, Cancelled):
                self.state = CANCELLED
            elif isinstance(ev, Failed):
                self.error = ev
                self.state = FAILED
            events.append(ev)
        if self.state != RUNNING:
            self._channel.close()
        return events

    def join(self, timeout: Optional[float] = None):
        # Only for non-interactive callers (tests, CLI shutdown).
        if self._worker is not None:
            self._worker.join(timeout)
