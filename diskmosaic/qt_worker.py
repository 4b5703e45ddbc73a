from __future__ import annotations
from typing import Optional

from PySide6.QtCore import QObject, QTimer, Signal

from .settings import Settings
from .worker import Cancelled, Completed, Failed, Progress, ScanSession

POLL_INTERVAL_MS = 50


class ScanPoller(QObject):
    """Runs a ScanSession for a Qt UI, polling it from a QTimer on the GUI thread."""
    progress = Signal(object)   # ScanProgress
    done = Signal(object)       # AnalysisResult
    cancelled = Signal()
    error = Signal(str, str)    # path, message

    def __init__(self, settings: Optional[Settings] = None, parent=None, source=None):
        super().__init__(parent)
        self.session = ScanSession(settings, source=source)
        self.timer = QTimer(self)
        self.timer.setInterval(POLL_INTERVAL_MS)
        self.timer.timeout.connect(self.poll)

    def start(self, root: str):
        self.session.start_scan(root)
        self.timer.start()

    def cancel(self):
        self.session.cancel()

    def poll(self):
        for ev in self.session.poll():
            if isinstance(ev, Progress):
                self.progress.emit(ev.info)
            elif isinstance(ev, Completed):
                self.done.emit(ev.result)
            elif isinstance(ev, Cancelled):
                self.cancelled.emit()
            elif isinstance(ev, Failed):
                self.error.emit(ev.path, ev.message)
        if not self.session.running:
            self.timer.stop()
