from __future__ import annotations


class DiskMosaicError(Exception):
    pass


class ScanError(DiskMosaicError):
    """The scan root could not be read; no tree is produced."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class ScanAborted(DiskMosaicError):
    """Raised inside the traversal once the cancel token is set."""


class ReceiverDropped(DiskMosaicError):
    """The consumer closed the channel; the worker should stop quietly."""
