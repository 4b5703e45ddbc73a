from __future__ import annotations
import os
import unicodedata

BLOCK_UNIT = 512  # st_blocks is always counted in 512-byte units

def format_bytes(num: int) -> str:
    if num < 0:
        return str(num)
    units = ["B", "KB", "MB", "GB", "TB", "PB"]
    x = float(num)
    for u in units:
        if x < 1024.0 or u == units[-1]:
            return f"{x:.2f} {u}" if u != "B" else f"{int(x)} {u}"
        x /= 1024.0
    return f"{x:.2f} PB"

def clamp(v, lo, hi):
    return lo if v < lo else hi if v > hi else v

def nfc(text: str) -> str:
    return unicodedata.normalize("NFC", text)

def allocated_bytes(st: os.stat_result):
    """Physical allocation of a stat result, or None where the platform has no st_blocks."""
    blocks = getattr(st, "st_blocks", None)
    if blocks is None:
        return None
    return int(blocks) * BLOCK_UNIT

def on_disk_size(allocated, length: int) -> int:
    """Size a file occupies on disk.

    Sparse files (allocation smaller than the logical length) count as 0.
    Without allocation info the logical length is used.
    """
    if allocated is None:
        return max(0, int(length))
    if allocated < length:
        return 0
    return int(allocated)
