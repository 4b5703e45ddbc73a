from __future__ import annotations
from typing import List, Optional, Sequence, Tuple

from .models import Node, Rect

# (item index, scaled area)
Cell = Tuple[int, float]

def _worst(row: Sequence[Cell], w: float) -> float:
    if not row:
        return float("inf")
    areas = [a for _, a in row]
    s = sum(areas)
    rmax = max(areas)
    rmin = min(areas)
    w2 = w * w
    return max((w2 * rmax) / (s * s), (s * s) / (w2 * rmin))

def _layout_row(row: Sequence[Cell], rect: Rect, out: List[Rect]) -> Rect:
    """Place a row along the shorter side of rect and return what is left."""
    s = sum(a for _, a in row)
    if rect.w >= rect.h:
        # column on the left edge, cells stacked top to bottom
        w = min(s / rect.h, rect.w) if rect.h > 0 else 0.0
        y = rect.y
        for k, (i, a) in enumerate(row):
            h = a / w if w > 0 else 0.0
            if k == len(row) - 1:
                h = rect.y + rect.h - y
            out[i] = Rect(rect.x, y, w, h)
            y += h
        return Rect(rect.x + w, rect.y, max(0.0, rect.w - w), rect.h)

    h = min(s / rect.w, rect.h) if rect.w > 0 else 0.0
    x = rect.x
    for k, (i, a) in enumerate(row):
        w = a / h if h > 0 else 0.0
        if k == len(row) - 1:
            w = rect.x + rect.w - x
        out[i] = Rect(x, rect.y, w, h)
        x += w
    return Rect(rect.x, rect.y + h, rect.w, max(0.0, rect.h - h))

def squarify(sizes: Sequence[float], bounds: Rect) -> List[Rect]:
    """Squarified treemap rectangles for `sizes`, in input order.

    Sizes are expected largest first. A row keeps growing while its worst
    aspect ratio does not get worse, ties included. Sizes <= 0 get an empty
    rect at the bounds origin.
    """
    out = [Rect(bounds.x, bounds.y, 0.0, 0.0) for _ in sizes]
    cells = [(i, float(s)) for i, s in enumerate(sizes) if s > 0]
    if not cells or bounds.is_empty:
        return out
    scale = bounds.area / sum(s for _, s in cells)
    cells = [(i, s * scale) for i, s in cells]

    remaining = Rect(bounds.x, bounds.y, bounds.w, bounds.h)
    row: List[Cell] = []
    k = 0
    while k < len(cells):
        short = min(remaining.w, remaining.h)
        candidate = row + [cells[k]]
        if not row or short <= 0 or _worst(candidate, short) <= _worst(row, short):
            row = candidate
            k += 1
        else:
            remaining = _layout_row(row, remaining, out)
            row = []
    if row:
        _layout_row(row, remaining, out)
    return out

def layout(items: Sequence[Node], bounds: Rect) -> None:
    """Write each item's bounds for a treemap of `items` inside `bounds`.

    `items` may be in any order (zooming reorders a directory's children);
    squarify runs over a stable largest-first ordering and the rects are
    written back to the original nodes, so indices stay valid for hit_test.
    """
    order = sorted(range(len(items)), key=lambda i: items[i].size, reverse=True)
    rects = squarify([max(0, items[i].size) for i in order], bounds)
    for i, r in zip(order, rects):
        items[i].bounds = r

def visible_indices(items: Sequence[Node]) -> List[int]:
    return [i for i, n in enumerate(items) if not n.bounds.is_empty]

def hit_test(items: Sequence[Node], x: float, y: float) -> Optional[int]:
    for i, n in enumerate(items):
        if n.bounds.contains(x, y):
            return i
    return None
