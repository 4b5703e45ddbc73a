from __future__ import annotations
import logging
from typing import Optional

from .models import AnalysisResult, Node, Rect
from .treemap import hit_test, layout

logger = logging.getLogger(__name__)


class Navigator:
    """Zoom controller over an AnalysisResult's data_stack.

    Zooming in detaches a directory from its parent's children and pushes it;
    pop() gives it back. reselect_ancestor() only moves the view up and leaves
    the detached nodes out of the tree.
    """

    def __init__(self, result: AnalysisResult, max_depth: Optional[int] = None):
        self.result = result
        self._max_depth = max_depth

    @property
    def max_depth(self) -> Optional[int]:
        return self._max_depth

    @property
    def can_zoom_in(self) -> bool:
        return self._max_depth is None or self.result.depth < self._max_depth

    @property
    def current(self) -> Node:
        return self.result.current

    def layout(self, bounds: Rect) -> None:
        layout(self.current.children, bounds)

    def zoom_in(self, index: int) -> bool:
        if not self.can_zoom_in:
            return False
        parent = self.current
        if not parent.is_dir:
            logger.error("the current node is not a directory")
            return False
        children = parent.children
        if not 0 <= index < len(children):
            return False
        child = children[index]
        if not child.is_dir or child.bounds.is_empty:
            return False
        # swap-remove: order of the remaining siblings does not matter
        last = children.pop()
        if index < len(children):
            children[index] = last
        self.result.push(child)
        logger.debug("zoom in: %s", self.result.current_path())
        return True

    def zoom_in_at(self, x: float, y: float) -> bool:
        index = hit_test(self.current.children, x, y)
        if index is None:
            return False
        return self.zoom_in(index)

    def reselect_ancestor(self) -> bool:
        """Show the parent of the current directory without re-attaching it."""
        if self.result.depth < 2:
            return False
        dropped = self.result.selected_index(self.result.depth - 2)
        logger.debug("reselect %s, %d node(s) left detached",
                     self.result.current_path(), len(dropped))
        return True

    def pop(self) -> bool:
        """Go up one level, restoring the current directory into its parent."""
        node = self.result.pop()
        if node is None:
            return False
        logger.debug("zoom out: %s", self.result.current_path())
        return True

    def on_wheel(self, delta: float, hovered_index: Optional[int] = None) -> bool:
        if delta > 0:
            return self.reselect_ancestor()
        if delta < 0 and hovered_index is not None:
            return self.zoom_in(hovered_index)
        return False
