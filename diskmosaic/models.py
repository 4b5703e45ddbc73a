from __future__ import annotations
import os
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .utils import nfc


@dataclass
class Rect:
    x: float = 0.0
    y: float = 0.0
    w: float = 0.0
    h: float = 0.0

    @property
    def area(self) -> float:
        return self.w * self.h

    @property
    def is_empty(self) -> bool:
        return self.w <= 0 or self.h <= 0

    def contains(self, px: float, py: float) -> bool:
        if self.is_empty:
            return False
        return self.x <= px < self.x + self.w and self.y <= py < self.y + self.h


@dataclass(eq=False)
class Node:
    """File or directory in the scanned tree.

    A directory's size is the sum of its children and is fixed when its
    subtree finishes scanning. `bounds` is rewritten on every layout pass.
    """
    name: str
    is_dir: bool
    size: int = 0
    children: List["Node"] = field(default_factory=list)
    bounds: Rect = field(default_factory=Rect)

    def __post_init__(self):
        self.name = nfc(self.name)

    @classmethod
    def file(cls, name: str, size: int) -> "Node":
        return cls(name=name, is_dir=False, size=size)

    @classmethod
    def directory(cls, name: str, children: Optional[List["Node"]] = None) -> "Node":
        kids = list(children or [])
        kids.sort(key=lambda n: n.size, reverse=True)
        return cls(name=name, is_dir=True, size=sum(n.size for n in kids), children=kids)

    def iter_all(self) -> Iterable["Node"]:
        yield self
        for child in self.children:
            yield from child.iter_all()

    def child_named(self, name: str) -> Optional["Node"]:
        name = nfc(name)
        for child in self.children:
            if child.name == name:
                return child
        return None

    def __repr__(self) -> str:
        kind = "Dir" if self.is_dir else "File"
        return f"{kind}({self.name!r}, {self.size})"


@dataclass
class ScanStats:
    files: int = 0
    dirs: int = 0
    errors: int = 0
    skipped: int = 0
    bytes_scanned: int = 0


class AnalysisResult:
    """Scanned root path plus the zoom stack of directories being viewed.

    data_stack[0] is the root directory, data_stack[-1] the directory on
    screen. A node is either in its parent's children or on the stack, never
    both.
    """

    def __init__(self, root_path: str, root: Node, stats: Optional[ScanStats] = None,
                 elapsed_sec: float = 0.0):
        if not root.is_dir:
            raise ValueError("analysis root must be a directory")
        self.root_path = nfc(os.path.abspath(root_path))
        self.data_stack: List[Node] = [root]
        self.stats = stats or ScanStats()
        self.elapsed_sec = elapsed_sec

    @property
    def root(self) -> Node:
        return self.data_stack[0]

    @property
    def current(self) -> Node:
        return self.data_stack[-1]

    @property
    def depth(self) -> int:
        return len(self.data_stack)

    def current_path(self) -> str:
        return os.path.join(self.root_path, *[n.name for n in self.data_stack[1:]])

    def path_of(self, child: Node) -> str:
        return os.path.join(self.current_path(), child.name)

    def push(self, node: Node) -> None:
        if not self.current.is_dir:
            raise ValueError("only a directory can sit below another stack entry")
        self.data_stack.append(node)

    def pop(self) -> Optional[Node]:
        """Detach the top entry and hand it back to its parent's children."""
        if len(self.data_stack) < 2:
            return None
        node = self.data_stack.pop()
        self.data_stack[-1].children.append(node)
        return node

    def selected_index(self, index: int) -> List[Node]:
        """Make data_stack[index] current, dropping everything above it.

        Dropped nodes are not put back into their parents; they are returned
        so the caller can decide what to do with them.
        """
        if not 0 <= index < len(self.data_stack):
            raise IndexError(index)
        dropped = self.data_stack[index + 1:]
        del self.data_stack[index + 1:]
        return dropped
