from __future__ import annotations
import argparse
import logging
import os
import sys
import time
from typing import List, Optional

from . import __version__
from .models import Node, Rect
from .navigation import Navigator
from .settings import Settings
from .utils import format_bytes
from .worker import Cancelled, Completed, Failed, Progress, ScanSession

logger = logging.getLogger("diskmosaic")

POLL_SLEEP = 0.05


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="diskmosaic", description="Sparse-aware disk usage treemap.")
    p.add_argument("path", help="directory to scan")
    p.add_argument("--ignore", action="append", default=[], metavar="PATH",
                   help="skip this path (repeatable)")
    p.add_argument("--no-cloud-filter", action="store_true",
                   help="also scan cloud folders and special mounts")
    p.add_argument("--depth", type=int, default=1, help="tree levels to print (default: 1)")
    p.add_argument("--zoom", action="append", default=[], metavar="NAME",
                   help="zoom into this child directory before printing (repeatable)")
    p.add_argument("--max-zoom", type=int, default=None, metavar="N",
                   help="limit the zoom stack depth")
    p.add_argument("--layout", default=None, metavar="WxH",
                   help="print treemap rectangles of the current view")
    p.add_argument("--debug", action="store_true", help="enable debug logging")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def parse_size(text: str) -> Rect:
    try:
        w, h = text.lower().split("x", 1)
        return Rect(0.0, 0.0, float(w), float(h))
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid layout size: {text!r} (expected WxH)")


def setup_logging(debug: bool):
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger("diskmosaic")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if debug else logging.INFO)


def print_tree(node: Node, depth: int, out, indent: str = ""):
    out.write(f"{indent}{format_bytes(node.size):>12}  {node.name}{os.sep if node.is_dir else ''}\n")
    if depth <= 0:
        return
    for child in node.children:
        print_tree(child, depth - 1, out, indent + "  ")


def run_scan(session: ScanSession, root: str):
    session.start_scan(root)
    last_log = 0.0
    try:
        while True:
            for ev in session.poll():
                if isinstance(ev, Progress) and time.time() - last_log >= 1.0:
                    last_log = time.time()
                    info = ev.info
                    logger.info("%s scanned, %d files, %d dirs", format_bytes(info.bytes_scanned),
                                info.files, info.dirs)
                elif isinstance(ev, (Completed, Cancelled, Failed)):
                    return ev
            time.sleep(POLL_SLEEP)
    except KeyboardInterrupt:
        session.cancel()
        session.discard()
        return Cancelled()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.debug)
    bounds = None
    if args.layout:
        try:
            bounds = parse_size(args.layout)
        except argparse.ArgumentTypeError as e:
            logger.error("%s", e)
            return 2

    root = os.path.abspath(args.path)
    if not os.path.isdir(root):
        logger.error("path is not a readable directory: %s", root)
        return 2

    settings = Settings(ignore_cloud_mounts=not args.no_cloud_filter)
    for p in args.ignore:
        settings.add_ignored_path(p)
    session = ScanSession(settings)
    ev = run_scan(session, root)
    if isinstance(ev, Cancelled):
        logger.warning("scan cancelled")
        return 130
    if isinstance(ev, Failed):
        logger.error("scan failed: %s: %s", ev.path, ev.message)
        return 1

    result = ev.result
    nav = Navigator(result, max_depth=args.max_zoom)
    for name in args.zoom:
        # zoom_in only accepts children that got an area in the last layout
        nav.layout(bounds or Rect(0.0, 0.0, 1.0, 1.0))
        child = nav.current.child_named(name)
        if child is None or not nav.zoom_in(nav.current.children.index(child)):
            logger.error("cannot zoom into %r from %s", name, result.current_path())
            return 1

    out = sys.stdout
    out.write(f"{result.current_path()}\n")
    print_tree(nav.current, args.depth, out)
    if result.stats.errors:
        out.write(f"{result.stats.errors} entries could not be read\n")
    if bounds is not None:
        nav.layout(bounds)
        for child in nav.current.children:
            r = child.bounds
            if r.is_empty:
                continue
            out.write(f"{r.x:9.1f} {r.y:9.1f} {r.w:9.1f} {r.h:9.1f}  {child.name}\n")
    return 0
