"""Tests for the depth-first scanner."""

import os
import unicodedata

import pytest

from diskmosaic.errors import ScanAborted, ScanError
from diskmosaic.scanner import ERROR, SYMLINK, Entry, Scanner, ScanProgress, scan_tree
from diskmosaic.settings import PathFilter

from fakes import FakeSource, f, sparse


def assert_sums(node):
    if node.is_dir:
        assert node.size == sum(c.size for c in node.children)
        for c in node.children:
            assert_sums(c)


class TestScanTree:
    """Scanning an in-memory tree."""

    def test_scenario_sizes(self, scenario_source):
        result = scan_tree("/fake", source=scenario_source)
        root = result.root
        assert root.size == 400
        assert root.child_named("C").size == 300
        assert root.child_named("A").size == 100
        assert root.child_named("B").size == 0
        assert result.data_stack == [root]
        assert result.root_path == "/fake"

    def test_children_sorted_descending(self, scenario_source):
        root = scan_tree("/fake", source=scenario_source).root
        assert [c.name for c in root.children] == ["C", "A", "B"]

    def test_sizes_sum_at_every_depth(self):
        source = FakeSource("/r", {
            "a": {"b": {"c": f(10), "d": f(20)}, "e": f(5)},
            "g": {},
            "h": f(1),
        })
        root = scan_tree("/r", source=source).root
        assert root.size == 36
        assert_sums(root)

    def test_empty_directory(self):
        result = scan_tree("/empty", source=FakeSource("/empty", {}))
        assert result.root.is_dir
        assert result.root.size == 0
        assert result.root.children == []

    def test_sparse_file_counts_zero(self):
        source = FakeSource("/r", {"hole": sparse(4096, 1 << 20), "full": sparse(8192, 8000)})
        root = scan_tree("/r", source=source).root
        assert root.child_named("hole").size == 0
        assert root.child_named("full").size == 8192
        assert root.size == 8192

    def test_unknown_allocation_uses_length(self):
        source = FakeSource("/r", {"x": ("file", None, 1234)})
        assert scan_tree("/r", source=source).root.size == 1234

    def test_symlink_is_leaf(self):
        source = FakeSource("/r", {"link": (SYMLINK, 0, 12)})
        root = scan_tree("/r", source=source).root
        link = root.child_named("link")
        assert not link.is_dir
        assert "/r/link" not in source.calls

    def test_unreadable_subdir_is_counted(self):
        source = FakeSource("/r", {
            "locked": PermissionError(13, "Permission denied"),
            "ok": {"x": f(7)},
        })
        result = scan_tree("/r", source=source)
        assert result.stats.errors == 1
        assert result.root.child_named("locked") is None
        assert result.root.size == 7

    def test_unreadable_entry_is_counted(self):
        source = FakeSource("/r", {"gone": (ERROR, None, 0), "x": f(3)})
        result = scan_tree("/r", source=source)
        assert result.stats.errors == 1
        assert [c.name for c in result.root.children] == ["x"]

    def test_stats(self, scenario_source):
        stats = scan_tree("/fake", source=scenario_source).stats
        assert stats.files == 3
        assert stats.dirs == 2
        assert stats.bytes_scanned == 400

    def test_names_are_nfc(self):
        decomposed = unicodedata.normalize("NFD", "résumé.txt")
        source = FakeSource("/r", {decomposed: f(1)})
        root = scan_tree("/r", source=source).root
        assert root.children[0].name == unicodedata.normalize("NFC", "résumé.txt")


class TestFiltering:
    """The path filter is asked about every entry."""

    def test_ignored_dir_is_not_entered(self, scenario_source):
        pf = PathFilter(ignored=frozenset({"/fake/C"}), ignore_cloud_mounts=False)
        result = scan_tree("/fake", path_filter=pf, source=scenario_source)
        assert result.root.size == 100
        assert result.root.child_named("C") is None
        assert "/fake/C" not in scenario_source.calls
        assert result.stats.skipped == 1

    def test_ignored_file(self, scenario_source):
        pf = PathFilter(ignored=frozenset({"/fake/A"}), ignore_cloud_mounts=False)
        assert scan_tree("/fake", path_filter=pf, source=scenario_source).root.size == 300


class TestFailures:
    """Fatal and cooperative outcomes."""

    def test_missing_root_is_fatal(self):
        with pytest.raises(ScanError) as exc:
            scan_tree("/nope", source=FakeSource("/elsewhere", {}))
        assert exc.value.path == "/nope"

    def test_unreadable_root_is_fatal(self):
        source = FakeSource("/r", PermissionError(13, "Permission denied"))
        with pytest.raises(ScanError, match="Permission denied"):
            scan_tree("/r", source=source)

    def test_cancel_aborts(self, scenario_source):
        calls = []

        def cancel():
            calls.append(1)
            return len(calls) > 2

        with pytest.raises(ScanAborted):
            scan_tree("/fake", cancel=cancel, source=scenario_source)

    def test_cancel_before_start(self, scenario_source):
        with pytest.raises(ScanAborted):
            scan_tree("/fake", cancel=lambda: True, source=scenario_source)


class TestProgress:
    """Progress reporting."""

    def test_final_progress_reported(self, scenario_source):
        seen = []
        Scanner(progress=seen.append, source=scenario_source, estimate_total=False).scan("/fake")
        assert seen
        last = seen[-1]
        assert last.current_path == "/fake"
        assert last.files == 3
        assert last.bytes_scanned == 400

    def test_fraction(self):
        assert ScanProgress("/", 0, 0, 50, 0, 200).fraction == 0.25
        assert ScanProgress("/", 0, 0, 500, 0, 200).fraction == 1.0
        assert ScanProgress("/", 0, 0, 50, 0, 0).fraction == 0.0


class TestOsEntrySource:
    """Scanning the real filesystem."""

    def test_empty_dir(self, tmp_path):
        result = scan_tree(str(tmp_path))
        assert result.root.size == 0
        assert result.root.children == []
        assert result.root_path == os.path.abspath(str(tmp_path))

    def test_sizes_use_allocation(self, tmp_path):
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "a.bin").write_bytes(b"x" * 5000)
        (tmp_path / "b.txt").write_text("hello")
        root = scan_tree(str(tmp_path)).root
        assert_sums(root)
        st = os.lstat(tmp_path / "sub" / "a.bin")
        physical = getattr(st, "st_blocks", 0) * 512
        expected = physical if physical >= st.st_size else 0
        assert root.child_named("sub").child_named("a.bin").size == expected

    def test_sparse_file(self, tmp_path):
        path = tmp_path / "sparse.img"
        with open(path, "wb") as fh:
            fh.truncate(16 * 1024 * 1024)
        st = os.stat(path)
        if not hasattr(st, "st_blocks") or st.st_blocks * 512 >= st.st_size:
            pytest.skip("filesystem does not keep sparse files")
        root = scan_tree(str(tmp_path)).root
        assert root.child_named("sparse.img").size == 0
        assert root.size == 0

    def test_symlink_not_followed(self, tmp_path):
        target = tmp_path / "target"
        target.mkdir()
        (target / "big").write_bytes(b"y" * 10000)
        try:
            os.symlink(target, tmp_path / "link")
        except (OSError, NotImplementedError):
            pytest.skip("symlinks not supported")
        root = scan_tree(str(tmp_path)).root
        link = root.child_named("link")
        assert not link.is_dir
        assert link.children == []

    def test_root_is_file(self, tmp_path):
        path = tmp_path / "file"
        path.write_text("x")
        with pytest.raises(ScanError):
            scan_tree(str(path))

    def test_entry_size(self):
        assert Entry("a", "/a", "file", 4096, 10).size == 4096
        assert Entry("a", "/a", "file", 0, 10).size == 0

    def test_decomposed_root_name(self, tmp_path):
        name = unicodedata.normalize("NFD", "café")
        root = tmp_path / name
        try:
            root.mkdir()
        except OSError:
            pytest.skip("filesystem rejects decomposed names")
        (root / "menu.txt").write_text("x" * 100)
        result = scan_tree(str(root))
        assert result.root.name == unicodedata.normalize("NFC", "café")
        assert result.root_path == unicodedata.normalize("NFC", os.path.abspath(str(root)))
        assert [c.name for c in result.root.children] == ["menu.txt"]
