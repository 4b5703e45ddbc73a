import pytest

from diskmosaic.models import AnalysisResult, Node

from fakes import SCENARIO, FakeSource


@pytest.fixture
def scenario_source():
    return FakeSource("/fake", SCENARIO)


@pytest.fixture
def sample_result():
    """root{big{x(500), y(100)}, mid{z(200)}, readme(50), empty{}} at /data."""
    big = Node.directory("big", [Node.file("x", 500), Node.file("y", 100)])
    mid = Node.directory("mid", [Node.file("z", 200)])
    root = Node.directory("data", [big, mid, Node.file("readme", 50), Node.directory("empty")])
    return AnalysisResult("/data", root)
