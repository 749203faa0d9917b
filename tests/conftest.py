"""Shared fixtures: Go source trees written into tmp_path."""

import pytest

from gouml.config import WatchSettings
from gouml.indexer.parser import GoParser
from tests.helpers import SHAPES_GO, VEHICLES_GO, write_go


@pytest.fixture(scope="session")
def go_parser() -> GoParser:
    return GoParser()


@pytest.fixture
def go_tree(tmp_path):
    """Small Go project with two packages."""
    root = tmp_path / "src"
    write_go(root / "vehicles" / "car.go", VEHICLES_GO)
    write_go(root / "shapes" / "shapes.go", SHAPES_GO)
    return root


@pytest.fixture
def settings(go_tree, tmp_path) -> WatchSettings:
    """Settings for go_tree with image rendering disabled and no waits."""
    out = tmp_path / "out"
    out.mkdir()
    return WatchSettings(
        watch_path=go_tree,
        output_dir=out,
        output_name="uml_diagram",
        poll_interval=0.01,
        settle_delay=0.0,
        render_mode="none",
    )
