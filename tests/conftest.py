"""Shared pytest fixtures for layergen tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

import pytest

from layergen.catalog import LayerCatalog, build_catalog
from layergen.config import Settings
from tests.helpers import BLUE, CANVAS, RED, write_png

# ============================================================================
# Catalog Fixtures
# ============================================================================


@pytest.fixture
def make_layers(tmp_path: Path) -> Callable[[dict], Path]:
    """Build a layers directory from {layer: {file_name: color}}."""

    def _make(spec: dict) -> Path:
        root = tmp_path / "layers"
        root.mkdir(exist_ok=True)
        for layer, files in spec.items():
            (root / layer).mkdir(exist_ok=True)
            for name, color in files.items():
                write_png(root / layer / name, color)
        return root

    return _make


@pytest.fixture
def layers_dir(make_layers) -> Path:
    """background: 2 files, eyes: 3 files → 6 combinations."""
    return make_layers(
        {
            "background": {"red.png": RED, "blue#20.png": BLUE},
            "eyes": {
                "left.png": (0, 0, 0, 255),
                "right.png": (255, 255, 255, 128),
                "closed.png": (0, 0, 0, 0),
            },
        }
    )


@pytest.fixture
def catalog(layers_dir: Path) -> LayerCatalog:
    return build_catalog(layers_dir)


# ============================================================================
# Config Fixtures
# ============================================================================


@pytest.fixture
def settings(tmp_path: Path, layers_dir: Path) -> Settings:
    return Settings(
        layers_dir=layers_dir,
        destination_dir=tmp_path / "build",
        image_size=CANVAS,
        max_retries=500,
        seed=7,
    )


@pytest.fixture
def config_file(tmp_path: Path) -> Callable[[dict], Path]:
    """Write an edition configuration JSON file and return its path."""

    def _write(data: dict) -> Path:
        path = tmp_path / "config" / "layer_configuration.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write
