"""Test helpers: PNG writers, scripted randomness, config builders."""

from __future__ import annotations

from collections import deque
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from PIL import Image

from layergen.config import EditionConfig

RED = (255, 0, 0, 255)
GREEN = (0, 255, 0, 255)
BLUE = (0, 0, 255, 255)
CANVAS = 8

Color = Tuple[int, int, int, int]


def write_png(path: Path, color: Color, size: Tuple[int, int] = (CANVAS, CANVAS)) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGBA", size, color).save(path, format="PNG")
    return path


def edition_config(size: int, order: list, **extra) -> EditionConfig:
    data = {
        "namePrefix": "Creature",
        "description": "A generated creature",
        "baseUri": "ipfs://cid/",
        "layers": [{"size": size, "order": order}],
    }
    data.update(extra)
    return EditionConfig.model_validate(data)


class ScriptedRandom:
    """RandomSource that replays prepared draws and records every call."""

    def __init__(self, counts: Iterable[int] = (), samples: Iterable[Sequence[int]] = ()):
        self.counts = deque(counts)
        self.samples = deque(samples)
        self.calls: List[tuple] = []

    def pick_count(self, low: int, high: int) -> int:
        self.calls.append(("pick_count", low, high))
        return self.counts.popleft() if self.counts else low

    def sample(self, n: int, k: int) -> List[int]:
        self.calls.append(("sample", n, k))
        if self.samples:
            return list(self.samples.popleft())
        return list(range(k))
