"""
selector.py — Random trait selection for one edition attempt.

For each plan entry a pick count k is drawn uniformly from [pick_min, pick_max]
and k distinct files are sampled from the layer. The random source is
injectable so tests can drive selection deterministically.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence, Tuple

import numpy as np

from .catalog import AssetFile, LayerCatalog
from .config import EditionGroup, PlanEntry
from .fingerprint import fingerprint

logger = logging.getLogger(__name__)


# ── Randomness ────────────────────────────────────────────────────────────────

class RandomSource(Protocol):
    def pick_count(self, low: int, high: int) -> int:
        """Uniform integer in [low, high], both inclusive."""
        ...

    def sample(self, n: int, k: int) -> Sequence[int]:
        """k distinct indices out of range(n)."""
        ...


class NumpyRandomSource:
    """RandomSource backed by a numpy Generator. Same seed → same draws."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = np.random.default_rng(seed)

    def pick_count(self, low: int, high: int) -> int:
        return int(self._rng.integers(low, high, endpoint=True))

    def sample(self, n: int, k: int) -> List[int]:
        return [int(i) for i in self._rng.choice(n, size=k, replace=False)]


# ── Selection ─────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SelectedTrait:
    layer_name: str
    asset: AssetFile


@dataclass(frozen=True)
class Selection:
    """Ordered traits of one attempt, fingerprinted on construction."""
    traits: Tuple[SelectedTrait, ...]
    fingerprint: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "fingerprint", fingerprint(t.asset for t in self.traits)
        )

    @property
    def paths(self):
        return [t.asset.path for t in self.traits]

    def __len__(self) -> int:
        return len(self.traits)


class TraitSelector:
    def __init__(self, random_source: Optional[RandomSource] = None):
        self.random = random_source or NumpyRandomSource()

    def select(self, catalog: LayerCatalog, entry: PlanEntry) -> List[AssetFile]:
        """
        Draw the files one plan entry contributes to an edition.

        Unknown layers yield an empty list (warned). A pick count above the
        number of files is clamped to that number (warned). Files come back
        in catalog id order.
        """
        layer = catalog.get(entry.name)
        if layer is None:
            logger.warning(f"Couldn't find layer with name: {entry.name}")
            return []

        if entry.pick_min == entry.pick_max:
            k = entry.pick_min
        else:
            k = self.random.pick_count(entry.pick_min, entry.pick_max)

        available = len(layer.files)
        if k > available:
            logger.warning(
                f"Layer '{entry.name}' has {available} file(s), "
                f"{k} requested, picking {available}"
            )
            k = available
        if k == 0:
            return []

        # within a layer, picks are ordered by id so the same set of files
        # always yields the same fingerprint
        return [layer.files[i] for i in sorted(self.random.sample(available, k))]

    def select_group(self, catalog: LayerCatalog, group: EditionGroup) -> Selection:
        traits: List[SelectedTrait] = []
        for entry in group.order:
            traits.extend(
                SelectedTrait(entry.name, asset) for asset in self.select(catalog, entry)
            )
        return Selection(tuple(traits))
