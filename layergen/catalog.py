"""
catalog.py — Scans the layers directory into an in-memory layer catalog.

Layout:
  layers/
    background/       ← layer name
      blue.png        ← candidate asset, id 0
      red#20.png      ← candidate asset, id 1, rarity weight 20
    eyes/
      ...

Every immediate subdirectory is a layer, every regular file inside it a
candidate. Ids follow directory read order, which is platform dependent.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import CatalogError, EmptyLayerError
from .fingerprint import ID_SEPARATOR

logger = logging.getLogger(__name__)

WEIGHT_SEPARATOR = "#"
DEFAULT_WEIGHT = 1


# ── Data model ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AssetFile:
    """One candidate image inside a layer."""
    id: int
    display_name: str       # file name, e.g. "red#20.png"
    path: Path
    weight: int = DEFAULT_WEIGHT

    @property
    def trait_name(self) -> str:
        """Display name without extension and rarity suffix: "red#20.png" → "red"."""
        stem = Path(self.display_name).stem
        return stem.rsplit(WEIGHT_SEPARATOR, 1)[0]


@dataclass(frozen=True)
class CatalogEntry:
    layer_name: str
    files: Tuple[AssetFile, ...]

    def __len__(self) -> int:
        return len(self.files)


def parse_weight(file_name: str) -> int:
    """
    Read the rarity weight embedded in a file name.

    "eyes#15.png" → 15. Anything without exactly one "#" or with a non-numeric
    weight falls back to 1.
    """
    parts = file_name.split(WEIGHT_SEPARATOR)
    if len(parts) != 2:
        return DEFAULT_WEIGHT
    end_parts = parts[1].split(".")
    if len(end_parts) != 2:
        return DEFAULT_WEIGHT
    try:
        return int(end_parts[0])
    except ValueError:
        return DEFAULT_WEIGHT


# ── Catalog ───────────────────────────────────────────────────────────────────

class LayerCatalog:
    """Read-only index: layer name → CatalogEntry."""

    def __init__(self, entries: List[CatalogEntry]):
        self._entries: Dict[str, CatalogEntry] = {e.layer_name: e for e in entries}

    def get(self, layer_name: str) -> Optional[CatalogEntry]:
        return self._entries.get(layer_name)

    def __contains__(self, layer_name: object) -> bool:
        return layer_name in self._entries

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def layer_names(self) -> List[str]:
        return list(self._entries)

    def combinations(self, plan) -> int:
        """
        Number of distinct selections a plan can produce.

        For each plan entry the count is the sum of C(n, k) over the allowed
        pick counts (clamped to n), multiplied across entries. Layers missing
        from the catalog contribute a factor of 1.
        """
        total = 1
        for entry in plan:
            layer = self.get(entry.name)
            if layer is None:
                continue
            n = len(layer)
            low, high = min(entry.pick_min, n), min(entry.pick_max, n)
            total *= sum(math.comb(n, k) for k in range(low, high + 1))
        return total


def _is_decodable(entry: os.DirEntry) -> bool:
    """False for names the filesystem returned as surrogate escapes."""
    try:
        entry.name.encode("utf-8")
    except UnicodeEncodeError:
        logger.warning(f"Skipping undecodable file name: {entry.path!r}")
        return False
    return True


def _scan_layer(layer_dir: Path) -> CatalogEntry:
    files: List[AssetFile] = []
    try:
        with os.scandir(layer_dir) as it:
            for entry in it:
                if entry.name.startswith(".") or not _is_decodable(entry):
                    continue
                # ":" separates id and name inside a fingerprint
                if ID_SEPARATOR in entry.name:
                    logger.warning(
                        f"Skipping file name containing '{ID_SEPARATOR}': {entry.path}"
                    )
                    continue
                try:
                    if not entry.is_file():
                        if entry.is_symlink():
                            logger.warning(f"Skipping broken link: {entry.path}")
                        continue
                except OSError as e:
                    logger.warning(f"Skipping unreadable entry {entry.path}: {e}")
                    continue
                files.append(
                    AssetFile(
                        id=len(files),
                        display_name=entry.name,
                        path=Path(entry.path),
                        weight=parse_weight(entry.name),
                    )
                )
    except OSError as e:
        raise CatalogError(f"Couldn't read layer directory: {e}", layer_dir) from e

    if not files:
        raise EmptyLayerError("Couldn't find any layer files", layer_dir)

    return CatalogEntry(layer_name=layer_dir.name, files=tuple(files))


def build_catalog(root: Path) -> LayerCatalog:
    """
    Build the catalog from `root`.

    Raises:
        CatalogError:    root missing or unreadable.
        EmptyLayerError: a layer directory holds zero files.
    """
    root = Path(root)
    if not root.is_dir():
        raise CatalogError("Layers root is not a directory", root)

    entries: List[CatalogEntry] = []
    try:
        with os.scandir(root) as it:
            dir_entries = list(it)
    except OSError as e:
        raise CatalogError(f"Couldn't read layers root: {e}", root) from e

    for entry in dir_entries:
        if entry.name.startswith(".") or not _is_decodable(entry):
            continue
        try:
            is_dir = entry.is_dir()
        except OSError as e:
            logger.warning(f"Skipping unreadable entry {entry.path}: {e}")
            continue
        if not is_dir:
            continue

        layer_dir = Path(entry.path)
        try:
            entries.append(_scan_layer(layer_dir))
        except EmptyLayerError:
            raise
        except CatalogError as e:
            # unreadable layer directory: partial catalog is acceptable
            logger.warning(f"Skipping layer {layer_dir.name}: {e}")

    logger.info(
        f"Catalog built: {len(entries)} layer(s), "
        f"{sum(len(e) for e in entries)} file(s) from {root}"
    )
    return LayerCatalog(entries)
