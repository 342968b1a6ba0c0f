"""
metadata.py — Persists accepted editions: PNG image + JSON sidecar.

File names:
  {group_dna[:6]}_{index}#{edition_dna[:6]}.png
  {group_dna[:6]}_{index}#{edition_dna[:6]}.json

Sidecar:
  {
    "name":        "<namePrefix> #<index>",
    "description": "<description>",
    "image":       "<baseUri><png file name>",
    "attributes":  [{"trait_type": "<layer>", "value": "<trait>"}, ...]
  }

Both files are staged as temp files in the destination directory and moved
into place together with os.replace, so a failed write leaves no partial output.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Tuple

from PIL import Image
from pydantic import BaseModel

from .config import EditionConfig
from .errors import EmitError
from .fingerprint import short_fingerprint
from .selector import Selection

logger = logging.getLogger(__name__)


# ── Models ────────────────────────────────────────────────────────────────────

class TraitAttribute(BaseModel):
    trait_type: str
    value: str


class EditionMetadata(BaseModel):
    name: str
    description: str
    image: str
    attributes: List[TraitAttribute]


@dataclass(frozen=True)
class EditionRecord:
    """One accepted edition, ready to persist."""
    index: int                  # 1-based within its group
    group_fingerprint: str
    selection: Selection
    image: Image.Image

    @property
    def fingerprint(self) -> str:
        return self.selection.fingerprint

    @property
    def stem(self) -> str:
        return (
            f"{short_fingerprint(self.group_fingerprint)}_{self.index}"
            f"#{short_fingerprint(self.fingerprint)}"
        )


@dataclass(frozen=True)
class EmittedEdition:
    index: int
    fingerprint: str
    image_path: Path
    metadata_path: Path


def build_metadata(record: EditionRecord, config: EditionConfig) -> EditionMetadata:
    """Sidecar content for `record`; attributes follow plan order."""
    return EditionMetadata(
        name=f"{config.name_prefix} #{record.index}",
        description=config.description,
        image=f"{config.base_uri}{record.stem}.png",
        attributes=[
            TraitAttribute(trait_type=t.layer_name, value=t.asset.trait_name)
            for t in record.selection.traits
        ],
    )


# ── Atomic writes ─────────────────────────────────────────────────────────────

def _stage(path: Path, write: Callable[[Path], None]) -> Path:
    """Write to a temp file beside `path` and return the temp path."""
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp"
    )
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        write(tmp_path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    return tmp_path


def _commit(staged: List[Tuple[Path, Path]]) -> None:
    """Move every staged temp file into place; all or none stay."""
    done: List[Path] = []
    try:
        for tmp_path, path in staged:
            os.replace(tmp_path, path)
            done.append(path)
    except BaseException:
        for path in done:
            path.unlink(missing_ok=True)
        for tmp_path, _ in staged:
            tmp_path.unlink(missing_ok=True)
        raise


class MetadataEmitter:
    def __init__(self, destination: Path, config: EditionConfig):
        self.destination = Path(destination)
        self.config = config

    def emit(self, record: EditionRecord) -> EmittedEdition:
        """
        Write the edition image and its sidecar.

        Both files are staged first and moved into place together, so a
        failure on either one leaves neither behind.

        Raises:
            EmitError: the destination or either file could not be written.
        """
        try:
            self.destination.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise EmitError(f"Couldn't create destination: {e}", self.destination) from e

        image_path = self.destination / f"{record.stem}.png"
        metadata_path = self.destination / f"{record.stem}.json"
        meta = build_metadata(record, self.config)

        try:
            image_tmp = _stage(image_path, lambda p: record.image.save(p, format="PNG"))
        except (OSError, ValueError) as e:
            raise EmitError(f"Couldn't save edition image: {e}", image_path) from e
        try:
            metadata_tmp = _stage(
                metadata_path,
                lambda p: p.write_text(meta.model_dump_json(indent=2), encoding="utf-8"),
            )
        except OSError as e:
            image_tmp.unlink(missing_ok=True)
            raise EmitError(f"Couldn't save edition metadata: {e}", metadata_path) from e
        except BaseException:
            image_tmp.unlink(missing_ok=True)
            raise

        try:
            _commit([(image_tmp, image_path), (metadata_tmp, metadata_path)])
        except OSError as e:
            raise EmitError(f"Couldn't move edition files into place: {e}", self.destination) from e

        logger.info(f"Save composed image at: {image_path}")
        return EmittedEdition(
            index=record.index,
            fingerprint=record.fingerprint,
            image_path=image_path,
            metadata_path=metadata_path,
        )
