"""
errors.py — Exception hierarchy for the edition generator.

Fatal conditions (unreadable catalog root, empty layers, bad config, decode or
write failures) raise one of these. Collisions and missing-layer lookups are
expected outcomes and never raise.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class LayergenError(Exception):
    """Base class for all generator errors."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None
        if self.path is not None:
            message = f"{message} ({self.path})"
        super().__init__(message)


class CatalogError(LayergenError):
    """Layer catalog could not be built."""


class EmptyLayerError(CatalogError):
    """A layer directory holds no candidate files."""


class ConfigError(LayergenError):
    """Edition configuration is missing or invalid."""


class CompositeError(LayergenError):
    """A source image could not be decoded or composited."""


class EmitError(LayergenError):
    """A rendered edition or its metadata could not be written."""
