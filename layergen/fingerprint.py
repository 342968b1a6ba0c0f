"""
fingerprint.py — Content fingerprints ("DNA") for selections and edition groups.

A selection is identified by the ordered `{id}:{display_name}` tokens of its
files joined with "-". The SHA-256 of that string is the dedup key. Short
fingerprints are for file names and log lines only.
"""

from __future__ import annotations

import hashlib
from typing import Iterable, Protocol

SHORT_LENGTH = 6
FILE_SEPARATOR = "-"
# never part of a catalog file name, see catalog._scan_layer
ID_SEPARATOR = ":"


class Identifiable(Protocol):
    id: int
    display_name: str


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def canonical_string(files: Iterable[Identifiable]) -> str:
    """Join file identities in the given order: `0:red.png-2:blue.png`."""
    return FILE_SEPARATOR.join(
        f"{f.id}{ID_SEPARATOR}{f.display_name}" for f in files
    )


def fingerprint(files: Iterable[Identifiable]) -> str:
    """Full 64-char lowercase hex fingerprint of an ordered selection."""
    return sha256_hex(canonical_string(files))


def short_fingerprint(value: str, length: int = SHORT_LENGTH) -> str:
    return value[:length]
