"""
registry.py — Set of fingerprints already accepted.

The registry is the dedup gate: `add_if_absent` checks and inserts under one
lock, so two attempts can never both be accepted with the same fingerprint.
"""

from __future__ import annotations

import threading
from typing import Iterable, Optional, Set


class UniquenessRegistry:
    def __init__(self, fingerprints: Optional[Iterable[str]] = None):
        self._seen: Set[str] = set(fingerprints or ())
        self._lock = threading.Lock()

    def add_if_absent(self, fingerprint: str) -> bool:
        """Insert `fingerprint`; False when it was already registered."""
        with self._lock:
            if fingerprint in self._seen:
                return False
            self._seen.add(fingerprint)
            return True

    def __contains__(self, fingerprint: object) -> bool:
        with self._lock:
            return fingerprint in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)
