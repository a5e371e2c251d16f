"""
backend/locks.py

KeyedLock - per-key mutual exclusion backed by a fixed table of lock shards.

Two keys that hash to the same shard share a lock; two keys on different
shards never block each other. The table size is fixed, so memory does not
grow with the number of distinct keys seen.

Usage:
    locks = KeyedLock(shards=64)
    with locks.hold("45.33.22.11"):
        ...
"""

from __future__ import annotations

import threading
import zlib
from contextlib import contextmanager
from typing import Iterator


class KeyedLock:
    def __init__(self, shards: int = 64) -> None:
        if shards < 1:
            raise ValueError(f"shards must be >= 1, got {shards}")
        self._locks: tuple[threading.Lock, ...] = tuple(
            threading.Lock() for _ in range(shards)
        )

    def __len__(self) -> int:
        return len(self._locks)

    def shard_for(self, key: str) -> int:
        # crc32 rather than hash(): stable across processes and PYTHONHASHSEED
        return zlib.crc32(key.encode("utf-8")) % len(self._locks)

    def lock_for(self, key: str) -> threading.Lock:
        return self._locks[self.shard_for(key)]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self.lock_for(key):
            yield
