"""A bump allocator handing out slices of a shared byte buffer."""

from __future__ import annotations

MAX_POOL_SIZE = 500 * 1024


class Pool:
    """Hands out writable views carved from a large buffer.

    When the current buffer cannot fit a request a fresh one is allocated;
    views handed out earlier keep the old buffer alive.
    """

    def __init__(self) -> None:
        self._buf = bytearray(MAX_POOL_SIZE)
        self._pos = 0

    def get(self, size: int) -> memoryview:
        if size < 0 or size > MAX_POOL_SIZE:
            raise ValueError(f"pool request of {size} bytes out of range")
        if MAX_POOL_SIZE - self._pos < size:
            self._pos = 0
            self._buf = bytearray(MAX_POOL_SIZE)
        view = memoryview(self._buf)[self._pos:self._pos + size]
        self._pos += size
        return view