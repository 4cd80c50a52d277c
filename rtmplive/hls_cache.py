"""Segment store for HLS: a bounded window of TS segments and the playlist over them."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass

MAX_TS_CACHE_NUM = 3


@dataclass(frozen=True)
class TSItem:
    """One MPEG-TS segment; ``duration`` is in milliseconds."""

    name: str
    duration: int
    seq_num: int
    data: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))


class NoKeyError(LookupError):
    """Raised when a segment is not in the cache."""

    def __init__(self, key: str = "") -> None:
        super().__init__("No key for cache")
        self.key = key


class TSCacheItem:
    """Keeps the newest ``num`` segments of a stream in arrival order."""

    def __init__(self, item_id: str, num: int = MAX_TS_CACHE_NUM) -> None:
        self.id = item_id
        self.num = num
        self._order: deque[str] = deque()
        self._items: dict[str, TSItem] = {}
        self._lock = threading.Lock()

    def gen_m3u8_playlist(self) -> bytes:
        with self._lock:
            entries = [self._items[k] for k in self._order if k in self._items]
        max_duration = max((v.duration for v in entries), default=0)
        max_duration = max(max_duration, 0)
        seq = entries[0].seq_num if entries else 0
        body = "".join(f"#EXTINF:{v.duration / 1000:.3f},\n{v.name}\n" for v in entries)
        head = (
            "#EXTM3U\n#EXT-X-VERSION:3\n#EXT-X-ALLOW-CACHE:NO\n"
            f"#EXT-X-TARGETDURATION:{max_duration // 1000 + 1}\n"
            f"#EXT-X-MEDIA-SEQUENCE:{seq}\n\n"
        )
        return (head + body).encode()

    def set_item(self, key: str, item: TSItem) -> None:
        with self._lock:
            if len(self._order) == self.num:
                oldest = self._order.popleft()
                self._items.pop(oldest, None)
            self._items[key] = item
            self._order.append(key)

    def get_item(self, key: str) -> TSItem:
        with self._lock:
            try:
                return self._items[key]
            except KeyError:
                raise NoKeyError(key) from None