"""Media packets, stream descriptions and a bounded packet queue."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import IntEnum


class TagType(IntEnum):
    """FLV tag / RTMP message type identifiers for media payloads."""

    AUDIO = 8
    VIDEO = 9
    SCRIPT_DATA_AMF3 = 15
    SCRIPT_DATA_AMF0 = 18


SOUND_AAC = 10
AAC_SEQHDR = 0
AAC_RAW = 1
VIDEO_H264 = 7

PUBLISH = "publish"
PLAY = "play"


@dataclass(frozen=True)
class VideoHeader:
    codec_id: int = VIDEO_H264
    is_key_frame: bool = False
    is_seq: bool = False
    composition_time: int = 0


@dataclass(frozen=True)
class AudioHeader:
    sound_format: int = SOUND_AAC
    aac_packet_type: int = AAC_RAW


@dataclass
class Packet:
    is_audio: bool = False
    is_video: bool = False
    is_metadata: bool = False
    timestamp: int = 0
    stream_id: int = 0
    header: VideoHeader | AudioHeader | None = None
    data: bytes = b""


@dataclass
class StreamInfo:
    key: str = ""
    url: str = ""
    uid: str = ""
    inter: bool = False

    def is_interval(self) -> bool:
        return self.inter


class PacketQueue:
    """Thread-safe packet store.

    ``pop`` hands back the most recently pushed packet. When ``max_size`` is
    positive and the queue is full, pushing replaces the newest packet.
    """

    def __init__(self, max_size: int = 0) -> None:
        self._max_size = max_size
        self._items: list[Packet] = []
        self._lock = threading.Lock()

    def push(self, msg: Packet) -> None:
        with self._lock:
            if self._max_size > 0 and len(self._items) >= self._max_size:
                self._items.pop()
            self._items.append(msg)

    def pop(self) -> Packet | None:
        with self._lock:
            if not self._items:
                return None
            return self._items.pop()

    def all(self) -> list[Packet]:
        """Remove and return every queued packet."""
        with self._lock:
            items, self._items = self._items, []
            return items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)