"""Timing helpers for HLS segmenting: segment status, audio DTS alignment, audio batching."""

from __future__ import annotations

import time

SYNC_MS = 2
H264_DEFAULT_HZ = 90
CACHE_MAX_FRAMES = 6
AUDIO_CACHE_LEN = 10 * 1024


class Status:
    """Tracks the timestamps seen in the current segment."""

    def __init__(self) -> None:
        self.has_video = False
        self.seq_id = 0
        self.created_at: float | None = None
        self.seg_begin_at = time.time()
        self.has_set_first_ts = False
        self.first_timestamp = 0
        self.last_timestamp = 0

    def update(self, is_video: bool, timestamp: int) -> None:
        if is_video:
            self.has_video = True
        if not self.has_set_first_ts:
            self.has_set_first_ts = True
            self.first_timestamp = timestamp
        self.last_timestamp = timestamp

    def reset_and_new(self) -> None:
        self.seq_id += 1
        self.has_video = False
        self.created_at = time.time()
        self.has_set_first_ts = False

    def duration_ms(self) -> int:
        return self.last_timestamp - self.first_timestamp


class Align:
    """Snaps audio DTS values onto an evenly spaced grid when they drift little."""

    def __init__(self) -> None:
        self.frame_num = 0
        self.frame_base = 0

    def align(self, dts: int, inc: int) -> int:
        """Return the aligned DTS for a frame whose raw DTS is ``dts``."""
        est = self.frame_base + self.frame_num * inc
        if abs(est - dts) <= SYNC_MS * H264_DEFAULT_HZ:
            self.frame_num += 1
            return est
        self.frame_num = 1
        self.frame_base = dts
        return dts


class AudioCache:
    """Collects several audio frames so they can be muxed together."""

    def __init__(self) -> None:
        self.sound_format = 0
        self.num = 0
        self.offset = 0
        self.pts = 0
        self._buf = bytearray()

    def cache(self, src, pts: int) -> bool:
        if self.num == 0:
            self.offset = 0
            self.pts = pts
            self._buf.clear()
        self._buf += src
        self.offset += len(src)
        self.num = (self.num + 1) & 0xFF
        return False

    def get_frame(self) -> tuple[int, int, bytes]:
        """Return (length, pts of the first frame, data) and start a new batch."""
        self.num = 0
        return self.offset, self.pts, bytes(self._buf)

    def cache_num(self) -> int:
        return self.num