"""Streams live packets to an HTTP client as an FLV byte stream."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import replace

from .media import Packet, StreamInfo, TagType, VideoHeader
from .pio import put_u8, put_u24be, put_u32be
from .uid import new_id

log = logging.getLogger(__name__)

HEADER_LEN = 11
MAX_QUEUE_NUM = 1024
DEFAULT_TIMEOUT = 10.0

_SET_DATA_FRAME = b"@setDataFrame"
_AMF0_SET_DATA_FRAME = b"\x02" + len(_SET_DATA_FRAME).to_bytes(2, "big") + _SET_DATA_FRAME
_U32 = 0xFFFFFFFF


class WriterClosedError(RuntimeError):
    """Raised when writing to a writer that has been closed."""


def flv_header() -> bytes:
    """FLV file header (audio and video flags set) plus the first previous-tag size."""
    return b"FLV\x01\x05\x00\x00\x00\x09" + bytes(4)


def _strip_set_data_frame(data: bytes) -> bytes:
    if data.startswith(_AMF0_SET_DATA_FRAME):
        return data[len(_AMF0_SET_DATA_FRAME):]
    return data


def encode_tag(packet: Packet) -> bytes:
    """Encode one packet as an FLV tag followed by its previous-tag-size field."""
    if packet.is_video:
        tag_type = TagType.VIDEO
        data = bytes(packet.data)
    elif packet.is_metadata:
        tag_type = TagType.SCRIPT_DATA_AMF0
        data = _strip_set_data_frame(bytes(packet.data))
    else:
        tag_type = TagType.AUDIO
        data = bytes(packet.data)
    timestamp = packet.timestamp & _U32
    header = bytearray(HEADER_LEN)
    view = memoryview(header)
    put_u8(view, tag_type)
    put_u24be(view[1:], len(data))
    put_u24be(view[4:], timestamp & 0xFFFFFF)
    put_u8(view[7:], timestamp >> 24 & 0xFF)
    trailer = bytearray(4)
    put_u32be(trailer, len(data) + HEADER_LEN)
    return bytes(header) + data + bytes(trailer)


def _worth_keeping(p: Packet) -> bool:
    if p.is_video:
        h = p.header
        return isinstance(h, VideoHeader) and (h.is_seq or h.is_key_frame)
    return p.is_audio


class FLVWriter:
    """Queues packets and writes them as FLV tags to ``sink`` from a background thread."""

    def __init__(self, app: str, title: str, url: str, sink, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.uid = new_id()
        self.app = app
        self.title = title
        self.url = url
        self._sink = sink
        self._timeout = timeout
        self._pre_time = time.monotonic()
        self._base_timestamp = 0
        self._last_video_ts = 0
        self._last_audio_ts = 0
        self._queue: deque[Packet] = deque()
        self._cond = threading.Condition()
        self._closed = False
        self._done = threading.Event()
        sink.write(flv_header())
        self._thread = threading.Thread(target=self._run, name=f"flv-{self.uid}", daemon=True)
        self._thread.start()

    def _drop_packets(self) -> None:
        log.warning("[%s] packet queue max!!!", self.info())
        for _ in range(min(len(self._queue), MAX_QUEUE_NUM - 84)):
            p = self._queue.popleft()
            if _worth_keeping(p):
                self._queue.append(p)
        log.info("packet queue len: %d", len(self._queue))

    def write(self, p: Packet) -> None:
        """Queue ``p``; when the queue is nearly full, drop it and thin the queue."""
        with self._cond:
            if self._closed:
                raise WriterClosedError("flvwrite source closed")
            if len(self._queue) >= MAX_QUEUE_NUM - 24:
                self._drop_packets()
            else:
                self._queue.append(p)
                self._cond.notify()

    def _send(self, p: Packet) -> None:
        self._pre_time = time.monotonic()
        timestamp = (p.timestamp + self._base_timestamp) & _U32
        if p.is_video:
            self._last_video_ts = timestamp
        elif p.is_audio:
            self._last_audio_ts = timestamp
        self._sink.write(encode_tag(replace(p, timestamp=timestamp)))

    def _run(self) -> None:
        try:
            while True:
                with self._cond:
                    while not self._queue and not self._closed:
                        self._cond.wait()
                    if not self._queue:
                        return
                    p = self._queue.popleft()
                self._send(p)
        except Exception as exc:
            log.error("SendPacket error: %s", exc)
            with self._cond:
                self._closed = True
        finally:
            self._done.set()

    def calc_base_timestamp(self) -> None:
        """Continue timestamps after the last ones sent (used when the source changes)."""
        self._base_timestamp = max(self._last_video_ts, self._last_audio_ts)

    def close(self, err: BaseException | None = None) -> None:
        """Stop accepting packets; queued packets are still written."""
        log.info("http flv closed: %s", err)
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the writer has stopped; return False on timeout."""
        return self._done.wait(timeout)

    def info(self) -> StreamInfo:
        return StreamInfo(key=f"{self.app}/{self.title}", url=self.url, uid=self.uid, inter=True)

    def alive(self) -> bool:
        return time.monotonic() - self._pre_time < self._timeout