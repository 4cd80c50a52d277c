"""Live stream fan-out: RTMP readers and writers, per-key streams and their registry."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, replace
from urllib.parse import urlparse

from .chunk_stream import ChunkStream
from .flv_writer import WriterClosedError
from .gop_cache import DEFAULT_GOP_NUM, Cache
from .media import (
    AAC_RAW,
    SOUND_AAC,
    VIDEO_H264,
    AudioHeader,
    Packet,
    StreamInfo,
    TagType,
    VideoHeader,
)
from .pio import i24be
from .uid import new_id

log = logging.getLogger(__name__)

MAX_QUEUE_NUM = 1024
SAVE_STATICS_INTERVAL = 5000
DEFAULT_TIMEOUT = 10.0
EMPTY_ID = ""

_U32 = 0xFFFFFFFF
_MEDIA_TYPES = frozenset(
    (TagType.AUDIO, TagType.VIDEO, TagType.SCRIPT_DATA_AMF0, TagType.SCRIPT_DATA_AMF3)
)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _key_from_url(url: str) -> str:
    return urlparse(url).path.lstrip("/")


@dataclass
class StaticsBW:
    """Byte counters and bit rates (kbit/s) of one connection."""

    stream_id: int = 0
    video_bytes: int = 0
    last_video_bytes: int = 0
    video_speed: int = 0
    audio_bytes: int = 0
    last_audio_bytes: int = 0
    audio_speed: int = 0
    last_timestamp: int = 0

    def save(self, stream_id: int, length: int, is_video: bool, now_ms: int) -> None:
        """Account ``length`` bytes; rates are refreshed at most every five seconds."""
        self.stream_id = stream_id
        if is_video:
            self.video_bytes += length
        else:
            self.audio_bytes += length

        if self.last_timestamp == 0:
            self.last_timestamp = now_ms
        elif now_ms - self.last_timestamp >= SAVE_STATICS_INTERVAL:
            seconds = (now_ms - self.last_timestamp) // 1000
            self.video_speed = (self.video_bytes - self.last_video_bytes) * 8 // seconds // 1000
            self.audio_speed = (self.audio_bytes - self.last_audio_bytes) * 8 // seconds // 1000
            self.last_video_bytes = self.video_bytes
            self.last_audio_bytes = self.audio_bytes
            self.last_timestamp = now_ms


class _TimeBase:
    """Liveness tracking and timestamp rebasing shared by readers and writers."""

    def __init__(self, timeout: float) -> None:
        self._timeout = timeout
        self._pre_time = time.monotonic()
        self.base_timestamp = 0
        self._last_video_ts = 0
        self._last_audio_ts = 0

    def _touch(self) -> None:
        self._pre_time = time.monotonic()

    def _record_timestamp(self, timestamp: int, type_id: int) -> None:
        if type_id == TagType.VIDEO:
            self._last_video_ts = timestamp
        elif type_id == TagType.AUDIO:
            self._last_audio_ts = timestamp

    def calc_base_timestamp(self) -> None:
        """Continue timestamps after the last ones sent (used when the source changes)."""
        self.base_timestamp = max(self._last_video_ts, self._last_audio_ts)

    def _is_alive(self) -> bool:
        return time.monotonic() - self._pre_time < self._timeout


def _worth_keeping(p: Packet) -> bool:
    if p.is_video:
        h = p.header
        return isinstance(h, VideoHeader) and (h.is_seq or h.is_key_frame)
    return p.is_audio


def _type_id(p: Packet) -> int:
    if p.is_video:
        return TagType.VIDEO
    if p.is_metadata:
        return TagType.SCRIPT_DATA_AMF0
    return TagType.AUDIO


class VirWriter(_TimeBase):
    """Sends packets to an RTMP player connection.

    ``conn`` provides ``write(chunk)``, ``read()``, ``close(err)``,
    ``get_info() -> (app, name, url)`` and optionally ``flush()``.
    With ``autostart`` the packets are sent, and the connection watched,
    from background threads; otherwise call ``send_pending``.
    """

    def __init__(self, conn, timeout: float = DEFAULT_TIMEOUT, autostart: bool = False) -> None:
        super().__init__(timeout)
        self.uid = new_id()
        self.conn = conn
        self.closed = False
        self.write_bw = StaticsBW()
        self._queue: deque[Packet] = deque()
        self._cond = threading.Condition()
        if autostart:
            threading.Thread(target=self._check_loop, daemon=True).start()
            threading.Thread(target=self._send_loop, daemon=True).start()

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
            if self.closed:
                raise WriterClosedError("VirWriter closed")
            if len(self._queue) >= MAX_QUEUE_NUM - 24:
                self._drop_packets()
            else:
                self._queue.append(p)
                self._cond.notify()

    def _send(self, p: Packet) -> None:
        cs = ChunkStream(
            data=p.data,
            length=len(p.data),
            stream_id=p.stream_id,
            timestamp=(p.timestamp + self.base_timestamp) & _U32,
            type_id=_type_id(p),
        )
        self.write_bw.save(p.stream_id, cs.length, p.is_video, _now_ms())
        self._touch()
        self._record_timestamp(cs.timestamp, cs.type_id)
        try:
            self.conn.write(cs)
            flush = getattr(self.conn, "flush", None)
            if flush is not None:
                flush()
        except Exception:
            with self._cond:
                self.closed = True
            raise

    def send_pending(self) -> int:
        """Send every queued packet to the connection; return how many were sent."""
        with self._cond:
            pending = list(self._queue)
            self._queue.clear()
        for p in pending:
            self._send(p)
        return len(pending)

    def _send_loop(self) -> None:
        try:
            while True:
                with self._cond:
                    while not self._queue and not self.closed:
                        self._cond.wait()
                    if self.closed:
                        return
                    p = self._queue.popleft()
                self._send(p)
        except Exception as exc:
            log.error("send packet error: %s", exc)

    def _check_loop(self) -> None:
        while not self.closed:
            try:
                self.conn.read()
            except Exception as exc:
                self.close(exc)
                return

    def info(self) -> StreamInfo:
        url = self.conn.get_info()[2]
        return StreamInfo(key=_key_from_url(url), url=url, uid=self.uid, inter=True)

    def alive(self) -> bool:
        """True while a packet was sent within the timeout."""
        return self._is_alive()

    def close(self, err: BaseException | None = None) -> None:
        log.info("player %s closed: %s", self.info(), err)
        with self._cond:
            self.closed = True
            self._queue.clear()
            self._cond.notify_all()
        self.conn.close(err)


def _parse_header(p: Packet) -> None:
    data = p.data
    if not data:
        return
    b0 = data[0]
    if p.is_video:
        codec = b0 & 0x0F
        is_seq = False
        composition = 0
        if codec == VIDEO_H264 and len(data) >= 5:
            is_seq = data[1] == 0
            composition = i24be(data[2:5])
        p.header = VideoHeader(
            codec_id=codec,
            is_key_frame=(b0 >> 4) == 1,
            is_seq=is_seq,
            composition_time=composition,
        )
    elif p.is_audio:
        fmt = b0 >> 4
        packet_type = data[1] if fmt == SOUND_AAC and len(data) >= 2 else AAC_RAW
        p.header = AudioHeader(sound_format=fmt, aac_packet_type=packet_type)


class VirReader(_TimeBase):
    """Receives media packets from an RTMP publisher connection."""

    def __init__(self, conn, timeout: float = DEFAULT_TIMEOUT) -> None:
        super().__init__(timeout)
        self.uid = new_id()
        self.conn = conn
        self.read_bw = StaticsBW()

    def read(self) -> Packet:
        """Return the next media packet, skipping other messages."""
        self._touch()
        while True:
            cs = self.conn.read()
            if cs.type_id in _MEDIA_TYPES:
                break
        p = Packet(
            is_audio=cs.type_id == TagType.AUDIO,
            is_video=cs.type_id == TagType.VIDEO,
            is_metadata=cs.type_id in (TagType.SCRIPT_DATA_AMF0, TagType.SCRIPT_DATA_AMF3),
            stream_id=cs.stream_id,
            data=bytes(cs.data),
            timestamp=cs.timestamp,
        )
        self.read_bw.save(p.stream_id, len(p.data), p.is_video, _now_ms())
        _parse_header(p)
        return p

    def info(self) -> StreamInfo:
        url = self.conn.get_info()[2]
        return StreamInfo(key=_key_from_url(url), url=url, uid=self.uid)

    def alive(self) -> bool:
        """True while a read was started within the timeout."""
        return self._is_alive()

    def close(self, err: BaseException | None = None) -> None:
        log.info("publisher %s closed: %s", self.info(), err)
        self.conn.close(err)


@dataclass
class PackWriterCloser:
    """A player together with whether it has received the replay cache yet."""

    writer: object
    init: bool = False


class Stream:
    """One live stream: a publisher and the players it feeds."""

    def __init__(self, gop_num: int = DEFAULT_GOP_NUM, threaded: bool = True) -> None:
        self.cache = Cache(gop_num)
        self.reader = None
        self.writers: dict[str, PackWriterCloser] = {}
        self.info = StreamInfo()
        self.is_start = False
        self._threaded = threaded
        self._lock = threading.Lock()

    def _snapshot(self) -> list[tuple[str, PackWriterCloser]]:
        with self._lock:
            return list(self.writers.items())

    def _remove(self, uid: str) -> None:
        with self._lock:
            self.writers.pop(uid, None)

    def id(self) -> str:
        if self.reader is not None:
            return self.reader.info().uid
        return EMPTY_ID

    def copy_to(self, dst: Stream) -> None:
        """Move every player to ``dst``, rebasing their timestamps."""
        for uid, pw in self._snapshot():
            self._remove(uid)
            pw.writer.calc_base_timestamp()
            dst.add_writer(pw.writer)

    def add_reader(self, r) -> None:
        """Attach the publisher; when threaded, start forwarding in the background."""
        self.reader = r
        if self._threaded:
            threading.Thread(target=self.trans_start, daemon=True).start()

    def add_writer(self, w) -> None:
        with self._lock:
            self.writers[w.info().uid] = PackWriterCloser(writer=w)

    def trans_start(self) -> None:
        """Forward packets from the publisher to every player until reading stops."""
        self.is_start = True
        log.info("TransStart: %s", self.info)
        while True:
            if not self.is_start:
                self._close_inter()
                return
            try:
                p = self.reader.read()
            except Exception:
                self._close_inter()
                self.is_start = False
                return

            self.cache.write(p)

            for uid, pw in self._snapshot():
                if not pw.init:
                    try:
                        self.cache.send(pw.writer)
                    except Exception as exc:
                        log.warning("[%s] send cache packet error: %s, remove", uid, exc)
                        self._remove(uid)
                        continue
                    pw.init = True
                else:
                    try:
                        pw.writer.write(replace(p))
                    except Exception as exc:
                        log.warning("[%s] write packet error: %s, remove", uid, exc)
                        self._remove(uid)

    def trans_stop(self) -> None:
        if self.is_start and self.reader is not None:
            self.reader.close(RuntimeError("stop old"))
        self.is_start = False

    def check_alive(self) -> int:
        """Close timed-out endpoints; return how many are still alive."""
        n = 0
        if self.reader is not None and self.is_start:
            if self.reader.alive():
                n += 1
            else:
                self.reader.close(TimeoutError("read timeout"))
        for uid, pw in self._snapshot():
            if pw.writer is None:
                continue
            if not pw.writer.alive() and self.is_start:
                self._remove(uid)
                pw.writer.close(TimeoutError("write timeout"))
                continue
            n += 1
        return n

    def _close_inter(self) -> None:
        if self.reader is not None:
            log.info("[%s] publisher closed", self.reader.info())
        for uid, pw in self._snapshot():
            if pw.writer is not None and pw.writer.info().is_interval():
                pw.writer.close(RuntimeError("closed"))
                self._remove(uid)


class RtmpStream:
    """Registry of live streams by key; routes publishers and players to them."""

    def __init__(
        self,
        gop_num: int = DEFAULT_GOP_NUM,
        threaded: bool = True,
        check_interval: float | None = None,
    ) -> None:
        self.streams: dict[str, Stream] = {}
        self._gop_num = gop_num
        self._threaded = threaded
        self._lock = threading.Lock()
        if check_interval is not None:
            threading.Thread(target=self._check_loop, args=(check_interval,), daemon=True).start()

    def _new_stream(self) -> Stream:
        return Stream(self._gop_num, self._threaded)

    def handle_reader(self, r) -> Stream:
        info = r.info()
        log.info("HandleReader: info[%s]", info)
        with self._lock:
            stream = self.streams.get(info.key)
            if stream is not None:
                stream.trans_stop()
                sid = stream.id()
                if sid != EMPTY_ID and sid != info.uid:
                    ns = self._new_stream()
                    stream.copy_to(ns)
                    stream = ns
                    self.streams[info.key] = ns
            else:
                stream = self._new_stream()
                self.streams[info.key] = stream
                stream.info = info
        stream.add_reader(r)
        return stream

    def handle_writer(self, w) -> Stream:
        """Attach a player; a key without a stream only gets an empty stream."""
        info = w.info()
        log.info("HandleWriter: info[%s]", info)
        with self._lock:
            stream = self.streams.get(info.key)
            if stream is None:
                stream = self._new_stream()
                self.streams[info.key] = stream
                stream.info = info
                return stream
        stream.add_writer(w)
        return stream

    def check_alive(self) -> list[str]:
        """Remove streams with nothing alive; return the removed keys."""
        with self._lock:
            items = list(self.streams.items())
        removed = [key for key, s in items if s.check_alive() == 0]
        with self._lock:
            for key in removed:
                self.streams.pop(key, None)
        return removed

    def _check_loop(self, interval: float) -> None:
        while True:
            time.sleep(interval)
            self.check_alive()