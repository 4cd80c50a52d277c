"""RTMP chunk framing: splitting messages into chunks and reassembling them."""

from __future__ import annotations

from dataclasses import dataclass

from .media import TagType
from .pool import Pool
from .read_writer import ReadWriter

EXTENDED_TIMESTAMP = 0xFFFFFF
_U32 = 0xFFFFFFFF


class ChunkError(ValueError):
    """Raised for malformed or unrepresentable chunk data."""


@dataclass
class ChunkStream:
    """State of one chunk stream: the message being sent or reassembled."""

    format: int = 0
    csid: int = 0
    timestamp: int = 0
    length: int = 0
    type_id: int = 0
    stream_id: int = 0
    time_delta: int = 0
    exted: bool = False
    index: int = 0
    remain: int = 0
    got: bool = False
    tmp_format: int = 0
    data: bytes | bytearray | memoryview = b""

    def _new(self, pool: Pool) -> None:
        self.got = False
        self.index = 0
        self.remain = self.length
        self.data = pool.get(self.length)

    def write_header(self, w: ReadWriter) -> None:
        h = self.format << 6
        if self.csid < 64:
            w.write_uint_be(h | self.csid, 1)
        elif self.csid - 64 < 256:
            w.write_uint_be(h, 1)
            w.write_uint_le(self.csid - 64, 1)
        elif self.csid - 64 < 65536:
            w.write_uint_be(h | 1, 1)
            w.write_uint_le(self.csid - 64, 2)
        else:
            raise ChunkError(f"csid={self.csid}")

        ts = self.timestamp
        if self.format != 3:
            if ts > EXTENDED_TIMESTAMP:
                ts = EXTENDED_TIMESTAMP
            w.write_uint_be(ts, 3)
            if self.format != 2:
                if self.length > EXTENDED_TIMESTAMP:
                    raise ChunkError(f"length={self.length}")
                w.write_uint_be(self.length, 3)
                w.write_uint_be(self.type_id, 1)
                if self.format != 1:
                    w.write_uint_le(self.stream_id, 4)
        if ts >= EXTENDED_TIMESTAMP:
            w.write_uint_be(self.timestamp, 4)

    def write_chunk(self, w: ReadWriter, chunk_size: int) -> None:
        """Write the whole message as one type-0 chunk followed by type-3 chunks."""
        if self.type_id == TagType.AUDIO:
            self.csid = 4
        elif self.type_id in (
            TagType.VIDEO,
            TagType.SCRIPT_DATA_AMF0,
            TagType.SCRIPT_DATA_AMF3,
        ):
            self.csid = 6
        if len(self.data) < self.length:
            raise ChunkError(f"data of {len(self.data)} bytes shorter than length={self.length}")

        total = 0
        for i in range(self.length // chunk_size + 1):
            if total == self.length:
                break
            self.format = 0 if i == 0 else 3
            self.write_header(w)
            start = i * chunk_size
            inc = min(chunk_size, len(self.data) - start)
            total += inc
            w.write(self.data[start:start + inc])

    def read_chunk(self, r: ReadWriter, chunk_size: int, pool: Pool) -> None:
        """Read one chunk whose basic header has set ``tmp_format`` and ``csid``."""
        if self.remain != 0 and self.tmp_format != 3:
            raise ChunkError(f"inlaid remain = {self.remain}")

        if self.csid == 0:
            self.csid = r.read_uint_le(1) + 64
        elif self.csid == 1:
            self.csid = r.read_uint_le(2) + 64

        fmt = self.tmp_format
        if fmt == 0:
            self.format = fmt
            self.timestamp = r.read_uint_be(3)
            self.length = r.read_uint_be(3)
            self.type_id = r.read_uint_be(1)
            self.stream_id = r.read_uint_le(4)
            if self.timestamp == EXTENDED_TIMESTAMP:
                self.timestamp = r.read_uint_be(4)
                self.exted = True
            else:
                self.exted = False
            self._new(pool)
        elif fmt in (1, 2):
            self.format = fmt
            delta = r.read_uint_be(3)
            if fmt == 1:
                self.length = r.read_uint_be(3)
                self.type_id = r.read_uint_be(1)
            if delta == EXTENDED_TIMESTAMP:
                delta = r.read_uint_be(4)
                self.exted = True
            else:
                self.exted = False
            self.time_delta = delta
            self.timestamp = (self.timestamp + delta) & _U32
            self._new(pool)
        elif fmt == 3:
            if self.remain == 0:
                if self.format == 0:
                    if self.exted:
                        self.timestamp = r.read_uint_be(4)
                elif self.format in (1, 2):
                    delta = r.read_uint_be(4) if self.exted else self.time_delta
                    self.timestamp = (self.timestamp + delta) & _U32
                self._new(pool)
            elif self.exted:
                if int.from_bytes(r.peek(4), "big") == self.timestamp:
                    r.discard(4)
        else:
            raise ChunkError(f"invalid format={self.format}")

        size = min(self.remain, chunk_size)
        self.data[self.index:self.index + size] = r.read(size)
        self.index += size
        self.remain -= size
        if self.remain == 0:
            self.got = True