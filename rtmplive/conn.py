"""An RTMP connection: chunk reassembly, control messages and acknowledgements."""

from __future__ import annotations

import socket
from contextlib import contextmanager
from dataclasses import replace
from enum import IntEnum

from . import handshake
from .chunk_stream import ChunkStream
from .pio import put_u32be, u32be
from .pool import Pool
from .read_writer import ReadWriter

DEFAULT_CHUNK_SIZE = 128
DEFAULT_WINDOW_ACK_SIZE = 2500000
_RECEIVED_WRAP = 0xF0000000
_U32 = 0xFFFFFFFF


class ControlMessage(IntEnum):
    SET_CHUNK_SIZE = 1
    ABORT_MESSAGE = 2
    ACK = 3
    USER_CONTROL = 4
    WINDOW_ACK_SIZE = 5
    SET_PEER_BANDWIDTH = 6


class UserControlEvent(IntEnum):
    STREAM_BEGIN = 0
    STREAM_EOF = 1
    STREAM_DRY = 2
    SET_BUFFER_LEN = 3
    STREAM_IS_RECORDED = 4
    PING_REQUEST = 6
    PING_RESPONSE = 7


def _control_msg(type_id: int, size: int, value: int) -> ChunkStream:
    data = bytearray(size)
    put_u32be(data, value)
    return ChunkStream(format=0, csid=2, type_id=type_id, stream_id=0, length=size, data=data)


class Conn:
    """RTMP chunk-level connection over a socket or a binary stream."""

    def __init__(self, stream, buffer_size: int = 4096) -> None:
        if isinstance(stream, socket.socket):
            self._sock: socket.socket | None = stream
            self._stream = stream.makefile("rwb")
        else:
            self._sock = None
            self._stream = stream
        self.rw = ReadWriter(self._stream, buffer_size)
        self.chunk_size = DEFAULT_CHUNK_SIZE
        self.remote_chunk_size = DEFAULT_CHUNK_SIZE
        self.window_ack_size = DEFAULT_WINDOW_ACK_SIZE
        self.remote_window_ack_size = DEFAULT_WINDOW_ACK_SIZE
        self.received = 0
        self.ack_received = 0
        self._pool = Pool()
        self._chunks: dict[int, ChunkStream] = {}

    def read(self) -> ChunkStream:
        """Read chunks until one message is complete and return it."""
        while True:
            h = self.rw.read_uint_be(1)
            fmt, csid = h >> 6, h & 0x3F
            cs = self._chunks.get(csid)
            if cs is None:
                cs = ChunkStream()
                self._chunks[csid] = cs
            cs.tmp_format = fmt
            cs.csid = csid
            cs.read_chunk(self.rw, self.remote_chunk_size, self._pool)
            if cs.got:
                break
        message = replace(cs)
        self._handle_control_msg(message)
        self._ack(message.length)
        return message

    def write(self, c: ChunkStream) -> None:
        if c.type_id == ControlMessage.SET_CHUNK_SIZE:
            self.chunk_size = u32be(c.data)
        c.write_chunk(self.rw, self.chunk_size)

    def flush(self) -> None:
        self.rw.flush()

    def close(self) -> None:
        try:
            self._stream.close()
        finally:
            if self._sock is not None:
                self._sock.close()

    def new_ack(self, size: int) -> ChunkStream:
        return _control_msg(ControlMessage.ACK, 4, size)

    def new_set_chunk_size(self, size: int) -> ChunkStream:
        return _control_msg(ControlMessage.SET_CHUNK_SIZE, 4, size)

    def new_window_ack_size(self, size: int) -> ChunkStream:
        return _control_msg(ControlMessage.WINDOW_ACK_SIZE, 4, size)

    def new_set_peer_bandwidth(self, size: int) -> ChunkStream:
        msg = _control_msg(ControlMessage.SET_PEER_BANDWIDTH, 5, size)
        msg.data[4] = 2
        return msg

    def _handle_control_msg(self, c: ChunkStream) -> None:
        if c.type_id == ControlMessage.SET_CHUNK_SIZE:
            self.remote_chunk_size = u32be(c.data)
        elif c.type_id == ControlMessage.WINDOW_ACK_SIZE:
            self.remote_window_ack_size = u32be(c.data)

    def _ack(self, size: int) -> None:
        self.received = (self.received + size) & _U32
        self.ack_received = (self.ack_received + size) & _U32
        if self.received >= _RECEIVED_WRAP:
            self.received = 0
        if self.ack_received >= self.remote_window_ack_size:
            self.new_ack(self.ack_received).write_chunk(self.rw, self.chunk_size)
            self.ack_received = 0

    def _user_control_msg(self, event_type: int, buflen: int) -> ChunkStream:
        buflen += 2
        data = bytearray(buflen)
        data[0:2] = (event_type & 0xFFFF).to_bytes(2, "big")
        return ChunkStream(
            format=0,
            csid=2,
            type_id=ControlMessage.USER_CONTROL,
            stream_id=1,
            length=buflen,
            data=data,
        )

    def _send_stream_event(self, event: UserControlEvent) -> None:
        msg = self._user_control_msg(event, 4)
        msg.data[2:6] = (1).to_bytes(4, "big")
        self.write(msg)

    def set_begin(self) -> None:
        self._send_stream_event(UserControlEvent.STREAM_BEGIN)

    def set_recorded(self) -> None:
        self._send_stream_event(UserControlEvent.STREAM_IS_RECORDED)

    @contextmanager
    def _deadline(self):
        if self._sock is None:
            yield
            return
        self._sock.settimeout(handshake.HANDSHAKE_TIMEOUT)
        try:
            yield
        finally:
            self._sock.settimeout(None)

    def handshake_client(self) -> None:
        with self._deadline():
            handshake.handshake_client(self.rw)

    def handshake_server(self) -> None:
        with self._deadline():
            handshake.handshake_server(self.rw)