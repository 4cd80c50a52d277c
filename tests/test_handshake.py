import io
import struct

import pytest

from rtmplive.handshake import (
    CLIENT_PARTIAL_KEY,
    HANDSHAKE_SIZE,
    SERVER_FULL_KEY,
    SERVER_PARTIAL_KEY,
    SERVER_VERSION,
    HandshakeError,
    calc_digest_pos,
    create_s0s1,
    create_s2,
    find_digest,
    handshake_client,
    handshake_server,
    make_digest,
    parse_c1,
)
from rtmplive.read_writer import ReadWriter


class _Pipe:
    def __init__(self, incoming=b""):
        self._in = io.BytesIO(incoming)
        self.written = bytearray()

    def read(self, n=-1):
        return self._in.read(n)

    def write(self, data):
        self.written += data
        return len(data)

    def flush(self):
        pass


def _pattern(n, step=7):
    return bytes((i * step) % 256 for i in range(n))


def test_make_digest_ignores_gap_region():
    key = b"k"
    src = bytearray(_pattern(200))
    first = make_digest(key, src, 40)
    src[40:72] = bytes(32)
    assert make_digest(key, src, 40) == first
    assert len(first) == 32


def test_make_digest_without_gap_covers_everything():
    src = bytearray(_pattern(100))
    first = make_digest(b"k", src, -1)
    src[50] ^= 0xFF
    assert make_digest(b"k", src, -1) != first
    assert make_digest(b"k", src, 0) == make_digest(b"k", src, -1)


def test_calc_digest_pos_zero_bytes():
    p = bytes(HANDSHAKE_SIZE)
    assert calc_digest_pos(p, 8) == 12
    assert calc_digest_pos(p, 772) == 776


def test_calc_digest_pos_range():
    p = bytes([0xFF]) * HANDSHAKE_SIZE
    pos = calc_digest_pos(p, 8)
    assert 12 <= pos < 12 + 728


def test_create_s0s1_layout_and_digest():
    block = create_s0s1(123, 0x01020304, SERVER_PARTIAL_KEY)
    assert len(block) == 1 + HANDSHAKE_SIZE
    assert block[0] == 3
    s1 = block[1:]
    assert struct.unpack_from(">II", s1) == (123, 0x01020304)
    assert find_digest(s1, SERVER_PARTIAL_KEY, 8) == calc_digest_pos(s1, 8)


def test_parse_c1_accepts_signed_block():
    c1 = create_s0s1(5, 0x80000702, CLIENT_PARTIAL_KEY)[1:]
    digest = parse_c1(c1, CLIENT_PARTIAL_KEY, SERVER_FULL_KEY)
    assert digest is not None and len(digest) == 32


def test_parse_c1_rejects_unsigned_block():
    assert parse_c1(bytes(HANDSHAKE_SIZE), CLIENT_PARTIAL_KEY, SERVER_FULL_KEY) is None


def test_create_s2_tail_is_digest():
    s2 = create_s2(b"key")
    assert len(s2) == HANDSHAKE_SIZE
    assert s2[-32:] == make_digest(b"key", s2, HANDSHAKE_SIZE - 32)


def test_server_simple_handshake_echoes_c1():
    c1 = bytes(8) + _pattern(HANDSHAKE_SIZE - 8)
    c2 = _pattern(HANDSHAKE_SIZE, 3)
    pipe = _Pipe(b"\x03" + c1 + c2)
    handshake_server(ReadWriter(pipe, 1024))
    assert bytes(pipe.written) == b"\x03" + bytes(HANDSHAKE_SIZE) + c1


def test_server_rejects_bad_version():
    pipe = _Pipe(b"\x06" + bytes(HANDSHAKE_SIZE * 2))
    with pytest.raises(HandshakeError):
        handshake_server(ReadWriter(pipe, 1024))


def test_server_rejects_invalid_digest():
    c1 = struct.pack(">II", 1, 0x80000702) + bytes(HANDSHAKE_SIZE - 8)
    pipe = _Pipe(b"\x03" + c1 + bytes(HANDSHAKE_SIZE))
    with pytest.raises(HandshakeError):
        handshake_server(ReadWriter(pipe, 1024))


def test_server_digest_handshake():
    c0c1 = create_s0s1(123, 0x80000702, CLIENT_PARTIAL_KEY)
    pipe = _Pipe(c0c1 + bytes(HANDSHAKE_SIZE))
    handshake_server(ReadWriter(pipe, 1024))
    out = bytes(pipe.written)
    assert len(out) == 1 + 2 * HANDSHAKE_SIZE
    assert out[0] == 3
    s1 = out[1:1 + HANDSHAKE_SIZE]
    s2 = out[1 + HANDSHAKE_SIZE:]
    assert struct.unpack_from(">II", s1) == (123, SERVER_VERSION)
    assert find_digest(s1, SERVER_PARTIAL_KEY, 8) >= 0
    key = parse_c1(c0c1[1:], CLIENT_PARTIAL_KEY, SERVER_FULL_KEY)
    assert s2[-32:] == make_digest(key, s2, HANDSHAKE_SIZE - 32)


def test_client_handshake_echoes_s1():
    s1 = _pattern(HANDSHAKE_SIZE)
    s2 = _pattern(HANDSHAKE_SIZE, 11)
    pipe = _Pipe(b"\x03" + s1 + s2)
    rw = ReadWriter(pipe, 1024)
    handshake_client(rw)
    rw.flush()
    assert bytes(pipe.written) == b"\x03" + bytes(HANDSHAKE_SIZE) + s1


def test_client_handshake_short_reply():
    pipe = _Pipe(b"\x03" + bytes(100))
    with pytest.raises(EOFError):
        handshake_client(ReadWriter(pipe, 1024))