import io

import pytest

from rtmplive.read_writer import ReadWriter


def test_reader_sticky_eof():
    buf = io.BytesIO(b"abc")
    r = ReadWriter(buf, 1024)
    assert r.read(3) == b"abc"
    assert r.read_error is None
    with pytest.raises(EOFError):
        r.read(3)
    assert isinstance(r.read_error, EOFError)
    buf.write(b"123")
    buf.seek(3)
    with pytest.raises(EOFError):
        r.read(3)
    assert isinstance(r.read_error, EOFError)


@pytest.mark.parametrize(
    "n,value,raw",
    [
        (1, 0x01, bytes([0x01])),
        (2, 0x0102, bytes([0x01, 0x02])),
        (3, 0x010203, bytes([0x01, 0x02, 0x03])),
        (4, 0x01020304, bytes([0x01, 0x02, 0x03, 0x04])),
    ],
)
def test_read_uint_be(n, value, raw):
    r = ReadWriter(io.BytesIO(raw), 1024)
    assert r.read_uint_be(n) == value


@pytest.mark.parametrize(
    "n,value,raw",
    [
        (1, 0x01, bytes([0x01])),
        (2, 0x0102, bytes([0x02, 0x01])),
        (3, 0x010203, bytes([0x03, 0x02, 0x01])),
        (4, 0x01020304, bytes([0x04, 0x03, 0x02, 0x01])),
    ],
)
def test_read_uint_le(n, value, raw):
    r = ReadWriter(io.BytesIO(raw), 1024)
    assert r.read_uint_le(n) == value


def test_writer_sticky_error():
    buf = io.BytesIO()
    w = ReadWriter(buf, 1024)
    assert w.write(bytes([1, 2, 3])) == 3
    assert w.write_error is None
    w.write_error = EOFError()
    with pytest.raises(EOFError):
        w.write(bytes([1, 2, 3]))
    assert isinstance(w.write_error, EOFError)


@pytest.mark.parametrize(
    "n,value,raw",
    [
        (1, 0x01, bytes([0x01])),
        (2, 0x0102, bytes([0x01, 0x02])),
        (3, 0x010203, bytes([0x01, 0x02, 0x03])),
        (4, 0x01020304, bytes([0x01, 0x02, 0x03, 0x04])),
    ],
)
def test_write_uint_be(n, value, raw):
    buf = io.BytesIO()
    w = ReadWriter(buf, 1024)
    w.write_uint_be(value, n)
    w.flush()
    assert buf.getvalue() == raw


@pytest.mark.parametrize(
    "n,value,raw",
    [
        (1, 0x01, bytes([0x01])),
        (2, 0x0102, bytes([0x02, 0x01])),
        (3, 0x010203, bytes([0x03, 0x02, 0x01])),
        (4, 0x01020304, bytes([0x04, 0x03, 0x02, 0x01])),
    ],
)
def test_write_uint_le(n, value, raw):
    buf = io.BytesIO()
    w = ReadWriter(buf, 1024)
    w.write_uint_le(value, n)
    w.flush()
    assert buf.getvalue() == raw


def test_writes_held_until_flush():
    buf = io.BytesIO()
    w = ReadWriter(buf, 1024)
    w.write(b"xyz")
    assert buf.getvalue() == b""
    w.flush()
    assert buf.getvalue() == b"xyz"


def test_peek_does_not_consume_and_discard_skips():
    r = ReadWriter(io.BytesIO(b"abcdef"), 1024)
    assert r.peek(2) == b"ab"
    assert r.discard(2) == 2
    assert r.read(4) == b"cdef"


def test_partial_read_raises_eof():
    r = ReadWriter(io.BytesIO(b"ab"), 1024)
    with pytest.raises(EOFError):
        r.read_uint_be(4)
    with pytest.raises(EOFError):
        r.read(1)