"""Buffered reader/writer with sticky errors for RTMP byte streams."""

from __future__ import annotations

DEFAULT_BUFFER_SIZE = 4096


class ReadWriter:
    """Buffers reads and writes over a binary stream.

    Once a read fails, every later read raises the same error (``read_error``);
    writes behave likewise with ``write_error``.
    """

    def __init__(self, stream, buf_size: int = DEFAULT_BUFFER_SIZE) -> None:
        self._stream = stream
        self._buf_size = max(buf_size, 16)
        self._rbuf = bytearray()
        self._wbuf = bytearray()
        self.read_error: BaseException | None = None
        self.write_error: BaseException | None = None

    # reading

    def _read_raw(self, size: int) -> bytes:
        read1 = getattr(self._stream, "read1", None)
        chunk = read1(size) if read1 is not None else self._stream.read(size)
        return chunk or b""

    def _fill(self, n: int) -> int:
        while len(self._rbuf) < n:
            chunk = self._read_raw(max(self._buf_size, n - len(self._rbuf)))
            if not chunk:
                break
            self._rbuf += chunk
        return len(self._rbuf)

    def _take(self, n: int) -> bytes:
        data = bytes(self._rbuf[:n])
        del self._rbuf[:n]
        return data

    def _read_exact(self, n: int) -> bytes:
        if self.read_error is not None:
            raise self.read_error
        try:
            available = self._fill(n)
        except OSError as exc:
            self.read_error = exc
            raise
        if available < n:
            partial = available > 0
            self._rbuf.clear()
            err = EOFError("unexpected EOF" if partial else "EOF")
            self.read_error = err
            raise err
        return self._take(n)

    def read(self, size: int) -> bytes:
        """Read exactly ``size`` bytes."""
        return self._read_exact(size)

    def read_uint_be(self, n: int) -> int:
        return int.from_bytes(self._read_exact(n), "big")

    def read_uint_le(self, n: int) -> int:
        return int.from_bytes(self._read_exact(n), "little")

    def peek(self, n: int) -> bytes:
        """Return the next ``n`` bytes without consuming them."""
        if self._fill(n) < n:
            raise EOFError("EOF")
        return bytes(self._rbuf[:n])

    def discard(self, n: int) -> int:
        """Skip ``n`` bytes; raises EOFError if fewer were available."""
        available = self._fill(n)
        skipped = min(n, available)
        del self._rbuf[:skipped]
        if skipped < n:
            raise EOFError("EOF")
        return skipped

    # writing

    def _drain(self) -> None:
        data = bytes(self._wbuf)
        self._wbuf.clear()
        try:
            self._stream.write(data)
        except OSError as exc:
            self.write_error = exc
            raise

    def write(self, data) -> int:
        if self.write_error is not None:
            raise self.write_error
        self._wbuf += data
        if len(self._wbuf) >= self._buf_size:
            self._drain()
        return len(data)

    def write_uint_be(self, v: int, n: int) -> None:
        mask = (1 << (8 * n)) - 1
        self.write((v & mask).to_bytes(n, "big"))

    def write_uint_le(self, v: int, n: int) -> None:
        mask = (1 << (8 * n)) - 1
        self.write((v & mask).to_bytes(n, "little"))

    def flush(self) -> None:
        if self.write_error is not None:
            raise self.write_error
        if not self._wbuf:
            return
        self._drain()
        flush = getattr(self._stream, "flush", None)
        if flush is not None:
            try:
                flush()
            except OSError as exc:
                self.write_error = exc
                raise