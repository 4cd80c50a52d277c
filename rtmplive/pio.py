"""Big- and little-endian integer helpers for byte buffers.

Readers take any bytes-like object and decode from its start. Writers store
into the start of a mutable buffer (``bytearray`` or writable ``memoryview``),
keeping only as many low-order bits of the value as the field is wide.
"""

from __future__ import annotations

RECOMMENDED_BUFFER_SIZE = 1024 * 64


def _read(b, size: int, order: str, signed: bool = False) -> int:
    if len(b) < size:
        raise ValueError(f"need {size} bytes, got {len(b)}")
    return int.from_bytes(bytes(b[:size]), order, signed=signed)


def _put(b, v: int, size: int, order: str) -> None:
    if len(b) < size:
        raise ValueError(f"need room for {size} bytes, got {len(b)}")
    mask = (1 << (8 * size)) - 1
    b[:size] = (v & mask).to_bytes(size, order)


def u8(b) -> int:
    return _read(b, 1, "big")


def u16be(b) -> int:
    return _read(b, 2, "big")


def i16be(b) -> int:
    return _read(b, 2, "big", signed=True)


def i24be(b) -> int:
    return _read(b, 3, "big", signed=True)


def u24be(b) -> int:
    return _read(b, 3, "big")


def i32be(b) -> int:
    return _read(b, 4, "big", signed=True)


def u32le(b) -> int:
    return _read(b, 4, "little")


def u32be(b) -> int:
    return _read(b, 4, "big")


def u40be(b) -> int:
    return _read(b, 5, "big")


def u64be(b) -> int:
    return _read(b, 8, "big")


def i64be(b) -> int:
    return _read(b, 8, "big", signed=True)


def put_u8(b, v: int) -> None:
    _put(b, v, 1, "big")


def put_i16be(b, v: int) -> None:
    _put(b, v, 2, "big")


def put_u16be(b, v: int) -> None:
    _put(b, v, 2, "big")


def put_i24be(b, v: int) -> None:
    _put(b, v, 3, "big")


def put_u24be(b, v: int) -> None:
    _put(b, v, 3, "big")


def put_i32be(b, v: int) -> None:
    _put(b, v, 4, "big")


def put_u32be(b, v: int) -> None:
    _put(b, v, 4, "big")


def put_u32le(b, v: int) -> None:
    _put(b, v, 4, "little")


def put_u40be(b, v: int) -> None:
    _put(b, v, 5, "big")


def put_u48be(b, v: int) -> None:
    _put(b, v, 6, "big")


def put_u64be(b, v: int) -> None:
    _put(b, v, 8, "big")


def put_i64be(b, v: int) -> None:
    _put(b, v, 8, "big")