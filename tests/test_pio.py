import pytest

from rtmplive import pio


@pytest.mark.parametrize(
    "put,get,size,value",
    [
        (pio.put_u16be, pio.u16be, 2, 0xBEEF),
        (pio.put_i16be, pio.i16be, 2, -2),
        (pio.put_i24be, pio.i24be, 3, -100000),
        (pio.put_u24be, pio.u24be, 3, 0xABCDEF),
        (pio.put_i32be, pio.i32be, 4, -123456789),
        (pio.put_u32be, pio.u32be, 4, 0xDEADBEEF),
        (pio.put_u32le, pio.u32le, 4, 0xDEADBEEF),
        (pio.put_u40be, pio.u40be, 5, 0x123456789A),
        (pio.put_u64be, pio.u64be, 8, 0x0102030405060708),
        (pio.put_i64be, pio.i64be, 8, -1234567890123),
    ],
)
def test_round_trip(put, get, size, value):
    buf = bytearray(size)
    put(buf, value)
    assert get(buf) == value


def test_u8_round_trip():
    buf = bytearray(1)
    pio.put_u8(buf, 0x7F)
    assert pio.u8(buf) == 0x7F


def test_little_endian_is_reverse_of_big_endian():
    value = 0x11223344
    buf = bytearray(4)
    pio.put_u32le(buf, value)
    assert pio.u32be(bytes(reversed(buf))) == value


def test_u48_matches_u64_with_leading_zeros():
    value = 0x123456789ABC
    buf = bytearray(6)
    pio.put_u48be(buf, value)
    assert pio.u64be(b"\x00\x00" + bytes(buf)) == value


def test_signed_24_bit_sign_extension():
    raw = bytes([0xFF, 0xFF, 0xFF])
    assert pio.i24be(raw) == -1
    assert pio.u24be(raw) == 0xFFFFFF


def test_negative_written_as_twos_complement():
    buf = bytearray(2)
    pio.put_i16be(buf, -1)
    assert bytes(buf) == b"\xff\xff"


def test_put_truncates_wide_values():
    buf = bytearray(2)
    pio.put_u16be(buf, 0x1BEEF)
    assert pio.u16be(buf) == 0xBEEF


def test_put_writes_only_the_prefix():
    original = bytearray(b"abcdef")
    buf = bytearray(original)
    pio.put_u16be(buf, 0x0102)
    assert buf[2:] == original[2:]


def test_short_buffer_rejected():
    with pytest.raises(ValueError):
        pio.u32be(b"\x01\x02")