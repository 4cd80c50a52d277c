"""RTMP handshake: plain and digest-based (HMAC-SHA256) variants."""

from __future__ import annotations

import hashlib
import hmac
import os
import struct

from .read_writer import ReadWriter

HANDSHAKE_TIMEOUT = 5.0
RTMP_VERSION = 3
HANDSHAKE_SIZE = 1536
DIGEST_SIZE = 32
SERVER_VERSION = 0x0D0E0A0D

_KEY_TAIL = bytes([
    0xF0, 0xEE, 0xC2, 0x4A, 0x80, 0x68, 0xBE, 0xE8, 0x2E, 0x00, 0xD0, 0xD1,
    0x02, 0x9E, 0x7E, 0x57, 0x6E, 0xEC, 0x5D, 0x2D, 0x29, 0x80, 0x6F, 0xAB,
    0x93, 0xB8, 0xE6, 0x36, 0xCF, 0xEB, 0x31, 0xAE,
])
CLIENT_FULL_KEY = b"Genuine Adobe Flash Player 001" + _KEY_TAIL
SERVER_FULL_KEY = b"Genuine Adobe Flash Media Server 001" + _KEY_TAIL
CLIENT_PARTIAL_KEY = CLIENT_FULL_KEY[:30]
SERVER_PARTIAL_KEY = SERVER_FULL_KEY[:36]

_U32 = 0xFFFFFFFF


class HandshakeError(Exception):
    """Raised when the peer sends an unacceptable handshake."""


def make_digest(key, src, gap: int) -> bytes:
    """HMAC-SHA256 of ``src``, skipping the 32-byte digest slot at ``gap`` if positive."""
    h = hmac.new(bytes(key), digestmod=hashlib.sha256)
    if gap <= 0:
        h.update(src)
    else:
        h.update(src[:gap])
        h.update(src[gap + DIGEST_SIZE:])
    return h.digest()


def calc_digest_pos(p, base: int) -> int:
    """Offset of the digest slot, derived from the four bytes at ``base``."""
    return sum(p[base:base + 4]) % 728 + base + 4


def find_digest(p, key, base: int) -> int:
    """Return the digest offset if the block carries a valid digest, else -1."""
    gap = calc_digest_pos(p, base)
    digest = make_digest(key, p, gap)
    if bytes(p[gap:gap + DIGEST_SIZE]) != digest:
        return -1
    return gap


def parse_c1(p, peer_key, key) -> bytes | None:
    """Validate a digest-style C1 block; return the key for S2, or None."""
    pos = find_digest(p, peer_key, 772)
    if pos == -1:
        pos = find_digest(p, peer_key, 8)
        if pos == -1:
            return None
    return make_digest(key, p[pos:pos + DIGEST_SIZE], -1)


def create_s0s1(timestamp: int, version: int, key) -> bytes:
    """Build a version byte followed by a digest-signed 1536-byte block."""
    p1 = bytearray(os.urandom(HANDSHAKE_SIZE))
    struct.pack_into(">II", p1, 0, timestamp & _U32, version & _U32)
    gap = calc_digest_pos(p1, 8)
    p1[gap:gap + DIGEST_SIZE] = make_digest(key, p1, gap)
    return bytes([RTMP_VERSION]) + bytes(p1)


def create_s2(key) -> bytes:
    """Build a random 1536-byte block whose last 32 bytes are its digest."""
    p = bytearray(os.urandom(HANDSHAKE_SIZE))
    gap = len(p) - DIGEST_SIZE
    p[gap:] = make_digest(key, p, gap)
    return bytes(p)


def handshake_client(rw: ReadWriter) -> None:
    """Run the client side: send C0C1, read S0S1S2, echo S1 as C2 (unflushed)."""
    c0c1 = bytes([RTMP_VERSION]) + bytes(HANDSHAKE_SIZE)
    rw.write(c0c1)
    rw.flush()
    s0s1s2 = rw.read(1 + 2 * HANDSHAKE_SIZE)
    s1 = s0s1s2[1:1 + HANDSHAKE_SIZE]
    rw.write(s1)


def handshake_server(rw: ReadWriter) -> None:
    """Run the server side: read C0C1, answer S0S1S2, read C2."""
    c0c1 = rw.read(1 + HANDSHAKE_SIZE)
    if c0c1[0] != RTMP_VERSION:
        raise HandshakeError(f"rtmp: handshake version={c0c1[0]} invalid")
    c1 = c0c1[1:]
    client_time, client_version = struct.unpack_from(">II", c1)
    if client_version != 0:
        digest = parse_c1(c1, CLIENT_PARTIAL_KEY, SERVER_FULL_KEY)
        if digest is None:
            raise HandshakeError("rtmp: handshake server: C1 invalid")
        s0s1 = create_s0s1(client_time, SERVER_VERSION, SERVER_PARTIAL_KEY)
        s2 = create_s2(digest)
    else:
        s0s1 = bytes([RTMP_VERSION]) + bytes(HANDSHAKE_SIZE)
        s2 = c1
    rw.write(s0s1 + s2)
    rw.flush()
    rw.read(HANDSHAKE_SIZE)