"""Replay cache for new players: metadata, codec headers and recent GOPs."""

from __future__ import annotations

from .media import AAC_SEQHDR, SOUND_AAC, AudioHeader, Packet, VideoHeader

MAX_GOP_CAP = 1024
DEFAULT_GOP_NUM = 1


class GopTooBigError(Exception):
    """Raised when a group of pictures exceeds ``MAX_GOP_CAP`` packets."""

    def __init__(self) -> None:
        super().__init__("gop to big")


class _Gop:
    """Packets of one group of pictures, starting at a key frame."""

    def __init__(self) -> None:
        self.packets: list[Packet] = []

    def reset(self) -> None:
        self.packets.clear()

    def write(self, p: Packet) -> None:
        if len(self.packets) >= MAX_GOP_CAP:
            raise GopTooBigError()
        self.packets.append(p)

    def send(self, w) -> None:
        for p in self.packets:
            w.write(p)


class SpecialCache:
    """Holds the latest packet of one kind (metadata or a sequence header)."""

    def __init__(self) -> None:
        self._packet: Packet | None = None

    def write(self, p: Packet) -> None:
        self._packet = p

    def send(self, w) -> None:
        if self._packet is not None:
            w.write(self._packet)


def _is_gop_start(p: Packet) -> bool:
    return (
        p.is_video
        and isinstance(p.header, VideoHeader)
        and p.header.is_key_frame
        and not p.header.is_seq
    )


class GopCache:
    """Ring of the last ``num`` groups of pictures."""

    def __init__(self, num: int = DEFAULT_GOP_NUM) -> None:
        if num < 1:
            raise ValueError(f"gop count must be positive, got {num}")
        self._count = num
        self._gops: list[_Gop | None] = [None] * num
        self._num = 0
        self._next = 0
        self._start = False

    def _write_to_array(self, p: Packet, start_new: bool) -> None:
        if start_new:
            gop = self._gops[self._next]
            if gop is None:
                gop = _Gop()
                self._gops[self._next] = gop
                self._num += 1
            else:
                gop.reset()
            self._next = (self._next + 1) % self._count
        else:
            gop = self._gops[(self._next - 1) % self._count]
        try:
            gop.write(p)
        except GopTooBigError:
            # An oversized GOP keeps its first packets; the rest are not cached.
            pass

    def write(self, p: Packet) -> None:
        """Cache ``p``; nothing is kept until the first key frame arrives."""
        key = _is_gop_start(p)
        if key or self._start:
            self._start = True
            self._write_to_array(p, key)

    def send(self, w) -> None:
        """Write every cached GOP to ``w``, oldest first."""
        for i in range(self._num):
            gop = self._gops[(self._next - self._num + i) % self._count]
            gop.send(w)


class Cache:
    """Everything a newly joined player needs before live packets."""

    def __init__(self, gop_num: int = DEFAULT_GOP_NUM) -> None:
        self.gop = GopCache(gop_num)
        self.video_seq = SpecialCache()
        self.audio_seq = SpecialCache()
        self.metadata = SpecialCache()

    def write(self, p: Packet) -> None:
        if p.is_metadata:
            self.metadata.write(p)
            return
        if not p.is_video:
            header = p.header
            if isinstance(header, AudioHeader):
                if header.sound_format == SOUND_AAC and header.aac_packet_type == AAC_SEQHDR:
                    self.audio_seq.write(p)
                return
        else:
            header = p.header
            if not isinstance(header, VideoHeader):
                return
            if header.is_seq:
                self.video_seq.write(p)
                return
        self.gop.write(p)

    def send(self, w) -> None:
        """Replay metadata, video and audio sequence headers, then the GOPs."""
        self.metadata.send(w)
        self.video_seq.send(w)
        self.audio_seq.send(w)
        self.gop.send(w)