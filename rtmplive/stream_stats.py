"""Reports on live streams: who publishes, who plays, and at what bit rate."""

from __future__ import annotations

from .rtmp_stream import RtmpStream, Stream, VirReader, VirWriter

FLV_EXTENSION = ".flv"


def _players(stream: Stream) -> list:
    return [pw.writer for pw in list(stream.writers.values()) if pw.writer is not None]


def _streams(rtmp_stream: RtmpStream) -> list[tuple[str, Stream]]:
    return list(rtmp_stream.streams.items())


def collect_streams(rtmp_stream: RtmpStream) -> dict[str, list[dict[str, str]]]:
    """List every publisher and player as ``{"key": ..., "id": ...}`` entries."""
    items = _streams(rtmp_stream)
    publishers = [
        {"key": key, "id": stream.reader.info().uid}
        for key, stream in items
        if stream.reader is not None
    ]
    players = [
        {"key": key, "id": writer.info().uid}
        for key, stream in items
        for writer in _players(stream)
    ]
    return {"publishers": publishers, "players": players}


def _statistics_entry(key: str, url: str, bw) -> dict:
    return {
        "key": key,
        "Url": url,
        "StreamId": bw.stream_id,
        "VideoTotalBytes": bw.video_bytes,
        "VideoSpeed": bw.video_speed,
        "AudioTotalBytes": bw.audio_bytes,
        "AudioSpeed": bw.audio_speed,
    }


def live_statistics(rtmp_stream: RtmpStream) -> dict[str, list[dict]]:
    """Byte totals and bit rates of RTMP publishers and RTMP players."""
    items = _streams(rtmp_stream)
    publishers = [
        _statistics_entry(key, stream.reader.info().url, stream.reader.read_bw)
        for key, stream in items
        if isinstance(stream.reader, VirReader)
    ]
    players = [
        _statistics_entry(key, writer.info().url, writer.write_bw)
        for key, stream in items
        for writer in _players(stream)
        if isinstance(writer, VirWriter)
    ]
    return {"publishers": publishers, "players": players}


def parse_flv_path(path: str) -> tuple[str, str]:
    """Split ``/app/name.flv`` into ``(app, name)``; raise ValueError otherwise."""
    dot = path.rfind(".")
    if dot < 0 or path[dot:] != FLV_EXTENSION:
        raise ValueError("invalid path")
    trimmed = path.lstrip("/")
    if trimmed.endswith(FLV_EXTENSION):
        trimmed = trimmed[: -len(FLV_EXTENSION)]
    parts = trimmed.split("/", 1)
    if len(parts) != 2:
        raise ValueError("invalid path")
    return parts[0], parts[1]


def is_published(rtmp_stream: RtmpStream, key: str) -> bool:
    """Whether a publisher is attached to the stream ``key``."""
    return any(entry["key"] == key for entry in collect_streams(rtmp_stream)["publishers"])