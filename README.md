# rtmplive

Building blocks for a live video streaming server, in pure Python with no
third-party dependencies.

## Modules

- `rtmplive.pio`: read and write big- and little-endian integers at the
  start of byte buffers (`u32be`, `i24be`, `put_u24be`, `put_u32le`, ...).
- `rtmplive.pool.Pool`: a bump allocator; `get(size)` returns a writable
  `memoryview` carved from a shared 500 KiB buffer, starting a new buffer
  when the current one is full.
- `rtmplive.media`: `Packet`, `VideoHeader`, `AudioHeader`, `StreamInfo`,
  the `TagType` enum and `PacketQueue`, a thread-safe bounded store whose
  `pop` returns the most recently pushed packet.
- `rtmplive.uid.new_id()`: a short URL-safe random identifier.
- `rtmplive.read_writer.ReadWriter`: buffered reads and writes over a binary
  stream; once a read (or write) fails, later calls raise the same error.
- `rtmplive.chunk_stream.ChunkStream`: splits a message into RTMP chunks
  (`write_chunk`) and reassembles chunks (`read_chunk`).
- `rtmplive.handshake`: the RTMP handshake, both the plain variant and the
  HMAC-SHA256 digest variant on the server side.
- `rtmplive.conn.Conn`: an RTMP connection over a socket or a binary stream.
  `read()` returns complete messages, handles Set Chunk Size and Window
  Acknowledgement Size, and sends acknowledgements; it also builds control
  messages and runs the handshake.
- `rtmplive.gop_cache.Cache`: keeps metadata, the video and audio sequence
  headers and the latest group(s) of pictures so a new player can start at
  once.
- `rtmplive.rtmp_stream`: `VirReader` and `VirWriter` wrap publisher and
  player connections; `Stream` forwards packets from one publisher to its
  players; `RtmpStream` is the registry of streams by key, with
  `handle_reader`, `handle_writer` and `check_alive`.
- `rtmplive.flv_writer`: `flv_header()`, `encode_tag(packet)` and
  `FLVWriter`, which writes queued packets as an FLV byte stream to any
  object with a `write` method from a background thread.
- `rtmplive.hls_cache`: `TSItem` and `TSCacheItem`, a window of the newest
  three TS segments and the M3U8 playlist over them.
- `rtmplive.hls_timing`: `Status`, `Align` and `AudioCache`, helpers for
  segment timing and audio timestamp alignment.
- `rtmplive.hls_server.HLSServer`: serves playlists, segments and
  `crossdomain.xml`; `handle(path)` returns an `HLSResponse`, and the
  server is also a WSGI application.
- `rtmplive.stream_stats`: `collect_streams`, `live_statistics`,
  `parse_flv_path` and `is_published` report on the streams of an
  `RtmpStream`.

## Installing

```
pip install .
```

## Example: serving an HLS playlist

```python
from rtmplive.hls_cache import TSCacheItem, TSItem
from rtmplive.hls_server import HLSServer

cache = TSCacheItem("live/demo")
cache.set_item("/live/demo/1.ts", TSItem("/live/demo/1.ts", 3000, 1, b"..."))

server = HLSServer()
server.register("live/demo", cache)
response = server.handle("/live/demo.m3u8")
print(response.status, response.body.decode())
```

Because `HLSServer` is a WSGI application, any WSGI server can run it, for
example `wsgiref.simple_server.make_server("", 7002, server)`.

## What it does not do

- There is no command and no listening RTMP server: accepting sockets,
  wrapping them in `Conn` and attaching `VirReader`/`VirWriter` objects to
  an `RtmpStream` is left to the application.
- RTMP command messages (`connect`, `createStream`, `publish`, `play`) are
  not encoded or answered; there is no AMF codec.
- Nothing muxes MPEG-TS: `TSCacheItem` serves segments that the
  application produces and stores with `set_item`.
- There is no relaying or pushing of streams to other servers.

## Running the tests

```
pip install .[test]
pytest
```