"""Building blocks for a live streaming server: RTMP chunking and handshake, GOP caching, HTTP-FLV and HLS."""

__version__ = "0.1.0"