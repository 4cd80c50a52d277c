"""HTTP front end for HLS: playlists, segments and the cross-domain policy."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from http import HTTPStatus

from .hls_cache import NoKeyError, TSCacheItem

CROSSDOMAIN_XML = b"""<?xml version="1.0" ?>
<cross-domain-policy>
\t<allow-access-from domain="*" />
\t<allow-http-request-headers-from domain="*" headers="*"/>
</cross-domain-policy>"""

NO_PUBLISHER = "No publisher"


@dataclass
class HLSResponse:
    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""


def _error(status: int, message: str) -> HLSResponse:
    return HLSResponse(
        status=status,
        headers={
            "Content-Type": "text/plain; charset=utf-8",
            "X-Content-Type-Options": "nosniff",
        },
        body=(message + "\n").encode(),
    )


def _base(path: str) -> str:
    trimmed = path.rstrip("/")
    if not trimmed:
        return "/" if path else "."
    return trimmed.rsplit("/", 1)[-1]


def _ext(path: str) -> str:
    name = path.rsplit("/", 1)[-1]
    dot = name.rfind(".")
    return name[dot:] if dot >= 0 else ""


def parse_m3u8(path: str) -> str:
    """Stream key of a playlist path: ``/app/name.m3u8`` gives ``app/name``."""
    path = path.lstrip("/")
    ext = _ext(path)
    return path[: len(path) - len(ext)] if ext else path


def parse_ts(path: str) -> str:
    """Stream key of a segment path: ``/app/name/seg.ts`` gives ``app/name``."""
    path = path.lstrip("/")
    parts = path.split("/", 2)
    if len(parts) != 3:
        raise ValueError(f"invalid path={path}")
    return parts[0] + "/" + parts[1]


class HLSServer:
    """Serves the segment caches of live streams over HTTP (WSGI)."""

    def __init__(self) -> None:
        self._caches: dict[str, TSCacheItem] = {}
        self._lock = threading.Lock()

    def register(self, key: str, cache: TSCacheItem) -> None:
        with self._lock:
            self._caches[key] = cache

    def remove(self, key: str) -> bool:
        """Forget a stream; return whether it was registered."""
        with self._lock:
            return self._caches.pop(key, None) is not None

    def _get(self, key: str) -> TSCacheItem | None:
        with self._lock:
            return self._caches.get(key)

    def handle(self, path: str) -> HLSResponse:
        if _base(path) == "crossdomain.xml":
            return HLSResponse(headers={"Content-Type": "application/xml"}, body=CROSSDOMAIN_XML)
        ext = _ext(path)
        if ext == ".m3u8":
            cache = self._get(parse_m3u8(path))
            if cache is None:
                return _error(HTTPStatus.FORBIDDEN, NO_PUBLISHER)
            body = cache.gen_m3u8_playlist()
            return HLSResponse(
                headers={
                    "Access-Control-Allow-Origin": "*",
                    "Cache-Control": "no-cache",
                    "Content-Type": "application/x-mpegURL",
                    "Content-Length": str(len(body)),
                },
                body=body,
            )
        if ext == ".ts":
            try:
                key = parse_ts(path)
            except ValueError:
                key = ""
            cache = self._get(key)
            if cache is None:
                return _error(HTTPStatus.FORBIDDEN, NO_PUBLISHER)
            try:
                item = cache.get_item(path)
            except NoKeyError as exc:
                return _error(HTTPStatus.BAD_REQUEST, str(exc))
            return HLSResponse(
                headers={
                    "Access-Control-Allow-Origin": "*",
                    "Content-Type": "video/mp2ts",
                    "Content-Length": str(len(item.data)),
                },
                body=item.data,
            )
        return HLSResponse()

    def __call__(self, environ, start_response):
        response = self.handle(environ.get("PATH_INFO", "/") or "/")
        status = HTTPStatus(response.status)
        start_response(f"{status.value} {status.phrase}", list(response.headers.items()))
        return [response.body]