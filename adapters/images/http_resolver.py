from __future__ import annotations

import base64
import binascii
from io import BytesIO
from urllib.parse import unquote_to_bytes, urlparse

import httpx
from PIL import Image, UnidentifiedImageError

from domain.models import Size

GENERIC_MIME_TYPES = {"", "application/octet-stream", "binary/octet-stream"}


class ImageResolutionError(RuntimeError):
    pass


class HttpImageResolver:
    """Fetches images over HTTP(S) or from ``data:`` URLs.

    Sizes are read with Pillow; materialized images are returned as base64
    data URLs. Every failure surfaces as :class:`ImageResolutionError`.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float | None = None,
        follow_redirects: bool = True,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.follow_redirects = follow_redirects
        self.user_agent = user_agent
        self.transport = transport

    async def read_size(self, src: str) -> Size:
        payload, _ = await self._load(src)
        try:
            with Image.open(BytesIO(payload)) as image:
                width, height = image.size
        except (UnidentifiedImageError, OSError) as exc:
            msg = f"Cannot decode image {_describe(src)}"
            raise ImageResolutionError(msg) from exc
        if width <= 0 or height <= 0:
            msg = f"Image {_describe(src)} has no size"
            raise ImageResolutionError(msg)
        return Size(width=float(width), height=float(height))

    async def materialize(self, src: str) -> str:
        payload, mime_type = await self._load(src)
        if mime_type in GENERIC_MIME_TYPES:
            mime_type = _sniff_mime_type(payload, src)
        encoded = base64.b64encode(payload).decode("ascii")
        return f"data:{mime_type};base64,{encoded}"

    async def _load(self, src: str) -> tuple[bytes, str]:
        if src.startswith("data:"):
            return decode_data_url(src)
        parsed = urlparse(src)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            msg = f"Unsupported image source: {_describe(src)}"
            raise ImageResolutionError(msg)
        headers = {"Cache-Control": "no-store"}
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        try:
            async with httpx.AsyncClient(
                follow_redirects=self.follow_redirects,
                timeout=self.timeout_seconds,
                transport=self.transport,
            ) as client:
                response = await client.get(src, headers=headers)
        except httpx.HTTPError as exc:
            msg = f"Failed to fetch {src}: {exc}"
            raise ImageResolutionError(msg) from exc
        if response.status_code >= 400:
            msg = f"Failed to fetch {src}: {response.status_code} {response.reason_phrase}"
            raise ImageResolutionError(msg)
        if not response.content:
            msg = f"Empty body for {src}"
            raise ImageResolutionError(msg)
        mime_type = response.headers.get("content-type", "").split(";", 1)[0].strip().lower()
        return response.content, mime_type


def decode_data_url(src: str) -> tuple[bytes, str]:
    header, sep, data = src[len("data:") :].partition(",")
    if not sep:
        msg = "Malformed data URL"
        raise ImageResolutionError(msg)
    params = header.split(";")
    mime_type = params[0].strip().lower() or "text/plain"
    if "base64" in (param.strip().lower() for param in params[1:]):
        try:
            payload = base64.b64decode(data, validate=False)
        except (binascii.Error, ValueError) as exc:
            msg = "Malformed base64 payload in data URL"
            raise ImageResolutionError(msg) from exc
    else:
        payload = unquote_to_bytes(data)
    if not payload:
        msg = "Empty data URL"
        raise ImageResolutionError(msg)
    return payload, mime_type


def _sniff_mime_type(payload: bytes, src: str) -> str:
    try:
        with Image.open(BytesIO(payload)) as image:
            image_format = image.format
    except (UnidentifiedImageError, OSError) as exc:
        msg = f"Cannot determine image type of {_describe(src)}"
        raise ImageResolutionError(msg) from exc
    return Image.MIME.get(image_format or "", "image/png")


def _describe(src: str) -> str:
    return src if len(src) <= 80 else f"{src[:77]}..."
