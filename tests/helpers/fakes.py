from __future__ import annotations

from collections.abc import Mapping

from domain.fonts import parse_font_spec
from domain.models import Size

PNG_DATA_URL = "data:image/png;base64,iVBORw0KGgo="
FIXED_NOW = 1_700_000_000_000


class FixedWidthMetrics:
    def __init__(self, char_width: float = 8.0) -> None:
        self.char_width = char_width
        self.calls: list[tuple[str, str]] = []

    def measure(self, text: str, font_spec: str) -> float:
        self.calls.append((text, font_spec))
        return len(text) * self.char_width


class FontScaledMetrics:
    """Half of the font size per character, so bigger fonts measure wider."""

    def measure(self, text: str, font_spec: str) -> float:
        return len(text) * parse_font_spec(font_spec).size * 0.5


class FakeImageResolver:
    def __init__(
        self,
        sizes: Mapping[str, Size] | None = None,
        data_urls: Mapping[str, str] | None = None,
        size_failures: set[str] | None = None,
        fetch_failures: set[str] | None = None,
    ) -> None:
        self.sizes = dict(sizes or {})
        self.data_urls = dict(data_urls or {})
        self.size_failures = set(size_failures or ())
        self.fetch_failures = set(fetch_failures or ())
        self.size_requests: list[str] = []
        self.materialized: list[str] = []

    async def read_size(self, src: str) -> Size:
        self.size_requests.append(src)
        if src in self.size_failures:
            raise RuntimeError(f"size lookup failed for {src}")
        return self.sizes.get(src, Size(100.0, 50.0))

    async def materialize(self, src: str) -> str:
        self.materialized.append(src)
        if src in self.fetch_failures:
            raise RuntimeError(f"fetch failed for {src}")
        return self.data_urls.get(src, PNG_DATA_URL)


class SequentialIds:
    def __init__(self) -> None:
        self.counter = 0

    def __call__(self, prefix: str) -> str:
        self.counter += 1
        return f"{prefix}-{self.counter}"
