from __future__ import annotations

import logging
from pathlib import Path

from PIL import ImageFont

from adapters.metrics.heuristic import HeuristicMetricsProvider
from domain.fonts import FontSpec, parse_font_spec

logger = logging.getLogger(__name__)

FontKey = tuple[str, float]


class PillowMetricsProvider:
    """Measures text with a TrueType/OpenType font loaded through Pillow.

    The family in a font spec string is informational only: glyph metrics come from
    ``font_path`` (or ``bold_font_path`` for bold runs). When no font can be
    loaded the provider degrades to the character-count heuristic.
    """

    def __init__(
        self,
        font_path: Path | None,
        bold_font_path: Path | None = None,
        fallback: HeuristicMetricsProvider | None = None,
    ) -> None:
        self.font_path = font_path
        self.bold_font_path = bold_font_path
        self.fallback = fallback or HeuristicMetricsProvider()
        self._fonts: dict[FontKey, ImageFont.FreeTypeFont | None] = {}
        self._warned = False

    def measure(self, text: str, font_spec: str) -> float:
        try:
            spec = parse_font_spec(font_spec)
        except ValueError:
            return self.fallback.measure(text, font_spec)
        font = self._font_for(spec)
        if font is None:
            return self.fallback.measure(text, font_spec)
        return float(font.getlength(text))

    def _font_for(self, spec: FontSpec) -> ImageFont.FreeTypeFont | None:
        path = self.bold_font_path if spec.bold and self.bold_font_path else self.font_path
        if path is None:
            self._warn_once("No font file configured; using heuristic text metrics.")
            return None
        key = (str(path), spec.size)
        if key not in self._fonts:
            try:
                self._fonts[key] = ImageFont.truetype(str(path), size=spec.size)
            except OSError:
                self._warn_once(f"Cannot load font {path}; using heuristic text metrics.")
                self._fonts[key] = None
        return self._fonts[key]

    def _warn_once(self, message: str) -> None:
        if self._warned:
            return
        self._warned = True
        logger.warning(message)
