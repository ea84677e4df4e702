from __future__ import annotations

from domain.fonts import parse_font_spec

CHAR_WIDTH_RATIO = 0.6


class HeuristicMetricsProvider:
    """Approximates text width as ``characters × font size × ratio``."""

    def __init__(self, ratio: float = CHAR_WIDTH_RATIO, default_font_size: float = 16.0) -> None:
        self.ratio = ratio
        self.default_font_size = default_font_size

    def measure(self, text: str, font_spec: str) -> float:
        try:
            size = parse_font_spec(font_spec).size
        except ValueError:
            size = self.default_font_size
        return len(text) * size * self.ratio
