from __future__ import annotations

from typing import Protocol


class MetricsProvider(Protocol):
    def measure(self, text: str, font_spec: str) -> float: ...
