from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_FONT_FAMILY = "Virgil, Segoe UI Emoji, sans-serif"

_FONT_SPEC_RE = re.compile(
    r"^(?P<flags>(?:(?:italic|bold)\s+)*)(?P<size>\d+(?:\.\d+)?)px\s+(?P<family>.+)$"
)


@dataclass(frozen=True)
class FontSpec:
    size: float
    family: str = DEFAULT_FONT_FAMILY
    bold: bool = False
    italic: bool = False

    def css(self) -> str:
        parts: list[str] = []
        if self.italic:
            parts.append("italic")
        if self.bold:
            parts.append("bold")
        parts.append(f"{_format_size(self.size)}px {self.family}")
        return " ".join(parts)


def build_font_spec(
    size: float,
    family: str = DEFAULT_FONT_FAMILY,
    *,
    bold: bool = False,
    italic: bool = False,
) -> str:
    return FontSpec(size=size, family=family, bold=bold, italic=italic).css()


def parse_font_spec(spec: str) -> FontSpec:
    """Parse the ``[italic ][bold ]{size}px {family}`` shorthand used by metrics providers."""
    match = _FONT_SPEC_RE.match(spec.strip())
    if not match:
        msg = f"Unsupported font spec: {spec!r}"
        raise ValueError(msg)
    flags = match.group("flags").split()
    return FontSpec(
        size=float(match.group("size")),
        family=match.group("family").strip(),
        bold="bold" in flags,
        italic="italic" in flags,
    )


def _format_size(size: float) -> str:
    return str(int(size)) if float(size).is_integer() else str(size)
