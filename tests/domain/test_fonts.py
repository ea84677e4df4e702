from __future__ import annotations

import pytest

from domain.fonts import DEFAULT_FONT_FAMILY, FontSpec, build_font_spec, parse_font_spec


@pytest.mark.parametrize(
    ("kwargs", "expected"),
    [
        ({"size": 16}, f"16px {DEFAULT_FONT_FAMILY}"),
        ({"size": 20.0, "bold": True}, f"bold 20px {DEFAULT_FONT_FAMILY}"),
        (
            {"size": 12.5, "italic": True, "bold": True, "family": "Inter"},
            "italic bold 12.5px Inter",
        ),
    ],
)
def test_build_font_spec(kwargs: dict, expected: str) -> None:
    assert build_font_spec(**kwargs) == expected


def test_parse_font_spec_reads_flags_size_and_family() -> None:
    assert parse_font_spec("italic bold 18px Virgil, sans-serif") == FontSpec(
        size=18.0, family="Virgil, sans-serif", bold=True, italic=True
    )


@pytest.mark.parametrize("spec", ["", "16 Arial", "heavy 16px Arial", "px Arial"])
def test_parse_font_spec_rejects_unknown_shapes(spec: str) -> None:
    with pytest.raises(ValueError, match="Unsupported font spec"):
        parse_font_spec(spec)
