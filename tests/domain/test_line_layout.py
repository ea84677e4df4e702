from __future__ import annotations

from collections import defaultdict

import pytest

from domain.models import StyledRun
from domain.services.line_layout import LayoutOptions, layout_runs


def _fixed(width: float):
    def measure(text: str, run: StyledRun) -> float:
        return len(text) * width

    return measure


def test_ten_characters_wrap_into_three_lines() -> None:
    result = layout_runs(
        [StyledRun(text="abcdefghij")],
        LayoutOptions(max_width=40.0, measure=_fixed(10.0)),
    )

    assert [item.text for item in result.items] == ["abcd", "efgh", "ij"]
    assert [item.line_index for item in result.items] == [0, 1, 2]
    assert [item.offset_x for item in result.items] == [0.0, 0.0, 0.0]
    assert [item.width for item in result.items] == [40.0, 40.0, 20.0]
    assert result.lines_used == 3


def test_state_carries_across_runs_without_merging() -> None:
    bold = StyledRun(text="ab", bold=True)
    plain = StyledRun(text="cd")

    result = layout_runs([bold, plain], LayoutOptions(max_width=30.0, measure=_fixed(10.0)))

    assert [(item.text, item.line_index, item.offset_x) for item in result.items] == [
        ("ab", 0, 0.0),
        ("c", 0, 20.0),
        ("d", 1, 0.0),
    ]
    assert result.items[0].run.bold
    assert not result.items[1].run.bold
    assert result.lines_used == 2


def test_break_at_run_boundary_does_not_emit_empty_fragment() -> None:
    result = layout_runs(
        [StyledRun(text="abc"), StyledRun(text="d", italic=True)],
        LayoutOptions(max_width=30.0, measure=_fixed(10.0)),
    )

    assert [(item.text, item.line_index) for item in result.items] == [("abc", 0), ("d", 1)]
    assert all(item.text for item in result.items)


def test_character_wider_than_line_is_placed_alone() -> None:
    options = LayoutOptions(max_width=40.0, measure=_fixed(50.0))
    result = layout_runs([StyledRun(text="xyz")], options)

    assert [(item.text, item.line_index) for item in result.items] == [("x", 0), ("y", 1), ("z", 2)]
    assert result.lines_used == 3


def test_single_oversized_character_uses_one_line() -> None:
    result = layout_runs([StyledRun(text="W")], LayoutOptions(max_width=5.0, measure=_fixed(50.0)))

    assert len(result.items) == 1
    assert result.lines_used == 1


@pytest.mark.parametrize("max_width", [0.0, 0.5, 1.0, 7.0, 1000.0])
def test_layout_terminates_for_any_width(max_width: float) -> None:
    text = "progress " * 5
    options = LayoutOptions(max_width=max_width, measure=_fixed(8.0))
    result = layout_runs([StyledRun(text=text)], options)

    assert result.lines_used >= 1
    assert "".join(item.text for item in result.items) == text


def test_start_line_index_and_offset_are_honoured() -> None:
    result = layout_runs(
        [StyledRun(text="abcde")],
        LayoutOptions(max_width=20.0, measure=_fixed(10.0), start_line_index=5, start_offset_x=3.0),
    )

    assert [(item.text, item.line_index, item.offset_x) for item in result.items] == [
        ("ab", 5, 3.0),
        ("cd", 6, 3.0),
        ("e", 7, 3.0),
    ]
    assert result.lines_used == 3


def test_empty_input_uses_one_line() -> None:
    result = layout_runs([StyledRun(text="")], LayoutOptions(max_width=20.0, measure=_fixed(10.0)))

    assert result.items == []
    assert result.lines_used == 1


def test_characters_are_measured_by_code_point() -> None:
    seen: list[str] = []

    def measure(text: str, run: StyledRun) -> float:
        seen.append(text)
        return 10.0

    options = LayoutOptions(max_width=100.0, measure=measure)
    result = layout_runs([StyledRun(text="a😀é")], options)

    assert seen == ["a", "😀", "é"]
    assert result.items[0].text == "a😀é"


def test_runs_on_one_line_never_overlap() -> None:
    widths = {"i": 3.0, "m": 12.0, "w": 11.0}

    def measure(text: str, run: StyledRun) -> float:
        return sum(widths.get(char, 7.0) * (2 if run.bold else 1) for char in text)

    runs = [
        StyledRun(text="minimum wim"),
        StyledRun(text="wow", bold=True),
        StyledRun(text="imiwmiw"),
        StyledRun(text="mmmm", italic=True),
    ]
    result = layout_runs(runs, LayoutOptions(max_width=50.0, measure=measure))

    by_line: dict[int, list] = defaultdict(list)
    for item in result.items:
        by_line[item.line_index].append(item)
    for items in by_line.values():
        ordered = sorted(items, key=lambda item: item.offset_x)
        for left, right in zip(ordered, ordered[1:]):
            assert left.offset_x + left.width <= right.offset_x
        last = ordered[-1]
        assert last.offset_x + last.width <= 50.0 or len(last.text) == 1
