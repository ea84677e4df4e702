from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace

from domain.models import LayoutRun, StyledRun

MeasureFn = Callable[[str, StyledRun], float]


@dataclass(frozen=True)
class LayoutOptions:
    max_width: float
    measure: MeasureFn
    start_line_index: int = 0
    start_offset_x: float = 0.0


@dataclass(frozen=True)
class LineLayoutResult:
    items: list[LayoutRun]
    lines_used: int


def layout_runs(runs: Iterable[StyledRun], options: LayoutOptions) -> LineLayoutResult:
    """Pack characters greedily into lines no wider than ``options.max_width``.

    Runs are split mid-text whenever the next character would overflow; they are
    never merged. A character that is wider than the whole line is placed alone
    on its own line so layout always advances.
    """
    items: list[LayoutRun] = []
    base_offset_x = options.start_offset_x
    limit = base_offset_x + options.max_width
    line_index = options.start_line_index
    offset_x = base_offset_x

    for run in runs:
        if not run.text:
            continue
        chars = list(run.text)
        part_start = 0
        part_width = 0.0

        for idx, char in enumerate(chars):
            char_width = options.measure(char, run)
            line_has_content = part_start < idx or offset_x > base_offset_x
            if offset_x + part_width + char_width > limit and line_has_content:
                if part_start < idx:
                    items.append(
                        LayoutRun(
                            run=replace(run, text="".join(chars[part_start:idx])),
                            line_index=line_index,
                            offset_x=offset_x,
                            width=part_width,
                        )
                    )
                line_index += 1
                offset_x = base_offset_x
                part_start = idx
                part_width = char_width
            else:
                part_width += char_width

        if part_start < len(chars):
            items.append(
                LayoutRun(
                    run=replace(run, text="".join(chars[part_start:])),
                    line_index=line_index,
                    offset_x=offset_x,
                    width=part_width,
                )
            )
            offset_x += part_width

    return LineLayoutResult(items=items, lines_used=line_index - options.start_line_index + 1)
