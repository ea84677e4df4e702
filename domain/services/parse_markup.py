from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PageElement, PreformattedString

from domain.models import LogicalLine, ParsedDocument, ParsedImage, StyledRun

BOLD_TAGS = {"b", "strong"}
ITALIC_TAGS = {"i", "em"}
UNDERLINE_TAGS = {"u"}
STRIKE_TAGS = {"s", "del", "strike"}
BLOCK_TAGS = {"p", "div", "h1", "h2", "h3", "h4", "h5", "h6", "li", "tr"}
IGNORED_TAGS = {"script", "style", "template", "head", "title"}
# Children of these are structure only; whitespace between them is never text.
CONTAINER_TAGS = {"ul", "ol", "table", "thead", "tbody", "tfoot", "tr"}
LINE_BOUNDARY_TAGS = BLOCK_TAGS | CONTAINER_TAGS | {"br"}
BULLET_PREFIX = "• "
_CASE_SENSITIVE_PROPERTIES = {"color", "background-color", "background"}

_NEWLINES_RE = re.compile(r"\n+")
_LEADING_NUMBER_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)")
_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
_COLOR_TOKEN_RE = re.compile(r"#[0-9a-fA-F]{3,8}|[a-zA-Z]+|(?:rgba?|hsla?)\([^()]*\)")


@dataclass(frozen=True)
class InheritedStyle:
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strike: bool = False
    color: str | None = None
    background_color: str | None = None
    font_size: float | None = None

    def merge(self, override: StyleOverride) -> InheritedStyle:
        return InheritedStyle(
            bold=self.bold or override.bold,
            italic=self.italic or override.italic,
            underline=self.underline or override.underline,
            strike=self.strike or override.strike,
            color=override.color if override.color is not None else self.color,
            background_color=(
                override.background_color
                if override.background_color is not None
                else self.background_color
            ),
            font_size=override.font_size if override.font_size is not None else self.font_size,
        )

    def run(self, text: str) -> StyledRun:
        return StyledRun(
            text=text,
            bold=self.bold,
            italic=self.italic,
            underline=self.underline,
            strike=self.strike,
            color=self.color,
            background_color=self.background_color,
            font_size=self.font_size,
        )


@dataclass(frozen=True)
class StyleOverride:
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strike: bool = False
    color: str | None = None
    background_color: str | None = None
    font_size: float | None = None


class RichTextMarkupParser:
    """Turns an HTML fragment into styled runs split into logical lines."""

    def parse(self, markup: Any) -> ParsedDocument:
        if not markup or not isinstance(markup, str):
            return ParsedDocument()

        soup = BeautifulSoup(markup, "html.parser")
        runs: list[StyledRun] = []
        images: list[ParsedImage] = []
        self._traverse_children(soup, InheritedStyle(), runs, images)

        merged = coalesce_runs(runs)
        lines = split_lines(merged)
        plain_text = _NEWLINES_RE.sub("\n", "".join(run.text for run in merged)).strip()
        return ParsedDocument(plain_text=plain_text, lines=tuple(lines), images=tuple(images))

    def _traverse_children(
        self,
        parent: Tag,
        style: InheritedStyle,
        runs: list[StyledRun],
        images: list[ParsedImage],
    ) -> None:
        list_item_index = 0
        for child in parent.children:
            if isinstance(child, Tag) and child.name == "li":
                self._traverse(child, style, runs, images, list_item_index)
                list_item_index += 1
            else:
                self._traverse(child, style, runs, images, 0)

    def _traverse(
        self,
        node: PageElement,
        style: InheritedStyle,
        runs: list[StyledRun],
        images: list[ParsedImage],
        list_item_index: int,
    ) -> None:
        if isinstance(node, NavigableString):
            if isinstance(node, PreformattedString):
                return
            text = str(node)
            if not text or is_layout_whitespace(node):
                return
            runs.append(style.run(text))
            return
        if not isinstance(node, Tag):
            return

        tag_name = (node.name or "").lower()
        if tag_name in IGNORED_TAGS:
            return
        if tag_name == "img":
            image = self._parse_image(node)
            if image is not None:
                images.append(image)
            return
        if tag_name == "br":
            runs.append(StyledRun(text="\n"))
            return
        if tag_name == "li":
            prefix = list_item_prefix(node, list_item_index)
            if prefix:
                runs.append(style.run(prefix))

        merged_style = style.merge(extract_style(node))
        self._traverse_children(node, merged_style, runs, images)

        if tag_name in BLOCK_TAGS and runs and not runs[-1].is_line_break:
            runs.append(StyledRun(text="\n"))

    def _parse_image(self, node: Tag) -> ParsedImage | None:
        src = str(node.get("src") or "").strip()
        if not src:
            return None
        alt = str(node.get("alt") or "") or None
        return ParsedImage(
            src=src,
            width=_positive_int(node.get("width")),
            height=_positive_int(node.get("height")),
            alt=alt,
        )


def parse_markup(markup: Any) -> ParsedDocument:
    return RichTextMarkupParser().parse(markup)


def is_layout_whitespace(node: NavigableString) -> bool:
    """True for source indentation that touches a block, list or line boundary.

    A whitespace-only text node with a newline is dropped when it opens or
    closes a block (or the document), sits next to a block-level sibling, or
    lives directly inside a list/table container. Between two inline elements
    it is kept verbatim, so its newline still breaks the line.
    """
    text = str(node)
    if text.strip() or "\n" not in text:
        return False
    parent = node.parent
    parent_tag = (parent.name or "").lower() if parent is not None else ""
    if parent_tag in CONTAINER_TAGS:
        return True
    previous, following = node.previous_sibling, node.next_sibling
    if _is_boundary_tag(previous) or _is_boundary_tag(following):
        return True
    if previous is None or following is None:
        return parent is None or isinstance(parent, BeautifulSoup) or parent_tag in BLOCK_TAGS
    return False


def _is_boundary_tag(node: PageElement | None) -> bool:
    return isinstance(node, Tag) and (node.name or "").lower() in LINE_BOUNDARY_TAGS


def list_item_prefix(node: Tag, index: int) -> str:
    parent = node.parent
    if parent is None:
        return ""
    parent_tag = (parent.name or "").lower()
    if parent_tag == "ul":
        return BULLET_PREFIX
    if parent_tag == "ol":
        return f"{index + 1}. "
    return ""


def extract_style(node: Tag) -> StyleOverride:
    tag_name = (node.name or "").lower()
    bold = tag_name in BOLD_TAGS
    italic = tag_name in ITALIC_TAGS
    underline = tag_name in UNDERLINE_TAGS
    strike = tag_name in STRIKE_TAGS

    classes = {str(name) for name in node.get_attribute_list("class") if name}
    bold = bold or "font-bold" in classes
    italic = italic or "italic" in classes
    underline = underline or "underline" in classes
    strike = strike or "line-through" in classes

    declarations = parse_inline_style(str(node.get("style") or ""))
    color = declarations.get("color") or None
    background_color = declarations.get("background-color") or _background_color(
        declarations.get("background", "")
    )
    font_size = _parse_font_size(declarations.get("font-size", ""))

    weight = declarations.get("font-weight", "")
    if weight in {"bold", "bolder"}:
        bold = True
    else:
        numeric_weight = _leading_number(weight)
        if numeric_weight is not None and numeric_weight >= 600:
            bold = True
    if declarations.get("font-style") == "italic":
        italic = True
    decoration = " ".join(
        declarations.get(key, "") for key in ("text-decoration", "text-decoration-line")
    )
    if "underline" in decoration:
        underline = True
    if "line-through" in decoration:
        strike = True

    return StyleOverride(
        bold=bold,
        italic=italic,
        underline=underline,
        strike=strike,
        color=color,
        background_color=background_color,
        font_size=font_size,
    )


def parse_inline_style(raw: str) -> dict[str, str]:
    declarations: dict[str, str] = {}
    for chunk in raw.split(";"):
        if ":" not in chunk:
            continue
        name, value = chunk.split(":", 1)
        value = value.replace("!important", "").strip()
        name = name.strip().lower()
        if not name or not value:
            continue
        declarations[name] = value if name in _CASE_SENSITIVE_PROPERTIES else value.lower()
    return declarations


def coalesce_runs(runs: list[StyledRun]) -> list[StyledRun]:
    if not runs:
        return []
    result: list[StyledRun] = []
    current = runs[0]
    for run in runs[1:]:
        if (
            current.same_style(run)
            and not current.text.endswith("\n")
            and not run.text.startswith("\n")
        ):
            current = replace(current, text=current.text + run.text)
        else:
            result.append(current)
            current = run
    result.append(current)
    return result


def split_lines(runs: list[StyledRun]) -> list[LogicalLine]:
    lines: list[LogicalLine] = []
    current: list[StyledRun] = []

    def end_line() -> None:
        nonlocal current
        if current:
            lines.append(LogicalLine(runs=tuple(current)))
            current = []
        else:
            lines.append(LogicalLine(runs=(StyledRun(text=""),)))

    for run in runs:
        if run.is_line_break:
            end_line()
        elif "\n" in run.text:
            parts = run.text.split("\n")
            for idx, part in enumerate(parts):
                if part:
                    current.append(replace(run, text=part))
                if idx < len(parts) - 1:
                    end_line()
        else:
            current.append(run)

    if current:
        lines.append(LogicalLine(runs=tuple(current)))
    return lines


def _parse_font_size(value: str) -> float | None:
    stripped = value.strip()
    if stripped.endswith("px"):
        stripped = stripped[:-2].strip()
    if not _NUMBER_RE.fullmatch(stripped):
        return None
    size = float(stripped)
    return size if size > 0 else None


def _leading_number(value: str) -> float | None:
    match = _LEADING_NUMBER_RE.match(value or "")
    if not match:
        return None
    return float(match.group(1))


def _background_color(value: str) -> str | None:
    token = value.strip()
    if not token or not _COLOR_TOKEN_RE.fullmatch(token):
        return None
    return token


def _positive_int(value: object) -> int | None:
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None
