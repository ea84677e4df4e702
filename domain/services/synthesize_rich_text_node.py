from __future__ import annotations

import asyncio
import logging
import math
import time
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from domain.fonts import DEFAULT_FONT_FAMILY, build_font_spec
from domain.models import (
    EmbeddedAsset,
    GapRow,
    ImagePrimitive,
    ImageRow,
    LayoutRow,
    LayoutRun,
    NodeConfig,
    ParsedDocument,
    ParsedImage,
    RectanglePrimitive,
    RenderPrimitive,
    ResolvedImage,
    Size,
    StyledRun,
    SynthesisResult,
    TextPrimitive,
    TextRow,
)
from domain.ports.images import ImageResolver
from domain.ports.metrics import MetricsProvider
from domain.services.line_layout import LayoutOptions, layout_runs
from domain.services.parse_markup import parse_markup

logger = logging.getLogger(__name__)

# Grey "Loading..." SVG used when an image cannot be embedded.
LOADING_PLACEHOLDER = (
    "data:image/svg+xml;base64,PHN2ZyB4bWxucz0iaHR0cDovL3d3dy53My5vcmcvMjAwMC9zdmciIHdpZHRoPSIxMDAi"
    "IGhlaWdodD0iNjAiIHZpZXdCb3g9IjAgMCAxMDAgNjAiPjxyZWN0IHdpZHRoPSIxMDAiIGhlaWdodD0iNjAiIGZpbGw9"
    "IiNlMGUwZTAiLz48dGV4dCB4PSI1MCIgeT0iMzUiIGZvbnQtZmFtaWx5PSJzYW5zLXNlcmlmIiBmb250LXNpemU9IjEy"
    "IiBmaWxsPSIjOTk5IiB0ZXh0LWFuY2hvcj0ibWlkZGxlIj5Mb2FkaW5nLi4uPC90ZXh0Pjwvc3ZnPg=="
)
ELEMENT_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_DNS, "richtext-node")


@dataclass(frozen=True)
class SynthesisSettings:
    font_family: str = DEFAULT_FONT_FAMILY
    line_height_ratio: float = 1.6
    image_max_height: float = 240.0
    image_gap: float = 8.0
    fallback_image_size: Size = Size(300.0, 180.0)
    bold_fallback_color: str = "#000000"
    card_fill_color: str = "#ffffff"
    card_stroke_color: str = "#e5e7eb"
    decoration_ratio: float = 0.08


@dataclass(frozen=True)
class _Frame:
    """Geometry shared by every primitive of one synthesis call."""

    node_id: str
    group_id: str
    card_x: float
    card_y: float
    padding: float
    content_width: float
    font_size: float
    row_heights: list[float]
    default_color: str
    row_offsets: list[float]


def generate_prefixed_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def current_millis() -> int:
    return int(time.time() * 1000)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def fit_image_size(natural: Size, max_width: float, max_height: float, fallback: Size) -> Size:
    width = natural.width if natural.width > 0 else fallback.width
    height = natural.height if natural.height > 0 else fallback.height
    scale = min(1.0, max(max_width, 1.0) / width, max(max_height, 1.0) / height)
    if scale != 1.0:
        width = max(1, round_half_up(width * scale))
        height = max(1, round_half_up(height * scale))
    return Size(width=float(width), height=float(height))


def mime_type_from_data_url(data_url: str, default: str = "image/png") -> str:
    if not data_url.startswith("data:"):
        return default
    header = data_url[len("data:") :].split(",", 1)[0]
    mime_type = header.split(";", 1)[0].strip().lower()
    return mime_type or default


class RichTextNodeSynthesizer:
    """Lays out a parsed rich-text document inside a card and emits its primitives."""

    def __init__(
        self,
        metrics: MetricsProvider,
        images: ImageResolver,
        settings: SynthesisSettings | None = None,
        id_generator: Callable[[str], str] = generate_prefixed_id,
        clock: Callable[[], int] = current_millis,
    ) -> None:
        self.metrics = metrics
        self.images = images
        self.settings = settings or SynthesisSettings()
        self.id_generator = id_generator
        self.clock = clock

    async def synthesize_markup(self, config: NodeConfig) -> SynthesisResult:
        return await self.synthesize(parse_markup(config.markup), config)

    async def synthesize(self, document: ParsedDocument, config: NodeConfig) -> SynthesisResult:
        node_id = config.node_id or self.id_generator("richtext")
        group_id = self.id_generator("richtext-group")
        line_height = config.font_size * self.settings.line_height_ratio
        content_width = config.max_width - config.padding * 2

        images = await self._resolve_images(document.images, content_width)
        rows = self._compose_rows(document, images, config.font_size, line_height, content_width)
        row_heights = self._row_heights(rows, line_height)

        row_offsets: list[float] = []
        accumulated = 0.0
        for height in row_heights:
            row_offsets.append(accumulated)
            accumulated += height
        total_height = accumulated
        for row in rows:
            if isinstance(row, ImageRow):
                total_height = max(total_height, row_offsets[row.line_index] + row.image.height)

        card_width = config.max_width
        card_height = total_height + config.padding * 2
        frame = _Frame(
            node_id=node_id,
            group_id=group_id,
            card_x=config.x - card_width / 2,
            card_y=config.y - card_height / 2,
            padding=config.padding,
            content_width=content_width,
            font_size=config.font_size,
            row_heights=row_heights,
            default_color=config.default_color,
            row_offsets=row_offsets,
        )
        now = self.clock()

        primitives: list[RenderPrimitive] = [
            RectanglePrimitive(
                id=self._element_id(group_id, "background", 0),
                group_id=group_id,
                node_id=node_id,
                role="background",
                x=frame.card_x,
                y=frame.card_y,
                width=card_width,
                height=card_height,
                fill_color=self.settings.card_fill_color,
                stroke_color=self.settings.card_stroke_color,
                stroke_width=1,
                rounded=True,
                node_config=config.model_copy(update={"node_id": node_id}),
            )
        ]
        assets: dict[str, EmbeddedAsset] = {}
        for row in rows:
            if isinstance(row, TextRow):
                primitives.extend(self._text_primitives(row.layout_run, frame, len(primitives)))
            elif isinstance(row, ImageRow):
                assets[row.image.file_id] = await self._materialize(row.image, now)
                primitives.append(self._image_primitive(row, frame, len(primitives)))

        return SynthesisResult(
            node_id=node_id,
            group_id=group_id,
            primitives=primitives,
            assets=assets,
            updated=now,
        )

    async def _resolve_images(
        self, images: Sequence[ParsedImage], content_width: float
    ) -> list[ResolvedImage]:
        file_ids = [self.id_generator("richtext-img") for _ in images]
        return list(
            await asyncio.gather(
                *(
                    self._resolve_size(image, file_id, content_width)
                    for image, file_id in zip(images, file_ids, strict=True)
                )
            )
        )

    async def _resolve_size(
        self, image: ParsedImage, file_id: str, content_width: float
    ) -> ResolvedImage:
        try:
            natural = await self.images.read_size(image.src)
        except Exception:
            logger.warning(
                "Failed to get image size for %s, using fallback size",
                image.src,
                exc_info=True,
            )
            natural = self.settings.fallback_image_size
        size = fit_image_size(
            natural,
            content_width,
            self.settings.image_max_height,
            self.settings.fallback_image_size,
        )
        return ResolvedImage(src=image.src, width=size.width, height=size.height, file_id=file_id)

    async def _materialize(self, image: ResolvedImage, now: int) -> EmbeddedAsset:
        try:
            data_url = await self.images.materialize(image.src)
        except Exception:
            logger.warning(
                "Failed to load image %s, embedding placeholder", image.src, exc_info=True
            )
            data_url = LOADING_PLACEHOLDER
        return EmbeddedAsset(
            file_id=image.file_id,
            mime_type=mime_type_from_data_url(data_url),
            data_url=data_url,
            created=now,
            last_retrieved=now,
        )

    def _compose_rows(
        self,
        document: ParsedDocument,
        images: Sequence[ResolvedImage],
        font_size: float,
        line_height: float,
        content_width: float,
    ) -> list[LayoutRow]:
        rows: list[LayoutRow] = []
        line_index = 0

        def measure(text: str, run: StyledRun) -> float:
            spec = build_font_spec(
                run.font_size or font_size,
                self.settings.font_family,
                bold=run.bold,
                italic=run.italic,
            )
            return self.metrics.measure(text, spec)

        for line in document.lines:
            if not line.has_content:
                continue
            result = layout_runs(
                line.runs,
                LayoutOptions(
                    max_width=content_width,
                    measure=measure,
                    start_line_index=line_index,
                ),
            )
            rows.extend(
                TextRow(line_index=item.line_index, layout_run=item) for item in result.items
            )
            line_index += result.lines_used

        if images and rows:
            rows.append(GapRow(line_index=line_index, height=self.settings.image_gap))
            line_index += 1
            for image in images:
                span = max(1, math.ceil(image.height / line_height))
                rows.append(ImageRow(line_index=line_index, image=image, span=span))
                line_index += span
                rows.append(GapRow(line_index=line_index, height=self.settings.image_gap))
                line_index += 1
        return rows

    def _row_heights(self, rows: Sequence[LayoutRow], line_height: float) -> list[float]:
        max_line_index = max((row.line_index for row in rows), default=0)
        heights = [line_height] * (max_line_index + 1)
        for row in rows:
            if isinstance(row, GapRow):
                heights[row.line_index] = max(heights[row.line_index], row.height)
            elif isinstance(row, ImageRow):
                per_row = row.image.height / row.span
                last_row = min(row.line_index + row.span, max_line_index + 1)
                for idx in range(row.line_index, last_row):
                    heights[idx] = max(heights[idx], per_row)
            else:
                run_font_size = row.layout_run.run.font_size
                if run_font_size:
                    run_height = run_font_size * self.settings.line_height_ratio
                    heights[row.line_index] = max(heights[row.line_index], run_height)
        return heights

    def _text_primitives(
        self, item: LayoutRun, frame: _Frame, ordinal: int
    ) -> list[RenderPrimitive]:
        run = item.run
        font_size = run.font_size or frame.font_size
        row_y = frame.card_y + frame.padding + frame.row_offsets[item.line_index]
        row_height = frame.row_heights[item.line_index]
        text_x = frame.card_x + frame.padding + item.offset_x
        if run.color:
            text_color = run.color
        elif run.bold:
            text_color = self.settings.bold_fallback_color
        else:
            text_color = frame.default_color
        thickness = max(1, round_half_up(font_size * self.settings.decoration_ratio))

        primitives: list[RenderPrimitive] = []

        def rectangle(role: str, y: float, height: float, fill: str) -> RectanglePrimitive:
            return RectanglePrimitive(
                id=self._element_id(frame.group_id, role, ordinal + len(primitives)),
                group_id=frame.group_id,
                node_id=frame.node_id,
                role=role,  # type: ignore[arg-type]
                x=text_x,
                y=y,
                width=item.width,
                height=height,
                fill_color=fill,
            )

        if run.background_color:
            primitives.append(rectangle("text-bg", row_y, row_height, run.background_color))
        if run.underline:
            underline_y = row_y + font_size + max(1, round_half_up(thickness / 2))
            primitives.append(rectangle("underline", underline_y, thickness, text_color))
        if run.strike:
            strike_y = row_y + round_half_up(font_size * 0.5)
            primitives.append(rectangle("strike", strike_y, thickness, text_color))
        primitives.append(
            TextPrimitive(
                id=self._element_id(frame.group_id, "text", ordinal + len(primitives)),
                group_id=frame.group_id,
                node_id=frame.node_id,
                x=text_x,
                y=row_y,
                width=item.width,
                height=row_height,
                text=run.text,
                font_size=font_size,
                color=text_color,
                bold=run.bold,
                italic=run.italic,
            )
        )
        return primitives

    def _image_primitive(self, row: ImageRow, frame: _Frame, ordinal: int) -> ImagePrimitive:
        image = row.image
        return ImagePrimitive(
            id=self._element_id(frame.group_id, "image", ordinal),
            group_id=frame.group_id,
            node_id=frame.node_id,
            x=frame.card_x + frame.padding + (frame.content_width - image.width) / 2,
            y=frame.card_y + frame.padding + frame.row_offsets[row.line_index],
            width=image.width,
            height=image.height,
            file_id=image.file_id,
            src=image.src,
        )

    def _element_id(self, group_id: str, role: str, ordinal: int) -> str:
        return str(uuid.uuid5(ELEMENT_NAMESPACE, f"{group_id}|{role}|{ordinal}"))
