from __future__ import annotations

from adapters.images.http_resolver import HttpImageResolver
from adapters.metrics.heuristic import HeuristicMetricsProvider
from adapters.metrics.pillow_fonts import PillowMetricsProvider
from app.config import AppSettings
from domain.ports.images import ImageResolver
from domain.ports.metrics import MetricsProvider
from domain.services.rich_text_nodes import RichTextNodeEditor
from domain.services.synthesize_rich_text_node import RichTextNodeSynthesizer


def build_metrics_provider(settings: AppSettings) -> MetricsProvider:
    render = settings.render
    if render.font_path is None:
        return HeuristicMetricsProvider(default_font_size=render.font_size)
    return PillowMetricsProvider(
        render.font_path,
        bold_font_path=render.bold_font_path,
        fallback=HeuristicMetricsProvider(default_font_size=render.font_size),
    )


def build_image_resolver(settings: AppSettings) -> ImageResolver:
    return HttpImageResolver(
        timeout_seconds=settings.http.timeout_seconds,
        follow_redirects=settings.http.follow_redirects,
        user_agent=settings.http.user_agent,
    )


def build_synthesizer(
    settings: AppSettings,
    metrics: MetricsProvider | None = None,
    images: ImageResolver | None = None,
) -> RichTextNodeSynthesizer:
    return RichTextNodeSynthesizer(
        metrics or build_metrics_provider(settings),
        images or build_image_resolver(settings),
        settings.render.to_synthesis_settings(),
    )


def build_editor(
    settings: AppSettings,
    synthesizer: RichTextNodeSynthesizer | None = None,
) -> RichTextNodeEditor:
    return RichTextNodeEditor(synthesizer or build_synthesizer(settings))
