from __future__ import annotations

import os
from collections.abc import Callable, Generator

import pytest

from app.config import AppSettings, RenderSettings
from domain.ports.images import ImageResolver
from domain.ports.metrics import MetricsProvider
from domain.services.synthesize_rich_text_node import RichTextNodeSynthesizer, SynthesisSettings
from tests.helpers.fakes import FIXED_NOW, FakeImageResolver, FixedWidthMetrics, SequentialIds


def _clear_richtext_env() -> None:
    for key in list(os.environ):
        if key.startswith("RICHTEXT_"):
            os.environ.pop(key, None)


_clear_richtext_env()


@pytest.fixture(autouse=True)
def clear_richtext_env() -> Generator[None, None, None]:
    _clear_richtext_env()
    yield
    _clear_richtext_env()


@pytest.fixture
def metrics() -> FixedWidthMetrics:
    return FixedWidthMetrics(char_width=8.0)


@pytest.fixture
def images() -> FakeImageResolver:
    return FakeImageResolver()


@pytest.fixture
def synthesizer_factory() -> Callable[..., RichTextNodeSynthesizer]:
    def _factory(
        metrics: MetricsProvider | None = None,
        images: ImageResolver | None = None,
        settings: SynthesisSettings | None = None,
    ) -> RichTextNodeSynthesizer:
        return RichTextNodeSynthesizer(
            metrics or FixedWidthMetrics(char_width=8.0),
            images or FakeImageResolver(),
            settings,
            id_generator=SequentialIds(),
            clock=lambda: FIXED_NOW,
        )

    return _factory


@pytest.fixture
def synthesizer(
    synthesizer_factory: Callable[..., RichTextNodeSynthesizer],
    metrics: FixedWidthMetrics,
    images: FakeImageResolver,
) -> RichTextNodeSynthesizer:
    return synthesizer_factory(metrics, images)


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(render=RenderSettings(max_width=200.0, padding=10.0))
