from __future__ import annotations

import os
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

from domain.fonts import DEFAULT_FONT_FAMILY
from domain.models import NodeConfig, Size
from domain.services.synthesize_rich_text_node import SynthesisSettings

DEFAULT_CONFIG_PATH = Path("config/richtext.yaml")


class RenderSettings(BaseModel):
    max_width: float = Field(default=400.0, gt=0)
    font_size: float = Field(default=16.0, gt=0)
    default_color: str = "#1e1e1e"
    padding: float = Field(default=16.0, ge=0)
    font_family: str = DEFAULT_FONT_FAMILY
    font_path: Path | None = None
    bold_font_path: Path | None = None
    line_height_ratio: float = Field(default=1.6, gt=0)
    image_max_height: float = Field(default=240.0, gt=0)
    image_gap: float = Field(default=8.0, ge=0)
    fallback_image_width: float = Field(default=300.0, gt=0)
    fallback_image_height: float = Field(default=180.0, gt=0)

    @field_validator("font_path", "bold_font_path", mode="before")
    @classmethod
    def empty_path_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def to_synthesis_settings(self) -> SynthesisSettings:
        return SynthesisSettings(
            font_family=self.font_family,
            line_height_ratio=self.line_height_ratio,
            image_max_height=self.image_max_height,
            image_gap=self.image_gap,
            fallback_image_size=Size(self.fallback_image_width, self.fallback_image_height),
        )

    def node_config(self, markup: str, **overrides: object) -> NodeConfig:
        values: dict[str, object] = {
            "markup": markup,
            "max_width": self.max_width,
            "font_size": self.font_size,
            "default_color": self.default_color,
            "padding": self.padding,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return NodeConfig.model_validate(values)


class HttpSettings(BaseModel):
    timeout_seconds: float | None = None
    follow_redirects: bool = True
    user_agent: str | None = "richtext-node/0.1"


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="RICHTEXT_", env_nested_delimiter="__")

    title: str = "Rich Text Nodes"
    excalidraw_base_url: str = "https://excalidraw.com/"
    render: RenderSettings = RenderSettings()
    http: HttpSettings = HttpSettings()

    _yaml_path: ClassVar[Path | None] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        ]
        if cls._yaml_path:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_path))
        return tuple(sources)


def load_settings(config_path: Path | None = None) -> AppSettings:
    env_path = os.getenv("RICHTEXT_CONFIG_PATH")
    resolved_path: Path | None = None

    if config_path is not None:
        resolved_path = config_path
    elif env_path:
        resolved_path = Path(env_path)
    elif DEFAULT_CONFIG_PATH.exists():
        resolved_path = DEFAULT_CONFIG_PATH

    previous = AppSettings._yaml_path
    try:
        if resolved_path is not None:
            if not resolved_path.exists():
                msg = f"Config file not found: {resolved_path}"
                raise FileNotFoundError(msg)
            AppSettings._yaml_path = resolved_path
        return AppSettings()
    finally:
        AppSettings._yaml_path = previous
