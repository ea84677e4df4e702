from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

NODE_TYPE = "rich-text-node"

PrimitiveRole = Literal["background", "text", "text-bg", "underline", "strike", "image"]
PRIMITIVE_ROLES: tuple[PrimitiveRole, ...] = (
    "background",
    "text",
    "text-bg",
    "underline",
    "strike",
    "image",
)


@dataclass(frozen=True)
class StyledRun:
    text: str
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strike: bool = False
    color: str | None = None
    background_color: str | None = None
    font_size: float | None = None

    @property
    def is_line_break(self) -> bool:
        return self.text == "\n"

    def same_style(self, other: StyledRun) -> bool:
        return (
            self.bold == other.bold
            and self.italic == other.italic
            and self.underline == other.underline
            and self.strike == other.strike
            and self.color == other.color
            and self.background_color == other.background_color
            and self.font_size == other.font_size
        )


@dataclass(frozen=True)
class LogicalLine:
    runs: tuple[StyledRun, ...]

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)

    @property
    def has_content(self) -> bool:
        return any(run.text.strip() for run in self.runs)


@dataclass(frozen=True)
class ParsedImage:
    src: str
    width: int | None = None
    height: int | None = None
    alt: str | None = None


@dataclass(frozen=True)
class ParsedDocument:
    plain_text: str = ""
    lines: tuple[LogicalLine, ...] = ()
    images: tuple[ParsedImage, ...] = ()


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class LayoutRun:
    run: StyledRun
    line_index: int
    offset_x: float
    width: float

    @property
    def text(self) -> str:
        return self.run.text


@dataclass(frozen=True)
class ResolvedImage:
    src: str
    width: float
    height: float
    file_id: str


@dataclass(frozen=True)
class TextRow:
    line_index: int
    layout_run: LayoutRun
    kind: Literal["text"] = "text"


@dataclass(frozen=True)
class ImageRow:
    line_index: int
    image: ResolvedImage
    span: int
    kind: Literal["image"] = "image"


@dataclass(frozen=True)
class GapRow:
    line_index: int
    height: float
    kind: Literal["gap"] = "gap"


LayoutRow = TextRow | ImageRow | GapRow


class NodeConfig(BaseModel):
    """Everything needed to rebuild a rich-text node from scratch."""

    model_config = ConfigDict(frozen=True)

    node_id: str | None = None
    markup: str = ""
    x: float = 0.0
    y: float = 0.0
    max_width: float = Field(default=400.0, gt=0)
    font_size: float = Field(default=16.0, gt=0)
    default_color: str = "#1e1e1e"
    padding: float = Field(default=16.0, ge=0)

    @model_validator(mode="after")
    def padding_leaves_content_width(self) -> NodeConfig:
        if self.padding * 2 >= self.max_width:
            msg = (
                f"padding {self.padding} leaves no content width "
                f"inside max_width {self.max_width}"
            )
            raise ValueError(msg)
        return self


@dataclass(frozen=True)
class RectanglePrimitive:
    id: str
    group_id: str
    node_id: str
    role: Literal["background", "text-bg", "underline", "strike"]
    x: float
    y: float
    width: float
    height: float
    fill_color: str
    stroke_color: str = "transparent"
    stroke_width: float = 0
    rounded: bool = False
    node_config: NodeConfig | None = None


@dataclass(frozen=True)
class TextPrimitive:
    id: str
    group_id: str
    node_id: str
    x: float
    y: float
    width: float
    height: float
    text: str
    font_size: float
    color: str
    bold: bool = False
    italic: bool = False
    role: Literal["text"] = "text"


@dataclass(frozen=True)
class ImagePrimitive:
    id: str
    group_id: str
    node_id: str
    x: float
    y: float
    width: float
    height: float
    file_id: str
    src: str
    role: Literal["image"] = "image"


RenderPrimitive = RectanglePrimitive | TextPrimitive | ImagePrimitive


@dataclass(frozen=True)
class EmbeddedAsset:
    file_id: str
    mime_type: str
    data_url: str
    created: int
    last_retrieved: int

    def to_file(self) -> dict[str, Any]:
        return {
            "id": self.file_id,
            "mimeType": self.mime_type,
            "dataURL": self.data_url,
            "created": self.created,
            "lastRetrieved": self.last_retrieved,
        }


@dataclass(frozen=True)
class ExcalidrawDocument:
    elements: list[dict]
    app_state: dict
    files: dict

    def to_dict(self) -> dict:
        return {
            "type": "excalidraw",
            "version": 2,
            "source": "richtext-node",
            "elements": self.elements,
            "appState": self.app_state,
            "files": self.files,
        }


@dataclass(frozen=True)
class SynthesisResult:
    node_id: str
    group_id: str
    primitives: list[RenderPrimitive] = field(default_factory=list)
    assets: dict[str, EmbeddedAsset] = field(default_factory=dict)
    updated: int = 0

    def files(self) -> dict[str, dict[str, Any]]:
        return {file_id: asset.to_file() for file_id, asset in self.assets.items()}
