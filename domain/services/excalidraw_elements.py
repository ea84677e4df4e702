from __future__ import annotations

import zlib
from typing import Any

from domain.models import (
    NODE_TYPE,
    ExcalidrawDocument,
    ImagePrimitive,
    NodeConfig,
    RectanglePrimitive,
    RenderPrimitive,
    SynthesisResult,
    TextPrimitive,
)

Element = dict[str, Any]

TEXT_LINE_HEIGHT = 1.25
TEXT_FONT_FAMILY = 1


def primitive_to_element(primitive: RenderPrimitive, updated: int = 0) -> Element:
    if isinstance(primitive, TextPrimitive):
        return _text_element(primitive, updated)
    if isinstance(primitive, ImagePrimitive):
        return _image_element(primitive, updated)
    return _rectangle_element(primitive, updated)


def to_elements(result: SynthesisResult) -> list[Element]:
    return [
        primitive_to_element(primitive, updated=result.updated) for primitive in result.primitives
    ]


def to_excalidraw_document(result: SynthesisResult) -> ExcalidrawDocument:
    app_state = {
        "viewBackgroundColor": "#ffffff",
        "gridSize": None,
        "currentItemFontFamily": TEXT_FONT_FAMILY,
    }
    return ExcalidrawDocument(
        elements=to_elements(result),
        app_state=app_state,
        files=result.files(),
    )


def node_custom_data(node_id: str, role: str) -> dict[str, Any]:
    return {"type": NODE_TYPE, "nodeId": node_id, "role": role}


def background_custom_data(node_id: str, config: NodeConfig) -> dict[str, Any]:
    return {
        **node_custom_data(node_id, "background"),
        "html": config.markup,
        "fontSize": config.font_size,
        "maxWidth": config.max_width,
        "padding": config.padding,
        "defaultColor": config.default_color,
        "x": config.x,
        "y": config.y,
    }


def _rectangle_element(primitive: RectanglePrimitive, updated: int) -> Element:
    if primitive.role == "background" and primitive.node_config is not None:
        custom_data = background_custom_data(primitive.node_id, primitive.node_config)
    else:
        custom_data = node_custom_data(primitive.node_id, primitive.role)
    return _base_shape(
        primitive,
        type_name="rectangle",
        updated=updated,
        custom_data=custom_data,
        extra={
            "strokeColor": primitive.stroke_color,
            "backgroundColor": primitive.fill_color,
            "strokeWidth": primitive.stroke_width,
            "roundness": {"type": 3} if primitive.rounded else None,
        },
    )


def _text_element(primitive: TextPrimitive, updated: int) -> Element:
    return _base_shape(
        primitive,
        type_name="text",
        updated=updated,
        custom_data=node_custom_data(primitive.node_id, "text"),
        extra={
            "strokeColor": primitive.color,
            "backgroundColor": "transparent",
            "strokeWidth": 1,
            "text": primitive.text,
            "originalText": primitive.text,
            "fontSize": primitive.font_size,
            "fontFamily": TEXT_FONT_FAMILY,
            "textAlign": "left",
            "verticalAlign": "top",
            "baseline": round(primitive.font_size * 0.8),
            "containerId": None,
            "autoResize": True,
            "lineHeight": TEXT_LINE_HEIGHT,
        },
    )


def _image_element(primitive: ImagePrimitive, updated: int) -> Element:
    return _base_shape(
        primitive,
        type_name="image",
        updated=updated,
        custom_data=node_custom_data(primitive.node_id, "image"),
        extra={
            "strokeColor": "transparent",
            "backgroundColor": "transparent",
            "strokeWidth": 0,
            "status": "saved",
            "fileId": primitive.file_id,
            "scale": [1, 1],
        },
    )


def _base_shape(
    primitive: RenderPrimitive,
    type_name: str,
    updated: int,
    custom_data: dict[str, Any],
    extra: dict[str, Any] | None = None,
) -> Element:
    seed = _seed_for(primitive.id)
    return {
        "id": primitive.id,
        "type": type_name,
        "x": primitive.x,
        "y": primitive.y,
        "width": primitive.width,
        "height": primitive.height,
        "angle": 0,
        "fillStyle": "solid",
        "strokeStyle": "solid",
        "roughness": 0,
        "opacity": 100,
        "groupIds": [primitive.group_id],
        "frameId": None,
        "roundness": None,
        "seed": seed,
        "version": 1,
        "versionNonce": seed + 1,
        "isDeleted": False,
        "boundElements": None,
        "updated": updated,
        "link": None,
        "locked": False,
        "customData": custom_data,
        **(extra or {}),
    }


def _seed_for(element_id: str) -> int:
    return zlib.crc32(element_id.encode("utf-8")) % (2**31 - 2) + 1
