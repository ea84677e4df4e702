from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from domain.models import NODE_TYPE, PRIMITIVE_ROLES, NodeConfig, Point, PrimitiveRole
from domain.services.excalidraw_elements import to_elements
from domain.services.synthesize_rich_text_node import RichTextNodeSynthesizer

Element = dict[str, Any]

_CONFIG_KEYS = {
    "html": "markup",
    "fontSize": "font_size",
    "maxWidth": "max_width",
    "padding": "padding",
    "defaultColor": "default_color",
    "x": "x",
    "y": "y",
}


def _custom_data(element: Mapping[str, Any]) -> Mapping[str, Any]:
    data = element.get("customData") if isinstance(element, Mapping) else None
    return data if isinstance(data, Mapping) else {}


def is_rich_text_element(element: Mapping[str, Any]) -> bool:
    return _custom_data(element).get("type") == NODE_TYPE


def element_role(element: Mapping[str, Any]) -> PrimitiveRole | None:
    if not is_rich_text_element(element):
        return None
    role = _custom_data(element).get("role")
    for known in PRIMITIVE_ROLES:
        if role == known:
            return known
    return None


def element_node_id(element: Mapping[str, Any]) -> str | None:
    if not is_rich_text_element(element):
        return None
    node_id = _custom_data(element).get("nodeId")
    return str(node_id) if node_id is not None else None


def is_rich_text_background(element: Mapping[str, Any]) -> bool:
    return element_role(element) == "background"


def get_node_config(element: Mapping[str, Any]) -> NodeConfig | None:
    """Rebuild the node configuration stored on a background element."""
    if not is_rich_text_background(element):
        return None
    data = _custom_data(element)
    values: dict[str, Any] = {"node_id": data.get("nodeId")}
    for source_key, target_key in _CONFIG_KEYS.items():
        if data.get(source_key) is not None:
            values[target_key] = data[source_key]
    try:
        return NodeConfig.model_validate(values)
    except ValidationError:
        return None


def get_node_elements(
    elements: Sequence[Mapping[str, Any]], node_id: str
) -> list[Mapping[str, Any]]:
    return [element for element in elements if element_node_id(element) == node_id]


def find_background(
    elements: Sequence[Mapping[str, Any]], node_id: str
) -> Mapping[str, Any] | None:
    for element in elements:
        if is_rich_text_background(element) and element_node_id(element) == node_id:
            if not element.get("isDeleted"):
                return element
    return None


def node_center(background: Mapping[str, Any]) -> Point:
    return Point(
        x=float(background.get("x", 0.0)) + float(background.get("width", 0.0)) / 2,
        y=float(background.get("y", 0.0)) + float(background.get("height", 0.0)) / 2,
    )


def delete_node(elements: Sequence[Mapping[str, Any]], node_id: str) -> list[Element]:
    """Mark every element of ``node_id`` deleted; other elements pass through unchanged."""
    updated: list[Element] = []
    for element in elements:
        if element_node_id(element) == node_id:
            updated.append({**element, "isDeleted": True})
        else:
            updated.append(dict(element))
    return updated


class NodeNotFoundError(LookupError):
    pass


class RichTextNodeEditor:
    def __init__(self, synthesizer: RichTextNodeSynthesizer) -> None:
        self.synthesizer = synthesizer

    async def insert_node(
        self, elements: Sequence[Mapping[str, Any]], config: NodeConfig
    ) -> tuple[list[Element], dict[str, dict[str, Any]]]:
        result = await self.synthesizer.synthesize_markup(config)
        return [*(dict(element) for element in elements), *to_elements(result)], result.files()

    async def replace_node(
        self,
        elements: Sequence[Mapping[str, Any]],
        node_id: str,
        markup: str,
    ) -> tuple[list[Element], dict[str, dict[str, Any]]]:
        """Soft-delete a node and synthesize its replacement at the same centre."""
        background = find_background(elements, node_id)
        if background is None:
            msg = f"Rich-text node not found: {node_id}"
            raise NodeNotFoundError(msg)
        stored = get_node_config(background) or NodeConfig(node_id=node_id)
        center = node_center(background)
        config = stored.model_copy(
            update={"node_id": node_id, "markup": markup, "x": center.x, "y": center.y}
        )
        remaining = delete_node(elements, node_id)
        return await self.insert_node(remaining, config)
