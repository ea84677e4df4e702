from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, cast

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel, Field, ValidationError

from app.config import AppSettings
from app.wiring import build_editor, build_synthesizer
from domain.models import NodeConfig
from domain.services.excalidraw_elements import to_elements
from domain.services.parse_markup import parse_markup
from domain.services.rich_text_nodes import NodeNotFoundError, RichTextNodeEditor
from domain.services.synthesize_rich_text_node import RichTextNodeSynthesizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RichTextContext:
    settings: AppSettings
    synthesizer: RichTextNodeSynthesizer
    editor: RichTextNodeEditor


class ParseRequest(BaseModel):
    markup: str = ""


class NodeRequest(BaseModel):
    markup: str = ""
    x: float = 0.0
    y: float = 0.0
    node_id: str | None = None
    max_width: float | None = None
    font_size: float | None = None
    default_color: str | None = None
    padding: float | None = None


class ReplaceNodeRequest(BaseModel):
    markup: str
    elements: list[dict[str, Any]] = Field(default_factory=list)


def create_app(
    settings: AppSettings,
    synthesizer: RichTextNodeSynthesizer | None = None,
) -> FastAPI:
    app = FastAPI(title=settings.title, default_response_class=ORJSONResponse)
    synthesizer = synthesizer or build_synthesizer(settings)
    app.state.context = RichTextContext(
        settings=settings,
        synthesizer=synthesizer,
        editor=build_editor(settings, synthesizer),
    )

    @app.get("/health")
    def health() -> ORJSONResponse:
        return ORJSONResponse({"status": "ok"})

    @app.post("/api/parse")
    def parse_endpoint(payload: ParseRequest) -> ORJSONResponse:
        return ORJSONResponse(parse_markup(payload.markup))

    @app.post("/api/nodes")
    async def create_node(
        payload: NodeRequest,
        context: RichTextContext = Depends(get_context),
    ) -> ORJSONResponse:
        config = build_node_config(context.settings, payload)
        result = await context.synthesizer.synthesize_markup(config)
        return ORJSONResponse(
            {
                "nodeId": result.node_id,
                "elements": to_elements(result),
                "files": result.files(),
            }
        )

    @app.post("/api/nodes/{node_id}/replace")
    async def replace_node(
        node_id: str,
        payload: ReplaceNodeRequest,
        context: RichTextContext = Depends(get_context),
    ) -> ORJSONResponse:
        try:
            elements, files = await context.editor.replace_node(
                payload.elements, node_id, payload.markup
            )
        except NodeNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return ORJSONResponse({"nodeId": node_id, "elements": elements, "files": files})

    return app


def build_node_config(settings: AppSettings, payload: NodeRequest) -> NodeConfig:
    try:
        return settings.render.node_config(
            payload.markup,
            x=payload.x,
            y=payload.y,
            node_id=payload.node_id,
            max_width=payload.max_width,
            font_size=payload.font_size,
            default_color=payload.default_color,
            padding=payload.padding,
        )
    except ValidationError as exc:
        logger.debug("Rejected node settings: %s", exc)
        raise HTTPException(
            status_code=422,
            detail=exc.errors(include_url=False, include_context=False),
        ) from exc


def get_context(request: Request) -> RichTextContext:
    return cast(RichTextContext, request.app.state.context)
