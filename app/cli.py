from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import orjson
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from adapters.excalidraw.repository import FileSystemExcalidrawRepository
from adapters.excalidraw.url_encoder import build_excalidraw_url
from app.config import AppSettings, load_settings
from app.wiring import build_editor, build_synthesizer
from domain.models import ExcalidrawDocument, NodeConfig
from domain.services.excalidraw_elements import to_excalidraw_document
from domain.services.parse_markup import parse_markup
from domain.services.rich_text_nodes import NodeNotFoundError

app = typer.Typer(no_args_is_help=True)
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", help="YAML settings file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log warnings and debug output."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    ctx.obj = load_settings(config)


@app.command("parse")
def parse_command(
    input_path: Path = typer.Argument(..., help="HTML fragment to parse."),
) -> None:
    markup = _read_markup(input_path)
    document = parse_markup(markup)
    console.print_json(orjson.dumps(document).decode("utf-8"))


@app.command("render")
def render_command(
    ctx: typer.Context,
    input_path: Path = typer.Argument(..., help="HTML fragment to render."),
    output: Path = typer.Option(
        Path("richtext.excalidraw"), "--output", "-o", help="Scene file to write."
    ),
    x: float = typer.Option(0.0, help="Card centre X."),
    y: float = typer.Option(0.0, help="Card centre Y."),
    max_width: float | None = typer.Option(None, help="Card width in pixels."),
    font_size: float | None = typer.Option(None, help="Base font size in pixels."),
    padding: float | None = typer.Option(None, help="Card padding in pixels."),
    node_id: str | None = typer.Option(None, help="Reuse an existing node id."),
) -> None:
    settings: AppSettings = ctx.obj
    config = _node_config(
        settings,
        _read_markup(input_path),
        x=x,
        y=y,
        max_width=max_width,
        font_size=font_size,
        padding=padding,
        node_id=node_id,
    )
    document = _synthesize(settings, config)
    FileSystemExcalidrawRepository().save(document, output)
    console.print(f"[green]Wrote[/] {output} ({len(document.elements)} elements)")


@app.command("edit")
def edit_command(
    ctx: typer.Context,
    scene_path: Path = typer.Argument(..., help="Existing .excalidraw scene."),
    node_id: str = typer.Argument(..., help="Rich-text node to replace."),
    input_path: Path = typer.Argument(..., help="New HTML fragment for the node."),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Defaults to overwriting the scene."
    ),
) -> None:
    settings: AppSettings = ctx.obj
    if not scene_path.exists():
        console.print(f"[red]File not found:[/] {scene_path}")
        raise typer.Exit(code=1)
    repo = FileSystemExcalidrawRepository()
    scene = repo.load(scene_path)
    editor = build_editor(settings)
    try:
        elements, files = asyncio.run(
            editor.replace_node(scene.elements, node_id, _read_markup(input_path))
        )
    except NodeNotFoundError as exc:
        console.print(f"[red]{exc}[/]")
        raise typer.Exit(code=1) from exc
    target = output or scene_path
    repo.save(
        ExcalidrawDocument(
            elements=elements,
            app_state=scene.app_state,
            files={**scene.files, **files},
        ),
        target,
    )
    console.print(f"[green]Updated[/] node {node_id} in {target}")


@app.command("url")
def url_command(
    ctx: typer.Context,
    input_path: Path = typer.Argument(..., help="HTML fragment to render."),
    base_url: str | None = typer.Option(None, help="Excalidraw instance to link to."),
) -> None:
    settings: AppSettings = ctx.obj
    config = _node_config(settings, _read_markup(input_path))
    document = _synthesize(settings, config)
    typer.echo(build_excalidraw_url(base_url or settings.excalidraw_base_url, document))


@app.command("serve")
def serve_command(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8080, help="Bind port."),
) -> None:
    import uvicorn

    from app.web_main import create_app

    uvicorn.run(create_app(ctx.obj), host=host, port=port)


def _read_markup(path: Path) -> str:
    if not path.exists():
        console.print(f"[red]File not found:[/] {path}")
        raise typer.Exit(code=1)
    return path.read_text(encoding="utf-8")


def _node_config(settings: AppSettings, markup: str, **overrides: object) -> NodeConfig:
    try:
        return settings.render.node_config(markup, **overrides)
    except ValidationError as exc:
        console.print(f"[red]Invalid node settings:[/] {exc}")
        raise typer.Exit(code=1) from exc


def _synthesize(settings: AppSettings, config: NodeConfig) -> ExcalidrawDocument:
    synthesizer = build_synthesizer(settings)
    result = asyncio.run(synthesizer.synthesize_markup(config))
    return to_excalidraw_document(result)


if __name__ == "__main__":
    app()
