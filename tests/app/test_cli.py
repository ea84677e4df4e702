from __future__ import annotations

import json
import logging
from collections.abc import Generator
from pathlib import Path

import pytest
from typer.testing import CliRunner

from adapters.excalidraw.repository import FileSystemExcalidrawRepository
from app.cli import app
from domain.services.rich_text_nodes import element_node_id, find_background, get_node_config

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_root_logging() -> Generator[None, None, None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "richtext.yaml"
    path.write_text("render:\n  max_width: 240\n  padding: 8\n", encoding="utf-8")
    return path


def _markup(tmp_path: Path, name: str, content: str) -> Path:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


def test_parse_prints_document(tmp_path: Path, config_path: Path) -> None:
    source = _markup(tmp_path, "note.html", "<b>Hi</b> you")

    result = runner.invoke(app, ["--config", str(config_path), "parse", str(source)])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["plain_text"] == "Hi you"
    assert payload["lines"][0]["runs"][0]["bold"] is True


def test_render_writes_scene(tmp_path: Path, config_path: Path) -> None:
    source = _markup(tmp_path, "note.html", "<p>Hello</p><p><u>world</u></p>")
    output = tmp_path / "out" / "note.excalidraw"

    result = runner.invoke(
        app,
        [
            "--config",
            str(config_path),
            "render",
            str(source),
            "-o",
            str(output),
            "--x",
            "50",
            "--node-id",
            "n1",
        ],
    )

    assert result.exit_code == 0, result.output
    document = FileSystemExcalidrawRepository().load(output)
    assert {element_node_id(element) for element in document.elements} == {"n1"}
    background = find_background(document.elements, "n1")
    assert background is not None
    config = get_node_config(background)
    assert config is not None
    assert config.max_width == 240.0
    assert config.padding == 8.0
    assert config.x == 50.0
    assert [element["text"] for element in document.elements if element["type"] == "text"] == [
        "Hello",
        "world",
    ]


def test_render_rejects_invalid_width(tmp_path: Path, config_path: Path) -> None:
    source = _markup(tmp_path, "note.html", "x")

    result = runner.invoke(
        app,
        [
            "--config",
            str(config_path),
            "render",
            str(source),
            "--max-width=-5",
            "-o",
            str(tmp_path / "o.excalidraw"),
        ],
    )

    assert result.exit_code == 1
    assert not (tmp_path / "o.excalidraw").exists()


def test_missing_markup_file_exits(tmp_path: Path, config_path: Path) -> None:
    result = runner.invoke(
        app, ["--config", str(config_path), "parse", str(tmp_path / "nope.html")]
    )

    assert result.exit_code == 1
    assert "File not found" in result.output


def test_edit_replaces_node_in_place(tmp_path: Path, config_path: Path) -> None:
    scene = tmp_path / "scene.excalidraw"
    first = _markup(tmp_path, "first.html", "first")
    second = _markup(tmp_path, "second.html", "<i>second</i>")
    base = ["--config", str(config_path)]
    rendered = runner.invoke(
        app, [*base, "render", str(first), "-o", str(scene), "--node-id", "n1"]
    )
    assert rendered.exit_code == 0

    result = runner.invoke(app, [*base, "edit", str(scene), "n1", str(second)])

    assert result.exit_code == 0, result.output
    document = FileSystemExcalidrawRepository().load(scene)
    live = [element for element in document.elements if not element["isDeleted"]]
    assert [element["text"] for element in live if element["type"] == "text"] == ["second"]
    assert len(document.elements) == 4


def test_edit_unknown_node_fails(tmp_path: Path, config_path: Path) -> None:
    scene = tmp_path / "scene.excalidraw"
    source = _markup(tmp_path, "note.html", "x")
    base = ["--config", str(config_path)]
    runner.invoke(app, [*base, "render", str(source), "-o", str(scene), "--node-id", "n1"])

    result = runner.invoke(app, [*base, "edit", str(scene), "other", str(source)])

    assert result.exit_code == 1
    assert "other" in result.output


def test_url_prints_share_link(tmp_path: Path, config_path: Path) -> None:
    source = _markup(tmp_path, "note.html", "link me")

    result = runner.invoke(
        app,
        [
            "--config",
            str(config_path),
            "url",
            str(source),
            "--base-url",
            "https://draw.example.com/",
        ],
    )

    assert result.exit_code == 0, result.output
    assert result.stdout.strip().startswith("https://draw.example.com/#json=")
