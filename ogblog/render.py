from __future__ import annotations

import html
import shutil
from pathlib import Path, PurePosixPath
from typing import Any, Sequence

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape
from markupsafe import Markup

from .errors import ConfigError, RenderError

TEMPLATE_NAMES = ("index", "article", "list")
LAYOUT_TEMPLATE = "layout"
TEMPLATE_SUFFIX = ".html"


def breadcrumbs(path: Any) -> Markup:
    """Link every ancestor of ``path``, starting with the site root."""
    parts = [part for part in PurePosixPath(str(path)).parts if part != "/"]
    links = ['<a href="/">/</a> ']
    current = PurePosixPath("/")
    for i, part in enumerate(parts):
        current = current / part
        separator = "" if i == 0 else " / "
        links.append(f'{separator}<a href="{html.escape(str(current))}">{html.escape(current.stem)}</a>')
    return Markup("".join(links))


def slice_range(items: Sequence, lower: int, upper: int) -> list:
    return list(items[lower:upper])


def slice_since(items: Sequence, lower: int) -> list:
    return list(items[lower:])


def slice_until(items: Sequence, upper: int) -> list:
    return list(items[:upper])


class TemplateRenderer:
    """Jinja2 environment over the site's template directory.

    The page templates and the shared layout are loaded up front so a missing
    file is reported before any output is written.
    """

    def __init__(self, template_dir: Path) -> None:
        self.template_dir = template_dir
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html"]),
            keep_trailing_newline=True,
        )
        self.env.globals.update(
            breadcrumbs=breadcrumbs,
            slice=slice_range,
            slice_since=slice_since,
            slice_until=slice_until,
        )
        self.templates = {}
        for name in (*TEMPLATE_NAMES, LAYOUT_TEMPLATE):
            try:
                self.templates[name] = self.env.get_template(f"{name}{TEMPLATE_SUFFIX}")
            except TemplateError as exc:
                raise ConfigError(f"Cannot load template {name}{TEMPLATE_SUFFIX} from {template_dir}: {exc}") from exc

    def render(self, name: str, data: dict) -> str:
        try:
            return self.templates[name].render(**data)
        except TemplateError as exc:
            raise RenderError(f"Template {name} failed for {data.get('path', '?')}: {exc}") from exc


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def copy_static(static_dir: Path, output_dir: Path) -> None:
    for item in static_dir.iterdir():
        dest = output_dir / item.name
        if item.is_dir():
            shutil.copytree(item, dest, dirs_exist_ok=True)
        else:
            shutil.copy2(item, dest)

