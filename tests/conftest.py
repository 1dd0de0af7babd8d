"""Shared pytest fixtures for ogblog tests."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional

import pytest

from ogblog.cache import LinkCard
from ogblog.config import SiteConfig

REPO_ROOT = Path(__file__).resolve().parents[1]


class FakeFetcher:
    """Stands in for OpenGraphFetcher; records every URL it is asked for."""

    def __init__(self, cards: Optional[dict[str, LinkCard]] = None) -> None:
        self.cards = dict(cards or {})
        self.calls: list[str] = []

    def fetch(self, url: str) -> Optional[LinkCard]:
        self.calls.append(url)
        return self.cards.get(url)


def write_article(root: Path, relpath: str, text: str) -> Path:
    path = root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def article_text(title: str, date: str = "", tags: str = "", body: str = "Body text.\n") -> str:
    lines = ["---", f"title: {title}"]
    if date:
        lines.append(f"date: {date}")
    if tags:
        lines.append(f"tag: {tags}")
    lines.append("---")
    return "\n".join(lines) + "\n" + body


@pytest.fixture
def example_card() -> LinkCard:
    return LinkCard(
        type="website",
        title="Example Domain",
        url="https://example.com/",
        thumbnail_url="https://example.com/thumb.png",
        description="An example page",
    )


@pytest.fixture
def fake_fetcher(example_card: LinkCard) -> FakeFetcher:
    return FakeFetcher({"https://example.com/": example_card})


@pytest.fixture
def site(tmp_path: Path) -> SiteConfig:
    """Site layout in a temporary directory, using the bundled templates."""
    posts = tmp_path / "posts"
    posts.mkdir()
    public = tmp_path / "public"
    (public / "css").mkdir(parents=True)
    (public / "css" / "style.css").write_text("body {}\n", encoding="utf-8")
    template = tmp_path / "template"
    shutil.copytree(REPO_ROOT / "template", template)
    return SiteConfig(
        article_dir=posts,
        output_dir=tmp_path / "out",
        static_dir=public,
        template_dir=template,
        site_name="Test Blog",
        site_url="https://blog.example.org/",
        cache_file=tmp_path / "cache.json.gz",
        fetch_delay=0,
        fast_fetch_delay=0,
    )
