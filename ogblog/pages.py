from __future__ import annotations

import functools
import logging
from typing import Optional, Sequence

from markupsafe import Markup

from .context import BuildContext
from .indexer import ArticleMetadata, Corpus

logger = logging.getLogger(__name__)

TAG_DIR = "tags"


def compare_entries(a: ArticleMetadata, b: ArticleMetadata) -> int:
    """Newest first; dated entries before undated ones; undated by title, descending."""
    if a.date is not None and b.date is not None:
        if a.date == b.date:
            return 0
        return -1 if a.date > b.date else 1
    if a.date is not None:
        return -1
    if b.date is not None:
        return 1
    if a.title == b.title:
        return 0
    return -1 if a.title > b.title else 1


def sort_entries(entries: Sequence[ArticleMetadata]) -> list[ArticleMetadata]:
    return sorted(entries, key=functools.cmp_to_key(compare_entries))


def root_listing(corpus: Corpus, ordered: Sequence[ArticleMetadata], limit: int) -> list[ArticleMetadata]:
    """Latest ``limit`` articles followed by the root's own subdirectories."""
    directories = [entry for entry in corpus.directories.get("", []) if entry.is_directory]
    return list(ordered[:limit]) + sort_entries(directories)


def article_neighbours(
    ordered: Sequence[ArticleMetadata],
) -> dict[int, tuple[Optional[ArticleMetadata], Optional[ArticleMetadata]]]:
    neighbours = {}
    for i, article in enumerate(ordered):
        newer = ordered[i - 1] if i > 0 else None
        older = ordered[i + 1] if i + 1 < len(ordered) else None
        neighbours[id(article)] = (newer, older)
    return neighbours


def build_articles(ctx: BuildContext, ordered: Sequence[ArticleMetadata]) -> None:
    neighbours = article_neighbours(ordered)
    for article in ordered:
        body_html = ctx.markdown.render(article.body)
        newer, older = neighbours[id(article)]
        ctx.write_page(
            "article",
            {
                "title": article.title,
                "path": article.output_path,
                "body": Markup(body_html),
                "meta": article,
                "prev": newer,
                "next": older,
            },
            article.output_path,
        )


def build_directories(ctx: BuildContext, corpus: Corpus, ordered: Sequence[ArticleMetadata]) -> None:
    for relpath, entries in corpus.directories.items():
        if not relpath:
            ctx.write_page(
                "index",
                {
                    "title": "index",
                    "path": "/",
                    "articles": root_listing(corpus, ordered, ctx.config.root_latest_limit),
                },
                "index.html",
            )
            continue
        ctx.write_page(
            "list",
            {"title": relpath, "path": relpath, "articles": sort_entries(entries)},
            f"{relpath}/index.html",
        )


def build_tags(ctx: BuildContext, corpus: Corpus) -> None:
    (ctx.config.output_dir / TAG_DIR).mkdir(parents=True, exist_ok=True)
    for tag, articles in corpus.tags.items():
        output_path = f"{TAG_DIR}/{tag}.html"
        ctx.write_page(
            "list",
            {"title": f"Tag: {tag}", "path": output_path, "articles": sort_entries(articles)},
            output_path,
        )
