from __future__ import annotations

import datetime as dt
import logging
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Optional

from .content import parse_front_matter
from .errors import FrontMatterError, SourceError

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class ArticleMetadata:
    """One source document, or a directory listed next to documents.

    Instances are shared between the global article list, directory listings
    and tag listings. ``eq=False`` keeps identity comparison so the same entry
    can be recognised across those views.
    """

    title: str = ""
    tags: list[str] = field(default_factory=list)
    date: Optional[dt.date] = None
    relpath: str = ""
    body: str = ""
    file_mtime: float = 0.0
    is_directory: bool = False

    @property
    def output_path(self) -> str:
        if self.is_directory:
            return f"{self.relpath}/index.html" if self.relpath else "index.html"
        return f"{self.relpath}.html"

    @property
    def url(self) -> str:
        return f"/{self.output_path}"


@dataclass
class Corpus:
    articles: list[ArticleMetadata] = field(default_factory=list)
    directories: dict[str, list[ArticleMetadata]] = field(default_factory=dict)
    tags: dict[str, list[ArticleMetadata]] = field(default_factory=dict)


def join_relpath(parent: str, name: str) -> str:
    return f"{parent}/{name}" if parent else name


def strip_extension(relpath: str) -> str:
    return str(PurePosixPath(relpath).with_suffix(""))


def directory_entry(relpath: str, path: Path) -> ArticleMetadata:
    return ArticleMetadata(
        title=path.name,
        relpath=relpath,
        file_mtime=path.stat().st_mtime,
        is_directory=True,
    )


def read_article(article_dir: Path, relpath: str) -> ArticleMetadata:
    path = article_dir / relpath
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise SourceError(f"not valid UTF-8 text ({exc.reason} at byte {exc.start})", path) from exc
    try:
        meta, body = parse_front_matter(text)
    except FrontMatterError as exc:
        raise exc.with_path(path) from exc
    return ArticleMetadata(
        title=meta.title,
        tags=meta.tags,
        date=meta.date,
        relpath=strip_extension(relpath),
        body=body,
        file_mtime=path.stat().st_mtime,
    )


def build_corpus(article_dir: Path) -> Corpus:
    """Walk ``article_dir`` breadth-first and index every document once."""
    corpus = Corpus()
    queue: deque[str] = deque([""])
    while queue:
        current = queue.popleft()
        listing = corpus.directories.setdefault(current, [])
        current_dir = article_dir / current if current else article_dir
        for child in current_dir.iterdir():
            if child.name.startswith("."):
                continue
            relpath = join_relpath(current, child.name)
            if child.is_dir():
                queue.append(relpath)
                listing.append(directory_entry(relpath, child))
            elif child.is_file():
                article = read_article(article_dir, relpath)
                corpus.articles.append(article)
                listing.append(article)
                for tag in article.tags:
                    corpus.tags.setdefault(tag, []).append(article)
    logger.debug(
        "Indexed %d articles in %d directories with %d tags",
        len(corpus.articles),
        len(corpus.directories),
        len(corpus.tags),
    )
    return corpus
