from __future__ import annotations

import datetime as dt
import html
from pathlib import Path
from typing import Optional, Sequence

from .indexer import ArticleMetadata
from .render import write_text
from .utils import JST, iso_date, join_url, to_jst

FEED_FILENAME = "atom.xml"


def build_atom(
    articles: Sequence[ArticleMetadata],
    site_name: str,
    site_url: str,
    now: Optional[dt.datetime] = None,
) -> str:
    """Atom document for ``articles`` in the given order; entry times come from file mtimes."""
    site_url = site_url.rstrip("/")
    updated = (now or dt.datetime.now(tz=JST)).astimezone(JST).replace(microsecond=0)
    site_link = f"{site_url}/"
    entries = []
    for article in articles:
        link = join_url(site_url, article.output_path)
        title = article.title or article.relpath
        entries.append(
            "\n".join(
                [
                    "<entry>",
                    f"<title>{html.escape(title)}</title>",
                    f'<link href="{html.escape(link)}" />',
                    f"<id>{html.escape(link)}</id>",
                    f"<updated>{iso_date(to_jst(article.file_mtime))}</updated>",
                    "</entry>",
                ]
            )
        )
    feed_title = site_name or site_link
    return "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<feed xmlns="http://www.w3.org/2005/Atom">',
            f"<title>{html.escape(feed_title)}</title>",
            f"<id>{html.escape(site_link)}</id>",
            f"<updated>{iso_date(updated)}</updated>",
            f"<author><name>{html.escape(feed_title)}</name></author>",
            f'<link href="{html.escape(join_url(site_url, FEED_FILENAME))}" rel="self" />',
            f'<link href="{html.escape(site_link)}" />',
            "\n".join(entries),
            "</feed>",
            "",
        ]
    )


def write_feed(
    output_dir: Path,
    articles: Sequence[ArticleMetadata],
    site_name: str,
    site_url: str,
    now: Optional[dt.datetime] = None,
) -> Path:
    path = output_dir / FEED_FILENAME
    write_text(path, build_atom(articles, site_name, site_url, now))
    return path
