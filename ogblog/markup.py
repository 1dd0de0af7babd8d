from __future__ import annotations

from typing import Optional

from markdown_it import MarkdownIt
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .autolink import LinkCardResolver, link_cards_plugin

FORMATTER = HtmlFormatter(nowrap=True)


def highlight_code(code: str, lang: str, attrs: str) -> str:
    # an empty string tells markdown-it to fall back to its escaped output
    if not lang:
        return ""
    try:
        lexer = get_lexer_by_name(lang, stripall=False)
    except ClassNotFound:
        return ""
    return highlight(code, lexer, FORMATTER)


def create_markdown(resolver: Optional[LinkCardResolver] = None) -> MarkdownIt:
    """CommonMark with tables and strikethrough, plus link cards when a resolver is given."""
    md = MarkdownIt("commonmark", {"highlight": highlight_code}).enable(["table", "strikethrough"])
    if resolver is not None:
        md.use(link_cards_plugin, resolver=resolver)
    return md
