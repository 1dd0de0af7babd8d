from __future__ import annotations

import html
import logging
from typing import Callable, Optional, Protocol

from markdown_it import MarkdownIt
from markdown_it.rules_core import StateCore
from markdown_it.rules_inline import StateInline
from markdown_it.rules_inline.autolink import autolink
from markdown_it.token import Token

from .cache import NO_CARD, CacheEntry, EntryKind, LinkCard, LinkCardCache
from .content import slugify

logger = logging.getLogger(__name__)

LITERAL_URL_META = "literal_url"


class CardFetcher(Protocol):
    def fetch(self, url: str) -> Optional[LinkCard]: ...


def render_card(card: LinkCard) -> str:
    url = html.escape(card.url)
    description = card.description if card.description else " "
    return (
        f'<a class="og-href" href="{url}">'
        f'<span class="og-card og_type_{slugify(card.type)}">'
        '<span class="og-text">'
        f'<span class="og-title">{html.escape(card.title)}</span>'
        f'<span class="og-desc">{html.escape(description)}</span>'
        f'<span class="og-url">{url}</span>'
        "</span>"
        '<span class="og-image-wrap">'
        f'<img class="og-image" src="{html.escape(card.thumbnail_url)}" alt="">'
        "</span>"
        "</span>"
        "</a>"
    )


class LinkCardResolver:
    """Answers "which card, if any, belongs to this URL", fetching at most once per URL."""

    def __init__(self, cache: LinkCardCache, fetcher: CardFetcher) -> None:
        self.cache = cache
        self.fetcher = fetcher

    def resolve(self, url: str, fetch_url: Optional[str] = None) -> Optional[LinkCard]:
        """Look ``url`` up by its literal text; on a miss, download ``fetch_url`` (default ``url``)."""
        entry = self.cache.get(url)
        if entry.kind is EntryKind.CARD:
            logger.debug("Cache hit for %s", url)
            return entry.card
        if entry.kind is EntryKind.NO_CARD:
            logger.debug("Cached as no card: %s", url)
            return None
        card = self.fetcher.fetch(fetch_url or url)
        self.cache.put(url, CacheEntry.of(card) if card is not None else NO_CARD)
        return card


def is_autolink(token: Token, nesting: int) -> bool:
    return token.markup == "autolink" and token.nesting == nesting and token.type in {"link_open", "link_close"}


def empty_text() -> Token:
    return Token(type="text", tag="", nesting=0, content="")


class AutolinkTransformer:
    """Rewrites one document's token stream, replacing autolinks with link cards.

    After a card is emitted for an opening autolink token, every following
    token up to and including the closing one is replaced by an empty text
    token so the link's own label disappears.
    """

    def __init__(self, resolve: Callable[[str, str], Optional[LinkCard]]) -> None:
        self.resolve = resolve
        self.replacing = False

    def feed(self, token: Token) -> list[Token]:
        if is_autolink(token, 1):
            href = token.attrGet("href")
            if not isinstance(href, str) or href.startswith("mailto:"):
                return [empty_text()] if self.replacing else [token]
            card = self.resolve(token.meta.get(LITERAL_URL_META) or href, href)
            if card is None:
                return [token]
            self.replacing = True
            return [Token(type="html_inline", tag="", nesting=0, content=render_card(card))]
        if is_autolink(token, -1):
            if self.replacing:
                self.replacing = False
                return [empty_text()]
            return [token]
        if token.type == "softbreak":
            return [Token(type="hardbreak", tag="br", nesting=0)]
        if self.replacing:
            return [empty_text()]
        return [token]

    def transform(self, tokens: list[Token]) -> list[Token]:
        out: list[Token] = []
        for token in tokens:
            out.extend(self.feed(token))
        return out


def literal_autolink(state: StateInline, silent: bool) -> bool:
    """Parse an autolink and keep its source text, which ``href`` only has in normalised form."""
    start = state.pos
    if not autolink(state, silent):
        return False
    if not silent:
        link_open = state.tokens[-3]
        link_open.meta[LITERAL_URL_META] = state.src[start + 1 : state.pos - 1]
    return True


def link_cards_plugin(md: MarkdownIt, resolver: LinkCardResolver) -> None:
    """Keep literal autolink URLs during inline parsing, then rewrite autolinks as a core rule."""
    md.inline.ruler.at("autolink", literal_autolink)

    def link_cards(state: StateCore) -> None:
        transformer = AutolinkTransformer(resolver.resolve)
        for token in state.tokens:
            if token.type == "inline" and token.children:
                token.children = transformer.transform(token.children)

    md.core.ruler.push("link_cards", link_cards)
