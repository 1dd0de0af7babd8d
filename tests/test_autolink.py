"""Tests for the autolink -> link card token rewrite."""

from __future__ import annotations

import gzip
import json
from pathlib import Path
from typing import Optional

import pytest
from markdown_it.token import Token

from conftest import FakeFetcher
from ogblog.autolink import AutolinkTransformer, LinkCardResolver, render_card
from ogblog.cache import NO_CARD, CacheEntry, EntryKind, LinkCard, LinkCardCache
from ogblog.markup import create_markdown

URL = "https://example.com/"


def autolink_tokens(url: str = URL) -> list[Token]:
    return [
        Token(type="link_open", tag="a", nesting=1, attrs={"href": url}, markup="autolink", info="auto"),
        Token(type="text", tag="", nesting=0, content=url),
        Token(type="link_close", tag="a", nesting=-1, markup="autolink", info="auto"),
    ]


class Resolver:
    def __init__(self, card: Optional[LinkCard]) -> None:
        self.card = card
        self.calls: list[str] = []
        self.fetch_urls: list[Optional[str]] = []

    def __call__(self, url: str, fetch_url: Optional[str] = None) -> Optional[LinkCard]:
        self.calls.append(url)
        self.fetch_urls.append(fetch_url)
        return self.card


class TestAutolinkTransformer:
    def test_card_replaces_link_and_suppresses_label(self, example_card: LinkCard) -> None:
        transformer = AutolinkTransformer(Resolver(example_card))
        out = transformer.transform(autolink_tokens())
        assert [token.type for token in out] == ["html_inline", "text", "text"]
        assert out[0].content == render_card(example_card)
        assert out[1].content == "" and out[2].content == ""
        assert transformer.replacing is False

    def test_no_card_passes_tokens_through(self) -> None:
        tokens = autolink_tokens()
        out = AutolinkTransformer(Resolver(None)).transform(tokens)
        assert all(a is b for a, b in zip(out, tokens))
        assert len(out) == 3

    def test_tokens_after_the_link_are_untouched(self, example_card: LinkCard) -> None:
        tail = Token(type="text", tag="", nesting=0, content=" after")
        out = AutolinkTransformer(Resolver(example_card)).transform(autolink_tokens() + [tail])
        assert out[-1] is tail

    def test_softbreak_always_becomes_hardbreak(self, example_card: LinkCard) -> None:
        transformer = AutolinkTransformer(Resolver(example_card))
        transformer.feed(autolink_tokens()[0])
        assert transformer.replacing
        out = transformer.feed(Token(type="softbreak", tag="br", nesting=0))
        assert [token.type for token in out] == ["hardbreak"]
        assert transformer.replacing

    def test_email_autolink_is_not_resolved(self) -> None:
        resolver = Resolver(None)
        tokens = autolink_tokens("mailto:someone@example.com")
        out = AutolinkTransformer(resolver).transform(tokens)
        assert resolver.calls == []
        assert out == tokens

    def test_literal_url_is_the_lookup_key(self) -> None:
        resolver = Resolver(None)
        tokens = autolink_tokens("https://ja.wikipedia.org/wiki/%E6%9D%B1%E4%BA%AC")
        tokens[0].meta["literal_url"] = "https://ja.wikipedia.org/wiki/東京"
        AutolinkTransformer(resolver).transform(tokens)
        assert resolver.calls == ["https://ja.wikipedia.org/wiki/東京"]
        assert resolver.fetch_urls == ["https://ja.wikipedia.org/wiki/%E6%9D%B1%E4%BA%AC"]

    def test_ordinary_link_is_not_resolved(self) -> None:
        resolver = Resolver(None)
        token = Token(type="link_open", tag="a", nesting=1, attrs={"href": URL})
        assert AutolinkTransformer(resolver).feed(token) == [token]
        assert resolver.calls == []


class TestRenderCard:
    def test_markup(self, example_card: LinkCard) -> None:
        html = render_card(example_card)
        assert html.startswith('<a class="og-href" href="https://example.com/">')
        assert 'class="og-card og_type_website"' in html
        assert '<span class="og-title">Example Domain</span>' in html
        assert '<span class="og-desc">An example page</span>' in html
        assert '<span class="og-url">https://example.com/</span>' in html
        assert html.count("<img ") == 1
        assert 'src="https://example.com/thumb.png"' in html

    def test_missing_description_renders_a_space(self) -> None:
        card = LinkCard(type="video.movie", title="T", url="https://a/", thumbnail_url="https://a/i.png")
        html = render_card(card)
        assert '<span class="og-desc"> </span>' in html
        assert "og_type_video-movie" in html

    def test_values_are_escaped(self) -> None:
        card = LinkCard(type="website", title="<b>&", url="https://a/?x=1&y=2", thumbnail_url="https://a/i.png")
        html = render_card(card)
        assert "&lt;b&gt;&amp;" in html
        assert 'href="https://a/?x=1&amp;y=2"' in html


@pytest.fixture
def cache(tmp_path: Path) -> LinkCardCache:
    return LinkCardCache(tmp_path / "cache.json.gz")


class TestRenderedMarkdown:
    def test_fetched_card_is_rendered_and_cached(self, cache: LinkCardCache, fake_fetcher: FakeFetcher) -> None:
        md = create_markdown(LinkCardResolver(cache, fake_fetcher))
        html = md.render(f"See <{URL}>\n")
        assert 'class="og-href"' in html
        assert f'<a href="{URL}">' not in html
        assert fake_fetcher.calls == [URL]
        assert cache.get(URL).kind is EntryKind.CARD

    def test_url_is_fetched_once_per_run(self, cache: LinkCardCache, fake_fetcher: FakeFetcher) -> None:
        md = create_markdown(LinkCardResolver(cache, fake_fetcher))
        md.render(f"<{URL}>\n\n<{URL}>\n")
        md.render(f"again <{URL}>\n")
        assert fake_fetcher.calls == [URL]

    def test_failed_fetch_is_cached_as_no_card(self, cache: LinkCardCache) -> None:
        fetcher = FakeFetcher()
        md = create_markdown(LinkCardResolver(cache, fetcher))
        html = md.render("<https://nothing.example/>\n")
        assert '<a href="https://nothing.example/">https://nothing.example/</a>' in html
        assert cache.get("https://nothing.example/") is NO_CARD
        md.render("<https://nothing.example/>\n")
        assert fetcher.calls == ["https://nothing.example/"]

    def test_no_card_entry_keeps_link_text(self, cache: LinkCardCache, fake_fetcher: FakeFetcher) -> None:
        cache.put(URL, NO_CARD)
        md = create_markdown(LinkCardResolver(cache, fake_fetcher))
        html = md.render(f"<{URL}>\n")
        assert f'<a href="{URL}">{URL}</a>' in html
        assert fake_fetcher.calls == []

    def test_cached_card_needs_no_fetch(
        self, cache: LinkCardCache, fake_fetcher: FakeFetcher, example_card: LinkCard
    ) -> None:
        cache.put(URL, CacheEntry.of(example_card))
        html = create_markdown(LinkCardResolver(cache, fake_fetcher)).render(f"<{URL}>\n")
        assert render_card(example_card) in html
        assert fake_fetcher.calls == []

    def test_malformed_entry_is_neither_fetched_nor_rendered(self, tmp_path: Path, fake_fetcher: FakeFetcher) -> None:
        path = tmp_path / "cache.json.gz"
        with gzip.open(path, "wt", encoding="utf-8") as fh:
            json.dump({URL: {"type": "website", "title": "T", "url": URL}}, fh)
        cache = LinkCardCache.load(path)
        html = create_markdown(LinkCardResolver(cache, fake_fetcher)).render(f"<{URL}>\n")
        assert f'<a href="{URL}">{URL}</a>' in html
        assert "og-card" not in html
        assert fake_fetcher.calls == []

    def test_non_ascii_url_is_cached_under_its_literal_text(self, cache: LinkCardCache, example_card: LinkCard) -> None:
        literal = "https://ja.wikipedia.org/wiki/東京"
        encoded = "https://ja.wikipedia.org/wiki/%E6%9D%B1%E4%BA%AC"
        fetcher = FakeFetcher({encoded: example_card})
        md = create_markdown(LinkCardResolver(cache, fetcher))
        html = md.render(f"<{literal}>\n")
        assert render_card(example_card) in html
        assert fetcher.calls == [encoded]
        assert literal in cache
        assert encoded not in cache

    def test_existing_literal_entry_is_reused(self, cache: LinkCardCache, example_card: LinkCard) -> None:
        literal = "https://ja.wikipedia.org/wiki/東京"
        cache.put(literal, CacheEntry.of(example_card))
        fetcher = FakeFetcher()
        html = create_markdown(LinkCardResolver(cache, fetcher)).render(f"<{literal}>\n")
        assert render_card(example_card) in html
        assert fetcher.calls == []

    def test_softbreaks_render_as_line_breaks(self, cache: LinkCardCache, fake_fetcher: FakeFetcher) -> None:
        html = create_markdown(LinkCardResolver(cache, fake_fetcher)).render("first line\nsecond line\n")
        assert "first line<br />\nsecond line" in html

    def test_tables_and_strikethrough(self) -> None:
        html = create_markdown().render("| a | b |\n|---|---|\n| 1 | 2 |\n\n~~gone~~\n")
        assert "<table>" in html
        assert "<s>gone</s>" in html

    def test_fenced_code_is_highlighted(self) -> None:
        html = create_markdown().render("```python\ndef f():\n    pass\n```\n")
        assert '<code class="language-python">' in html
        assert '<span class="k">def</span>' in html
