from __future__ import annotations

import argparse
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import requests

from .autolink import CardFetcher, LinkCardResolver
from .cache import LinkCardCache
from .config import DEFAULT_CACHE_FILE, ROOT_LATEST_LIMIT, SiteConfig, env_default, load_config
from .context import BuildContext
from .errors import BuildError
from .feed import write_feed
from .indexer import build_corpus
from .markup import create_markdown
from .ogp import (
    DEFAULT_FAST_FETCH_DELAY,
    DEFAULT_FETCH_DELAY,
    DEFAULT_FETCH_TIMEOUT,
    DEFAULT_USER_AGENT,
    OpenGraphFetcher,
)
from .pages import build_articles, build_directories, build_tags, sort_entries
from .render import TemplateRenderer, copy_static
from .utils import clean_output_dir, parse_float, parse_int

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class BuildSummary:
    articles: int
    directories: int
    tags: int
    fetched: int
    cached_urls: int


class CountingFetcher:
    def __init__(self, fetcher: CardFetcher) -> None:
        self.fetcher = fetcher
        self.count = 0

    def fetch(self, url: str):
        self.count += 1
        return self.fetcher.fetch(url)


def build_site(config: SiteConfig, fetcher: Optional[CardFetcher] = None) -> BuildSummary:
    """Run one full rebuild of ``config.output_dir``.

    The link card cache is loaded first and only written back once every page
    has been generated.
    """
    config.validate()
    templates = TemplateRenderer(config.template_dir)
    cache = LinkCardCache.load(config.cache_file)
    if fetcher is None:
        fetcher = OpenGraphFetcher(
            requests.Session(),
            user_agent=config.user_agent,
            delay=config.fetch_delay,
            fast_delay=config.fast_fetch_delay,
            timeout=config.fetch_timeout,
        )
    counting = CountingFetcher(fetcher)
    resolver = LinkCardResolver(cache, counting)
    ctx = BuildContext(
        config=config,
        templates=templates,
        markdown=create_markdown(resolver),
        cache=cache,
    )

    clean_output_dir(config.output_dir, [config.article_dir, config.static_dir, config.template_dir])
    config.output_dir.mkdir(parents=True, exist_ok=True)
    copy_static(config.static_dir, config.output_dir)

    corpus = build_corpus(config.article_dir)
    ordered = sort_entries(corpus.articles)

    logger.debug("Generating articles")
    build_articles(ctx, ordered)
    logger.debug("Generating directory index pages")
    build_directories(ctx, corpus, ordered)
    logger.debug("Generating tag index pages")
    build_tags(ctx, corpus)
    write_feed(config.output_dir, ordered, config.site_name, config.site_url)

    cache.save()
    logger.info("Fetched %d new URLs, %d URLs cached", counting.count, len(cache))
    return BuildSummary(
        articles=len(corpus.articles),
        directories=len(corpus.directories),
        tags=len(corpus.tags),
        fetched=counting.count,
        cached_urls=len(cache),
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument("--config", default="site.toml")
    pre_args, _ = pre_parser.parse_known_args(argv)
    config = load_config(Path(pre_args.config))

    def cfg_str(key: str, default: str) -> str:
        value = config.get(key)
        return default if value is None else str(value)

    parser = argparse.ArgumentParser(description="Markdown directory to static HTML, with link cards.")
    parser.add_argument("--config", default=pre_args.config, help="Path to site config file (TOML/YAML/JSON).")
    parser.add_argument(
        "article_dir", nargs="?", default=cfg_str("posts", "posts"), help="Directory path of articles."
    )
    parser.add_argument(
        "out_dir",
        nargs="?",
        default=cfg_str("output", "out"),
        help="Directory path of output. Existing contents will be removed.",
    )
    parser.add_argument(
        "public_dir",
        nargs="?",
        default=cfg_str("static", "public"),
        help="Directory path of static assets. Contents will be copied as they are.",
    )
    parser.add_argument(
        "template_dir", nargs="?", default=cfg_str("templates", "template"), help="Directory of templates."
    )
    parser.add_argument(
        "--site-name", default=env_default(config, "site_name", "BLOG_NAME"), help="Site name (env: BLOG_NAME)."
    )
    parser.add_argument(
        "--site-url", default=env_default(config, "site_url", "BLOG_URL"), help="Public site URL (env: BLOG_URL)."
    )
    parser.add_argument(
        "--cache-file", default=cfg_str("cache_file", DEFAULT_CACHE_FILE), help="Path to the link card cache."
    )
    parser.add_argument(
        "--user-agent", default=cfg_str("user_agent", DEFAULT_USER_AGENT), help="User agent for OGP fetches."
    )
    parser.add_argument(
        "--fetch-delay",
        type=float,
        default=parse_float(config.get("fetch_delay"), DEFAULT_FETCH_DELAY),
        help="Seconds to wait after each OGP fetch.",
    )
    parser.add_argument(
        "--fast-fetch-delay",
        type=float,
        default=parse_float(config.get("fast_fetch_delay"), DEFAULT_FAST_FETCH_DELAY),
        help="Seconds to wait after fetching a link ending in #fast.",
    )
    parser.add_argument(
        "--fetch-timeout",
        type=float,
        default=parse_float(config.get("fetch_timeout"), DEFAULT_FETCH_TIMEOUT),
        help="Network timeout for a single OGP fetch.",
    )
    parser.add_argument(
        "--root-latest-limit",
        type=int,
        default=parse_int(config.get("root_latest_limit"), ROOT_LATEST_LIMIT),
        help="Number of latest articles listed on the root index page.",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=cfg_str("log_level", "WARNING").upper(),
        help="Logging level.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Shortcut for --log-level DEBUG.")
    return parser.parse_args(argv)


def config_from_args(args: argparse.Namespace) -> SiteConfig:
    return SiteConfig(
        article_dir=Path(args.article_dir),
        output_dir=Path(args.out_dir),
        static_dir=Path(args.public_dir),
        template_dir=Path(args.template_dir),
        site_name=args.site_name,
        site_url=args.site_url,
        cache_file=Path(args.cache_file),
        user_agent=args.user_agent,
        fetch_delay=args.fetch_delay,
        fast_fetch_delay=args.fast_fetch_delay,
        fetch_timeout=args.fetch_timeout,
        root_latest_limit=args.root_latest_limit,
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    try:
        args = parse_args(argv)
    except BuildError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)
    level = "DEBUG" if args.verbose else args.log_level
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    start = time.perf_counter()
    try:
        summary = build_site(config_from_args(args))
    except (BuildError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)
    elapsed = time.perf_counter() - start
    print(
        f"Built {summary.articles} articles, {summary.directories} directories "
        f"and {summary.tags} tags in {elapsed:.2f}s."
    )
    print(f"Site generated in: {args.out_dir}")
