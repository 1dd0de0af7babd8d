from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Union

import requests
from bs4 import BeautifulSoup

from .cache import LinkCard

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "bot"
DEFAULT_FETCH_DELAY = 10.0
DEFAULT_FAST_FETCH_DELAY = 1.0
DEFAULT_FETCH_TIMEOUT = 30.0
FAST_LINK_SUFFIX = "#fast"


def parse_opengraph(page: Union[str, bytes], encoding: Optional[str] = None) -> dict:
    """Collect ``og:*`` properties from a page; images are gathered in order.

    Raw bytes are decoded by BeautifulSoup, which honours a ``<meta charset>``
    declaration unless the server named an ``encoding`` explicitly.
    """
    soup = BeautifulSoup(page, "html.parser", from_encoding=encoding if isinstance(page, bytes) else None)
    properties: dict = {"images": []}
    for tag in soup.find_all("meta"):
        prop = (tag.get("property") or tag.get("name") or "").strip().lower()
        if not prop.startswith("og:"):
            continue
        content = tag.get("content")
        if content is None:
            continue
        content = content.strip()
        key = prop[3:]
        if key in {"image", "image:url"}:
            if content:
                properties["images"].append(content)
        elif key not in properties:
            properties[key] = content
    return properties


def card_from_opengraph(properties: dict) -> Optional[LinkCard]:
    og_type = properties.get("type")
    title = properties.get("title")
    url = properties.get("url")
    images = properties.get("images") or []
    if not og_type or not title or not url or not images:
        return None
    return LinkCard(
        type=og_type,
        title=title,
        url=url,
        thumbnail_url=images[0],
        description=properties.get("description"),
    )


def declared_charset(response: requests.Response) -> Optional[str]:
    # requests falls back to ISO-8859-1 for text/html without a charset parameter
    content_type = response.headers.get("Content-Type", "")
    if "charset=" not in content_type.lower():
        return None
    return response.encoding


class OpenGraphFetcher:
    """Fetches a page's Open-Graph card, then blocks to respect the origin's rate limit."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        delay: float = DEFAULT_FETCH_DELAY,
        fast_delay: float = DEFAULT_FAST_FETCH_DELAY,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})
        self.delay = delay
        self.fast_delay = fast_delay
        self.timeout = timeout
        self.sleep = sleep

    def delay_for(self, url: str) -> float:
        return self.fast_delay if url.endswith(FAST_LINK_SUFFIX) else self.delay

    def fetch(self, url: str) -> Optional[LinkCard]:
        logger.info("Fetching Open-Graph data from %s", url)
        try:
            response = self._download(url)
        finally:
            self.sleep(self.delay_for(url))
        if response is None:
            return None
        card = card_from_opengraph(parse_opengraph(response.content, declared_charset(response)))
        if card is None:
            logger.debug("No usable Open-Graph data at %s", url)
        return card

    def _download(self, url: str) -> Optional[requests.Response]:
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Failed to fetch %s: %s", url, exc)
            return None
        return response
