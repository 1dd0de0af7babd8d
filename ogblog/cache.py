from __future__ import annotations

import enum
import gzip
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .errors import CacheError

logger = logging.getLogger(__name__)

REQUIRED_CARD_FIELDS = ("type", "title", "url", "thumbnail_url")


@dataclass(frozen=True)
class LinkCard:
    type: str
    title: str
    url: str
    thumbnail_url: str
    description: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "type": self.type,
            "title": self.title,
            "url": self.url,
            "thumbnail_url": self.thumbnail_url,
        }
        if self.description is not None:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "LinkCard":
        missing = [name for name in REQUIRED_CARD_FIELDS if not isinstance(data.get(name), str)]
        if missing:
            raise ValueError(f"missing {', '.join(missing)}")
        description = data.get("description")
        return cls(
            type=data["type"],
            title=data["title"],
            url=data["url"],
            thumbnail_url=data["thumbnail_url"],
            description=description if isinstance(description, str) else None,
        )


class EntryKind(enum.Enum):
    UNKNOWN = "unknown"
    NO_CARD = "no_card"
    CARD = "card"


@dataclass(frozen=True)
class CacheEntry:
    kind: EntryKind
    card: Optional[LinkCard] = None

    @classmethod
    def of(cls, card: LinkCard) -> "CacheEntry":
        return cls(EntryKind.CARD, card)

    def to_json(self) -> Any:
        if self.kind is EntryKind.CARD and self.card is not None:
            return self.card.to_dict()
        return None


UNKNOWN = CacheEntry(EntryKind.UNKNOWN)
NO_CARD = CacheEntry(EntryKind.NO_CARD)


class LinkCardCache:
    """URL -> Open-Graph result, persisted as gzip-compressed JSON.

    Stored values are kept exactly as loaded so that an entry this version
    cannot interpret is written back unchanged instead of being dropped.
    """

    def __init__(self, path: Path, entries: Optional[dict[str, Any]] = None) -> None:
        self.path = path
        self._entries: dict[str, Any] = dict(entries or {})

    @classmethod
    def load(cls, path: Path) -> "LinkCardCache":
        if not path.exists():
            logger.info("Cache file %s does not exist, starting with an empty cache", path)
            return cls(path)
        try:
            with gzip.open(path, "rt", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, EOFError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CacheError(f"Failed to read link card cache {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise CacheError(f"Link card cache {path} must contain a JSON object")
        logger.debug("Loaded %d cache entries from %s", len(data), path)
        return cls(path, data)

    def get(self, url: str) -> CacheEntry:
        if url not in self._entries:
            return UNKNOWN
        raw = self._entries[url]
        if raw is None:
            return NO_CARD
        if not isinstance(raw, dict):
            logger.warning("Invalid cache entry for %s (not an object): %r", url, raw)
            return NO_CARD
        try:
            return CacheEntry.of(LinkCard.from_dict(raw))
        except ValueError as exc:
            logger.warning("Invalid cache entry for %s (%s): %r", url, exc, raw)
            return NO_CARD

    def put(self, url: str, entry: CacheEntry) -> None:
        if entry.kind is EntryKind.UNKNOWN:
            self._entries.pop(url, None)
            return
        self._entries[url] = entry.to_json()

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with gzip.open(self.path, "wt", encoding="utf-8") as fh:
            json.dump(self._entries, fh, indent=2, ensure_ascii=True)
        logger.debug("Saved %d cache entries to %s", len(self._entries), self.path)

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)
