from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass, field
from typing import Optional

from .errors import FrontMatterError

DATE_FMT = "%Y-%m-%d"
FRONT_MATTER_DELIMITER = "---"


@dataclass
class FrontMatter:
    title: str = ""
    tags: list[str] = field(default_factory=list)
    date: Optional[dt.date] = None


def slugify(text: str) -> str:
    text = text.lower()
    text = re.sub(r"[^\w]+", "-", text, flags=re.UNICODE)
    text = text.strip("-_").replace("_", "-")
    return text or "item"


def parse_list(value: str) -> list[str]:
    items = [item.strip() for item in value.split(",")]
    # dict keeps first-seen order while dropping repeats
    return list(dict.fromkeys(item for item in items if item))


def parse_tags(value: str) -> list[str]:
    tags = parse_list(value)
    for tag in tags:
        # tags name files under tags/
        if "/" in tag or "\\" in tag or tag in {".", ".."}:
            raise FrontMatterError(f"Invalid tag: {tag!r}")
    return tags


def parse_date(value: str) -> dt.date:
    try:
        return dt.datetime.strptime(value, DATE_FMT).date()
    except ValueError as exc:
        raise FrontMatterError(f"Invalid date format: {value!r} (expected YYYY-MM-DD)") from exc


def parse_front_matter(text: str) -> tuple[FrontMatter, str]:
    """Split a document into its metadata header and markdown body.

    The header starts with a line that is exactly ``---`` and ends at the first
    following ``---`` line. Every non-blank line between them must be a single
    ``name: value`` pair; anything else raises FrontMatterError.
    """
    meta = FrontMatter()
    clean_text = text.lstrip("\ufeff")
    lines = clean_text.split("\n")
    if lines[0].rstrip("\r") != FRONT_MATTER_DELIMITER:
        return meta, clean_text

    end = None
    for i in range(1, len(lines)):
        if lines[i].rstrip("\r") == FRONT_MATTER_DELIMITER:
            end = i
            break
    if end is None:
        return meta, clean_text

    for raw_line in lines[1:end]:
        line = raw_line.rstrip("\r")
        if not line.strip():
            continue
        fields = line.split(":")
        if len(fields) != 2:
            raise FrontMatterError(f"Invalid header: {line}")
        name = fields[0].strip()
        value = fields[1].strip()
        if name == "title":
            meta.title = value
        elif name == "tag":
            meta.tags = parse_tags(value)
        elif name == "date":
            meta.date = parse_date(value)

    body = "\n".join(lines[end + 1 :])
    return meta, body
