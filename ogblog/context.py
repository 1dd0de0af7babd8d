from __future__ import annotations

import logging
from dataclasses import dataclass

from markdown_it import MarkdownIt

from .cache import LinkCardCache
from .config import SiteConfig
from .render import TemplateRenderer, write_text

logger = logging.getLogger(__name__)


@dataclass
class BuildContext:
    """Everything one build run shares, created once and passed to each stage."""

    config: SiteConfig
    templates: TemplateRenderer
    markdown: MarkdownIt
    cache: LinkCardCache

    def write_page(self, template: str, data: dict, output_path: str) -> None:
        data.setdefault("blog_name", self.config.site_name)
        data.setdefault("path", output_path)
        target = self.config.output_dir / output_path
        logger.debug("Writing %s", target)
        write_text(target, self.templates.render(template, data))
