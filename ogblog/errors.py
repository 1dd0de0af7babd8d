from __future__ import annotations

from pathlib import Path
from typing import Optional


class BuildError(Exception):
    """Fatal condition that aborts the whole build."""


class ConfigError(BuildError):
    pass


class SourceError(BuildError):
    """An article file that cannot be read as a document."""

    def __init__(self, message: str, path: Optional[Path] = None) -> None:
        self.message = message
        self.path = path
        super().__init__(f"{path}: {message}" if path is not None else message)

    def with_path(self, path: Path) -> "SourceError":
        return type(self)(self.message, path)


class FrontMatterError(SourceError):
    pass


class CacheError(BuildError):
    pass


class RenderError(BuildError):
    pass
