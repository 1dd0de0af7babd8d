from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import yaml

from .errors import ConfigError
from .ogp import DEFAULT_FAST_FETCH_DELAY, DEFAULT_FETCH_DELAY, DEFAULT_FETCH_TIMEOUT, DEFAULT_USER_AGENT

DEFAULT_CACHE_FILE = "cache.json.gz"
ROOT_LATEST_LIMIT = 10


@dataclass(frozen=True)
class SiteConfig:
    article_dir: Path
    output_dir: Path
    static_dir: Path
    template_dir: Path
    site_name: str = ""
    site_url: str = ""
    cache_file: Path = Path(DEFAULT_CACHE_FILE)
    user_agent: str = DEFAULT_USER_AGENT
    fetch_delay: float = DEFAULT_FETCH_DELAY
    fast_fetch_delay: float = DEFAULT_FAST_FETCH_DELAY
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    root_latest_limit: int = ROOT_LATEST_LIMIT

    def validate(self) -> None:
        for label, path in (
            ("article_dir", self.article_dir),
            ("static_dir", self.static_dir),
            ("template_dir", self.template_dir),
        ):
            if not path.is_dir():
                raise ConfigError(f"{label} must be a directory: {path}")
        if self.output_dir.exists() and not self.output_dir.is_dir():
            raise ConfigError(f"if out_dir exists, it must be a directory: {self.output_dir}")


def load_config(path: Path) -> dict:
    if not path.exists():
        return {}
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix == ".toml":
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in config file {path}: {exc}") from exc
    elif suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in config file {path}: {exc}") from exc
        if data is None:
            return {}
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be a mapping: {path}")
    return data


def env_default(config: Mapping, key: str, env_var: str, default: str = "") -> str:
    value = config.get(key)
    if value is not None:
        return str(value)
    return os.environ.get(env_var, default)
