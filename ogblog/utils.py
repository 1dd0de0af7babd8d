from __future__ import annotations

import datetime as dt
import shutil
from pathlib import Path
from typing import Iterable

from .errors import ConfigError

JST = dt.timezone(dt.timedelta(hours=9))


def parse_int(value: object, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def parse_float(value: object, default: float) -> float:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return default


def join_url(base: str, path: str) -> str:
    base = base.rstrip("/")
    path = path.lstrip("/")
    if not path:
        return base
    return f"{base}/{path}"


def to_jst(timestamp: float) -> dt.datetime:
    return dt.datetime.fromtimestamp(timestamp, tz=JST).replace(microsecond=0)


def iso_date(value: dt.datetime) -> str:
    return value.isoformat(timespec="seconds")


def clean_output_dir(output_dir: Path, protected: Iterable[Path]) -> None:
    """Remove ``output_dir`` unless it is the working directory or holds an input directory."""
    if not output_dir.exists():
        return
    output_resolved = output_dir.resolve()
    if output_resolved == Path.cwd().resolve():
        raise ConfigError("Refusing to clean the current working directory.")
    for path in protected:
        resolved = path.resolve()
        if resolved == output_resolved or resolved.is_relative_to(output_resolved):
            raise ConfigError(f"Refusing to clean {output_dir}: it contains {path}.")
    shutil.rmtree(output_dir)
