from __future__ import annotations
import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Mapping, Optional

from .combinations import DEFAULT_MAX_COMBINATIONS
from .models import SINGLE_LINE_TEXT
from .normalize import parse_bool


logger = logging.getLogger(__name__)

WIX_MEDIA_BASE_URL = "https://static.wixstatic.com/media/"

ENV_PREFIX = "CATALOG_"


@dataclass
class Settings:
    max_combinations: int = DEFAULT_MAX_COMBINATIONS
    skip_validation: bool = False
    default_namespace: str = "custom"
    default_metafield_type: str = SINGLE_LINE_TEXT
    wix_media_base_url: str = WIX_MEDIA_BASE_URL


def default_settings() -> Dict:
    return {
        "max_combinations": DEFAULT_MAX_COMBINATIONS,
        "skip_validation": False,
        "default_namespace": "custom",
        "default_metafield_type": SINGLE_LINE_TEXT,
        "wix_media_base_url": WIX_MEDIA_BASE_URL,
    }


def _coerce(name: str, value):
    if name == "max_combinations":
        return int(value)
    if name == "skip_validation":
        return value if isinstance(value, bool) else parse_bool(str(value))
    return str(value)


def load_settings(path: Optional[Path] = None, env: Optional[Mapping[str, str]] = None) -> Settings:
    """Defaults, then a JSON settings file, then CATALOG_* environment variables."""
    data = default_settings()
    if path is not None:
        try:
            data.update(json.loads(Path(path).read_text()) or {})
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable settings file {path}: {e}")
    env = os.environ if env is None else env
    for name in data:
        raw = env.get(ENV_PREFIX + name.upper())
        if raw is not None and raw.strip():
            data[name] = raw.strip()
    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning(f"Unknown settings ignored: {', '.join(unknown)}")
    defaults = default_settings()
    values = {}
    for k, v in data.items():
        if k not in known:
            continue
        try:
            values[k] = _coerce(k, v)
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring invalid setting {k}={v!r}: {e}")
            values[k] = defaults[k]
    return Settings(**values)
