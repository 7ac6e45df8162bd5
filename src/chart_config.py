#!/usr/bin/env python3
from __future__ import annotations

import json
import os
import re
from datetime import timedelta, timezone, tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


NAME = "btcchart"
VERSION = "0.1.0"

DEFAULT_CONFIG: dict[str, Any] = {
    "paths": {
        "output_png": "outputs/btcchart.png",
    },
    "database": {
        "dsn": "data/duckdb/btclog.duckdb",
        "table": "btclog",
        "price_column": "ask",
        "limit": 180,
    },
    "chart": {
        "timezone": "+09:00",
        "width": 500,
        "height": 400,
        "title_prefix": "₿ ¥",
        "tick_label_format": None,
    },
    "upload": {
        "url": "https://nostr.build/api/upload/ios.php",
        "field": "fileToUpload",
        "timeout_sec": 60,
    },
    "server": {
        "host": "0.0.0.0",
        "port": 8080,
    },
    "nostr": {
        "nsec_env": "NULLPOGA_NSEC",
    },
}

_OFFSET_RE = re.compile(r"^([+-])(\d{1,2})(?::?(\d{2}))?$")


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)  # type: ignore[index]
        else:
            result[key] = value
    return result


def load_config(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        return DEFAULT_CONFIG
    raw = json.loads(config_path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        return DEFAULT_CONFIG
    return deep_merge(DEFAULT_CONFIG, raw)


def path_from_config(config: dict[str, Any], section: str, key: str) -> Path | None:
    value = config.get(section, {}).get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value:
        raise ValueError(f"Missing config path: {section}.{key}")
    return Path(value)


def load_dotenv_file(dotenv_path: Path) -> None:
    if not dotenv_path.exists() or not dotenv_path.is_file():
        return
    try:
        raw = dotenv_path.read_text(encoding="utf-8")
    except OSError:
        return

    for line in raw.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        key = key.strip()
        if not key:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        os.environ.setdefault(key, value)


def parse_timezone(value: Any) -> tzinfo:
    """Accept "+09:00" / "-0530" style offsets, "UTC", or an IANA zone name."""
    name = str(value or "").strip()
    if not name:
        raise ValueError("empty timezone")
    if name.upper() in {"UTC", "Z"}:
        return timezone.utc
    match = _OFFSET_RE.match(name)
    if match:
        sign, hours, minutes = match.groups()
        offset = timedelta(hours=int(hours), minutes=int(minutes or 0))
        if offset >= timedelta(hours=24):
            raise ValueError(f"timezone offset out of range: {name}")
        return timezone(-offset if sign == "-" else offset)
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise ValueError(f"unknown timezone: {name}") from exc


def as_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default
