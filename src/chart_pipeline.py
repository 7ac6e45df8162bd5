#!/usr/bin/env python3
from __future__ import annotations

from typing import Any

from chart_config import as_int, parse_timezone, path_from_config
from chart_render import render_price_chart
from image_upload import upload_image
from price_source import load_price_series


def render_from_store(config: dict[str, Any], dsn: str, write_png: bool = True) -> bytes:
    db_cfg = config.get("database", {})
    chart_cfg = config.get("chart", {})
    tz = parse_timezone(chart_cfg.get("timezone"))

    df = load_price_series(
        dsn,
        str(db_cfg.get("table", "btclog")),
        str(db_cfg.get("price_column", "ask")),
        as_int(db_cfg.get("limit"), 180),
    )
    output_png = path_from_config(config, "paths", "output_png") if write_png else None
    return render_price_chart(df, chart_cfg, tz, output_png)


def generate_chart_url(config: dict[str, Any], dsn: str) -> str:
    png = render_from_store(config, dsn)
    url = upload_image(png, config.get("upload", {}))
    print(f"[ok] uploaded {url}")
    return url
