#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Any

import duckdb
import requests

from btcchart_server import resolve_dsn
from chart_config import VERSION, deep_merge, load_config, load_dotenv_file
from chart_pipeline import render_from_store
from image_upload import UploadError, upload_image
from nostr_reply import build_reply, load_private_key, parse_incoming
from price_source import NoPriceData


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render the BTC price chart from the price log.")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("config.json"),
        help="Config file path (default: config.json).",
    )
    parser.add_argument(
        "--dsn",
        type=str,
        default=None,
        help="DuckDB path or postgres:// DSN (overrides $DATABASE_URL and config).",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output PNG path (overrides config paths.output_png).",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Number of latest samples to plot (overrides config).",
    )
    parser.add_argument(
        "--column",
        type=str,
        default=None,
        help="Price column to plot: last, bid or ask (overrides config).",
    )
    parser.add_argument(
        "--upload",
        action="store_true",
        help="Upload the PNG and print the image URL.",
    )
    parser.add_argument(
        "--reply-to-json",
        type=Path,
        default=None,
        help="With --upload: read a Nostr event from this JSON file and print a signed reply.",
    )
    parser.add_argument("-v", "--version", action="store_true", help="Show version and exit.")
    return parser.parse_args()


def cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.output is not None:
        overrides.setdefault("paths", {})["output_png"] = str(args.output)
    if args.limit is not None:
        overrides.setdefault("database", {})["limit"] = args.limit
    if args.column:
        overrides.setdefault("database", {})["price_column"] = args.column
    return overrides


def main() -> int:
    args = parse_args()
    if args.version:
        print(VERSION)
        return 0
    if args.reply_to_json is not None and not args.upload:
        print("[error] --reply-to-json requires --upload")
        return 1

    load_dotenv_file(Path(".env"))
    if args.config:
        load_dotenv_file(args.config.parent / ".env")
    config = deep_merge(load_config(args.config), cli_overrides(args))
    dsn = resolve_dsn(args.dsn, config)
    if not dsn:
        print("[error] no database configured. Set --dsn, DATABASE_URL, or database.dsn in config.")
        return 1

    try:
        incoming = None
        private_key = None
        if args.reply_to_json is not None:
            # Reply inputs are checked before anything is uploaded.
            incoming = parse_incoming(json.loads(args.reply_to_json.read_text(encoding="utf-8")))
            nsec_env = str(config.get("nostr", {}).get("nsec_env", "NULLPOGA_NSEC"))
            private_key = load_private_key(os.getenv(nsec_env, ""))

        png = render_from_store(config, dsn)
        if not args.upload:
            print(f"[done] rendered {len(png)} bytes")
            return 0

        image_url = upload_image(png, config.get("upload", {}))
        if incoming is None or private_key is None:
            print(image_url)
            return 0

        print(json.dumps(build_reply(incoming, image_url, private_key), ensure_ascii=False))
    except (NoPriceData, UploadError, ValueError) as exc:
        print(f"[error] {exc}")
        return 1
    except (duckdb.Error, requests.RequestException, OSError, RuntimeError) as exc:
        # OSError covers unwritable outputs, RuntimeError a failed kaleido export.
        print(f"[error] {type(exc).__name__}: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
