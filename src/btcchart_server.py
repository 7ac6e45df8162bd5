#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Any

from flask import Flask, Response, request
from pynostr.key import PrivateKey

from chart_config import VERSION, as_int, load_config, load_dotenv_file, parse_timezone
from chart_pipeline import generate_chart_url
from nostr_reply import build_reply, load_private_key, parse_incoming
from price_source import is_postgres_dsn, open_store, table_exists

BANNER = "ビットコインチャート"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Answer Nostr webhook calls with a signed reply carrying a fresh BTC chart."
    )
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
        "--host",
        type=str,
        default=None,
        help="Host bind address (overrides config).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port (overrides $PORT and config).",
    )
    parser.add_argument("-v", "--version", action="store_true", help="Show version and exit.")
    return parser.parse_args()


def text_response(body: str, status: int = 200) -> Response:
    return Response(body + "\n", status=status, content_type="text/plain; charset=utf-8")


def create_app(config: dict[str, Any], dsn: str, private_key: PrivateKey) -> Flask:
    app = Flask(__name__)

    @app.get("/health")
    def health() -> tuple[dict[str, Any], int]:
        return {"ok": True}, 200

    # Anything but POST gets the banner.
    @app.route("/", methods=["GET", "PUT", "PATCH", "DELETE"])
    def banner() -> Response:
        return text_response(BANNER)

    @app.post("/")
    def reply() -> Response:
        payload = request.get_json(silent=True, force=True)
        try:
            incoming = parse_incoming(payload)
        except ValueError as exc:
            return text_response(str(exc), 400)

        try:
            image_url = generate_chart_url(config, dsn)
            event = build_reply(incoming, image_url, private_key)
        except Exception as exc:
            print(f"[error] reply to {incoming.id}: {exc}")
            return text_response(str(exc), 500)

        return Response(
            json.dumps(event, ensure_ascii=False),
            status=200,
            content_type="text/json; charset=utf-8",
        )

    return app


def require_table(dsn: str, table: str) -> bool:
    conn = open_store(dsn)
    try:
        return table_exists(conn, table)
    finally:
        conn.close()


def resolve_dsn(cli_value: str | None, config: dict[str, Any]) -> str:
    return cli_value or os.getenv("DATABASE_URL", "").strip() or str(config.get("database", {}).get("dsn", ""))


def main() -> int:
    args = parse_args()
    if args.version:
        print(VERSION)
        return 0

    load_dotenv_file(Path(".env"))
    if args.config:
        load_dotenv_file(args.config.parent / ".env")
    config = load_config(args.config)

    dsn = resolve_dsn(args.dsn, config)
    host = args.host or str(config.get("server", {}).get("host", "0.0.0.0"))
    port = args.port or as_int(os.getenv("PORT"), 0) or as_int(config.get("server", {}).get("port"), 8080)
    nsec_env = str(config.get("nostr", {}).get("nsec_env", "NULLPOGA_NSEC"))
    table = str(config.get("database", {}).get("table", "btclog"))

    if not dsn:
        print("[error] no database configured. Set --dsn, DATABASE_URL, or database.dsn in config.")
        return 1
    if not is_postgres_dsn(dsn) and not Path(dsn).exists():
        print(f"[error] DuckDB not found: {dsn}")
        print("[hint] pass a postgres:// DSN or an existing DuckDB file")
        return 1
    if not is_postgres_dsn(dsn) and not require_table(dsn, table):
        print(f"[error] required table missing: {table}")
        return 1

    nsec = os.getenv(nsec_env, "").strip()
    if not nsec:
        print(f"[error] {nsec_env} is not set")
        return 1
    try:
        private_key = load_private_key(nsec)
        tz = parse_timezone(config.get("chart", {}).get("timezone"))
    except ValueError as exc:
        print(f"[error] {exc}")
        return 1

    app = create_app(config, dsn, private_key)
    print(f"[start] http://{host}:{port}")
    print(f"[nostr] pubkey={private_key.public_key.bech32()} | timezone={tz}")
    app.run(host=host, port=port, debug=False)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
