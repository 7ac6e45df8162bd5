#!/usr/bin/env python3
from __future__ import annotations

import re
from pathlib import Path

import duckdb
import pandas as pd

STORE_ALIAS = "store"
_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class NoPriceData(LookupError):
    pass


def sql_quote(value: str) -> str:
    return value.replace("'", "''")


def is_postgres_dsn(dsn: str) -> bool:
    return dsn.startswith(("postgres://", "postgresql://"))


def check_identifier(name: str) -> str:
    if not isinstance(name, str) or not _IDENT_RE.match(name):
        raise ValueError(f"invalid SQL identifier: {name!r}")
    return name


def open_store(dsn: str) -> duckdb.DuckDBPyConnection:
    """Open a read-only DuckDB file, or attach a Postgres database through DuckDB."""
    if is_postgres_dsn(dsn):
        conn = duckdb.connect()
        try:
            conn.execute("INSTALL postgres")
            conn.execute("LOAD postgres")
            conn.execute(f"ATTACH '{sql_quote(dsn)}' AS {STORE_ALIAS} (TYPE postgres, READ_ONLY)")
        except duckdb.Error:
            conn.close()
            raise
        return conn

    db_path = Path(dsn)
    if not db_path.exists():
        raise FileNotFoundError(f"DuckDB file not found: {db_path}")
    return duckdb.connect(str(db_path), read_only=True)


def table_ref(dsn: str, table: str) -> str:
    check_identifier(table)
    if is_postgres_dsn(dsn):
        return f"{STORE_ALIAS}.{table}"
    return table


def table_exists(conn: duckdb.DuckDBPyConnection, table: str) -> bool:
    row = conn.execute(
        "SELECT COUNT(*) FROM information_schema.tables WHERE table_name = ?",
        [check_identifier(table)],
    ).fetchone()
    return bool(row and row[0])


def build_query(table: str, column: str) -> str:
    return f"""
        SELECT
          "timestamp" AS "timestamp",
          "{check_identifier(column)}" AS price
        FROM {table}
        WHERE "{column}" IS NOT NULL
        ORDER BY "timestamp" DESC
        LIMIT ?
    """


def fetch_latest_prices(
    conn: duckdb.DuckDBPyConnection,
    table: str,
    column: str = "ask",
    limit: int = 180,
) -> pd.DataFrame:
    """Latest ``limit`` samples of ``column``, returned oldest first."""
    if limit <= 0:
        raise ValueError(f"limit must be positive: {limit}")
    df = conn.execute(build_query(table, column), [limit]).fetchdf()
    if df.empty:
        raise NoPriceData(f"no data in {table}.{column}")

    df = df.sort_values("timestamp", kind="stable").reset_index(drop=True)
    df["timestamp"] = df["timestamp"].astype("int64")
    df["price"] = df["price"].astype("float64")
    return df


def load_price_series(dsn: str, table: str, column: str = "ask", limit: int = 180) -> pd.DataFrame:
    conn = open_store(dsn)
    try:
        return fetch_latest_prices(conn, table_ref(dsn, table), column, limit)
    finally:
        conn.close()
