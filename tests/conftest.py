from __future__ import annotations

from pathlib import Path
import sys

import duckdb
import pytest

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))


def create_btclog(db_path: Path, rows: list[tuple[int, float, float, float]]) -> Path:
    conn = duckdb.connect(str(db_path))
    try:
        conn.execute(
            """
            CREATE TABLE btclog (
              "timestamp" BIGINT PRIMARY KEY,
              "last" DOUBLE NOT NULL,
              bid DOUBLE NOT NULL,
              ask DOUBLE NOT NULL,
              created_at TIMESTAMP DEFAULT current_timestamp
            )
            """
        )
        if rows:
            conn.executemany(
                'INSERT INTO btclog ("timestamp", "last", bid, ask) VALUES (?, ?, ?, ?)',
                rows,
            )
    finally:
        conn.close()
    return db_path


@pytest.fixture()
def btclog_db(tmp_path):
    start = 1_700_000_000
    rows = [(start + i * 600, 5_000_000.0 + i, 4_999_000.0 + i, 5_001_000.0 + i * 10) for i in range(200)]
    return create_btclog(tmp_path / "btclog.duckdb", rows)


@pytest.fixture()
def empty_btclog_db(tmp_path):
    return create_btclog(tmp_path / "empty.duckdb", [])
