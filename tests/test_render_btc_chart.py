from __future__ import annotations

import json

import pytest
from pynostr.key import PrivateKey

import chart_pipeline
import chart_render
import render_btc_chart
from chart_config import DEFAULT_CONFIG


@pytest.fixture()
def fake_png(monkeypatch):
    rendered: list[dict] = []

    def fake_render(df, chart_cfg, tz, output_png=None):
        rendered.append({"rows": len(df), "output": output_png, "last": float(df["price"].iloc[-1])})
        return b"\x89PNG fake"

    monkeypatch.setattr(chart_pipeline, "render_price_chart", fake_render)
    return rendered


@pytest.fixture()
def cli(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DATABASE_URL", raising=False)

    def run(*argv: str) -> int:
        monkeypatch.setattr("sys.argv", ["btcchart-render", *argv])
        return render_btc_chart.main()

    return run


def test_render_only(cli, fake_png, btclog_db, tmp_path, capsys):
    out = tmp_path / "chart.png"

    assert cli("--dsn", str(btclog_db), "--output", str(out), "--limit", "24", "--column", "last") == 0

    assert fake_png == [{"rows": 24, "output": out, "last": 5_000_199.0}]
    assert "[done] rendered" in capsys.readouterr().out


def test_upload_prints_url(cli, fake_png, btclog_db, monkeypatch, capsys):
    monkeypatch.setattr(render_btc_chart, "upload_image", lambda png, cfg: "https://image.example/c.png")

    assert cli("--dsn", str(btclog_db), "--upload") == 0
    assert capsys.readouterr().out.strip().endswith("https://image.example/c.png")


def test_upload_and_reply(cli, fake_png, btclog_db, monkeypatch, tmp_path, capsys):
    key = PrivateKey()
    monkeypatch.setenv("NULLPOGA_NSEC", key.bech32())
    monkeypatch.setattr(render_btc_chart, "upload_image", lambda png, cfg: "https://image.example/c.png")
    incoming = tmp_path / "event.json"
    incoming.write_text(json.dumps({"id": "f" * 64, "kind": 1, "tags": []}), encoding="utf-8")

    assert cli("--dsn", str(btclog_db), "--upload", "--reply-to-json", str(incoming)) == 0

    event = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert event["content"] == "https://image.example/c.png"
    assert event["pubkey"] == key.public_key.hex()
    assert event["tags"] == [["e", "f" * 64, "", "reply"]]


def test_reply_requires_upload(cli, capsys):
    assert cli("--reply-to-json", "event.json") == 1
    assert "requires --upload" in capsys.readouterr().out


def test_empty_store_reports_no_data(cli, fake_png, empty_btclog_db, capsys):
    assert cli("--dsn", str(empty_btclog_db)) == 1
    assert "[error] no data" in capsys.readouterr().out
    assert fake_png == []


def test_dsn_from_environment(cli, fake_png, btclog_db, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", str(btclog_db))

    assert cli() == 0
    assert fake_png[0]["rows"] == 180


def test_generate_chart_url_renders_and_uploads(fake_png, btclog_db, monkeypatch):
    uploaded: list[bytes] = []

    def fake_upload(png, cfg):
        uploaded.append(png)
        return "https://image.example/u.png"

    monkeypatch.setattr(chart_pipeline, "upload_image", fake_upload)
    config = DEFAULT_CONFIG

    assert chart_pipeline.generate_chart_url(config, str(btclog_db)) == "https://image.example/u.png"
    assert uploaded == [b"\x89PNG fake"]
    assert fake_png[0]["rows"] == 180


def test_export_failure_is_reported(cli, btclog_db, monkeypatch, capsys):
    def no_chrome(fig, chart_cfg):
        raise RuntimeError("Kaleido requires Google Chrome to be installed.")

    monkeypatch.setattr(chart_render, "render_png", no_chrome)

    assert cli("--dsn", str(btclog_db)) == 1
    assert "[error] RuntimeError: Kaleido requires Google Chrome" in capsys.readouterr().out


def test_unwritable_output_is_reported(cli, btclog_db, monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(chart_render, "render_png", lambda fig, chart_cfg: b"\x89PNG fake")
    out_dir = tmp_path / "already_a_dir"
    out_dir.mkdir()

    assert cli("--dsn", str(btclog_db), "--output", str(out_dir)) == 1
    assert "[error] IsADirectoryError" in capsys.readouterr().out


@pytest.mark.parametrize("nsec, event_body", [("nsec1broken", '{"id": "%s", "kind": 1, "tags": []}' % ("f" * 64)), (None, "not json")])
def test_bad_reply_inputs_fail_before_upload(cli, fake_png, btclog_db, monkeypatch, tmp_path, capsys, nsec, event_body):
    uploads: list[bytes] = []
    monkeypatch.setattr(render_btc_chart, "upload_image", lambda png, cfg: uploads.append(png) or "https://x/y.png")
    monkeypatch.setenv("NULLPOGA_NSEC", nsec or PrivateKey().bech32())
    incoming = tmp_path / "event.json"
    incoming.write_text(event_body, encoding="utf-8")

    assert cli("--dsn", str(btclog_db), "--upload", "--reply-to-json", str(incoming)) == 1
    assert "[error]" in capsys.readouterr().out
    assert uploads == []
    assert fake_png == []
