#!/usr/bin/env python3
from __future__ import annotations

from datetime import tzinfo
from pathlib import Path
from typing import Any

import pandas as pd
import plotly.graph_objects as go

from chart_config import as_int
from time_ticks import ticks

LINE_COLOR = "rgb(50,255,100)"
GRID_COLOR = "#3a3a3a"


def chart_title(prefix: str, latest_price: float) -> str:
    return f"{prefix} {int(latest_price):,}".strip()


def axis_style() -> dict[str, Any]:
    return {
        "color": "white",
        "showline": True,
        "linecolor": "white",
        "linewidth": 1,
        "ticks": "outside",
        "tickcolor": "white",
        "showgrid": True,
        "gridcolor": GRID_COLOR,
        "zeroline": False,
    }


def apply_time_ticks(fig: go.Figure, x_min: float, x_max: float, tz: tzinfo, label_format: str | None) -> None:
    if x_max <= x_min:
        # One sample has no span to label.
        fig.update_xaxes(showticklabels=False)
        return
    axis_ticks = ticks(x_min, x_max, tz, label_format)
    fig.update_xaxes(
        tickmode="array",
        tickvals=[t.position for t in axis_ticks],
        ticktext=[t.label or "" for t in axis_ticks],
        range=[x_min, x_max],
        tickangle=-60,
    )


def build_figure(df: pd.DataFrame, chart_cfg: dict[str, Any], tz: tzinfo) -> go.Figure:
    if df.empty:
        raise ValueError("cannot chart an empty series")

    prefix = str(chart_cfg.get("title_prefix", "")).strip()
    latest = float(df["price"].iloc[-1])

    fig = go.Figure()
    fig.add_trace(
        go.Scatter(
            x=df["timestamp"],
            y=df["price"],
            mode="lines",
            line={"width": 1.6, "color": LINE_COLOR},
            showlegend=False,
        )
    )
    fig.update_layout(
        title={"text": chart_title(prefix, latest), "font": {"color": "white"}, "x": 0.5},
        paper_bgcolor="black",
        plot_bgcolor="black",
        font={"color": "white"},
        width=as_int(chart_cfg.get("width"), 500),
        height=as_int(chart_cfg.get("height"), 400),
        margin={"l": 20, "r": 70, "t": 50, "b": 60},
    )
    fig.update_xaxes(**axis_style())
    fig.update_yaxes(**axis_style(), side="right", nticks=10, tickformat=".0f")

    apply_time_ticks(
        fig,
        float(df["timestamp"].min()),
        float(df["timestamp"].max()),
        tz,
        chart_cfg.get("tick_label_format") or None,
    )
    return fig


def render_png(fig: go.Figure, chart_cfg: dict[str, Any]) -> bytes:
    # Static export goes through kaleido.
    return fig.to_image(
        format="png",
        width=as_int(chart_cfg.get("width"), 500),
        height=as_int(chart_cfg.get("height"), 400),
    )


def render_price_chart(
    df: pd.DataFrame,
    chart_cfg: dict[str, Any],
    tz: tzinfo,
    output_png: Path | None = None,
) -> bytes:
    png = render_png(build_figure(df, chart_cfg, tz), chart_cfg)
    if output_png is not None:
        output_png.parent.mkdir(parents=True, exist_ok=True)
        output_png.write_bytes(png)
        print(f"[ok] wrote {output_png} rows={len(df)} bytes={len(png)}")
    return png
