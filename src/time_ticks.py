#!/usr/bin/env python3
"""Time-axis ticks for price charts.

The label density and date format adapt to the visible span: a few hours get
a labeled tick every 10 minutes, a couple of years get a tick per month and a
label per January.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable

TEN_MINUTES = 600
HOUR = 3600

# Span thresholds in seconds.
FINE_SPAN = 15_000
HOURLY_STEP_SPAN = 87_000
HOURLY_BUCKET_SPAN = 90_000


class InvalidRange(ValueError):
    pass


@dataclass(frozen=True)
class Tick:
    position: int
    label: str | None = None


def _always(moment: datetime, index: int = 0) -> bool:
    return True


@dataclass(frozen=True)
class SpanRegime:
    name: str
    upper: float
    emits: Callable[[datetime], bool] = field(repr=False)
    labels: Callable[[datetime, int], bool] = field(repr=False)
    label_format: str
    sub_day_format: str | None = None

    def format_for(self, delta: float) -> str:
        if self.sub_day_format and delta < HOURLY_BUCKET_SPAN:
            return self.sub_day_format
        return self.label_format


REGIMES: tuple[SpanRegime, ...] = (
    SpanRegime("intraday", FINE_SPAN, _always, _always, "%H:%M"),
    SpanRegime("ten_days", 86_400 * 10, _always, _always, "%m/%d", sub_day_format="%H:%M"),
    SpanRegime(
        "ninety_days",
        86_400 * 90,
        _always,
        lambda moment, index: index % 5 == 0,
        "%m/%d",
    ),
    SpanRegime(
        "half_year",
        86_400 * 180,
        lambda moment: moment.day == 1 or moment.day % 5 == 0,
        lambda moment, index: moment.day in (1, 15),
        "%m/%d",
    ),
    SpanRegime(
        "eighteen_months",
        86_400 * 548,
        lambda moment: moment.day in (1, 15),
        lambda moment, index: moment.day == 1,
        "%Y/%m",
    ),
    SpanRegime(
        "long",
        math.inf,
        lambda moment: moment.day == 1,
        lambda moment, index: moment.day == 1 and moment.month == 1,
        "%Y/%m",
    ),
)


def classify(delta: float) -> SpanRegime:
    for regime in REGIMES:
        if delta < regime.upper:
            return regime
    return REGIMES[-1]


def bucket(t: float, span: float, tz: tzinfo = timezone.utc) -> int:
    """Snap ``t`` down to a 10-minute, hour or local-day boundary depending on ``span``."""
    moment = datetime.fromtimestamp(math.floor(t), tz)
    if span < FINE_SPAN:
        moment = moment.replace(minute=moment.minute - moment.minute % 10, second=0, microsecond=0)
    elif span < HOURLY_BUCKET_SPAN:
        moment = moment.replace(minute=0, second=0, microsecond=0)
    else:
        moment = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    return int(moment.timestamp())


def _advance(moment: datetime, delta: float, tz: tzinfo) -> datetime:
    if delta < FINE_SPAN:
        return datetime.fromtimestamp(moment.timestamp() + TEN_MINUTES, tz)
    if delta < HOURLY_STEP_SPAN:
        return datetime.fromtimestamp(moment.timestamp() + HOUR, tz)
    # Wall-clock day, then normalize in case the zone shifted its offset.
    return datetime.fromtimestamp((moment + timedelta(days=1)).timestamp(), tz)


def ticks(
    start: float,
    end: float,
    tz: tzinfo = timezone.utc,
    label_format: str | None = None,
) -> list[Tick]:
    """Walk from bucket(start) past bucket(end), emitting ticks per the span regime.

    ``label_format`` forces a single strftime format for every regime.
    """
    if not (math.isfinite(start) and math.isfinite(end)) or end <= start:
        raise InvalidRange(f"invalid time range: start={start} end={end}")

    delta = end - start
    regime = classify(delta)
    fmt = label_format or regime.format_for(delta)
    limit = bucket(end, delta, tz)
    moment = datetime.fromtimestamp(bucket(start, delta, tz), tz)

    out: list[Tick] = []
    while True:
        if regime.emits(moment):
            label = moment.strftime(fmt) if regime.labels(moment, len(out)) else None
            out.append(Tick(position=int(moment.timestamp()), label=label))
        if moment.timestamp() > limit:
            break
        moment = _advance(moment, delta, tz)
    return out
