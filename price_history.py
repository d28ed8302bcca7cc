"""
price_history.py — simulated price trend for the results view.

There is no price database behind this: the series is a random walk that only
illustrates the chart. Every UI labels it as an estimate.
"""
from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import date
from typing import Optional

SPARK_CHARS = "▁▂▃▄▅▆▇█"


@dataclass(frozen=True)
class PricePoint:
    label: str      # short month name, e.g. "Mar"
    price: int


def _months_back(today: date, n: int) -> date:
    month_index = today.year * 12 + (today.month - 1) - n
    return date(month_index // 12, month_index % 12 + 1, 1)


def generate_price_history(
    months: int = 6,
    rng: Optional[random.Random] = None,
    today: Optional[date] = None,
) -> list[PricePoint]:
    """months + 1 monthly points, oldest first, ending at the current month."""
    rng   = rng or random.Random()
    today = today or date.today()

    base = float(rng.randrange(50, 250))
    points = []
    for back in range(months, -1, -1):
        base += (rng.random() - 0.5) * 20
        points.append(PricePoint(
            label=_months_back(today, back).strftime("%b"),
            price=max(0, round(base)),
        ))
    return points


def sparkline(points: list[PricePoint]) -> str:
    """One block character per point, scaled between the series min and max."""
    if not points:
        return ""
    prices = [p.price for p in points]
    low, high = min(prices), max(prices)
    span = high - low
    if span == 0:
        return SPARK_CHARS[len(SPARK_CHARS) // 2] * len(points)
    last = len(SPARK_CHARS) - 1
    return "".join(SPARK_CHARS[round((p - low) / span * last)] for p in prices)


def svg_polyline(points: list[PricePoint], width: int = 600, height: int = 160, pad: int = 10) -> str:
    """The `points` attribute of an SVG polyline tracing the series."""
    if not points:
        return ""
    prices = [p.price for p in points]
    low, high = min(prices), max(prices)
    span = (high - low) or 1
    step = (width - 2 * pad) / max(1, len(points) - 1)
    coords = []
    for i, price in enumerate(prices):
        x = pad + i * step
        y = height - pad - (price - low) / span * (height - 2 * pad)
        coords.append(f"{x:.1f},{y:.1f}")
    return " ".join(coords)
