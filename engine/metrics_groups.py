"""On-time rate grouped by a key (vendor, ETA day, ...).

Rows whose key is missing contribute to no group. A group with rows but no
arrivals is still emitted, with a rate of 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Literal, Optional, Tuple

import pandas as pd

from engine.data import round_half_up
from engine.schema import ShipmentRow, day_keys


GroupOrder = Literal["first_seen", "sorted"]
KeyFn = Callable[[ShipmentRow], Optional[str]]

STATS_COLUMNS = ["key", "total", "arrived", "on_time", "on_time_rate_pct"]


@dataclass(frozen=True)
class SeriesResult:
    labels: Tuple[str, ...] = ()
    values: Tuple[float, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"labels": list(self.labels), "values": list(self.values)}

    def to_frame(self, label: str = "label", value: str = "value") -> pd.DataFrame:
        return pd.DataFrame({label: list(self.labels), value: list(self.values)})


def on_time_rate_pct(on_time: int, arrived: int) -> float:
    if not arrived:
        return 0.0
    return round_half_up(100 * on_time / arrived, 1)


def group_stats(rows: Iterable[ShipmentRow], key_fn: KeyFn, *, order: GroupOrder = "first_seen") -> pd.DataFrame:
    """Per-key total / arrived / on-time counts and the resulting rate.

    ``order="first_seen"`` keeps keys in the order they first appear;
    ``order="sorted"`` sorts them ascending.
    """
    if order not in ("first_seen", "sorted"):
        raise ValueError(f"Unknown group order: {order}")

    records = []
    for row in rows:
        key = key_fn(row)
        if not key:
            continue
        arrived = row.is_arrived
        records.append({"key": key, "arrived": arrived, "on_time": arrived and row.is_on_time})
    if not records:
        return pd.DataFrame(columns=STATS_COLUMNS)

    frame = pd.DataFrame.from_records(records)
    stats = (
        frame.groupby("key", sort=(order == "sorted"))
        .agg(total=("arrived", "size"), arrived=("arrived", "sum"), on_time=("on_time", "sum"))
        .reset_index()
    )
    stats = stats.astype({"total": int, "arrived": int, "on_time": int})
    stats["on_time_rate_pct"] = [on_time_rate_pct(o, a) for o, a in zip(stats["on_time"], stats["arrived"])]
    return stats[STATS_COLUMNS]


def on_time_rate_by(rows: Iterable[ShipmentRow], key_fn: KeyFn, *, order: GroupOrder = "first_seen") -> SeriesResult:
    stats = group_stats(rows, key_fn, order=order)
    return SeriesResult(
        labels=tuple(str(k) for k in stats["key"]),
        values=tuple(float(v) for v in stats["on_time_rate_pct"]),
    )


def on_time_rate_by_vendor(rows: Iterable[ShipmentRow]) -> SeriesResult:
    return on_time_rate_by(rows, lambda r: r.vendor)


def on_time_rate_by_eta_day(rows: Iterable[ShipmentRow]) -> SeriesResult:
    rows = list(rows)
    keys = day_keys(r.eta for r in rows)
    return on_time_rate_by(rows, lambda r: keys[r.eta], order="sorted")
