from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable

import pandas as pd

from engine.charts import eta_on_time_chart, to_vega_spec, vendor_on_time_chart
from engine.data import round_half_up
from engine.filters import ShipmentFilters
from engine.metrics_groups import on_time_rate_by_eta_day, on_time_rate_by_vendor
from engine.schema import ShipmentRow


@dataclass(frozen=True)
class KpiResult:
    on_time_rate_pct: float = 0.0
    avg_delay_days: float = 0.0
    total_count: int = 0
    arrived_count: int = 0
    in_transit_count: int = 0


def compute_kpis(rows: Iterable[ShipmentRow]) -> KpiResult:
    """Summary KPIs over a row set.

    Rate and average delay are taken over arrived rows only and are 0 when
    nothing has arrived; counts cover every row passed in.
    """
    rows = list(rows)
    if not rows:
        return KpiResult()

    df = pd.DataFrame(
        {
            "arrived": [r.is_arrived for r in rows],
            "in_transit": [r.is_in_transit for r in rows],
            "on_time": [r.is_on_time for r in rows],
            "delay_days": [r.delay_value for r in rows],
        }
    )
    arrived = df[df["arrived"]]
    arrived_count = int(len(arrived))

    on_time_rate = 0.0
    avg_delay = 0.0
    if arrived_count:
        on_time_rate = round_half_up(100 * int(arrived["on_time"].sum()) / arrived_count, 1)
        mean_delay = float(arrived["delay_days"].mean())
        # Individually finite delays can still overflow the sum.
        avg_delay = round_half_up(mean_delay, 2) if math.isfinite(mean_delay) else 0.0

    return KpiResult(
        on_time_rate_pct=on_time_rate,
        avg_delay_days=avg_delay,
        total_count=len(rows),
        arrived_count=arrived_count,
        in_transit_count=int(df["in_transit"].sum()),
    )


def compute_overview(filters: ShipmentFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    rows = ctx.get("filtered_rows", []) or []

    kpis = compute_kpis(rows)
    by_vendor = on_time_rate_by_vendor(rows)
    by_eta_day = on_time_rate_by_eta_day(rows)

    charts: Dict[str, Any] = {}
    if by_vendor.labels:
        charts["vendor_on_time"] = to_vega_spec(vendor_on_time_chart(by_vendor))
    if by_eta_day.labels:
        charts["eta_on_time"] = to_vega_spec(eta_on_time_chart(by_eta_day))

    return {
        "filters": asdict(filters),
        "kpis": asdict(kpis),
        "series": {"vendor": by_vendor.to_dict(), "eta_day": by_eta_day.to_dict()},
        "charts": charts,
        "row_count": len(rows),
    }
