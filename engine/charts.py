from __future__ import annotations

from typing import Any, Dict

import altair as alt

from engine.metrics_groups import SeriesResult

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def vendor_on_time_chart(series: SeriesResult) -> alt.Chart:
    df = series.to_frame("vendor", "on_time_rate_pct")
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("vendor:N", title="Vendor", sort=None),
            y=alt.Y("on_time_rate_pct:Q", title="On-time %", scale=alt.Scale(domain=[0, 100])),
            tooltip=[alt.Tooltip("vendor:N", title="Vendor"), alt.Tooltip("on_time_rate_pct:Q", title="On-time %", format=".1f")],
        )
    )


def eta_on_time_chart(series: SeriesResult) -> alt.Chart:
    df = series.to_frame("eta_day", "on_time_rate_pct")
    return (
        alt.Chart(df)
        .mark_line(point=True)
        .encode(
            x=alt.X("eta_day:T", title="ETA", axis=alt.Axis(format="%Y-%m-%d")),
            y=alt.Y("on_time_rate_pct:Q", title="On-time %", scale=alt.Scale(domain=[0, 100])),
            tooltip=[alt.Tooltip("eta_day:T", title="ETA", format="%Y-%m-%d"), alt.Tooltip("on_time_rate_pct:Q", title="On-time %", format=".1f")],
        )
    )
