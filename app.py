import altair as alt
import pandas as pd
import streamlit as st
from contextlib import contextmanager
from typing import Optional

from engine import data as dc
from engine.charts import eta_on_time_chart, vendor_on_time_chart
from engine.filters import ALL, ShipmentFilters
from engine.metrics_groups import on_time_rate_by_eta_day, on_time_rate_by_vendor
from engine.metrics_overview import compute_kpis

alt.data_transformers.disable_max_rows()


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(filters: ShipmentFilters) -> str:
    chips = [
        f"Vendor: {filters.vendor if filters.vendor != ALL else 'All'}",
        f"Origin: {filters.origin if filters.origin != ALL else 'All'}",
        f"Season: {filters.season if filters.season != ALL else 'All'}",
        f"Search: {filters.search_text}" if filters.search_text else "Search: none",
    ]
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


def render_page_header(title: str, breadcrumb: str, filter_summary_html: str, export_df: Optional[pd.DataFrame] = None):
    inject_base_styles()
    c1, c2 = st.columns([7, 3])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        if export_df is not None and not export_df.empty:
            st.download_button(
                "Export CSV",
                data=export_df.to_csv(index=False).encode("utf-8"),
                file_name="shipments_filtered.csv",
                mime="text/csv",
            )
    st.markdown(f"<div class='chip-row'>{filter_summary_html}</div>", unsafe_allow_html=True)


def render_kpi_tiles(rows):
    kpis = compute_kpis(rows)
    cols = st.columns(5)
    cols[0].metric("Shipments", f"{kpis.total_count:,}")
    cols[1].metric("Arrived", f"{kpis.arrived_count:,}")
    cols[2].metric("In Transit", f"{kpis.in_transit_count:,}")
    cols[3].metric("On-time Rate", f"{kpis.on_time_rate_pct:.1f}%", help="On-time arrivals / arrived shipments.")
    cols[4].metric("Avg Delay (days)", f"{kpis.avg_delay_days:.2f}", help="Mean Delay_Days over arrived shipments.")


# ---------- UI setup ----------
st.set_page_config(page_title="Shipment Tracker Dashboard", layout="wide")
inject_base_styles()
st.title("Shipment Tracker Dashboard")
st.caption("Upload the shipment template (CSV / TSV / XLSX) or drop files into the data folder.")

with st.sidebar:
    st.markdown("### Data")
    uploaded = st.file_uploader("Shipment file", type=["csv", "tsv", "txt", "xlsx"])
    st.download_button(
        "Download template",
        data=dc.template_csv().encode("utf-8"),
        file_name="shipment_template.csv",
        mime="text/csv",
    )

try:
    if uploaded is not None:
        data_ctx = dc.build_data_context(dc.load_shipments(uploaded, filename=uploaded.name), [uploaded.name])
    else:
        data_ctx = dc.load_dashboard_data()
except dc.ShipmentFileError as exc:
    st.error(f"Could not read shipment file: {exc}")
    st.stop()

if not data_ctx.get("rows"):
    st.info(f"No shipment rows loaded. Upload a file or place one in {dc.DATA_DIR}.")
    st.stop()

options = data_ctx["options"]
with st.sidebar:
    st.markdown("---")
    st.markdown("### Filters")
    vendor = st.selectbox("Vendor", options["vendors"], index=0)
    origin = st.selectbox("Country of Origin", options["origins"], index=0)
    season = st.selectbox("Season", options["seasons"], index=0)
    search_text = st.text_input("Search PO / SKU / Style / Waybill / Notes", "")
    st.caption("Files: " + ", ".join(data_ctx.get("files", [])))

filters = {"vendor": vendor, "origin": origin, "season": season, "search_text": search_text}
ctx = dc.prepare_context(filters, data_ctx)
filtered_rows = ctx["filtered_rows"]
table = dc.shipments_to_frame(filtered_rows)

render_page_header("Overview", "Shipments / Overview", format_filter_summary(ctx["filters"]), export_df=table)
render_kpi_tiles(filtered_rows)

by_vendor = on_time_rate_by_vendor(filtered_rows)
by_eta_day = on_time_rate_by_eta_day(filtered_rows)

left, right = st.columns(2)
with left:
    with card("On-time Rate by Vendor"):
        if by_vendor.labels:
            st.altair_chart(vendor_on_time_chart(by_vendor), use_container_width=True)
        else:
            st.info("No vendor values in the selected rows.")
with right:
    with card("On-time Rate by ETA Day"):
        if by_eta_day.labels:
            st.altair_chart(eta_on_time_chart(by_eta_day), use_container_width=True)
        else:
            st.info("No parsable ETA dates in the selected rows.")

with card(f"Shipments ({len(filtered_rows):,})"):
    st.dataframe(table, hide_index=True, use_container_width=True)
