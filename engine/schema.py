from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional

import pandas as pd


# Header name (as produced by the upload template) -> ShipmentRow attribute.
SHIPMENT_COLUMNS: Dict[str, str] = {
    "PO_No": "po_no",
    "Season": "season",
    "Style": "style",
    "SKU": "sku",
    "Product_Type": "product_type",
    "Vendor": "vendor",
    "Factory": "factory",
    "Country_Origin": "country_origin",
    "Shipping_Method": "shipping_method",
    "Waybill_No": "waybill_no",
    "Order_Qty": "order_qty",
    "Unit": "unit",
    "Currency": "currency",
    "RDD(N)": "rdd",
    "ETD": "etd",
    "ETA": "eta",
    "Actual_Arrival": "actual_arrival",
    "Status": "status",
    "Delay_Days": "delay_days",
    "On_Time(YesNo)": "on_time",
    "T_Arrival_Possible": "t_arrival_possible",
    "U_Main_Supply_or_Rework(O/X)": "u_main_supply_or_rework",
    "V_Substitute_Material_Memo": "v_substitute_material_memo",
    "W_CN_Direct_Ship_Date": "w_cn_direct_ship_date",
    "X_CN_Direct_Waybill": "x_cn_direct_waybill",
    "SMS_Arrival_Date": "sms_arrival_date",
    "Notes": "notes",
}

# Order matters: the search haystack is joined in this order.
SEARCH_FIELDS = ("po_no", "sku", "style", "waybill_no", "notes")

STATUS_ARRIVED = "arrived"
STATUS_IN_TRANSIT = "in-transit"
ON_TIME_YES = "yes"


def clean_cell(value: object) -> str:
    """Return a parsed cell as text; None/NaN become the empty string."""
    if value is None:
        return ""
    if not isinstance(value, str) and pd.isna(value):
        return ""
    return str(value)


def normalize_token(value: object) -> str:
    return clean_cell(value).strip().lower()


def as_number(value: object) -> float:
    """Coerce a cell to a finite float; anything else is 0.0."""
    text = clean_cell(value).strip()
    if not text:
        return 0.0
    try:
        out = float(text)
    except ValueError:
        return 0.0
    if not math.isfinite(out):
        return 0.0
    return out


def to_day_key(value: object) -> Optional[str]:
    """Truncate a date-like cell to a ``YYYY-MM-DD`` key, or None when unparsable."""
    text = clean_cell(value).strip()
    if not text:
        return None
    try:
        ts = pd.to_datetime(text, errors="coerce")
    except (ValueError, OverflowError):
        return None
    if ts is None or pd.isna(ts):
        return None
    return format_day_key(ts)


def format_day_key(ts) -> str:
    """Zero-padded ``YYYY-MM-DD``; strftime drops the padding for years below 1000."""
    return f"{ts.year:04d}-{ts.month:02d}-{ts.day:02d}"


def day_keys(values: Iterable[object]) -> Dict[str, Optional[str]]:
    """Map each distinct cell to its day key, parsing every distinct value once.

    Parsing is lenient: a bare year such as ``"2025"`` keys to ``"2025-01-01"``.
    """
    return {text: to_day_key(text) for text in dict.fromkeys(clean_cell(v) for v in values)}


@dataclass(frozen=True)
class ShipmentRow:
    po_no: str = ""
    season: str = ""
    style: str = ""
    sku: str = ""
    product_type: str = ""
    vendor: str = ""
    factory: str = ""
    country_origin: str = ""
    shipping_method: str = ""
    waybill_no: str = ""
    order_qty: str = ""
    unit: str = ""
    currency: str = ""
    rdd: str = ""
    etd: str = ""
    eta: str = ""
    actual_arrival: str = ""
    status: str = ""
    delay_days: str = ""
    on_time: str = ""
    t_arrival_possible: str = ""
    u_main_supply_or_rework: str = ""
    v_substitute_material_memo: str = ""
    w_cn_direct_ship_date: str = ""
    x_cn_direct_waybill: str = ""
    sms_arrival_date: str = ""
    notes: str = ""

    @classmethod
    def from_record(cls, record: Mapping[str, object]) -> "ShipmentRow":
        """Build a row from a header-keyed record. Unknown keys are ignored."""
        values = {attr: clean_cell(record.get(header)) for header, attr in SHIPMENT_COLUMNS.items()}
        return cls(**values)

    def to_record(self) -> Dict[str, str]:
        return {header: getattr(self, attr) for header, attr in SHIPMENT_COLUMNS.items()}

    @property
    def status_key(self) -> str:
        return normalize_token(self.status)

    @property
    def is_arrived(self) -> bool:
        return self.status_key == STATUS_ARRIVED

    @property
    def is_in_transit(self) -> bool:
        return self.status_key == STATUS_IN_TRANSIT

    @property
    def is_on_time(self) -> bool:
        return normalize_token(self.on_time) == ON_TIME_YES

    @property
    def delay_value(self) -> float:
        return as_number(self.delay_days)

    @property
    def eta_day(self) -> Optional[str]:
        return to_day_key(self.eta)

    @property
    def search_text(self) -> str:
        return " ".join(getattr(self, attr) for attr in SEARCH_FIELDS).lower()

