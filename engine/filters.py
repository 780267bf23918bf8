from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from engine.schema import ShipmentRow, clean_cell


ALL = "ALL"

# Filter criterion -> ShipmentRow attribute it is compared against.
CATEGORY_FILTERS = {
    "vendor": "vendor",
    "origin": "country_origin",
    "season": "season",
}


@dataclass(frozen=True)
class ShipmentFilters:
    vendor: str = ALL
    origin: str = ALL
    season: str = ALL
    search_text: str = ""


def _as_choice(value: object) -> str:
    text = clean_cell(value)
    if not text.strip():
        return ALL
    return text


def normalize_filters(raw: Optional[Mapping[str, object]]) -> ShipmentFilters:
    raw = raw or {}
    return ShipmentFilters(
        vendor=_as_choice(raw.get("vendor")),
        origin=_as_choice(raw.get("origin")),
        season=_as_choice(raw.get("season")),
        search_text=clean_cell(raw.get("search_text")).strip(),
    )


def apply_filters(rows: Iterable[ShipmentRow], criteria: ShipmentFilters) -> List[ShipmentRow]:
    """Return the rows passing every active criterion, in input order.

    Category criteria match exactly (case-sensitive) unless set to ``ALL``; the
    search text is a case-insensitive plain substring match over PO number, SKU,
    style, waybill number and notes.
    """
    rows = list(rows)
    if not rows:
        return []

    frame = pd.DataFrame(
        {
            **{name: [getattr(r, attr) for r in rows] for name, attr in CATEGORY_FILTERS.items()},
            "search_text": [r.search_text for r in rows],
        }
    )
    mask = pd.Series(True, index=frame.index)
    for name in CATEGORY_FILTERS:
        wanted = getattr(criteria, name)
        if wanted != ALL:
            mask &= frame[name] == wanted

    q = criteria.search_text.lower()
    if q:
        mask &= frame["search_text"].str.contains(q, regex=False)

    return [row for row, keep in zip(rows, mask.tolist()) if keep]


def _distinct(values: Iterable[str]) -> List[str]:
    return sorted({v for v in values if v})


def filter_options(rows: Sequence[ShipmentRow]) -> Dict[str, List[str]]:
    return {
        "vendors": [ALL] + _distinct(r.vendor for r in rows),
        "origins": [ALL] + _distinct(r.country_origin for r in rows),
        "seasons": [ALL] + _distinct(r.season for r in rows),
    }
