from __future__ import annotations

import csv
import logging
import os
from decimal import ROUND_HALF_UP, Context, Decimal
from functools import lru_cache
from pathlib import Path
from typing import IO, Dict, Iterable, List, Optional, Tuple, Union

import pandas as pd

from engine.filters import ShipmentFilters, apply_filters, filter_options, normalize_filters
from engine.schema import SHIPMENT_COLUMNS, ShipmentRow, clean_cell


logger = logging.getLogger(__name__)

DATA_DIR = Path(os.environ.get("SHIPMENT_DATA_DIR") or Path(__file__).resolve().parents[1] / "data")
FILE_GLOBS = ("*.csv", "*.tsv", "*.xlsx")
EXCEL_SUFFIXES = {".xlsx", ".xls"}

Source = Union[str, Path, IO[bytes], IO[str]]


class ShipmentFileError(ValueError):
    """Raised when a shipment file cannot be read into rows."""

    def __init__(self, filename: str, message: str):
        super().__init__(f"{filename}: {message}")
        self.filename = filename


def get_source_files(data_dir: Optional[Path] = None) -> List[Path]:
    base = Path(data_dir) if data_dir is not None else DATA_DIR
    found = set()
    for pattern in FILE_GLOBS:
        found.update(base.glob(pattern))
    return sorted(found)


def file_signature(files: List[Path]) -> Tuple[Tuple[str, float], ...]:
    return tuple((str(f), f.stat().st_mtime) for f in files)


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    d = Decimal(str(value))
    if not d.is_finite():
        return float(d)
    q = Decimal(10) ** -ndigits
    # Enough precision for every integer digit plus the requested decimals.
    ctx = Context(prec=max(28, d.adjusted() + ndigits + 2))
    return float(d.quantize(q, rounding=ROUND_HALF_UP, context=ctx))


# ---------------- Loaders ----------------
def _source_name(source: Source, filename: Optional[str]) -> str:
    if filename:
        return filename
    if isinstance(source, (str, Path)):
        return str(source)
    return str(getattr(source, "name", "") or "<upload>")


def read_shipment_frame(source: Source, *, filename: Optional[str] = None) -> pd.DataFrame:
    """Read a delimited or Excel file into an all-string DataFrame."""
    name = _source_name(source, filename)
    suffix = Path(name).suffix.lower()
    try:
        if suffix in EXCEL_SUFFIXES:
            df = pd.read_excel(source, dtype=str, keep_default_na=False)
        else:
            df = pd.read_csv(
                source,
                sep="\t" if suffix == ".tsv" else None,
                engine="python",
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                encoding="utf-8-sig",
            )
    except (OSError, ValueError, csv.Error) as exc:
        raise ShipmentFileError(name, str(exc)) from exc

    df.columns = [str(c).strip() for c in df.columns]
    unknown = [c for c in df.columns if c not in SHIPMENT_COLUMNS]
    if unknown:
        logger.debug("%s: ignoring unrecognized columns %s", name, unknown)
    if not any(c in SHIPMENT_COLUMNS for c in df.columns):
        logger.warning("%s: no recognized shipment columns in header", name)
    return df


def frame_to_shipments(df: pd.DataFrame) -> List[ShipmentRow]:
    rows: List[ShipmentRow] = []
    blank = 0
    for record in df.to_dict(orient="records"):
        if not any(clean_cell(v).strip() for v in record.values()):
            blank += 1
            continue
        rows.append(ShipmentRow.from_record(record))
    if blank:
        logger.debug("dropped %d blank rows", blank)
    return rows


def load_shipments(source: Source, *, filename: Optional[str] = None) -> List[ShipmentRow]:
    df = read_shipment_frame(source, filename=filename)
    rows = frame_to_shipments(df)
    logger.info("loaded %d shipment rows from %s", len(rows), _source_name(source, filename))
    return rows


def shipments_to_frame(rows: Iterable[ShipmentRow]) -> pd.DataFrame:
    return pd.DataFrame([r.to_record() for r in rows], columns=list(SHIPMENT_COLUMNS))


def template_csv() -> str:
    return pd.DataFrame(columns=list(SHIPMENT_COLUMNS)).to_csv(index=False)


# ---------------- Public API (Streamlit parity + FastAPI use) ----------------
def build_data_context(rows: Iterable[ShipmentRow], files: List[str]) -> Dict[str, object]:
    rows = tuple(rows)
    return {"files": files, "rows": rows, "options": filter_options(rows)}


@lru_cache(maxsize=4)
def _load_dashboard_data_cached(files_sig: Tuple[Tuple[str, float], ...]) -> Dict[str, object]:
    rows: List[ShipmentRow] = []
    for path, _ in files_sig:
        rows.extend(load_shipments(Path(path)))
    return build_data_context(rows, [Path(path).name for path, _ in files_sig])


def load_dashboard_data() -> Dict[str, object]:
    files = get_source_files()
    if not files:
        return build_data_context((), [])
    return _load_dashboard_data_cached(file_signature(files))


def prepare_context(filters: dict | ShipmentFilters, data_ctx: Dict[str, object]) -> Dict[str, object]:
    rows = data_ctx.get("rows") or ()
    filt = filters if isinstance(filters, ShipmentFilters) else normalize_filters(filters)
    return {
        "filters": filt,
        "files": data_ctx.get("files", []),
        "rows": rows,
        "filtered_rows": apply_filters(rows, filt),
        "options": data_ctx.get("options") or filter_options(rows),
    }
