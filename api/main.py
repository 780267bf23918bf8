from __future__ import annotations

import logging
import math

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import MetaFilesResponse, MetaOptionsResponse, ShipmentFiltersModel
from engine.data import load_dashboard_data, prepare_context, shipments_to_frame, template_csv
from engine.filters import ShipmentFilters, normalize_filters
from engine.metrics_overview import compute_overview


app = FastAPI(title="Shipment Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters_from_model(model: ShipmentFiltersModel) -> ShipmentFilters:
    return normalize_filters(model.model_dump())


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


def _csv(df: pd.DataFrame, filename: str) -> Response:
    csv_bytes = df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})


@app.get("/meta/files")
def meta_files():
    try:
        data_ctx = load_dashboard_data()
        return _json(MetaFilesResponse(files=data_ctx.get("files", [])).model_dump())
    except Exception as exc:
        logger.exception("meta_files failed")
        return _error(exc)


@app.get("/meta/options")
def meta_options():
    try:
        data_ctx = load_dashboard_data()
        options = data_ctx.get("options") or {}
        return _json(MetaOptionsResponse(**options).model_dump())
    except Exception as exc:
        logger.exception("meta_options failed")
        return _error(exc)


@app.get("/template")
def template():
    return Response(
        content=template_csv().encode("utf-8"),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=shipment_template.csv"},
    )


@app.post("/overview")
def overview(filters: ShipmentFiltersModel):
    try:
        data_ctx = load_dashboard_data()
        f = _filters_from_model(filters)
        ctx = prepare_context(f, data_ctx)
        return _json(compute_overview(f, ctx))
    except Exception as exc:
        logger.exception("overview failed")
        return _error(exc)


@app.post("/shipments")
def shipments(filters: ShipmentFiltersModel, limit: int = Query(default=500, ge=1, le=10000)):
    try:
        data_ctx = load_dashboard_data()
        ctx = prepare_context(_filters_from_model(filters), data_ctx)
        filtered = ctx["filtered_rows"]
        table = shipments_to_frame(filtered[:limit])
        return _json({"count": len(filtered), "rows": table.to_dict(orient="records")})
    except Exception as exc:
        logger.exception("shipments failed")
        return _error(exc)


@app.post("/export")
def export(filters: ShipmentFiltersModel):
    try:
        data_ctx = load_dashboard_data()
        ctx = prepare_context(_filters_from_model(filters), data_ctx)
        return _csv(shipments_to_frame(ctx["filtered_rows"]), "shipments.csv")
    except Exception as exc:
        logger.exception("export failed")
        return _error(exc)
