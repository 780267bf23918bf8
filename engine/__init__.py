"""Core (UI-agnostic) shipment dashboard logic.

This package contains:
- the shipment row schema (header names -> typed immutable rows)
- file loading (CSV / TSV / XLSX -> rows)
- filter normalization and application
- KPI and grouped on-time series computation (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
