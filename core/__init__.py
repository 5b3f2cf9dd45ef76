"""Core (UI-agnostic) order analytics logic.

This package contains:
- CSV ingestion (header detection, row normalization, aggregation)
- size-aware product grouping and dataset merging
- cost settings and the profit engine
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
- persistence, backup and the upload service
"""
