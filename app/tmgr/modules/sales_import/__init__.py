"""
Sales export ingestion.

- Header normalization and quarter-column classification (utils)
- Tokenizing and per-customer row grouping with diagnostics (parsers/csv)
- Aggregation of each group into one Customer record (service)
"""
