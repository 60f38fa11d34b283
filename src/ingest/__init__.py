"""Data ingestion pipeline.

This module reads delimited movie data sources and coerces their rows.
It feeds typed entity rows to the store layer in root-first order.
"""
