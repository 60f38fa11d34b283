"""Relational storage layer.

This module defines the schema and persists titles, ratings, tags and links.
It powers loading, verification and analytics for the SDK.
"""
