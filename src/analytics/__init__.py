"""Analytical query layer.

This package answers read-only ranking and aggregation questions over a
loaded and verified store.
"""
