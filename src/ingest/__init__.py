"""CSV ingestion layer.

This package scans raw records, splits them into fields, and loads
header-validated rows into a SQL sink in committed batches.
"""
