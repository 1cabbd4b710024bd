"""Data acquisition, extraction and aggregation."""
