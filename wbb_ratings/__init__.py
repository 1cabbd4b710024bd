"""Women's college basketball box-score ingestion and efficiency ratings."""

__version__ = "0.1.0"
