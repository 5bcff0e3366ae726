"""feedcore - data-freshness layer for a real-time situation dashboard."""

__version__ = "1.0.0"
