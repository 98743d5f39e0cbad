"""Chronicle — cross-source near-duplicate detection for news feeds."""
__version__ = "1.0.0"
