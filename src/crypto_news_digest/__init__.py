"""Fed → crypto news digest: collect, filter, score, summarize and deliver."""

__version__ = "0.1.0"
