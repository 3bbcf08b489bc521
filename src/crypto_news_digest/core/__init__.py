"""Core configuration and constants.

Import what you need from `crypto_news_digest.core.config` and
`crypto_news_digest.core.constants` to avoid heavy side effects at import time.
"""

__all__ = ["config", "constants"]
