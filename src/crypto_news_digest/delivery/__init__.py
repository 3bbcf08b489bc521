"""Message chunking and Telegram delivery."""

__all__ = ["chunking", "telegram"]
