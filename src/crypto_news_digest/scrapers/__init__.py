"""Fetch collaborators for RSS feeds and web pages."""

__all__ = ["collector", "rss_fetcher", "web_scraper"]
