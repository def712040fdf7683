"""Freelance job monitor: fetch, score, categorize, match and distribute postings."""

__version__ = "0.1.0"
