"""Kimi-Dev Review Bot: pull request reviews from a Moonshot model."""

__version__ = "1.0.0"
