"""Employee feed exception hierarchy."""

from __future__ import annotations


class FeedError(Exception):
    """Base exception for all employee feed errors."""


class ConfigurationError(FeedError, RuntimeError):
    """A required setting is missing or malformed."""
