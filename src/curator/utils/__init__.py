"""Shared utilities."""

from curator.utils.logging import LogContext, RedactingFilter, setup_logging

__all__ = ["LogContext", "RedactingFilter", "setup_logging"]
