"""Logging module for the gateway."""

from .setup import setup_logging

__all__ = ["setup_logging"]
