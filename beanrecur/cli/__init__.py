"""Command-line interface for beanrecur."""

from .commands import main

__all__ = ["main"]
