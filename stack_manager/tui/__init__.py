"""Textual user interface."""

from .app import StackManagerApp, run_app

__all__ = ["StackManagerApp", "run_app"]
