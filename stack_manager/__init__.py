"""Compose Stack Manager - a terminal dashboard for a local Docker Compose stack."""

__version__ = "0.1.0"
