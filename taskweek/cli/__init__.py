"""Command line interface (``python -m taskweek.cli`` / ``taskweek``)."""

from .__main__ import main

__all__ = ["main"]
