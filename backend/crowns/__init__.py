"""Realm of Crowns rule engines: combat resolution and market matching."""

__version__ = "0.1.0"
