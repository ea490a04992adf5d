"""Streaming WBXML 1.3 encoder and decoder with the Exchange ActiveSync code pages."""

__version__ = "0.1.0"