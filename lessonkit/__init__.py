"""Parsing and assembly pipeline for generated teaching materials."""

__version__ = "0.1.0"
