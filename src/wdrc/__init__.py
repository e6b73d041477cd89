"""Wikidata recent changes: item-level change capture."""

__version__ = "0.1.0"
