"""LexiClear: grounded retrieval and verification over legal text."""

__version__ = "0.1.0"
