"""Lectern: teaching-assistant chat backend with reference-document retrieval."""

__version__ = "0.1.0"
