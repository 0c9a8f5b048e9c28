"""Conversational hybrid search over singles profiles."""

__version__ = "0.1.0"
