"""Pantrybot LLM gateway and inventory intent extraction."""

__version__ = "0.1.0"
