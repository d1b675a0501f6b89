"""STORE-CHAT: natural-language catalog management over chat."""

__version__ = "1.0.0"
