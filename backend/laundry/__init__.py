"""Laundry Buddy backend: sessions, CSRF, entity store and order lifecycle."""

__version__ = "0.1.0"
