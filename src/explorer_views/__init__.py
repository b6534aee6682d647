"""Derived statistics views for a blockchain explorer database."""

__version__ = "0.1.0"
