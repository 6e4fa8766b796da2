"""Proveedor Printify."""

from .provider import PrintifyProvider, normalize_printify

__all__ = ["PrintifyProvider", "normalize_printify"]
