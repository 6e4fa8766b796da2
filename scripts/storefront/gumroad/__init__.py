"""Proveedor Gumroad."""

from .provider import GumroadProvider, normalize_gumroad

__all__ = ["GumroadProvider", "normalize_gumroad"]
