"""
Tienda multi-proveedor.

Cada proveedor (Gumroad, Printify) tiene su propio submódulo que
implementa BaseProvider y normaliza su catálogo al modelo Product.
"""

from .base import BaseProvider
from .cart import AddResult, CartStore
from .catalog import Catalog, normalize
from .checkout import CheckoutCoordinator, CheckoutStrategy, build_checkout_url
from .models import Bundle, CartItem, CatalogResult, Product, RawProduct
from .storage import FileStorage, LoadState, MemoryStorage
from .wishlist import WishlistStore

__all__ = [
    "AddResult",
    "BaseProvider",
    "Bundle",
    "CartItem",
    "CartStore",
    "Catalog",
    "CatalogResult",
    "CheckoutCoordinator",
    "CheckoutStrategy",
    "FileStorage",
    "LoadState",
    "MemoryStorage",
    "Product",
    "RawProduct",
    "WishlistStore",
    "build_checkout_url",
    "normalize",
]
