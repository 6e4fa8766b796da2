"""
Lista de deseos.

Guarda los IDs de producto marcados por el usuario bajo su propia clave,
con la misma carga única y recuperación ante datos corruptos que el
carrito.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from .notifications import Notifier
from .storage import WISHLIST_STORAGE_KEY, PersistedStore, Storage

logger = logging.getLogger(__name__)


class WishlistStore(PersistedStore):
    """IDs de producto deseados, en orden de inserción."""

    STORAGE_KEY = WISHLIST_STORAGE_KEY

    def __init__(
        self,
        storage: Storage,
        notifier: Optional[Notifier] = None,
        key: Optional[str] = None,
    ):
        super().__init__(storage, key)
        self.notifier = notifier or Notifier()
        self._ids: List[str] = []

    @property
    def items(self) -> List[str]:
        return list(self._ids)

    def contains(self, product_id: str) -> bool:
        return product_id in self._ids

    def toggle(self, product_id: str) -> bool:
        """
        Añade o quita un producto.

        Returns:
            True si el producto queda en la lista.
        """
        self._require_loaded()
        if product_id in self._ids:
            self._ids.remove(product_id)
            self._persist()
            self.notifier.success("Removed from wishlist")
            return False

        self._ids.append(product_id)
        self._persist()
        self.notifier.success("Added to wishlist")
        return True

    def clear(self) -> None:
        self._require_loaded()
        self._ids = []
        self._persist()

    def _restore(self, data: Any) -> None:
        if not isinstance(data, list) or not all(isinstance(i, str) for i in data):
            raise ValueError("la lista de deseos guardada no es una lista de IDs")
        self._ids = list(dict.fromkeys(data))

    def _reset(self) -> None:
        self._ids = []

    def _snapshot(self) -> List[str]:
        return list(self._ids)
