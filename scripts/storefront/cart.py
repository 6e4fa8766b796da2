"""
Carrito de la compra.

Mantiene las líneas del carrito con semántica de fusión por identidad
(producto + variante), las persiste tras cada cambio y calcula totales
y particiones por proveedor.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from .models import CartItem, Product
from .notifications import Notifier
from .storage import CART_STORAGE_KEY, PersistedStore, Storage

logger = logging.getLogger(__name__)


class AddResult(Enum):
    ADDED = "added"
    UPDATED = "updated"


def variant_key(selected_variant_id: Any) -> Optional[str]:
    """Normaliza el ID de variante: vacío -> None, resto -> str."""
    if selected_variant_id is None or selected_variant_id == "":
        return None
    return str(selected_variant_id)


class CartStore(PersistedStore):
    """
    Estado del carrito.

    Dos líneas son la misma si coinciden product.id y la variante
    seleccionada. Todas las operaciones de escritura requieren load().
    """

    STORAGE_KEY = CART_STORAGE_KEY

    def __init__(
        self,
        storage: Storage,
        notifier: Optional[Notifier] = None,
        key: Optional[str] = None,
    ):
        """
        Inicializa el carrito (sin cargarlo).

        Args:
            storage: Almacenamiento persistente.
            notifier: Destino de los avisos al usuario.
            key: Clave de almacenamiento (default: myEcomCart).
        """
        super().__init__(storage, key)
        self.notifier = notifier or Notifier()
        self._items: List[CartItem] = []

    @property
    def items(self) -> List[CartItem]:
        """Copia de las líneas en orden de inserción."""
        return list(self._items)

    def add_item(
        self,
        product: Product,
        quantity: int = 1,
        selected_variant_id: Any = None,
        selected_options: Optional[Dict[str, str]] = None,
    ) -> AddResult:
        """
        Añade un producto al carrito.

        Si ya existe una línea con la misma identidad se suma la cantidad;
        si no, se crea una línea nueva al final.

        Raises:
            ValueError: Si quantity < 1.
        """
        self._require_loaded()
        if quantity < 1:
            raise ValueError(f"Cantidad inválida: {quantity}")

        variant_id = variant_key(selected_variant_id)
        logger.debug(f"add_item: {product.id} x{quantity} (variante: {variant_id})")

        index = self._find(product.id, variant_id)
        if index >= 0:
            self._items[index].quantity += quantity
            result = AddResult.UPDATED
        else:
            self._items.append(
                CartItem(
                    product=product,
                    quantity=quantity,
                    selected_variant_id=variant_id,
                    selected_options=dict(selected_options) if selected_options else None,
                )
            )
            result = AddResult.ADDED

        self._persist()

        if result is AddResult.ADDED:
            self.notifier.success(f"{product.name} added to cart.")
        else:
            self.notifier.success(f"{product.name} quantity updated in cart.")
        return result

    def remove_item(self, product_id: str, selected_variant_id: Any = None) -> bool:
        """
        Elimina la línea con esa identidad.

        Returns:
            True si se eliminó una línea.
        """
        self._require_loaded()
        index = self._find(product_id, variant_key(selected_variant_id))
        if index < 0:
            logger.debug(f"remove_item: {product_id} no está en el carrito")
            return False

        del self._items[index]
        self._persist()
        self.notifier.success("Item removed from cart.")
        return True

    def update_quantity(
        self,
        product_id: str,
        selected_variant_id: Any,
        new_quantity: int,
    ) -> bool:
        """
        Fija la cantidad exacta de una línea.

        Una cantidad <= 0 elimina la línea.

        Returns:
            True si el carrito cambió.
        """
        self._require_loaded()
        variant_id = variant_key(selected_variant_id)
        if new_quantity <= 0:
            return self.remove_item(product_id, variant_id)

        index = self._find(product_id, variant_id)
        if index < 0:
            return False

        self._items[index].quantity = new_quantity
        self._persist()
        return True

    def clear_cart(self) -> None:
        """Vacía el carrito."""
        self._require_loaded()
        self._items = []
        self._persist()
        self.notifier.success("Cart cleared.")

    def get_cart_total(self) -> float:
        """Suma de precio (de variante si existe) por cantidad."""
        return calculate_subtotal(self._items)

    def get_item_count(self) -> int:
        """Suma de cantidades (no de líneas)."""
        return sum(item.quantity for item in self._items)

    def get_sources(self) -> List[str]:
        """Proveedores presentes, en orden de primera aparición."""
        sources: List[str] = []
        for item in self._items:
            if item.product.source not in sources:
                sources.append(item.product.source)
        return sources

    def get_items_by_provider(self, source: str) -> List[CartItem]:
        """
        Líneas de un proveedor agregadas por producto base.

        Las cantidades de líneas con el mismo product.id se suman; la
        primera línea aporta la variante. Devuelve copias.
        """
        aggregated: Dict[str, CartItem] = {}

        for item in self._items:
            if item.product.source != source:
                continue
            current = aggregated.get(item.product.id)
            if current:
                current.quantity += item.quantity
            else:
                aggregated[item.product.id] = CartItem(
                    product=item.product,
                    quantity=item.quantity,
                    selected_variant_id=item.selected_variant_id,
                    selected_options=dict(item.selected_options) if item.selected_options else None,
                )

        return list(aggregated.values())

    def get_provider_total(self, source: str) -> float:
        """Subtotal de las líneas de un proveedor."""
        return calculate_subtotal(i for i in self._items if i.product.source == source)

    def _find(self, product_id: str, variant_id: Optional[str]) -> int:
        for index, item in enumerate(self._items):
            if item.key == (product_id, variant_id):
                return index
        return -1

    def _restore(self, data: Any) -> None:
        if not isinstance(data, list):
            raise ValueError("el carrito guardado no es una lista")

        items: List[CartItem] = []
        for record in data:
            if not isinstance(record, dict):
                raise ValueError(f"línea del carrito inválida: {record!r}")
            item = CartItem.from_dict(record)
            if item.quantity < 1:
                logger.warning(f"Línea con cantidad {item.quantity} ignorada: {item.product.id}")
                continue
            existing = next((i for i in items if i.key == item.key), None)
            if existing:
                existing.quantity += item.quantity
            else:
                items.append(item)

        self._items = items
        logger.info(f"Carrito cargado: {len(items)} líneas")

    def _reset(self) -> None:
        self._items = []

    def _snapshot(self) -> List[Dict[str, Any]]:
        return [item.to_dict() for item in self._items]


def calculate_subtotal(items: Iterable[CartItem]) -> float:
    """Subtotal de un conjunto de líneas."""
    return sum((item.subtotal for item in items), 0.0)
