"""
Modelos de datos de la tienda.

Define el contrato común que todos los proveedores deben producir
y las entidades que maneja el carrito.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

GUMROAD = "gumroad"
PRINTIFY = "printify"

SUPPORTED_SOURCES = (GUMROAD, PRINTIFY)


@dataclass(frozen=True)
class ProductImage:
    """Imagen de un producto."""

    url: str
    alt_text: Optional[str] = None


@dataclass(frozen=True)
class ProductVariant:
    """
    Eje de variantes (p. ej. "Size") con sus valores posibles.

    No lleva precio; ver ProductVariantDetail.
    """

    id: str
    name: str
    options: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ProductVariantDetail:
    """Precio de una combinación concreta de opciones."""

    option_key: str  # p. ej. "Black_L"
    price: float
    variant_id: Optional[str] = None


@dataclass
class RawProduct:
    """
    Datos crudos de un producto tal como vienen de la API.

    Cada proveedor extrae los datos en bruto y los almacena aquí
    antes de normalizarlos.
    """

    raw_id: str
    raw_data: Dict[str, Any]


@dataclass(frozen=True)
class Product:
    """
    Producto normalizado - contrato común entre proveedores.

    Se crea en cada lectura del catálogo y nunca se modifica después.
    """

    id: str  # "{source}-{native_id}"
    source: str
    name: str
    description: str
    price: float  # unidades mayores (dólares)
    images: Tuple[ProductImage, ...] = ()
    variants: Tuple[ProductVariant, ...] = ()
    variant_details: Tuple[ProductVariantDetail, ...] = ()
    tags: Tuple[str, ...] = ()
    slug: Optional[str] = None
    available: bool = True
    purchase_url: Optional[str] = None  # sólo proveedores con checkout directo

    @property
    def native_id(self) -> str:
        """ID del producto en el proveedor (sin prefijo)."""
        return self.id[len(self.source) + 1:]

    def price_for_variant(self, variant_id: Optional[str]) -> float:
        """
        Precio para una variante concreta.

        Si no hay detalle para la variante se usa el precio base.
        """
        if variant_id is not None:
            for detail in self.variant_details:
                if detail.variant_id is not None and str(detail.variant_id) == str(variant_id):
                    return detail.price
        return self.price

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario serializable en JSON."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Product":
        """Reconstruye un producto desde su forma serializada."""
        return cls(
            id=data["id"],
            source=data["source"],
            name=data["name"],
            description=data.get("description") or "",
            price=float(data["price"]),
            images=tuple(
                ProductImage(url=img["url"], alt_text=img.get("alt_text"))
                for img in data.get("images") or []
            ),
            variants=tuple(
                ProductVariant(
                    id=v["id"],
                    name=v["name"],
                    options=tuple(v.get("options") or []),
                )
                for v in data.get("variants") or []
            ),
            variant_details=tuple(
                ProductVariantDetail(
                    option_key=d["option_key"],
                    price=float(d["price"]),
                    variant_id=d.get("variant_id"),
                )
                for d in data.get("variant_details") or []
            ),
            tags=tuple(data.get("tags") or []),
            slug=data.get("slug"),
            available=data.get("available", True),
            purchase_url=data.get("purchase_url"),
        )


@dataclass
class CartItem:
    """
    Línea del carrito.

    Guarda una copia completa del producto: cambios posteriores del
    catálogo no alteran lo que ya está en el carrito.
    """

    product: Product
    quantity: int
    selected_variant_id: Optional[str] = None
    selected_options: Optional[Dict[str, str]] = None

    @property
    def key(self) -> Tuple[str, Optional[str]]:
        """Identidad de la línea: (product.id, selected_variant_id)."""
        return (self.product.id, self.selected_variant_id)

    @property
    def unit_price(self) -> float:
        return self.product.price_for_variant(self.selected_variant_id)

    @property
    def subtotal(self) -> float:
        return self.unit_price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            "product": self.product.to_dict(),
            "quantity": self.quantity,
            "selected_variant_id": self.selected_variant_id,
            "selected_options": self.selected_options,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CartItem":
        """Reconstruye una línea desde su forma serializada."""
        variant_id = data.get("selected_variant_id")
        options = data.get("selected_options")
        return cls(
            product=Product.from_dict(data["product"]),
            quantity=int(data["quantity"]),
            selected_variant_id=str(variant_id) if variant_id is not None else None,
            selected_options=dict(options) if options else None,
        )


@dataclass
class Bundle:
    """Oferta combinada efímera creada para un checkout multi-producto."""

    id: str
    name: str
    items: List[CartItem]
    total_price: float
    created_at: datetime
    expires_at: Optional[datetime] = None
    discount_percent: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "items": [item.to_dict() for item in self.items],
            "total_price": self.total_price,
            "discount_percent": self.discount_percent,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }


@dataclass
class CatalogResult:
    """Resultado agregado de todos los proveedores."""

    products: List[Product] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)
    skipped: Dict[str, int] = field(default_factory=dict)

    @property
    def is_partial(self) -> bool:
        """Hay productos pero algún proveedor falló."""
        return bool(self.products) and bool(self.errors)

    @property
    def is_total_failure(self) -> bool:
        return not self.products and bool(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "products": [p.to_dict() for p in self.products],
            "errors": dict(self.errors),
        }
