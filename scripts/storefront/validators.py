"""
Validación de respuestas y productos.

Cada respuesta cruda pasa por una función de esquema que devuelve
Ok(valor) o Malformed(motivo); la normalización nunca adivina la forma
de una respuesta. Los productos normalizados se validan antes de
exponerlos al catálogo.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from .models import Product

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Respuesta con la forma esperada."""

    value: T


@dataclass(frozen=True)
class Malformed:
    """Respuesta que no cumple el esquema."""

    reason: str


ValidationResult = Union[Ok, Malformed]


def _list_of_dicts(data: Any, field: str) -> ValidationResult:
    if not isinstance(data, dict):
        return Malformed(f"se esperaba un objeto, llegó {type(data).__name__}")
    value = data.get(field)
    if not isinstance(value, list):
        return Malformed(f"el campo '{field}' no es una lista")
    records = [r for r in value if isinstance(r, dict)]
    if len(records) != len(value):
        logger.warning(
            f"Descartados {len(value) - len(records)} registros no-objeto en '{field}'"
        )
    return Ok(records)


def _dict_field(data: Any, field: str) -> ValidationResult:
    if not isinstance(data, dict):
        return Malformed(f"se esperaba un objeto, llegó {type(data).__name__}")
    value = data.get(field)
    if not isinstance(value, dict):
        return Malformed(f"el campo '{field}' no es un objeto")
    return Ok(value)


# --- Gumroad ---


def validate_gumroad_products(data: Any) -> ValidationResult:
    """Esquema de GET /products: {success, products: [...]}"""
    return _list_of_dicts(data, "products")


def validate_gumroad_product(data: Any) -> ValidationResult:
    """Esquema de GET /products/{id}: {success, product: {...}}"""
    return _dict_field(data, "product")


# --- Printify ---


def validate_printify_shops(data: Any) -> ValidationResult:
    """Esquema de GET /shops.json: lista de tiendas con id."""
    if not isinstance(data, list):
        return Malformed("la lista de tiendas no es una lista")
    shops = [s for s in data if isinstance(s, dict) and s.get("id") is not None]
    return Ok(shops)


def validate_printify_page(data: Any) -> ValidationResult:
    """
    Esquema de una página de productos: {data: [...], last_page?}.

    Devuelve Ok((registros, last_page)).
    """
    result = _list_of_dicts(data, "data")
    if isinstance(result, Malformed):
        return result
    last_page = data.get("last_page", 1)
    if not isinstance(last_page, int) or isinstance(last_page, bool):
        return Malformed("el campo 'last_page' no es entero")
    return Ok((result.value, last_page))


def validate_printify_product(data: Any) -> ValidationResult:
    """Esquema de GET /shops/{shop}/products/{id}.json."""
    if not isinstance(data, dict):
        return Malformed(f"se esperaba un objeto, llegó {type(data).__name__}")
    if data.get("id") is None:
        return Malformed("el producto no tiene 'id'")
    return Ok(data)


# --- Bundles ---


def validate_bundle_response(data: Any) -> ValidationResult:
    """Esquema de la respuesta del endpoint de bundles: {checkoutUrl}."""
    if not isinstance(data, dict):
        return Malformed("la respuesta de bundle no es un objeto")
    url = data.get("checkoutUrl")
    if not isinstance(url, str) or not url.strip():
        reason = data.get("error") or data.get("warning") or "falta 'checkoutUrl'"
        return Malformed(str(reason))
    return Ok(url)


# --- Productos normalizados ---


def validate_product(product: Product) -> Optional[Product]:
    """
    Valida un producto normalizado.

    Reglas:
    - ID obligatorio con prefijo del proveedor
    - Nombre obligatorio
    - Precio no negativo

    Returns:
        El producto o None si no es válido.
    """
    if not product.id or not product.id.startswith(f"{product.source}-"):
        logger.warning(f"Producto descartado: ID sin prefijo de proveedor - {product.id}")
        return None

    if not product.name:
        logger.warning(f"Producto descartado: sin nombre - {product.id}")
        return None

    if product.price < 0:
        logger.warning(f"Producto descartado: precio negativo - {product.id}")
        return None

    return product


def validate_products(products: List[Product]) -> List[Product]:
    """
    Valida una lista de productos, descartando los inválidos.

    Args:
        products: Lista de productos a validar.

    Returns:
        Lista de productos válidos.
    """
    valid = []
    discarded = 0

    for product in products:
        validated = validate_product(product)
        if validated:
            valid.append(validated)
        else:
            discarded += 1

    if discarded > 0:
        logger.info(f"Productos descartados por validación: {discarded}")

    return valid


def describe_errors(errors: Dict[str, str]) -> str:
    """Resume un mapa de errores por proveedor en una línea."""
    return "; ".join(f"{source}: {message}" for source, message in sorted(errors.items()))
