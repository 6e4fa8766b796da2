"""
Funciones auxiliares de normalización.

Reglas comunes a todos los proveedores: conversión de precios, selección
de imágenes, IDs de variantes y de producto.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .errors import NormalizationError
from .models import SUPPORTED_SOURCES, ProductImage


def to_price(value: Any, minor_units: bool) -> float:
    """
    Convierte un precio crudo a unidades mayores.

    Args:
        value: Precio tal como viene del proveedor.
        minor_units: True si el proveedor informa céntimos.

    Returns:
        Precio en unidades mayores (p. ej. dólares).

    Raises:
        NormalizationError: Si el valor no es numérico.
    """
    if value is None or isinstance(value, bool):
        raise NormalizationError(f"Precio inválido: {value!r}")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise NormalizationError(f"Precio inválido: {value!r}") from e
    if not amount.is_finite():
        raise NormalizationError(f"Precio inválido: {value!r}")

    if minor_units:
        amount = (amount / Decimal(100)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return float(amount)


def variant_axis_id(name: str) -> str:
    """ID estable de un eje de variantes: minúsculas y espacios -> '_'."""
    return re.sub(r"\s+", "_", name.lower())


def option_key(parts: Iterable[str]) -> str:
    """Clave de una combinación de opciones, p. ej. ("Black", "L") -> "Black_L"."""
    return "_".join(str(p).strip() for p in parts if str(p).strip())


def dedupe_images(images: Iterable[ProductImage]) -> Tuple[ProductImage, ...]:
    """Elimina imágenes repetidas por URL conservando el orden."""
    seen = set()
    unique: List[ProductImage] = []
    for image in images:
        if not image.url or image.url in seen:
            continue
        seen.add(image.url)
        unique.append(image)
    return tuple(unique)


def select_images(
    thumbnail: Optional[str],
    preview: Optional[str],
    raw_images: Sequence[str] = (),
    alt_text: Optional[str] = None,
) -> Tuple[ProductImage, ...]:
    """
    Construye la galería de un producto.

    La imagen principal sigue la precedencia thumbnail > preview >
    primera imagen cruda; el resto de imágenes crudas va detrás.

    Returns:
        Imágenes sin duplicados; vacío si no hay ninguna.
    """
    primary = _clean_url(thumbnail) or _clean_url(preview)
    ordered = [primary] if primary else []
    ordered.extend(_clean_url(url) for url in raw_images)
    return dedupe_images(
        ProductImage(url=url, alt_text=alt_text) for url in ordered if url
    )


def is_available(flag: Any) -> bool:
    """
    Política de disponibilidad.

    Un flag ausente significa disponible; sólo un False explícito
    marca el registro como no disponible.
    """
    if flag is None:
        return True
    return bool(flag)


def make_product_id(source: str, native_id: Any) -> str:
    """ID global "{source}-{native_id}"."""
    native = str(native_id).strip() if native_id is not None else ""
    if not native:
        raise NormalizationError(f"Registro de {source} sin ID")
    return f"{source}-{native}"


def parse_product_id(product_id: str) -> Optional[Tuple[str, str]]:
    """
    Separa el prefijo de proveedor de un ID global.

    Returns:
        Tupla (source, native_id) o None si el prefijo no es conocido.
    """
    for source in SUPPORTED_SOURCES:
        prefix = f"{source}-"
        if product_id.startswith(prefix) and len(product_id) > len(prefix):
            return source, product_id[len(prefix):]
    return None


def clean_text(value: Any) -> str:
    """Convierte a string recortado; None -> ""."""
    if value is None:
        return ""
    return str(value).strip()


def _clean_url(url: Optional[str]) -> str:
    if not url:
        return ""
    return str(url).strip()
