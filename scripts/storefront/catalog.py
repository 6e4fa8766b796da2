"""
Catálogo agregado de todos los proveedores.

Reparte las lecturas entre proveedores y aísla sus fallos: la caída de
un proveedor degrada el catálogo pero nunca lo vacía.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, Optional

from .base import BaseProvider
from .errors import NormalizationError, ProviderError
from .gumroad import normalize_gumroad
from .models import GUMROAD, PRINTIFY, CatalogResult, Product
from .normalization import parse_product_id
from .printify import normalize_printify

logger = logging.getLogger(__name__)

NORMALIZERS: Dict[str, Callable[[Dict[str, Any]], Product]] = {
    GUMROAD: normalize_gumroad,
    PRINTIFY: normalize_printify,
}


def normalize(provider_name: str, raw_record: Dict[str, Any]) -> Product:
    """
    Convierte un registro crudo de un proveedor en Product.

    Args:
        provider_name: Proveedor de origen (gumroad, printify).
        raw_record: Registro tal como lo devuelve la API.

    Raises:
        NormalizationError: Si el proveedor no es conocido o el registro
            no se puede convertir.
    """
    normalizer = NORMALIZERS.get(provider_name)
    if normalizer is None:
        raise NormalizationError(f"Proveedor no soportado: {provider_name}")
    return normalizer(raw_record)


class Catalog:
    """Agrega los catálogos de varios proveedores."""

    def __init__(self, providers: Iterable[BaseProvider]):
        """
        Inicializa el catálogo.

        Args:
            providers: Proveedores habilitados, ya construidos con su
                       cliente HTTP.
        """
        self.providers: Dict[str, BaseProvider] = {}
        for provider in providers:
            self.providers[provider.SOURCE] = provider

    def get_provider(self, source: str) -> Optional[BaseProvider]:
        return self.providers.get(source)

    def get_all_products(self, source: Optional[str] = None) -> CatalogResult:
        """
        Obtiene los productos de todos los proveedores habilitados.

        Args:
            source: Si se indica, sólo consulta ese proveedor.

        Returns:
            CatalogResult con productos y errores por proveedor.
        """
        logger.info(f"Obteniendo productos... Origen: {source or 'todos'}")
        result = CatalogResult()

        if source and source not in self.providers:
            logger.info(f"Proveedor {source} no habilitado; resultado vacío")
            return result

        for name, provider in self.providers.items():
            if source and name != source:
                continue

            try:
                products, skipped = provider.get_products()
            except ProviderError as e:
                logger.error(f"Error al obtener productos de {name}: {e}")
                result.errors[name] = str(e) or f"Failed to fetch {name} products"
                continue

            result.products.extend(products)
            if skipped:
                result.skipped[name] = skipped

        logger.info(
            f"Total productos: {len(result.products)}. "
            f"Proveedores con error: {sorted(result.errors) or 'ninguno'}"
        )
        return result

    def get_product_by_id(self, product_id: str) -> Optional[Product]:
        """
        Obtiene un producto por su ID global.

        Returns:
            Producto o None si no existe o el prefijo no es conocido.

        Raises:
            ProviderError: Ante errores de auth, red o esquema.
            NormalizationError: Si el registro no se puede convertir.
        """
        logger.info(f"Obteniendo producto por ID: {product_id}")
        parsed = parse_product_id(product_id)
        if parsed is None:
            logger.warning(f"Formato de ID no reconocido: {product_id}")
            return None

        source, native_id = parsed
        provider = self.providers.get(source)
        if provider is None:
            logger.warning(f"Proveedor {source} no habilitado para {product_id}")
            return None

        return provider.get_product(native_id)
