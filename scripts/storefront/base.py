"""
Clase base abstracta para proveedores de catálogo.

Define el contrato que todos los proveedores deben implementar.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple

from .errors import MalformedResponseError, NormalizationError
from .http_client import HttpClient
from .models import Product, RawProduct
from .validators import Malformed, ValidationResult, validate_products

logger = logging.getLogger(__name__)


class BaseProvider(ABC):
    """
    Clase base para proveedores de comercio.

    Cada proveedor debe extender esta clase e implementar
    los métodos abstractos.
    """

    # Nombre del proveedor (debe sobrescribirse)
    SOURCE: str = "unknown"

    # True si el proveedor informa precios en céntimos
    PRICE_IN_MINOR_UNITS: bool = True

    # True si el proveedor permite crear productos al vuelo (bundles)
    SUPPORTS_BUNDLES: bool = False

    def __init__(self, http_client: Optional[HttpClient] = None):
        """
        Inicializa el proveedor.

        Args:
            http_client: Cliente HTTP autenticado. Si no se proporciona,
                        se crea uno sin token.
        """
        self.http = http_client or HttpClient()

    @abstractmethod
    def fetch_raw_products(self) -> List[RawProduct]:
        """
        Descarga el catálogo completo en crudo.

        Raises:
            ProviderError: Ante cualquier fallo de red, auth o esquema.
        """
        pass

    @abstractmethod
    def fetch_raw_product(self, native_id: str) -> Optional[RawProduct]:
        """
        Descarga un producto en crudo.

        Returns:
            Producto crudo o None si el proveedor informa que no existe.
        """
        pass

    @abstractmethod
    def normalize(self, raw_product: RawProduct) -> Product:
        """
        Transforma un producto crudo al formato normalizado.

        Raises:
            NormalizationError: Si el registro no se puede convertir.
        """
        pass

    def get_products(self) -> Tuple[List[Product], int]:
        """
        Descarga y normaliza el catálogo del proveedor.

        Los registros que no se pueden normalizar se descartan uno a uno
        sin afectar al resto.

        Returns:
            Tupla (productos, registros descartados).
        """
        raw_products = self.fetch_raw_products()
        normalized: List[Product] = []
        skipped = 0

        for raw in raw_products:
            try:
                product = self._normalize_record(raw)
            except NormalizationError as e:
                skipped += 1
                logger.warning(f"[{self.SOURCE}] Registro {raw.raw_id} descartado: {e}")
                continue

            if not product.available:
                logger.debug(f"[{self.SOURCE}] Producto no disponible: {product.id}")
                continue
            normalized.append(product)

        valid = validate_products(normalized)
        skipped += len(normalized) - len(valid)

        logger.info(
            f"[{self.SOURCE}] Productos normalizados: {len(valid)} (descartados: {skipped})"
        )
        return valid, skipped

    def get_product(self, native_id: str) -> Optional[Product]:
        """
        Obtiene un producto normalizado por su ID nativo.

        Returns:
            Producto o None si no existe.

        Raises:
            ProviderError: Ante errores distintos de "no encontrado".
            NormalizationError: Si el registro no se puede convertir.
        """
        raw = self.fetch_raw_product(native_id)
        if raw is None:
            return None
        return self._normalize_record(raw)

    def unwrap(self, result: ValidationResult, context: str) -> Any:
        """
        Extrae el valor de un resultado de validación.

        Raises:
            MalformedResponseError: Si la respuesta no cumple el esquema.
        """
        if isinstance(result, Malformed):
            raise MalformedResponseError(
                f"Respuesta inválida de {self.SOURCE} ({context}): {result.reason}"
            )
        return result.value

    def _normalize_record(self, raw: RawProduct) -> Product:
        try:
            return self.normalize(raw)
        except NormalizationError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise NormalizationError(f"{type(e).__name__}: {e}") from e
