"""
Jerarquía de errores de la tienda.

Los errores de proveedor y de normalización se convierten en datos en el
límite del catálogo; el resto sólo se lanza ante errores de programación.
"""

from __future__ import annotations

from typing import Optional


class StorefrontError(Exception):
    """Error base de la tienda."""


class ProviderError(StorefrontError):
    """Error al consultar un proveedor externo."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProviderAuthError(ProviderError):
    """Token ausente o rechazado (401/403)."""


class ProviderHTTPError(ProviderError):
    """Respuesta no 2xx que no se reintenta."""


class ProviderFetchError(ProviderError):
    """Fallo de red o reintentos agotados."""


class NotFoundError(ProviderError):
    """El proveedor informa que el recurso no existe."""


class MalformedResponseError(ProviderError):
    """La respuesta no cumple el esquema esperado."""


class NormalizationError(StorefrontError):
    """Un registro crudo no se puede convertir a Product."""


class CartNotLoadedError(StorefrontError):
    """Operación sobre un store antes de cargarlo desde el almacenamiento."""


class NavigationError(StorefrontError):
    """El navegador no pudo abrir la URL (p. ej. popup bloqueado)."""
