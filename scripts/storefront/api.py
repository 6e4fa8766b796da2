"""
API HTTP del catálogo y de los bundles.

Los errores se devuelven siempre como {"error": "..."}.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Body, FastAPI, Request
from fastapi.responses import JSONResponse

from .bundles import validate_bundle_items
from .catalog import Catalog
from .checkout import BundleService
from .errors import NormalizationError, ProviderError
from .models import CartItem

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def get_catalog(request: Request) -> Catalog:
    return request.app.state.catalog


@router.get("/products")
def list_products(request: Request, source: Optional[str] = None):
    """Productos de todos los proveedores (o de uno) con sus errores."""
    result = get_catalog(request).get_all_products(source)
    return result.to_dict()


@router.get("/products/{product_id}")
def get_product(request: Request, product_id: str):
    try:
        product = get_catalog(request).get_product_by_id(product_id)
    except (ProviderError, NormalizationError) as e:
        logger.error(f"Error al obtener {product_id}: {e}")
        return _error(502, str(e))

    if product is None:
        return _error(404, "Product not found")
    return product.to_dict()


@router.post("/checkout/create-bundle")
def create_bundle(request: Request, payload: Any = Body(None)):
    """
    Crea un bundle a partir de las líneas del carrito.

    400 si el carrito está vacío o es inválido, 502 si el proveedor no
    pudo crear el producto combinado.
    """
    bundle_service = request.app.state.bundle_service
    if bundle_service is None:
        return _error(502, "Bundle checkout is not configured")

    if not isinstance(payload, list) or not payload:
        return _error(400, "Cart is empty")

    items: List[CartItem] = []
    try:
        for record in payload:
            items.append(CartItem.from_dict(record))
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        logger.warning(f"Carrito inválido en create-bundle: {e}")
        return _error(400, "Invalid cart items")

    errors = validate_bundle_items(items)
    unsupported = sorted({i.product.source for i in items if not bundle_service.supports(i.product.source)})
    if unsupported:
        errors.append(f"Bundles not supported for: {', '.join(unsupported)}")
    if errors:
        return _error(400, "; ".join(errors))

    result = bundle_service.create_bundle(items)
    if result.error or not result.checkout_url:
        return _error(502, result.error or "Bundle creation failed")

    return {
        "checkoutUrl": result.checkout_url,
        "bundle": result.bundle.to_dict() if result.bundle else None,
    }


def create_app(catalog: Catalog, bundle_service: Optional[BundleService] = None) -> FastAPI:
    """Crea y configura la aplicación FastAPI."""
    app = FastAPI(
        title="Storefront API",
        description="Catálogo unificado de Gumroad y Printify",
        version="0.1.0",
    )

    app.state.catalog = catalog
    app.state.bundle_service = bundle_service

    app.include_router(router)
    return app
