"""
Proveedor Gumroad.

Obtiene productos desde la API v2 de Gumroad y los normaliza al contrato
común. Gumroad informa los precios en céntimos y el checkout es una
redirección directa a la página del producto.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..base import BaseProvider
from ..errors import NormalizationError, NotFoundError, ProviderHTTPError
from ..http_client import HttpClient
from ..models import GUMROAD, Product, ProductVariant, ProductVariantDetail, RawProduct
from ..normalization import (
    clean_text,
    is_available,
    make_product_id,
    option_key,
    select_images,
    to_price,
    variant_axis_id,
)
from ..validators import validate_gumroad_product, validate_gumroad_products

logger = logging.getLogger(__name__)

PURCHASE_BASE_URL = "https://gumroad.com/l"


class GumroadProvider(BaseProvider):
    """Proveedor para la tienda de Gumroad."""

    SOURCE = GUMROAD
    PRICE_IN_MINOR_UNITS = True
    SUPPORTS_BUNDLES = True

    # URLs de la API
    API_BASE = "https://api.gumroad.com/v2"

    def __init__(
        self,
        http_client: Optional[HttpClient] = None,
        api_base: Optional[str] = None,
    ):
        """Inicializa el proveedor de Gumroad."""
        super().__init__(http_client)
        self.api_base = (api_base or self.API_BASE).rstrip("/")

    def fetch_raw_products(self) -> List[RawProduct]:
        """
        Descarga todos los productos publicados.

        Returns:
            Lista de productos crudos.
        """
        url = f"{self.api_base}/products"
        logger.info(f"Obteniendo productos de {url}")

        data = self.http.get_json(url)
        self._check_success(data, url)
        records = self.unwrap(validate_gumroad_products(data), "/products")

        raw_products = []
        for record in records:
            if not is_available(record.get("published")):
                logger.debug(f"Omitiendo producto no publicado: {record.get('id')}")
                continue
            raw_products.append(
                RawProduct(raw_id=clean_text(record.get("id")), raw_data=record)
            )

        logger.info(f"Productos publicados en Gumroad: {len(raw_products)}")
        return raw_products

    def fetch_raw_product(self, native_id: str) -> Optional[RawProduct]:
        """
        Descarga un producto por su ID de Gumroad.

        Returns:
            Producto crudo o None si Gumroad responde que no existe.
        """
        url = f"{self.api_base}/products/{native_id}"
        try:
            data = self.http.get_json(url)
        except NotFoundError:
            logger.info(f"Producto de Gumroad {native_id} no encontrado (404)")
            return None

        if isinstance(data, dict) and data.get("success") is False:
            message = clean_text(data.get("message"))
            if "not found" in message.lower():
                logger.info(f"Producto de Gumroad {native_id} no encontrado: {message}")
                return None
        self._check_success(data, url)

        record = self.unwrap(validate_gumroad_product(data), f"/products/{native_id}")
        return RawProduct(raw_id=clean_text(record.get("id")) or native_id, raw_data=record)

    def create_product(
        self,
        name: str,
        price_cents: int,
        description: str,
    ) -> Dict[str, Any]:
        """
        Crea un producto en Gumroad (usado para sintetizar bundles).

        Args:
            name: Nombre del producto.
            price_cents: Precio en céntimos.
            description: Descripción visible en el checkout.

        Returns:
            Registro crudo del producto creado.
        """
        url = f"{self.api_base}/products"
        logger.info(f"Creando producto en Gumroad: {name} ({price_cents} céntimos)")

        data = self.http.post_json(
            url,
            {"name": name, "price": price_cents, "description": description},
        )
        self._check_success(data, url)
        return self.unwrap(validate_gumroad_product(data), "POST /products")

    def normalize(self, raw_product: RawProduct) -> Product:
        """
        Transforma un producto crudo de Gumroad al formato normalizado.

        Args:
            raw_product: Producto crudo de la API.

        Returns:
            Producto normalizado.
        """
        return normalize_gumroad(raw_product.raw_data, self.PRICE_IN_MINOR_UNITS)

    def _check_success(self, data: Any, url: str) -> None:
        if isinstance(data, dict) and data.get("success") is False:
            message = clean_text(data.get("message")) or "No message provided"
            raise ProviderHTTPError(f"Gumroad API returned success:false ({url}) - {message}")


def purchase_url(record: Dict[str, Any]) -> str:
    """URL de compra directa de un producto de Gumroad."""
    short_url = clean_text(record.get("short_url"))
    if short_url:
        return short_url
    permalink = clean_text(record.get("custom_permalink")) or clean_text(record.get("id"))
    return f"{PURCHASE_BASE_URL}/{permalink}"


def normalize_gumroad(record: Dict[str, Any], minor_units: bool = True) -> Product:
    """
    Convierte un registro de Gumroad en Product.

    Args:
        record: Producto tal como lo devuelve la API.
        minor_units: True si los precios vienen en céntimos.

    Raises:
        NormalizationError: Si faltan el ID, el nombre o el precio.
    """
    product_id = make_product_id(GUMROAD, record.get("id"))
    name = clean_text(record.get("name"))
    if not name:
        raise NormalizationError(f"Producto {product_id} sin nombre")

    price = to_price(record.get("price"), minor_units)

    variants = []
    details = []
    for axis in record.get("variants") or []:
        if not isinstance(axis, dict):
            continue
        title = clean_text(axis.get("title"))
        if not title:
            continue
        axis_id = variant_axis_id(title)
        option_names = []

        for option in axis.get("options") or []:
            if isinstance(option, dict):
                option_name = clean_text(option.get("name"))
                difference = option.get("price_difference")
            else:
                option_name = clean_text(option)
                difference = None
            if not option_name:
                continue
            option_names.append(option_name)

            if difference is not None:
                details.append(
                    ProductVariantDetail(
                        option_key=option_key([title, option_name]),
                        price=round(price + to_price(difference, minor_units), 2),
                        variant_id=f"{axis_id}:{option_name}",
                    )
                )

        variants.append(ProductVariant(id=axis_id, name=title, options=tuple(option_names)))

    return Product(
        id=product_id,
        source=GUMROAD,
        name=name,
        description=clean_text(record.get("description") or record.get("custom_summary")),
        price=price,
        images=select_images(
            record.get("thumbnail_url"),
            record.get("preview_url"),
            alt_text=name,
        ),
        variants=tuple(variants),
        variant_details=tuple(details),
        tags=tuple(str(t) for t in record.get("tags") or []),
        slug=clean_text(record.get("custom_permalink")) or clean_text(record.get("id")),
        available=is_available(record.get("published")),
        purchase_url=purchase_url(record),
    )
