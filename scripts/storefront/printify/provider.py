"""
Proveedor Printify.

Obtiene productos de la primera tienda (o la configurada) de Printify y
los normaliza al contrato común. Printify informa los precios de cada
variante en céntimos; el precio base es el de la variante habilitada
más barata.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from ..base import BaseProvider
from ..errors import NormalizationError, NotFoundError, ProviderHTTPError
from ..http_client import HttpClient
from ..models import PRINTIFY, Product, ProductVariant, ProductVariantDetail, RawProduct
from ..normalization import (
    clean_text,
    is_available,
    make_product_id,
    option_key,
    select_images,
    to_price,
    variant_axis_id,
)
from ..validators import (
    validate_printify_page,
    validate_printify_product,
    validate_printify_shops,
)

logger = logging.getLogger(__name__)


class PrintifyProvider(BaseProvider):
    """Proveedor para una tienda de Printify."""

    SOURCE = PRINTIFY
    PRICE_IN_MINOR_UNITS = True
    SUPPORTS_BUNDLES = False

    # URLs de la API
    API_BASE = "https://api.printify.com/v1"
    PAGE_SIZE = 50

    def __init__(
        self,
        http_client: Optional[HttpClient] = None,
        shop_id: Optional[str] = None,
        api_base: Optional[str] = None,
        page_size: Optional[int] = None,
    ):
        """
        Inicializa el proveedor de Printify.

        Args:
            http_client: Cliente HTTP autenticado.
            shop_id: Tienda a usar. Si no se indica, se usa la primera
                     que devuelva /shops.json.
            api_base: URL base de la API (para pruebas).
            page_size: Productos por página.
        """
        super().__init__(http_client)
        self.shop_id = str(shop_id) if shop_id else None
        self.api_base = (api_base or self.API_BASE).rstrip("/")
        self.page_size = page_size or self.PAGE_SIZE

    def get_shop_id(self) -> str:
        """
        Obtiene el ID de la tienda.

        Returns:
            ID de la tienda configurada o de la primera disponible.
        """
        if self.shop_id:
            return self.shop_id

        url = f"{self.api_base}/shops.json"
        data = self.http.get_json(url, use_cache=True)
        shops = self.unwrap(validate_printify_shops(data), "/shops.json")
        if not shops:
            raise ProviderHTTPError("No shop found")

        self.shop_id = str(shops[0]["id"])
        logger.info(f"Usando tienda de Printify: {self.shop_id}")
        return self.shop_id

    def fetch_raw_products(self) -> List[RawProduct]:
        """
        Descarga todas las páginas de productos visibles.

        Returns:
            Lista de productos crudos.
        """
        shop_id = self.get_shop_id()
        raw_products: List[RawProduct] = []
        page = 1

        while True:
            url = (
                f"{self.api_base}/shops/{shop_id}/products.json"
                f"?limit={self.page_size}&page={page}"
            )
            logger.debug(f"Descargando página {page}: {url}")

            data = self.http.get_json(url)
            records, last_page = self.unwrap(validate_printify_page(data), f"page {page}")

            for record in records:
                if not is_available(record.get("visible")):
                    logger.debug(f"Omitiendo producto oculto: {record.get('id')}")
                    continue
                raw_products.append(
                    RawProduct(raw_id=clean_text(record.get("id")), raw_data=record)
                )

            if page >= last_page:
                break
            page += 1
            self.http.delay()

        logger.info(f"Productos visibles en Printify: {len(raw_products)}")
        return raw_products

    def fetch_raw_product(self, native_id: str) -> Optional[RawProduct]:
        """
        Descarga un producto por su ID de Printify.

        Returns:
            Producto crudo o None si no existe.
        """
        shop_id = self.get_shop_id()
        url = f"{self.api_base}/shops/{shop_id}/products/{native_id}.json"
        try:
            data = self.http.get_json(url)
        except NotFoundError:
            logger.info(f"Producto de Printify {native_id} no encontrado (404)")
            return None

        record = self.unwrap(validate_printify_product(data), f"/products/{native_id}")
        return RawProduct(raw_id=clean_text(record.get("id")), raw_data=record)

    def normalize(self, raw_product: RawProduct) -> Product:
        """
        Transforma un producto crudo de Printify al formato normalizado.

        Args:
            raw_product: Producto crudo de la API.

        Returns:
            Producto normalizado.
        """
        return normalize_printify(raw_product.raw_data, self.PRICE_IN_MINOR_UNITS)


def process_image_url(src: Optional[str]) -> str:
    """
    Ajusta una URL de imagen de Printify.

    - http -> https
    - cdn.printify.com -> images-api.printify.com
    - elimina el parámetro preview
    """
    if not src:
        return ""
    url = str(src).strip()
    url = re.sub(r"^http:", "https:", url)
    url = url.replace("cdn.printify.com", "images-api.printify.com")
    url = re.sub(r"[?&]preview=\d+", "", url)
    return url


def purchase_url(record: Dict[str, Any]) -> Optional[str]:
    """URL del producto publicado en el canal de venta, si existe."""
    external = record.get("external")
    if not isinstance(external, dict):
        return None
    handle = clean_text(external.get("handle"))
    if handle.startswith("http://") or handle.startswith("https://"):
        return handle
    return None


def _option_titles(options: List[Any]) -> Dict[str, str]:
    """Mapa ID de valor -> título, para variantes que referencian IDs."""
    titles: Dict[str, str] = {}
    for axis in options:
        if not isinstance(axis, dict):
            continue
        for value in axis.get("values") or []:
            if isinstance(value, dict) and value.get("id") is not None:
                titles[str(value["id"])] = clean_text(value.get("title"))
    return titles


def _variant_key(variant: Dict[str, Any], titles: Dict[str, str]) -> str:
    title = clean_text(variant.get("title"))
    if title:
        return option_key(title.split(" / "))

    options = variant.get("options")
    if isinstance(options, dict):
        return option_key(options.values())
    if isinstance(options, list):
        return option_key(titles.get(str(o), str(o)) for o in options)
    return clean_text(variant.get("id"))


def normalize_printify(record: Dict[str, Any], minor_units: bool = True) -> Product:
    """
    Convierte un registro de Printify en Product.

    Args:
        record: Producto tal como lo devuelve la API.
        minor_units: True si los precios vienen en céntimos.

    Raises:
        NormalizationError: Si faltan el ID, el título o cualquier precio.
    """
    product_id = make_product_id(PRINTIFY, record.get("id"))
    name = clean_text(record.get("title"))
    if not name:
        raise NormalizationError(f"Producto {product_id} sin título")

    options = record.get("options") or []
    titles = _option_titles(options)

    variants = []
    for axis in options:
        if not isinstance(axis, dict):
            continue
        axis_name = clean_text(axis.get("name"))
        if not axis_name:
            continue
        values = []
        for value in axis.get("values") or []:
            value_title = clean_text(value.get("title") if isinstance(value, dict) else value)
            if value_title:
                values.append(value_title)
        variants.append(
            ProductVariant(id=variant_axis_id(axis_name), name=axis_name, options=tuple(values))
        )

    details = []
    for variant in record.get("variants") or []:
        if not isinstance(variant, dict) or not is_available(variant.get("is_enabled")):
            continue
        variant_id = variant.get("id")
        details.append(
            ProductVariantDetail(
                option_key=_variant_key(variant, titles),
                price=to_price(variant.get("price"), minor_units),
                variant_id=str(variant_id) if variant_id is not None else None,
            )
        )

    if details:
        price = min(detail.price for detail in details)
    elif record.get("price") is not None:
        price = to_price(record.get("price"), minor_units)
    else:
        raise NormalizationError(f"Producto {product_id} sin variantes habilitadas")

    raw_images = [img for img in record.get("images") or [] if isinstance(img, dict)]
    default_image = next((img.get("src") for img in raw_images if img.get("is_default")), None)

    return Product(
        id=product_id,
        source=PRINTIFY,
        name=name,
        description=clean_text(record.get("description")),
        price=price,
        images=select_images(
            process_image_url(default_image),
            None,
            [process_image_url(img.get("src")) for img in raw_images],
            alt_text=name,
        ),
        variants=tuple(variants),
        variant_details=tuple(details),
        tags=tuple(str(t) for t in record.get("tags") or []),
        slug=None,
        available=is_available(record.get("visible")),
        purchase_url=purchase_url(record),
    )
