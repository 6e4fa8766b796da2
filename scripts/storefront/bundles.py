"""
Bundles para checkout multi-producto.

Gumroad no admite checkout de varios productos a la vez. Un bundle es una
oferta combinada efímera: se crea un producto nuevo con el precio total y
una descripción "2x A, 1x B", y se redirige a su página de compra.
"""

from __future__ import annotations

import logging
import random
import string
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Sequence

import requests

from .checkout import BundleService, build_checkout_url
from .errors import ProviderError
from .gumroad.provider import GumroadProvider, purchase_url
from .models import GUMROAD, Bundle, CartItem
from .validators import Malformed, validate_bundle_response

logger = logging.getLogger(__name__)

BUNDLE_VALIDITY = timedelta(hours=24)

_ID_ALPHABET = string.digits + string.ascii_lowercase


@dataclass
class BundleResult:
    """Resultado de crear un bundle: URL de checkout o error."""

    checkout_url: Optional[str] = None
    error: Optional[str] = None
    bundle: Optional[Bundle] = None

    @property
    def ok(self) -> bool:
        return bool(self.checkout_url) and not self.error


def generate_bundle_id() -> str:
    """ID único: bundle_{epoch_ms}_{9 caracteres base36}."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"bundle_{int(time.time() * 1000)}_{suffix}"


def calculate_bundle_price(items: Iterable[CartItem], discount_percent: float = 0) -> float:
    """
    Precio del bundle: suma de subtotales menos el descuento.

    Args:
        items: Líneas del bundle.
        discount_percent: Descuento en porcentaje (lo decide el llamador).
    """
    subtotal = Decimal("0")
    for item in items:
        subtotal += Decimal(str(item.unit_price)) * item.quantity
    discount = subtotal * Decimal(str(discount_percent or 0)) / Decimal(100)
    total = (subtotal - discount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return float(total)


def create_bundle(
    items: Sequence[CartItem],
    name: Optional[str] = None,
    discount_percent: Optional[float] = None,
) -> Bundle:
    """Construye un bundle a partir de líneas del carrito."""
    created_at = datetime.now(timezone.utc)
    return Bundle(
        id=generate_bundle_id(),
        name=name or f"Bundle of {len(items)} products",
        items=list(items),
        total_price=calculate_bundle_price(items, discount_percent or 0),
        created_at=created_at,
        expires_at=created_at + BUNDLE_VALIDITY,
        discount_percent=discount_percent,
    )


def describe_bundle(items: Iterable[CartItem]) -> str:
    """Descripción legible: "2x A, 1x B"."""
    return ", ".join(f"{item.quantity}x {item.product.name}" for item in items)


def validate_bundle_items(items: Sequence[CartItem]) -> List[str]:
    """
    Valida las líneas de un bundle.

    Returns:
        Lista de errores; vacía si el bundle es válido.
    """
    errors = []
    if not items:
        errors.append("Bundle must contain at least one item")

    for item in items:
        if not item.product.purchase_url:
            errors.append(f'Product "{item.product.name}" is not available for purchase')
        if item.quantity < 1:
            errors.append(f'Invalid quantity for "{item.product.name}"')

    return errors


def to_cents(amount: float) -> int:
    """Unidades mayores -> céntimos enteros."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class GumroadBundleService(BundleService):
    """
    Sintetiza bundles como productos nuevos de Gumroad.

    Es el colaborador de servidor que usa el endpoint de bundles.
    """

    def __init__(self, provider: GumroadProvider, discount_percent: float = 0):
        """
        Args:
            provider: Proveedor de Gumroad con token de escritura.
            discount_percent: Descuento por defecto para los bundles.
        """
        self.provider = provider
        self.discount_percent = discount_percent

    def supports(self, source: str) -> bool:
        return source == self.provider.SOURCE and self.provider.SUPPORTS_BUNDLES

    def create_bundle(
        self,
        items: Sequence[CartItem],
        name: Optional[str] = None,
        discount_percent: Optional[float] = None,
    ) -> BundleResult:
        """
        Crea el producto combinado y devuelve su URL de checkout.

        Nunca lanza: cualquier fallo se devuelve en BundleResult.error.
        """
        errors = validate_bundle_items(items)
        foreign = sorted({i.product.source for i in items if not self.supports(i.product.source)})
        if foreign:
            errors.append(f"Bundles not supported for: {', '.join(foreign)}")
        if errors:
            logger.warning(f"Bundle inválido: {errors}")
            return BundleResult(error="; ".join(errors))

        if discount_percent is None:
            discount_percent = self.discount_percent
        bundle = create_bundle(items, name, discount_percent)
        description = describe_bundle(items)
        logger.info(f"Creando bundle {bundle.id}: {description} = {bundle.total_price:.2f}")

        try:
            record = self.provider.create_product(
                bundle.name, to_cents(bundle.total_price), description
            )
        except ProviderError as e:
            logger.error(f"No se pudo crear el bundle en Gumroad: {e}")
            return BundleResult(error=str(e), bundle=bundle)

        return BundleResult(
            checkout_url=build_checkout_url(purchase_url(record), 1),
            bundle=bundle,
        )


class BundleClient(BundleService):
    """
    Cliente del endpoint de bundles.

    Cualquier respuesta no 2xx o sin checkoutUrl significa "bundle no
    disponible", nunca una excepción.
    """

    def __init__(
        self,
        endpoint_url: str,
        timeout: int = 30,
        sources: Sequence[str] = (GUMROAD,),
    ):
        self.endpoint_url = endpoint_url
        self.timeout = timeout
        self.sources = tuple(sources)

    def supports(self, source: str) -> bool:
        return source in self.sources

    def create_bundle(self, items: Sequence[CartItem]) -> BundleResult:
        """Envía las líneas al endpoint y devuelve la URL de checkout."""
        if not self.endpoint_url:
            return BundleResult(error="Bundle endpoint not configured")

        payload = [item.to_dict() for item in items]
        logger.info(f"Solicitando bundle de {len(payload)} productos a {self.endpoint_url}")

        try:
            response = requests.post(
                self.endpoint_url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error(f"Error al solicitar el bundle: {exc}")
            return BundleResult(error=str(exc))

        try:
            data = response.json()
        except ValueError:
            data = None

        if not response.ok:
            detail = data.get("error") if isinstance(data, dict) else response.reason
            logger.warning(f"Bundle no disponible ({response.status_code}): {detail}")
            return BundleResult(error=f"Status {response.status_code}: {detail}")

        result = validate_bundle_response(data)
        if isinstance(result, Malformed):
            logger.warning(f"Bundle no disponible: {result.reason}")
            return BundleResult(error=result.reason)

        return BundleResult(checkout_url=result.value)
