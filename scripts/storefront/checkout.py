"""
Coordinador de checkout.

Ningún proveedor admite checkout de varios productos en una sola página,
así que cada intento de checkout se planifica por proveedor:

- Un único producto: redirección directa a su página de pago.
- Varios productos: una pestaña por producto con aperturas escalonadas
  (checkout rápido) o un bundle sintetizado con una sola URL.

Si el bundle falla o el proveedor no lo admite se vuelve al checkout
rápido. El checkout nunca modifica el carrito.
"""

from __future__ import annotations

import logging
import time
import webbrowser
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, List, Optional, Sequence
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .cart import CartStore
from .errors import NavigationError
from .models import Bundle, CartItem
from .notifications import Notifier

if TYPE_CHECKING:
    from .bundles import BundleResult

logger = logging.getLogger(__name__)

QUICK_CHECKOUT_DELAY_MS = 800


def build_checkout_url(url: str, quantity: int, cache_bust: bool = True) -> str:
    """
    Decora una URL de producto para ir directo al pago.

    Fija wanted=true y quantity, y opcionalmente _t con el timestamp
    actual. Los parámetros existentes se sustituyen, nunca se duplican, y
    el resto de la query se conserva.

    Args:
        url: URL de compra del producto.
        quantity: Cantidad a comprar.
        cache_bust: Añadir _t=<epoch ms>.

    Returns:
        URL de checkout.
    """
    parts = urlsplit(url)
    overrides = {"wanted": "true", "quantity": str(quantity)}
    if cache_bust:
        overrides["_t"] = str(int(time.time() * 1000))

    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in overrides]
    query.extend(overrides.items())

    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


class CheckoutStrategy(Enum):
    DIRECT = "direct"
    QUICK = "quick"
    BUNDLE = "bundle"


@dataclass(frozen=True)
class NavigationTarget:
    """Una pestaña a abrir, delay_ms después del inicio del checkout."""

    url: str
    delay_ms: int
    source: str
    product_id: str
    quantity: int
    label: str


@dataclass(frozen=True)
class CheckoutFailure:
    source: str
    product_id: str
    reason: str


@dataclass
class ProviderCheckoutPlan:
    """Plan de checkout de un proveedor."""

    source: str
    strategy: CheckoutStrategy
    targets: List[NavigationTarget] = field(default_factory=list)
    failures: List[CheckoutFailure] = field(default_factory=list)
    bundle: Optional[Bundle] = None
    fallback_reason: Optional[str] = None


@dataclass
class CheckoutReport:
    """Resultado de un intento de checkout."""

    plans: List[ProviderCheckoutPlan] = field(default_factory=list)
    opened: List[NavigationTarget] = field(default_factory=list)
    failed: List[CheckoutFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return bool(self.opened) and not self.failed

    @property
    def targets(self) -> List[NavigationTarget]:
        return sorted((t for p in self.plans for t in p.targets), key=lambda t: t.delay_ms)


class Navigator(ABC):
    """Abre URLs de checkout."""

    @abstractmethod
    def open(self, url: str) -> bool:
        """
        Returns:
            False si la navegación fue bloqueada.

        Raises:
            NavigationError: Si no se pudo abrir la URL.
        """
        pass


class BrowserNavigator(Navigator):
    """Abre cada URL en una pestaña nueva del navegador del sistema."""

    def open(self, url: str) -> bool:
        try:
            return webbrowser.open_new_tab(url)
        except webbrowser.Error as e:
            raise NavigationError(f"No se pudo abrir {url}: {e}") from e


class BundleService(ABC):
    """Crea bundles para proveedores sin checkout multi-producto."""

    @abstractmethod
    def supports(self, source: str) -> bool:
        pass

    @abstractmethod
    def create_bundle(self, items: Sequence[CartItem]) -> BundleResult:
        """
        Returns:
            BundleResult con la URL de checkout o el error. Nunca lanza.
        """
        pass


class CheckoutCoordinator:
    """
    Planifica y ejecuta intentos de checkout.

    No guarda estado entre intentos: cada llamada a checkout() lee el
    carrito, construye un plan por proveedor y abre las pestañas.
    """

    def __init__(
        self,
        bundle_service: Optional[BundleService] = None,
        navigator: Optional[Navigator] = None,
        notifier: Optional[Notifier] = None,
        sleep: Callable[[float], None] = time.sleep,
        delay_ms: int = QUICK_CHECKOUT_DELAY_MS,
    ):
        """
        Args:
            bundle_service: Servicio de bundles (opcional).
            navigator: Destino de las navegaciones (default: navegador).
            notifier: Destino de los avisos al usuario.
            sleep: Función de espera en segundos.
            delay_ms: Separación entre pestañas consecutivas.
        """
        self.bundle_service = bundle_service
        self.navigator = navigator or BrowserNavigator()
        self.notifier = notifier or Notifier()
        self.sleep = sleep
        self.delay_ms = delay_ms

    def plan(self, cart: CartStore, use_bundles: bool = False) -> List[ProviderCheckoutPlan]:
        """
        Construye el plan de checkout de cada proveedor del carrito.

        Los retrasos son globales: la n-ésima pestaña de todo el checkout
        se abre a n * delay_ms.

        Args:
            cart: Carrito a pagar. No se modifica.
            use_bundles: Usar bundles para proveedores con varios productos.
        """
        plans = []
        slot = 0

        for source in cart.get_sources():
            items = cart.get_items_by_provider(source)
            lines = [i for i in cart.items if i.product.source == source]
            plan = self._plan_provider(source, items, lines, use_bundles)

            scheduled = []
            for target in plan.targets:
                scheduled.append(
                    NavigationTarget(
                        url=target.url,
                        delay_ms=slot * self.delay_ms,
                        source=target.source,
                        product_id=target.product_id,
                        quantity=target.quantity,
                        label=target.label,
                    )
                )
                slot += 1
            plan.targets = scheduled

            logger.info(
                f"[{source}] Estrategia {plan.strategy.value}: "
                f"{len(plan.targets)} pestañas, {len(plan.failures)} fallos"
            )
            plans.append(plan)

        return plans

    def checkout(self, cart: CartStore, use_bundles: bool = False) -> CheckoutReport:
        """
        Ejecuta un intento de checkout.

        Las navegaciones bloqueadas se notifican y se incluyen en el
        informe; no se reintentan.
        """
        report = CheckoutReport()

        if not cart.items:
            self.notifier.warning("Your cart is empty.")
            return report

        report.plans = self.plan(cart, use_bundles)
        for plan in report.plans:
            if plan.fallback_reason:
                self.notifier.warning(plan.fallback_reason)
            for failure in plan.failures:
                self.notifier.error(failure.reason)
            report.failed.extend(plan.failures)

        elapsed_ms = 0
        for target in report.targets:
            if target.delay_ms > elapsed_ms:
                self.sleep((target.delay_ms - elapsed_ms) / 1000)
                elapsed_ms = target.delay_ms

            if self._navigate(target):
                report.opened.append(target)
            else:
                reason = f"Could not open checkout for {target.label}. Please allow pop-ups and try again."
                self.notifier.error(reason)
                report.failed.append(CheckoutFailure(target.source, target.product_id, reason))

        if report.opened:
            self.notifier.success(f"Opened {len(report.opened)} checkout page(s).")
        return report

    def _plan_provider(
        self,
        source: str,
        items: List[CartItem],
        lines: List[CartItem],
        use_bundles: bool,
    ) -> ProviderCheckoutPlan:
        """
        Plan de un proveedor.

        items son las líneas agregadas por producto (una URL por producto);
        lines son las líneas originales, con su variante, para el bundle.
        """
        if len(items) == 1:
            plan = ProviderCheckoutPlan(source=source, strategy=CheckoutStrategy.DIRECT)
            self._add_direct_targets(plan, items)
            return plan

        if use_bundles:
            if self.bundle_service is not None and self.bundle_service.supports(source):
                result = self.bundle_service.create_bundle(lines)
                if result.checkout_url and not result.error:
                    bundle = result.bundle
                    plan = ProviderCheckoutPlan(
                        source=source, strategy=CheckoutStrategy.BUNDLE, bundle=bundle
                    )
                    plan.targets.append(
                        NavigationTarget(
                            url=result.checkout_url,
                            delay_ms=0,
                            source=source,
                            product_id=bundle.id if bundle else source,
                            quantity=1,
                            label=bundle.name if bundle else f"{source} bundle",
                        )
                    )
                    return plan
                logger.warning(f"[{source}] Bundle no disponible: {result.error}")
                fallback = f"Bundle checkout failed for {source}. Opening items individually."
            else:
                fallback = f"Bundle checkout is not available for {source}. Opening items individually."
        else:
            fallback = None

        plan = ProviderCheckoutPlan(
            source=source, strategy=CheckoutStrategy.QUICK, fallback_reason=fallback
        )
        self._add_direct_targets(plan, items)
        return plan

    def _add_direct_targets(self, plan: ProviderCheckoutPlan, items: List[CartItem]) -> None:
        for item in items:
            product = item.product
            if not product.purchase_url:
                plan.failures.append(
                    CheckoutFailure(
                        plan.source, product.id, f"{product.name} is not available for checkout."
                    )
                )
                continue

            plan.targets.append(
                NavigationTarget(
                    url=build_checkout_url(product.purchase_url, item.quantity),
                    delay_ms=0,
                    source=plan.source,
                    product_id=product.id,
                    quantity=item.quantity,
                    label=product.name,
                )
            )

    def _navigate(self, target: NavigationTarget) -> bool:
        try:
            opened = self.navigator.open(target.url)
        except NavigationError as e:
            logger.error(f"Navegación fallida para {target.product_id}: {e}")
            return False

        if not opened:
            logger.warning(f"Navegación bloqueada para {target.product_id}")
        return bool(opened)
