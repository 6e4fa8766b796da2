#!/usr/bin/env python3
"""
CLI unificado de la tienda multi-proveedor.

Uso:
    python main.py products list                  # Catálogo completo
    python main.py products list --source gumroad # Sólo un proveedor
    python main.py products get gumroad-abc123    # Un producto

    python main.py cart show                      # Ver carrito
    python main.py cart add gumroad-abc123 -q 2   # Añadir al carrito
    python main.py cart update gumroad-abc123 3   # Fijar cantidad
    python main.py cart remove gumroad-abc123     # Quitar del carrito
    python main.py cart clear                     # Vaciar carrito

    python main.py checkout                       # Checkout rápido
    python main.py checkout --bundle              # Checkout con bundles
    python main.py checkout --dry-run             # Ver el plan sin abrir nada

    python main.py wishlist show                  # Ver lista de deseos
    python main.py wishlist toggle printify-xyz   # Añadir/quitar

    python main.py serve                          # API HTTP
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from config import (
    get_checkout_config,
    get_http_config,
    get_log_level,
    get_provider_config,
    get_server_config,
    get_storage_config,
)
from storefront import CartStore, Catalog, CheckoutCoordinator, FileStorage, WishlistStore
from storefront.base import BaseProvider
from storefront.bundles import BundleClient, GumroadBundleService
from storefront.checkout import BundleService
from storefront.gumroad import GumroadProvider
from storefront.http_client import HttpClient
from storefront.models import GUMROAD, SUPPORTED_SOURCES
from storefront.notifications import Notifier
from storefront.printify import PrintifyProvider
from storefront.validators import describe_errors

# Configuración de logging
logging.basicConfig(
    level=get_log_level(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def build_providers() -> List[BaseProvider]:
    """Crea los proveedores que tienen token configurado."""
    providers_config = get_provider_config()
    http_config = get_http_config()
    providers: List[BaseProvider] = []

    if providers_config["gumroad_token"]:
        providers.append(
            GumroadProvider(HttpClient(token=providers_config["gumroad_token"], **http_config))
        )
    else:
        logger.warning("GUMROAD_ACCESS_TOKEN no configurado: Gumroad deshabilitado")

    if providers_config["printify_token"]:
        providers.append(
            PrintifyProvider(
                HttpClient(token=providers_config["printify_token"], **http_config),
                shop_id=providers_config["printify_shop_id"],
            )
        )
    else:
        logger.warning("PRINTIFY_API_TOKEN no configurado: Printify deshabilitado")

    return providers


def build_catalog() -> Catalog:
    return Catalog(build_providers())


def build_bundle_service(catalog: Catalog) -> Optional[BundleService]:
    """
    Servicio de bundles: el endpoint remoto si está configurado, si no
    Gumroad directamente.
    """
    checkout_config = get_checkout_config()
    if checkout_config["bundle_endpoint_url"]:
        return BundleClient(checkout_config["bundle_endpoint_url"])

    gumroad = catalog.get_provider(GUMROAD)
    if gumroad is None:
        return None
    return GumroadBundleService(gumroad, checkout_config["bundle_discount_percent"])


def build_stores(notifier: Notifier):
    storage = FileStorage(get_storage_config()["path"])
    cart = CartStore(storage, notifier)
    wishlist = WishlistStore(storage, notifier)
    cart.load()
    wishlist.load()
    return cart, wishlist


def print_notifications(notifier: Notifier) -> None:
    for notification in notifier.history:
        print(f"[{notification.level}] {notification.message}")
    notifier.clear()


def print_product(product, detailed: bool = False) -> None:
    status = "" if product.available else " (no disponible)"
    print(f"{product.id}  {product.price:>8.2f}  {product.name}{status}")

    if not detailed:
        return

    if product.description:
        print(f"  {product.description}")
    for variant in product.variants:
        print(f"  {variant.name}: {', '.join(variant.options)}")
    for detail in product.variant_details:
        print(f"    - {detail.option_key} ({detail.variant_id}): {detail.price:.2f}")
    if product.tags:
        print(f"  Tags: {', '.join(product.tags)}")
    if product.purchase_url:
        print(f"  Compra: {product.purchase_url}")


def cmd_products_list(args):
    """Comando: products list"""
    result = build_catalog().get_all_products(args.source)

    if result.is_total_failure:
        print(f"Error: no se pudo cargar el catálogo: {describe_errors(result.errors)}")
        print("Revisa las credenciales y vuelve a intentarlo.")
        sys.exit(1)

    if result.errors:
        print(f"Aviso: {describe_errors(result.errors)}")

    for product in result.products:
        print_product(product)

    print(f"\nTotal: {len(result.products)} productos")


def cmd_products_get(args):
    """Comando: products get"""
    product = build_catalog().get_product_by_id(args.product_id)

    if product is None:
        print(f"Producto no encontrado: {args.product_id}")
        sys.exit(1)

    print_product(product, detailed=True)


def cmd_cart_show(args):
    """Comando: cart show"""
    notifier = Notifier()
    cart, _ = build_stores(notifier)

    if not cart.items:
        print("El carrito está vacío")
        return

    for source in cart.get_sources():
        print(f"\n{source.upper()} ({cart.get_provider_total(source):.2f})")
        print("=" * 50)
        for item in cart.items:
            if item.product.source != source:
                continue
            variant = f" [{item.selected_variant_id}]" if item.selected_variant_id else ""
            print(
                f"  {item.quantity} x {item.product.name}{variant}  "
                f"{item.unit_price:.2f} = {item.subtotal:.2f}"
            )

    print(f"\nArtículos: {cart.get_item_count()}")
    print(f"Total:     {cart.get_cart_total():.2f}")


def cmd_cart_add(args):
    """Comando: cart add"""
    notifier = Notifier()
    cart, _ = build_stores(notifier)

    product = build_catalog().get_product_by_id(args.product_id)
    if product is None:
        print(f"Producto no encontrado: {args.product_id}")
        sys.exit(1)

    options = None
    if args.variant:
        detail = next((d for d in product.variant_details if d.variant_id == args.variant), None)
        if detail is None:
            logger.warning(f"Variante {args.variant} sin precio propio; se usa el precio base")
        else:
            options = {"option": detail.option_key}

    cart.add_item(product, args.quantity, args.variant, options)
    print_notifications(notifier)


def cmd_cart_remove(args):
    """Comando: cart remove"""
    notifier = Notifier()
    cart, _ = build_stores(notifier)

    if not cart.remove_item(args.product_id, args.variant):
        print(f"{args.product_id} no está en el carrito")
    print_notifications(notifier)


def cmd_cart_update(args):
    """Comando: cart update"""
    notifier = Notifier()
    cart, _ = build_stores(notifier)

    if not cart.update_quantity(args.product_id, args.variant, args.quantity):
        print(f"{args.product_id} no está en el carrito")
    print_notifications(notifier)


def cmd_cart_clear(args):
    """Comando: cart clear"""
    notifier = Notifier()
    cart, _ = build_stores(notifier)
    cart.clear_cart()
    print_notifications(notifier)


def cmd_checkout(args):
    """Comando: checkout"""
    notifier = Notifier()
    cart, _ = build_stores(notifier)

    bundle_service = build_bundle_service(build_catalog()) if args.bundle else None
    coordinator = CheckoutCoordinator(bundle_service=bundle_service, notifier=notifier)

    if args.dry_run:
        plans = coordinator.plan(cart, use_bundles=args.bundle)
        for plan in plans:
            print(f"\n{plan.source.upper()}: {plan.strategy.value}")
            if plan.fallback_reason:
                print(f"  Aviso: {plan.fallback_reason}")
            for target in plan.targets:
                print(f"  +{target.delay_ms}ms  {target.label} x{target.quantity}")
                print(f"    {target.url}")
            for failure in plan.failures:
                print(f"  Error: {failure.reason}")
        if not plans:
            print("El carrito está vacío")
        return

    report = coordinator.checkout(cart, use_bundles=args.bundle)
    print_notifications(notifier)

    if report.failed:
        sys.exit(1)


def cmd_wishlist_show(args):
    """Comando: wishlist show"""
    notifier = Notifier()
    _, wishlist = build_stores(notifier)

    if not wishlist.items:
        print("La lista de deseos está vacía")
        return

    for product_id in wishlist.items:
        print(f"  - {product_id}")
    print(f"\nTotal: {len(wishlist.items)} productos")


def cmd_wishlist_toggle(args):
    """Comando: wishlist toggle"""
    notifier = Notifier()
    _, wishlist = build_stores(notifier)
    wishlist.toggle(args.product_id)
    print_notifications(notifier)


def cmd_serve(args):
    """Comando: serve"""
    import uvicorn

    from storefront.api import create_app

    server_config = get_server_config()
    catalog = build_catalog()
    app = create_app(catalog, build_bundle_service(catalog))

    host = args.host or server_config["host"]
    port = args.port or server_config["port"]
    logger.info(f"Sirviendo la API en http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level=get_log_level().lower())


def main():
    """Punto de entrada del CLI."""
    parser = argparse.ArgumentParser(
        description="Tienda multi-proveedor (Gumroad + Printify)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Mostrar información detallada",
    )

    subparsers = parser.add_subparsers(dest="command", help="Comandos disponibles")

    # Comando: products
    products_parser = subparsers.add_parser("products", help="Consultar el catálogo")
    products_subparsers = products_parser.add_subparsers(dest="sub_command")

    list_parser = products_subparsers.add_parser("list", help="Listar productos")
    list_parser.add_argument("--source", choices=SUPPORTED_SOURCES, help="Sólo un proveedor")
    list_parser.set_defaults(func=cmd_products_list)

    get_parser = products_subparsers.add_parser("get", help="Ver un producto")
    get_parser.add_argument("product_id", help="ID global, p.ej. gumroad-abc123")
    get_parser.set_defaults(func=cmd_products_get)

    # Comando: cart
    cart_parser = subparsers.add_parser("cart", help="Gestión del carrito")
    cart_subparsers = cart_parser.add_subparsers(dest="sub_command")

    show_parser = cart_subparsers.add_parser("show", help="Ver el carrito")
    show_parser.set_defaults(func=cmd_cart_show)

    add_parser = cart_subparsers.add_parser("add", help="Añadir un producto")
    add_parser.add_argument("product_id")
    add_parser.add_argument("-q", "--quantity", type=int, default=1, metavar="N")
    add_parser.add_argument("--variant", help="ID de la variante seleccionada")
    add_parser.set_defaults(func=cmd_cart_add)

    remove_parser = cart_subparsers.add_parser("remove", help="Quitar un producto")
    remove_parser.add_argument("product_id")
    remove_parser.add_argument("--variant", help="ID de la variante seleccionada")
    remove_parser.set_defaults(func=cmd_cart_remove)

    update_parser = cart_subparsers.add_parser("update", help="Fijar la cantidad")
    update_parser.add_argument("product_id")
    update_parser.add_argument("quantity", type=int, help="Nueva cantidad (0 elimina)")
    update_parser.add_argument("--variant", help="ID de la variante seleccionada")
    update_parser.set_defaults(func=cmd_cart_update)

    clear_parser = cart_subparsers.add_parser("clear", help="Vaciar el carrito")
    clear_parser.set_defaults(func=cmd_cart_clear)

    # Comando: checkout
    checkout_parser = subparsers.add_parser("checkout", help="Pagar el carrito")
    checkout_parser.add_argument(
        "--bundle",
        action="store_true",
        help="Agrupar varios productos de un proveedor en un bundle",
    )
    checkout_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Mostrar el plan sin abrir el navegador",
    )
    checkout_parser.set_defaults(func=cmd_checkout)

    # Comando: wishlist
    wishlist_parser = subparsers.add_parser("wishlist", help="Lista de deseos")
    wishlist_subparsers = wishlist_parser.add_subparsers(dest="sub_command")

    wishlist_show_parser = wishlist_subparsers.add_parser("show", help="Ver la lista")
    wishlist_show_parser.set_defaults(func=cmd_wishlist_show)

    toggle_parser = wishlist_subparsers.add_parser("toggle", help="Añadir o quitar un producto")
    toggle_parser.add_argument("product_id")
    toggle_parser.set_defaults(func=cmd_wishlist_toggle)

    # Comando: serve
    serve_parser = subparsers.add_parser("serve", help="Servir la API HTTP")
    serve_parser.add_argument("--host")
    serve_parser.add_argument("--port", type=int)
    serve_parser.set_defaults(func=cmd_serve)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if not hasattr(args, "func"):
        subparsers.choices[args.command].print_help()
        sys.exit(1)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        args.func(args)
    except KeyboardInterrupt:
        logger.warning("Proceso interrumpido por el usuario")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
