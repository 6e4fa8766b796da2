"""Dobles de prueba compartidos por los tests."""

from storefront.errors import NotFoundError
from storefront.models import GUMROAD, Product, ProductVariantDetail


class FakeHttpClient:
    """Sustituye a HttpClient devolviendo respuestas fijas por URL."""

    def __init__(self, responses=None, post_responses=None):
        self.responses = dict(responses or {})
        self.post_responses = dict(post_responses or {})
        self.requested = []
        self.posted = []
        self.delays = 0

    def get_json(self, url, use_cache=False, cache_key=None):
        self.requested.append(url)
        if url not in self.responses:
            raise NotFoundError(f"GET {url} - Status: 404", status_code=404)
        response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        return response

    def post_json(self, url, payload):
        self.posted.append((url, payload))
        response = self.post_responses[url]
        if isinstance(response, Exception):
            raise response
        return response

    def delay(self):
        self.delays += 1


class FakeNavigator:
    """Navegador que registra las URLs; puede bloquear algunas."""

    def __init__(self, blocked=()):
        self.opened = []
        self.blocked = set(blocked)

    def open(self, url):
        if any(fragment in url for fragment in self.blocked):
            return False
        self.opened.append(url)
        return True


def make_product(
    native_id="a1",
    source=GUMROAD,
    name="Producto",
    price=10.0,
    purchase_url="default",
    variant_prices=None,
):
    """Crea un Product mínimo para tests de carrito y checkout."""
    if purchase_url == "default":
        purchase_url = f"https://shop.example.com/l/{native_id}"
    details = tuple(
        ProductVariantDetail(option_key=variant_id, price=variant_price, variant_id=variant_id)
        for variant_id, variant_price in (variant_prices or {}).items()
    )
    return Product(
        id=f"{source}-{native_id}",
        source=source,
        name=name,
        description="",
        price=price,
        variant_details=details,
        purchase_url=purchase_url,
    )
