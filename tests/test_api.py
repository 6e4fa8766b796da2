import unittest

from fastapi.testclient import TestClient

from helpers import FakeHttpClient, make_product
from test_catalog import GUMROAD_PRODUCTS, gumroad_client

from storefront.api import create_app
from storefront.bundles import GumroadBundleService
from storefront.catalog import Catalog
from storefront.errors import ProviderAuthError, ProviderHTTPError
from storefront.gumroad import GumroadProvider
from storefront.models import PRINTIFY, CartItem


def cart_payload(*items):
    return [item.to_dict() for item in items]


class TestCatalogApi(unittest.TestCase):
    def setUp(self):
        self.catalog = Catalog([GumroadProvider(gumroad_client())])
        self.client = TestClient(create_app(self.catalog))

    def test_list_products(self):
        response = self.client.get("/api/products")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual([p["id"] for p in body["products"]], ["gumroad-abc"])
        self.assertEqual(body["errors"], {})

    def test_list_products_reports_provider_errors(self):
        http = FakeHttpClient({GUMROAD_PRODUCTS: ProviderAuthError("Status: 401", status_code=401)})
        client = TestClient(create_app(Catalog([GumroadProvider(http)])))

        body = client.get("/api/products").json()

        self.assertEqual(body["products"], [])
        self.assertIn("gumroad", body["errors"])

    def test_source_filter(self):
        body = self.client.get("/api/products", params={"source": "printify"}).json()
        self.assertEqual(body, {"products": [], "errors": {}})

    def test_get_product(self):
        response = self.client.get("/api/products/gumroad-abc")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["price"], 19.99)

    def test_get_product_not_found(self):
        for product_id in ("gumroad-missing", "unknown-1"):
            with self.subTest(product_id=product_id):
                response = self.client.get(f"/api/products/{product_id}")
                self.assertEqual(response.status_code, 404)
                self.assertEqual(response.json(), {"error": "Product not found"})


class TestCreateBundleApi(unittest.TestCase):
    def make_client(self, post_response):
        self.http = FakeHttpClient(post_responses={GUMROAD_PRODUCTS: post_response})
        provider = GumroadProvider(self.http)
        app = create_app(Catalog([provider]), GumroadBundleService(provider))
        return TestClient(app)

    def test_creates_bundle(self):
        client = self.make_client({"success": True, "product": {"id": "bnd"}})
        payload = cart_payload(
            CartItem(make_product("a1", name="A"), 2),
            CartItem(make_product("b2", name="B"), 1),
        )

        response = client.post("/api/checkout/create-bundle", json=payload)

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["checkoutUrl"].startswith("https://gumroad.com/l/bnd?"))
        self.assertEqual(body["bundle"]["name"], "Bundle of 2 products")
        self.assertEqual(body["bundle"]["total_price"], 30.0)

    def test_empty_cart_is_400(self):
        client = self.make_client({})

        response = client.post("/api/checkout/create-bundle", json=[])

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Cart is empty"})

    def test_invalid_items_are_400(self):
        client = self.make_client({})

        for payload in ([{"quantity": 1}], [cart_payload(CartItem(make_product("p1", source=PRINTIFY), 1))[0]]):
            with self.subTest(payload=payload):
                response = client.post("/api/checkout/create-bundle", json=payload)
                self.assertEqual(response.status_code, 400)
                self.assertIn("error", response.json())
        self.assertEqual(self.http.posted, [])

    def test_provider_failure_is_502(self):
        client = self.make_client(ProviderHTTPError("Status: 500"))
        payload = cart_payload(CartItem(make_product("a1"), 1))

        response = client.post("/api/checkout/create-bundle", json=payload)

        self.assertEqual(response.status_code, 502)
        self.assertIn("500", response.json()["error"])

    def test_not_configured_is_502(self):
        client = TestClient(create_app(Catalog([])))
        payload = cart_payload(CartItem(make_product("a1"), 1))

        response = client.post("/api/checkout/create-bundle", json=payload)

        self.assertEqual(response.status_code, 502)


if __name__ == "__main__":
    unittest.main()
