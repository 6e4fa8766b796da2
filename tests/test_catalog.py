import unittest

from helpers import FakeHttpClient
from test_normalization import gumroad_record, printify_record

from storefront.catalog import Catalog
from storefront.errors import ProviderAuthError, ProviderHTTPError
from storefront.gumroad import GumroadProvider
from storefront.printify import PrintifyProvider

GUMROAD_PRODUCTS = "https://api.gumroad.com/v2/products"
PRINTIFY_SHOPS = "https://api.printify.com/v1/shops.json"


def printify_page(page):
    return f"https://api.printify.com/v1/shops/7/products.json?limit=50&page={page}"


def gumroad_client(**extra):
    responses = {
        GUMROAD_PRODUCTS: {
            "success": True,
            "products": [
                gumroad_record(),
                gumroad_record(id="hidden", published=False),
                gumroad_record(id="broken", name=None),
            ],
        },
        f"{GUMROAD_PRODUCTS}/abc": {"success": True, "product": gumroad_record()},
    }
    responses.update(extra)
    return FakeHttpClient(responses)


def printify_client(**extra):
    responses = {
        PRINTIFY_SHOPS: [{"id": 7, "title": "Tienda"}],
        printify_page(1): {"data": [printify_record()], "last_page": 2},
        printify_page(2): {
            "data": [printify_record(id="p2"), printify_record(id="p3", visible=False)],
            "last_page": 2,
        },
    }
    responses.update(extra)
    return FakeHttpClient(responses)


class TestProviders(unittest.TestCase):
    def test_gumroad_skips_unpublished_and_broken_records(self):
        provider = GumroadProvider(gumroad_client())

        products, skipped = provider.get_products()

        self.assertEqual([p.id for p in products], ["gumroad-abc"])
        self.assertEqual(skipped, 1)

    def test_gumroad_success_false_raises(self):
        http = FakeHttpClient({GUMROAD_PRODUCTS: {"success": False, "message": "Bad token"}})
        with self.assertRaises(ProviderHTTPError):
            GumroadProvider(http).get_products()

    def test_gumroad_not_found_message_is_none(self):
        http = gumroad_client(**{
            f"{GUMROAD_PRODUCTS}/zzz": {"success": False, "message": "The product was not found."}
        })
        self.assertIsNone(GumroadProvider(http).get_product("zzz"))

    def test_printify_paginates_and_filters_hidden(self):
        http = printify_client()
        provider = PrintifyProvider(http)

        products, skipped = provider.get_products()

        self.assertEqual([p.id for p in products], ["printify-p1", "printify-p2"])
        self.assertEqual(skipped, 0)
        self.assertEqual(provider.shop_id, "7")
        self.assertEqual(http.delays, 1)

    def test_printify_without_shops_raises(self):
        http = FakeHttpClient({PRINTIFY_SHOPS: []})
        with self.assertRaises(ProviderHTTPError):
            PrintifyProvider(http).get_products()

    def test_printify_configured_shop_skips_lookup(self):
        http = printify_client()
        PrintifyProvider(http, shop_id="7").get_products()
        self.assertNotIn(PRINTIFY_SHOPS, http.requested)


class TestCatalog(unittest.TestCase):
    def test_aggregates_all_providers(self):
        catalog = Catalog([GumroadProvider(gumroad_client()), PrintifyProvider(printify_client())])

        result = catalog.get_all_products()

        self.assertEqual(
            [p.id for p in result.products],
            ["gumroad-abc", "printify-p1", "printify-p2"],
        )
        self.assertEqual(result.errors, {})
        self.assertEqual(result.skipped, {"gumroad": 1})

    def test_partial_failure_keeps_other_provider(self):
        failing = FakeHttpClient({PRINTIFY_SHOPS: ProviderAuthError("Status: 401", status_code=401)})
        catalog = Catalog([GumroadProvider(gumroad_client()), PrintifyProvider(failing)])

        result = catalog.get_all_products()

        self.assertEqual([p.id for p in result.products], ["gumroad-abc"])
        self.assertEqual(list(result.errors), ["printify"])
        self.assertIn("401", result.errors["printify"])
        self.assertTrue(result.is_partial)
        self.assertFalse(result.is_total_failure)

    def test_total_failure(self):
        catalog = Catalog([
            GumroadProvider(FakeHttpClient({GUMROAD_PRODUCTS: {"products": "nope"}})),
            PrintifyProvider(FakeHttpClient({PRINTIFY_SHOPS: []})),
        ])

        result = catalog.get_all_products()

        self.assertEqual(result.products, [])
        self.assertEqual(set(result.errors), {"gumroad", "printify"})
        self.assertTrue(result.is_total_failure)

    def test_source_filter(self):
        gumroad_http = gumroad_client()
        catalog = Catalog([GumroadProvider(gumroad_http), PrintifyProvider(printify_client())])

        result = catalog.get_all_products("printify")

        self.assertEqual({p.source for p in result.products}, {"printify"})
        self.assertEqual(gumroad_http.requested, [])

    def test_unknown_source_is_empty(self):
        catalog = Catalog([GumroadProvider(gumroad_client())])

        result = catalog.get_all_products("printify")

        self.assertEqual(result.products, [])
        self.assertEqual(result.errors, {})

    def test_get_product_by_id_routes_on_prefix(self):
        catalog = Catalog([GumroadProvider(gumroad_client())])

        product = catalog.get_product_by_id("gumroad-abc")

        self.assertEqual(product.name, "E-book")

    def test_not_found_is_none(self):
        catalog = Catalog([GumroadProvider(gumroad_client())])

        self.assertIsNone(catalog.get_product_by_id("gumroad-missing"))
        self.assertIsNone(catalog.get_product_by_id("shopify-1"))
        self.assertIsNone(catalog.get_product_by_id("printify-p1"))

    def test_errors_other_than_not_found_propagate(self):
        http = gumroad_client(**{
            f"{GUMROAD_PRODUCTS}/abc": ProviderAuthError("Status: 401", status_code=401)
        })
        catalog = Catalog([GumroadProvider(http)])

        with self.assertRaises(ProviderAuthError):
            catalog.get_product_by_id("gumroad-abc")


if __name__ == "__main__":
    unittest.main()
