import json
import tempfile
import unittest
from pathlib import Path

from helpers import make_product

from storefront.cart import AddResult, CartStore, calculate_subtotal
from storefront.errors import CartNotLoadedError
from storefront.models import PRINTIFY
from storefront.storage import CART_STORAGE_KEY, FileStorage, LoadState, MemoryStorage


class TestCartStore(unittest.TestCase):
    def setUp(self):
        self.storage = MemoryStorage()
        self.cart = CartStore(self.storage)
        self.cart.load()

        self.ebook = make_product("a1", name="E-book", price=10.0)
        self.course = make_product("b2", name="Curso", price=25.5)
        self.shirt = make_product(
            "p1", source=PRINTIFY, name="Camiseta", price=20.0,
            variant_prices={"101": 22.5},
        )

    def test_add_new_and_merge_same_identity(self):
        self.assertEqual(self.cart.add_item(self.ebook, 2), AddResult.ADDED)
        self.assertEqual(self.cart.add_item(self.ebook, 3), AddResult.UPDATED)

        self.assertEqual(len(self.cart.items), 1)
        self.assertEqual(self.cart.items[0].quantity, 5)
        self.assertEqual(
            self.cart.notifier.messages(),
            ["E-book added to cart.", "E-book quantity updated in cart."],
        )

    def test_variants_are_separate_lines(self):
        self.cart.add_item(self.shirt, 1, "101")
        self.cart.add_item(self.shirt, 1, None)
        self.cart.add_item(self.shirt, 1, 101)

        keys = [item.key for item in self.cart.items]
        self.assertEqual(keys, [("printify-p1", "101"), ("printify-p1", None)])
        self.assertEqual(len(set(keys)), len(keys))
        self.assertEqual(self.cart.items[0].quantity, 2)

    def test_empty_variant_is_no_variant(self):
        self.cart.add_item(self.ebook, 1, "")
        self.cart.add_item(self.ebook, 1, None)
        self.assertEqual(len(self.cart.items), 1)

    def test_invalid_quantity_raises(self):
        with self.assertRaises(ValueError):
            self.cart.add_item(self.ebook, 0)
        self.assertEqual(self.cart.items, [])

    def test_remove_item(self):
        self.cart.add_item(self.ebook)
        self.cart.add_item(self.course)

        self.assertTrue(self.cart.remove_item("gumroad-a1"))
        self.assertFalse(self.cart.remove_item("gumroad-a1"))
        self.assertEqual([i.product.id for i in self.cart.items], ["gumroad-b2"])

    def test_update_quantity(self):
        self.cart.add_item(self.ebook)

        self.assertTrue(self.cart.update_quantity("gumroad-a1", None, 4))
        self.assertEqual(self.cart.items[0].quantity, 4)
        self.assertFalse(self.cart.update_quantity("gumroad-zz", None, 4))

    def test_zero_or_negative_quantity_removes_line(self):
        self.cart.add_item(self.ebook)
        self.cart.add_item(self.course)

        self.cart.update_quantity("gumroad-a1", None, 0)
        self.cart.update_quantity("gumroad-b2", None, -3)

        self.assertEqual(self.cart.items, [])

    def test_totals_across_heterogeneous_items(self):
        self.cart.add_item(self.ebook, 2)
        self.cart.add_item(self.course, 1)
        self.cart.add_item(self.shirt, 3, "101")
        self.cart.add_item(self.shirt, 1, "missing")

        self.assertAlmostEqual(self.cart.get_cart_total(), 2 * 10.0 + 25.5 + 3 * 22.5 + 20.0)
        self.assertEqual(self.cart.get_item_count(), 7)
        self.assertEqual(calculate_subtotal([]), 0.0)

    def test_items_by_provider_aggregates_by_product(self):
        self.cart.add_item(self.ebook, 1)
        self.cart.add_item(self.shirt, 2, "101")
        self.cart.add_item(self.shirt, 1)
        self.cart.add_item(self.course, 1)

        self.assertEqual(self.cart.get_sources(), ["gumroad", "printify"])

        printify_items = self.cart.get_items_by_provider(PRINTIFY)
        self.assertEqual(len(printify_items), 1)
        self.assertEqual(printify_items[0].quantity, 3)

        printify_items[0].quantity = 99
        self.assertEqual(self.cart.get_item_count(), 5)

        self.assertEqual(len(self.cart.get_items_by_provider("gumroad")), 2)
        self.assertAlmostEqual(self.cart.get_provider_total(PRINTIFY), 2 * 22.5 + 20.0)

    def test_clear_cart(self):
        self.cart.add_item(self.ebook)
        self.cart.clear_cart()

        self.assertEqual(self.cart.items, [])
        self.assertEqual(json.loads(self.storage.get_item(CART_STORAGE_KEY)), [])
        self.assertIn("Cart cleared.", self.cart.notifier.messages())

    def test_every_mutation_is_persisted(self):
        self.cart.add_item(self.ebook, 2)

        stored = json.loads(self.storage.get_item(CART_STORAGE_KEY))
        self.assertEqual(len(stored), 1)
        self.assertEqual(stored[0]["quantity"], 2)
        self.assertEqual(stored[0]["product"]["id"], "gumroad-a1")


class TestCartLoading(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "storage.json"

    def tearDown(self):
        self._tmp.cleanup()

    def test_reload_restores_equal_cart(self):
        cart = CartStore(FileStorage(self.path))
        cart.load()
        cart.add_item(make_product("a1"), 2)
        cart.add_item(make_product("p1", source=PRINTIFY, variant_prices={"7": 5.0}), 1, "7", {"Size": "L"})

        reloaded = CartStore(FileStorage(self.path))
        reloaded.load()

        self.assertEqual(reloaded.items, cart.items)
        self.assertEqual(reloaded.get_cart_total(), cart.get_cart_total())

    def test_corrupted_storage_recovers_empty(self):
        storage = MemoryStorage({CART_STORAGE_KEY: "{not json"})
        cart = CartStore(storage)

        cart.load()

        self.assertEqual(cart.state, LoadState.LOADED)
        self.assertEqual(cart.items, [])
        self.assertIsNone(storage.get_item(CART_STORAGE_KEY))

        cart.add_item(make_product("a1"))
        self.assertEqual(len(json.loads(storage.get_item(CART_STORAGE_KEY))), 1)

    def test_wrong_shape_recovers_empty(self):
        for raw in ('{"items": []}', '[{"quantity": 1}]'):
            with self.subTest(raw=raw):
                cart = CartStore(MemoryStorage({CART_STORAGE_KEY: raw}))
                cart.load()
                self.assertEqual(cart.items, [])

    def test_non_object_lines_recover_empty(self):
        for raw in ('["x"]', '[null]', '[1]'):
            with self.subTest(raw=raw):
                storage = MemoryStorage({CART_STORAGE_KEY: raw})
                cart = CartStore(storage)
                cart.load()

                self.assertEqual(cart.items, [])
                self.assertEqual(cart.state, LoadState.LOADED)
                self.assertIsNone(storage.get_item(CART_STORAGE_KEY))

    def test_corrupted_file_recovers_empty(self):
        self.path.write_text("garbage", encoding="utf-8")

        cart = CartStore(FileStorage(self.path))
        cart.load()

        self.assertEqual(cart.items, [])

    def test_load_merges_duplicates_and_drops_zero_quantities(self):
        line = {"product": make_product("a1").to_dict(), "quantity": 2}
        zero = {"product": make_product("b2").to_dict(), "quantity": 0}
        storage = MemoryStorage({CART_STORAGE_KEY: json.dumps([line, line, zero])})

        cart = CartStore(storage)
        cart.load()

        self.assertEqual(len(cart.items), 1)
        self.assertEqual(cart.items[0].quantity, 4)

    def test_mutation_before_load_raises(self):
        storage = MemoryStorage({CART_STORAGE_KEY: "[]"})
        cart = CartStore(storage)

        self.assertEqual(cart.state, LoadState.UNINITIALIZED)
        self.assertEqual(cart.items, [])
        with self.assertRaises(CartNotLoadedError):
            cart.add_item(make_product("a1"))
        with self.assertRaises(CartNotLoadedError):
            cart.clear_cart()
        self.assertEqual(storage.get_item(CART_STORAGE_KEY), "[]")

    def test_load_does_not_overwrite_stored_cart(self):
        line = {"product": make_product("a1").to_dict(), "quantity": 1}
        storage = MemoryStorage({CART_STORAGE_KEY: json.dumps([line])})

        cart = CartStore(storage)
        cart.load()
        cart.load()

        self.assertEqual(cart.get_item_count(), 1)


if __name__ == "__main__":
    unittest.main()
