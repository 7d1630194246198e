from decimal import Decimal

import pytest

from sale_service.cart import CartAggregator
from sale_service.errors import NotFoundError
from sale_service.models import Product


@pytest.fixture
def cart(products):
    return CartAggregator(catalog=products)


def _expected_total(cart):
    return sum((item.quantity * item.unit_price for item in cart.items()), Decimal("0"))


def test_new_cart_is_empty(cart):
    assert len(cart) == 0
    assert cart.customer == ""
    assert cart.total() == Decimal("0")


def test_add_product_starts_with_quantity_one(cart, products):
    cart.add_product(products[0])

    [item] = cart.items()
    assert item.product_id == "P1"
    assert item.quantity == 1
    assert item.unit_price == Decimal("10.00")
    assert item.subtotal == Decimal("10.00")


def test_adding_same_product_twice_increments_quantity(cart, products):
    cart.add_product(products[0])
    cart.add_product(products[0])

    assert len(cart) == 1
    assert cart.items()[0].quantity == 2
    assert cart.items()[0].subtotal == Decimal("20.00")


def test_price_captured_on_first_add_is_kept(cart, products):
    cart.add_product(products[0])
    repriced = products[0].model_copy(update={"price": Decimal("12.00")})

    cart.add_product(repriced)

    item = cart.items()[0]
    assert item.unit_price == Decimal("10.00")
    assert item.subtotal == Decimal("20.00")


def test_add_product_by_id_ignores_unknown_ids(cart):
    cart.add_product_by_id("P1")
    cart.add_product_by_id("NOPE")

    assert [item.product_id for item in cart.items()] == ["P1"]


def test_items_keep_insertion_order(cart):
    for product_id in ("P2", "P1", "P3", "P2"):
        cart.add_product_by_id(product_id)

    assert [item.product_id for item in cart.items()] == ["P2", "P1", "P3"]


def test_update_quantity_recomputes_subtotal(cart):
    cart.add_product_by_id("P2")

    cart.update_quantity("P2", 4)

    assert cart.items()[0].quantity == 4
    assert cart.items()[0].subtotal == Decimal("20.00")


@pytest.mark.parametrize("quantity", [0, -1])
def test_update_quantity_below_one_leaves_cart_unchanged(cart, quantity):
    cart.add_product_by_id("P1")
    cart.update_quantity("P1", 3)
    before = cart.snapshot()

    cart.update_quantity("P1", quantity)

    assert cart.snapshot() == before


def test_update_quantity_for_missing_product_fails(cart):
    with pytest.raises(NotFoundError):
        cart.update_quantity("P1", 2)


def test_remove_product(cart):
    cart.add_product_by_id("P1")
    cart.add_product_by_id("P2")

    cart.remove_product("P1")
    cart.remove_product("P1")

    assert "P1" not in cart
    assert [item.product_id for item in cart.items()] == ["P2"]


def test_total_matches_line_items_after_mixed_operations(cart):
    cart.add_product_by_id("P1")
    cart.add_product_by_id("P2")
    cart.add_product_by_id("P1")
    assert cart.total() == _expected_total(cart) == Decimal("25.00")

    cart.update_quantity("P2", 3)
    assert cart.total() == _expected_total(cart) == Decimal("35.00")

    cart.add_product_by_id("P3")
    cart.remove_product("P1")
    assert cart.total() == _expected_total(cart) == Decimal("17.50")

    # pure: repeated calls agree
    assert cart.total() == cart.total()


def test_snapshot_is_a_copy(cart):
    cart.set_customer("Ana")
    cart.add_product_by_id("P1")

    snapshot = cart.snapshot()
    cart.add_product_by_id("P2")
    cart.set_customer("Luis")

    assert snapshot.customer == "Ana"
    assert [item.product_id for item in snapshot.items] == ["P1"]
    assert snapshot.total == Decimal("10.00")
    assert len(cart) == 2


def test_set_customer_stores_value_verbatim(cart):
    cart.set_customer("  ")
    assert cart.customer == "  "


def test_start_resets_items_and_customer(cart):
    cart.set_customer("Ana")
    cart.add_product_by_id("P1")

    cart.start()

    assert len(cart) == 0
    assert cart.customer == ""


def test_load_catalog_reads_from_gateway(gateway):
    cart = CartAggregator()
    cart.add_product_by_id("P1")
    assert len(cart) == 0

    products = cart.load_catalog(gateway)
    cart.add_product_by_id("P1")

    assert {product.id for product in products} == {"P1", "P2", "P3"}
    assert "P1" in cart


def test_unit_price_is_copied_without_rounding(cart):
    cart.add_product(Product(id="X", price=Decimal("0.125")))
    cart.add_product(Product(id="X", price=Decimal("0.125")))

    item = cart.items()[0]
    assert item.unit_price == Decimal("0.125")
    assert item.subtotal == Decimal("0.250")
    assert cart.snapshot().total == Decimal("0.25")
