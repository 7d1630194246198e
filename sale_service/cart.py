"""
cart.py — Cart Aggregator for an In-Progress Sale

This module holds the working selection of products and quantities of a single
sale being composed at the point of sale. It is pure in-memory state owned by
one cashier session: no I/O happens here except the explicit catalog load from
an injected persistence gateway.

Invariants:
    - At most one line item per product, kept in insertion order.
    - Every line item has quantity >= 1; an item leaves the cart only by removal.
    - The unit price is captured on the first add and never refreshed from the
      catalog while the item stays in the cart.
    - The total is always recomputed from the line items, never stored.
"""

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from .errors import NotFoundError
from .models import CartSnapshot, LineItem, Product

log = logging.getLogger(__name__)


class CartAggregator:
    """
    Working selection of (product, quantity) pairs for one sale.

    Args:
        catalog (Iterable[Product], optional): Products that can be added by id.
    """
    def __init__(self, catalog: Optional[Iterable[Product]] = None):
        self._catalog: Dict[str, Product] = {}
        self._items: Dict[str, LineItem] = {}
        self._customer = ""
        if catalog is not None:
            self.set_catalog(catalog)

    # --- Catalog ---
    def set_catalog(self, products: Iterable[Product]):
        self._catalog = {product.id: product for product in products}

    def load_catalog(self, gateway) -> List[Product]:
        """
        Refreshes the catalog from the persistence gateway.

        Prices of items already in the cart are not touched.

        Args:
            gateway (PersistenceGateway): Source of the product list.
        Returns:
            List[Product]: The products now available for add_product_by_id().
        """
        products = gateway.list_products()
        self.set_catalog(products)
        log.info(f"[Cart] Katalog geladen: {len(products)} Produkte.")
        return products

    # --- Lifecycle ---
    def start(self):
        """Resets to an empty cart and an empty customer identifier."""
        self._items = {}
        self._customer = ""

    @property
    def customer(self) -> str:
        return self._customer

    def set_customer(self, identifier: str):
        # stored verbatim; emptiness is only rejected on submission
        self._customer = identifier

    # --- Mutations ---
    def add_product(self, product: Product):
        """
        Adds one unit of a product.

        A new product enters with quantity 1 at its current price. A product
        already in the cart has its quantity incremented; the price captured
        on the first add is kept.
        """
        existing = self._items.get(product.id)
        if existing is None:
            self._items[product.id] = LineItem(
                product_id=product.id,
                quantity=1,
                unit_price=product.price,
            )
        else:
            self._items[product.id] = existing.model_copy(
                update={"quantity": existing.quantity + 1}
            )

    def add_product_by_id(self, product_id: str):
        """Adds one unit of a catalog product. Unknown ids are ignored."""
        product = self._catalog.get(product_id)
        if product is None:
            log.warning(f"[Cart] Produkt {product_id} nicht im Katalog, ignoriert.")
            return
        self.add_product(product)

    def update_quantity(self, product_id: str, quantity: int):
        """
        Sets the quantity of an item already in the cart.

        Quantities below 1 are ignored; use remove_product() to drop an item.

        Raises:
            NotFoundError: If the product is not in the cart.
        """
        if quantity < 1:
            return
        existing = self._items.get(product_id)
        if existing is None:
            raise NotFoundError(f"product {product_id} is not in the cart")
        self._items[product_id] = LineItem(
            product_id=product_id,
            quantity=quantity,
            unit_price=existing.unit_price,
        )

    def remove_product(self, product_id: str):
        self._items.pop(product_id, None)

    # --- Queries ---
    def items(self) -> List[LineItem]:
        return list(self._items.values())

    def total(self) -> Decimal:
        return sum((item.subtotal for item in self._items.values()), Decimal("0"))

    def snapshot(self) -> CartSnapshot:
        """Returns an immutable copy of the items and customer for submission."""
        return CartSnapshot(customer=self._customer, items=tuple(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, product_id) -> bool:
        return product_id in self._items
