"""Pytest fixtures for the sale service: catalog products and a call-counting fake gateway."""

import os
from decimal import Decimal

os.environ.setdefault("SALE_LOG_FILE", os.devnull)

import pytest
from fastapi.testclient import TestClient

from mock_services import mock_store_service
from sale_service.clients import StoreClient
from sale_service.errors import GatewayError, NotFoundError
from sale_service.models import Product, Sale, SaleLineItem


class FakeGateway:
    """
    In-memory persistence gateway that records every write call.

    Reads are recorded separately in `reads`. Failures are injected via
    `fail_reads` (store down for every read), `fail_create_sale`,
    `fail_line_items` and `fail_decrement` (a set of product ids).
    Decrements below zero stock are refused like the real store does.
    """
    def __init__(self, products):
        self.products = {product.id: product for product in products}
        self.stock = {product.id: product.stock for product in products}
        self.sales = {}
        self.calls = []
        self.reads = []
        self.fail_reads = False
        self.fail_create_sale = False
        self.fail_line_items = False
        self.fail_decrement = set()

    def calls_to(self, operation):
        return [args for name, args in self.calls if name == operation]

    def create_sale(self, customer, total):
        self.calls.append(("create_sale", (customer, total)))
        if self.fail_create_sale:
            raise GatewayError("create_sale", "store unavailable", status_code=503)
        sale_id = f"S{len(self.sales) + 1}"
        self.sales[sale_id] = Sale(id=sale_id, customer=customer, total=total)
        return sale_id

    def create_line_items(self, sale_id, items):
        items = list(items)
        self.calls.append(("create_line_items", (sale_id, items)))
        if self.fail_line_items:
            raise GatewayError("create_line_items", "insert rejected", status_code=500)
        self.sales[sale_id].items.extend(
            SaleLineItem(
                sale_id=sale_id,
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=item.unit_price,
                subtotal=item.subtotal,
            )
            for item in items
        )

    def decrement_stock(self, product_id, quantity):
        self.calls.append(("decrement_stock", (product_id, quantity)))
        if product_id in self.fail_decrement:
            raise GatewayError("decrement_stock", "insufficient stock", status_code=400)
        if self.stock.get(product_id, 0) - quantity < 0:
            raise GatewayError("decrement_stock", "insufficient stock", status_code=400)
        self.stock[product_id] -= quantity

    def _read(self, operation):
        self.reads.append(operation)
        if self.fail_reads:
            raise GatewayError(operation, "down", status_code=503)

    def list_products(self):
        self._read("list_products")
        return [
            product.model_copy(update={"stock": self.stock[product.id]})
            for product in sorted(self.products.values(), key=lambda p: p.name)
        ]

    def list_sales(self):
        self._read("list_sales")
        return list(reversed(self.sales.values()))

    def get_sale(self, sale_id):
        self._read("get_sale")
        if sale_id not in self.sales:
            raise NotFoundError(f"sale {sale_id} not found")
        return self.sales[sale_id]


@pytest.fixture
def products():
    return [
        Product(id="P1", name="Café molido", code="CAF-250", price=Decimal("10.00"), stock=20),
        Product(id="P2", name="Azúcar", code="AZU-1K", price=Decimal("5.00"), stock=10),
        Product(id="P3", name="Leche entera", code="LEC-1L", price=Decimal("2.50"), stock=1),
    ]


@pytest.fixture
def gateway(products):
    return FakeGateway(products)


@pytest.fixture
def store():
    mock_store_service.store.reset()
    yield mock_store_service.store
    mock_store_service.store.reset()


@pytest.fixture
def store_client(store):
    with TestClient(mock_store_service.app) as http:
        yield StoreClient(client=http)
