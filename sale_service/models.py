"""
models.py — Data Models for Sale Processing

This module defines the data structures used by the cart, the submission workflow
and the persistence gateway. It uses Pydantic models to ensure type safety and
automatic validation of data coming from the remote store.

Models:
    - Product: Catalog entry as read from the remote store.
    - LineItem: One cart entry (product, quantity, captured unit price).
    - CartSnapshot: Immutable copy of a cart handed to the workflow.
    - SaleLineItem: Persisted line item of a sale.
    - Sale: Persisted sale with its line items.
    - SaleRecord: Result of a successful submission.

Remote rows use the store's column names (e.g. 'nombre', 'precio', 'cantidad');
they are accepted as aliases next to the Python field names.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator


def _as_str(value):
    # the store hands out integer or uuid ids depending on the table
    return value if value is None else str(value)


class Product(BaseModel):
    """
    Represents a product of the catalog.

    Attributes:
        id (str): Opaque product identifier assigned by the store.
        name (str): Display name.
        code (str): Product code printed on the sale detail.
        description (str | None): Free text description.
        price (Decimal): Current unit price. Must not be negative.
        stock (int): Units on hand. Must not be negative.
        category (str): Catalog category.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = Field("", alias="nombre")
    code: str = Field("", alias="codigo")
    description: Optional[str] = Field(None, alias="descripcion")
    price: Decimal = Field(..., ge=0, alias="precio")
    stock: int = Field(0, ge=0)
    category: str = Field("", alias="categoria")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        return _as_str(value)


class LineItem(BaseModel):
    """
    Represents a single product entry of a cart.

    Attributes:
        product_id (str): Product identifier, unique within one cart.
        quantity (int): Units sold. Must be greater than zero.
        unit_price (Decimal): Price captured when the product was first added.
        subtotal (Decimal): Always quantity × unit_price.
    """
    model_config = ConfigDict(frozen=True)

    product_id: str
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0)

    @computed_field
    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.unit_price


class CartSnapshot(BaseModel):
    """
    Immutable copy of a cart, taken right before submission.

    Attributes:
        customer (str): Customer identifier as typed by the cashier.
        items (tuple[LineItem, ...]): Line items in insertion order.
        total (Decimal): Sum of all line subtotals.
    """
    model_config = ConfigDict(frozen=True)

    customer: str = ""
    items: Tuple[LineItem, ...] = ()

    @computed_field
    @property
    def total(self) -> Decimal:
        return sum((item.subtotal for item in self.items), Decimal("0"))


class SaleLineItem(BaseModel):
    """
    Represents a line item persisted for a sale.

    The store embeds the referenced product as 'producto'; its name and code
    are flattened into product_name and product_code.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    sale_id: Optional[str] = Field(None, alias="venta_id")
    product_id: Optional[str] = Field(None, alias="producto_id")
    quantity: int = Field(..., gt=0, alias="cantidad")
    unit_price: Decimal = Field(..., ge=0, alias="precio_unitario")
    subtotal: Decimal
    product_name: Optional[str] = None
    product_code: Optional[str] = None

    @field_validator("id", "sale_id", "product_id", mode="before")
    @classmethod
    def coerce_ids(cls, value):
        return _as_str(value)

    @model_validator(mode="before")
    @classmethod
    def flatten_product(cls, data):
        if isinstance(data, dict) and isinstance(data.get("producto"), dict):
            data = dict(data)
            product = data.pop("producto")
            data.setdefault("producto_id", product.get("id"))
            data.setdefault("product_name", product.get("nombre"))
            data.setdefault("product_code", product.get("codigo"))
        return data


class Sale(BaseModel):
    """
    Represents a persisted sale.

    Attributes:
        id (str): Identifier assigned by the store on creation.
        customer (str): Customer identifier.
        created_at (datetime | None): Timestamp assigned by the store.
        total (Decimal): Sale total. Equals the sum of the item subtotals.
        items (List[SaleLineItem]): Persisted line items.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    customer: str = Field(..., alias="cliente")
    created_at: Optional[datetime] = Field(None, alias="fecha")
    total: Decimal
    items: List[SaleLineItem] = Field(default_factory=list, alias="venta_productos")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        return _as_str(value)


class SaleRecord(BaseModel):
    """
    Outcome of a successful submission.

    Attributes:
        sale_id (str): Id of the created sale.
        customer (str): Customer the sale was registered for.
        total (Decimal): Total written to the sale.
        line_item_count (int): Number of line items written.
    """
    sale_id: str
    customer: str
    total: Decimal
    line_item_count: int
