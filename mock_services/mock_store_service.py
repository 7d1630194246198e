"""
mock_store_service.py — Mock Implementation of the Remote Data Store (REST API)

This module provides a simulated data store for local runs and client tests.
It exposes a FastAPI application that mimics the subset of the store's REST
interface used by the sale service: the 'productos', 'ventas' and
'venta_productos' tables and the 'decrement_product' procedure.

Simulation Scenarios:
    • Customer starting with "fail_sale_" → sale insert fails (HTTP 500)
    • Product id containing "LINE-FAIL" → line item insert fails (HTTP 500)
    • Decrement of an unknown product → HTTP 404
    • Decrement below zero stock → HTTP 400 (stock is never clamped)

Endpoints:
    GET  /rest/v1/productos
    GET  /rest/v1/ventas
    POST /rest/v1/ventas
    POST /rest/v1/venta_productos
    POST /rest/v1/rpc/decrement_product

Port:
    Default: 8002 (HTTP)
"""

import logging
import threading
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

logging.basicConfig(level=logging.INFO)

SEED_PRODUCTS = [
    {"id": "P1", "nombre": "Café molido", "codigo": "CAF-250", "descripcion": "Bolsa 250 g",
     "precio": "10.00", "stock": 20, "categoria": "Bebidas"},
    {"id": "P2", "nombre": "Azúcar", "codigo": "AZU-1K", "descripcion": "Paquete 1 kg",
     "precio": "5.00", "stock": 10, "categoria": "Almacén"},
    {"id": "P3", "nombre": "Leche entera", "codigo": "LEC-1L", "descripcion": "Cartón 1 l",
     "precio": "2.50", "stock": 1, "categoria": "Lácteos"},
]


class SaleInsert(BaseModel):
    """
    Represents a sale row as inserted by the client.

    Attributes:
        cliente (str): Customer identifier.
        total (Decimal): Sale total.
    """
    cliente: str
    total: Decimal


class SaleItemInsert(BaseModel):
    venta_id: str
    producto_id: str
    cantidad: int
    precio_unitario: Decimal
    subtotal: Decimal


class DecrementRequest(BaseModel):
    p_producto_id: str
    p_cantidad: int


class StoreState:
    """
    In-memory tables of the mock store.
    All mutations hold one lock so decrements are atomic under concurrent callers.
    """
    def __init__(self, products: Optional[List[dict]] = None):
        self.lock = threading.Lock()
        self.products: Dict[str, dict] = {}
        self.sales: Dict[str, dict] = {}
        self.sale_items: List[dict] = []
        self.reset(products)

    def reset(self, products: Optional[List[dict]] = None):
        with self.lock:
            rows = SEED_PRODUCTS if products is None else products
            self.products = {row["id"]: dict(row) for row in rows}
            self.sales = {}
            self.sale_items = []

    def sale_row(self, sale: dict) -> dict:
        items = []
        for item in self.sale_items:
            if item["venta_id"] != sale["id"]:
                continue
            product = self.products.get(item["producto_id"], {})
            items.append({
                "id": item["id"],
                "cantidad": item["cantidad"],
                "precio_unitario": item["precio_unitario"],
                "subtotal": item["subtotal"],
                "producto": {
                    "id": item["producto_id"],
                    "nombre": product.get("nombre"),
                    "codigo": product.get("codigo"),
                },
            })
        return {**sale, "venta_productos": items}


store = StoreState()
app = FastAPI(title="Mock Store Service")


@app.get("/rest/v1/productos")
def list_products(order: str = "nombre"):
    """Returns all products, ordered by name."""
    with store.lock:
        rows = [dict(row) for row in store.products.values()]
    return sorted(rows, key=lambda row: row["nombre"])


@app.get("/rest/v1/ventas")
def list_sales(id: Optional[str] = None, order: str = "fecha.desc"):
    """
    Returns sales with their embedded line items.

    Only the filter 'id=eq.<id>' is understood; without it all sales are
    returned, newest first.
    """
    with store.lock:
        sales = list(store.sales.values())
        if id is not None:
            wanted = id[3:] if id.startswith("eq.") else id
            sales = [sale for sale in sales if sale["id"] == wanted]
        rows = [store.sale_row(sale) for sale in sales]
    # insertion order is creation order
    return list(reversed(rows))


@app.post("/rest/v1/ventas", status_code=201)
def create_sales(rows: List[SaleInsert]):
    """
    Inserts sales and returns the created rows (id and fecha assigned here).

    Raises:
        HTTPException(500): If a customer starts with "fail_sale_".
    """
    created = []
    for row in rows:
        if row.cliente.startswith("fail_sale_"):
            logging.warning(f"[STORE] Simuliere Fehler beim Anlegen des Verkaufs für {row.cliente}.")
            raise HTTPException(status_code=500, detail={"message": "could not insert venta"})
        sale = {
            "id": str(uuid.uuid4()),
            "cliente": row.cliente,
            "total": str(row.total),
            "fecha": datetime.now(timezone.utc).isoformat(),
        }
        with store.lock:
            store.sales[sale["id"]] = sale
        logging.info(f"[STORE] Verkauf {sale['id']} für {row.cliente} angelegt.")
        created.append(sale)
    return created


@app.post("/rest/v1/venta_productos", status_code=201)
def create_sale_items(rows: List[SaleItemInsert]):
    """
    Inserts line items, all or nothing.

    Raises:
        HTTPException(409): If a referenced sale does not exist.
        HTTPException(500): If a product id contains "LINE-FAIL".
    """
    with store.lock:
        for row in rows:
            if "LINE-FAIL" in row.producto_id:
                logging.warning(f"[STORE] Simuliere Fehler beim Speichern der Positionen ({row.producto_id}).")
                raise HTTPException(status_code=500, detail={"message": "could not insert venta_productos"})
            if row.venta_id not in store.sales:
                raise HTTPException(status_code=409, detail={"message": f"venta {row.venta_id} does not exist"})
        for row in rows:
            store.sale_items.append({
                "id": str(uuid.uuid4()),
                "venta_id": row.venta_id,
                "producto_id": row.producto_id,
                "cantidad": row.cantidad,
                "precio_unitario": str(row.precio_unitario),
                "subtotal": str(row.subtotal),
            })
    logging.info(f"[STORE] {len(rows)} Positionen gespeichert.")


@app.post("/rest/v1/rpc/decrement_product")
def decrement_product(request: DecrementRequest):
    """
    Atomically decrements the stock of a product.

    Raises:
        HTTPException(404): If the product does not exist.
        HTTPException(400): If the stock would become negative.
    """
    with store.lock:
        product = store.products.get(request.p_producto_id)
        if product is None:
            raise HTTPException(status_code=404, detail={"message": f"producto {request.p_producto_id} not found"})
        remaining = product["stock"] - request.p_cantidad
        if remaining < 0:
            logging.warning(f"[STORE] Bestand für {request.p_producto_id} reicht nicht ({product['stock']}).")
            raise HTTPException(status_code=400, detail={"message": "insufficient stock"})
        product["stock"] = remaining
    logging.info(f"[STORE] Bestand für {request.p_producto_id} jetzt {remaining}.")
    return remaining


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8002)
