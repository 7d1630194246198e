"""
main.py — FastAPI Entry Point for the Sale Service

This module provides the REST API of the point-of-sale backend. It sits in front
of the remote data store and runs the sale submission workflow, so that a sale,
its line items and the stock counters are written in a fixed, observable order.

Responsibilities:
    • Accept new sales (customer + products) via HTTP API
    • Build the cart and run the submission workflow (Sale → Line items → Stock)
    • Report stage-tagged failures for reconciliation
    • Expose the read paths of the catalog and the sales ledger
    • Provide system health information
"""

import logging
from typing import List

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .cart import CartAggregator
from .clients import StoreClient
from .errors import GatewayError, NotFoundError, PersistenceError, ValidationError
from .logging_config import setup_logging
from .models import Product, Sale, SaleRecord
from .workflow import SaleSubmissionWorkflow, complete_sale, validate_selection

# Initialization
# Configure logging and initialize FastAPI app
setup_logging()
log = logging.getLogger(__name__)
app = FastAPI(title="Kasse Verkaufsservice")


class SaleItemRequest(BaseModel):
    """
    Represents a single product of a new sale.

    Attributes:
        productId (str): Catalog product identifier.
        quantity (int): Units sold. Must be greater than zero.
    """
    productId: str
    quantity: int = Field(..., gt=0)


class NewSaleRequest(BaseModel):
    """
    Represents a new sale as entered at the point of sale.

    Attributes:
        customer (str): Customer identifier (required non-blank by the workflow).
        items (List[SaleItemRequest]): Products of the sale.
    """
    customer: str = ""
    items: List[SaleItemRequest] = []


def get_gateway():
    """Provides a store client per request and closes it afterwards."""
    gateway = StoreClient()
    try:
        yield gateway
    finally:
        gateway.close()


# Error mapping
@app.exception_handler(ValidationError)
def handle_validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"error": "validation", "message": exc.message})


@app.exception_handler(PersistenceError)
def handle_persistence_error(request: Request, exc: PersistenceError):
    return JSONResponse(
        status_code=502,
        content={
            "error": "persistence",
            "stage": exc.stage.value,
            "saleId": exc.sale_id,
            "productId": exc.product_id,
            "decremented": list(exc.decremented),
            "message": str(exc),
        },
    )


@app.exception_handler(GatewayError)
def handle_gateway_error(request: Request, exc: GatewayError):
    return JSONResponse(status_code=502, content={"error": "store", "message": str(exc)})


@app.exception_handler(NotFoundError)
def handle_not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"error": "not_found", "message": str(exc)})


@app.on_event("startup")
def on_startup():
    log.info("Verkaufsservice startet...")


# API Endpoint: Kasse → Sale Service
@app.post("/v1/sales", status_code=201, response_model=SaleRecord)
def submit_sale(sale: NewSaleRequest, gateway=Depends(get_gateway)):
    """
    Registers a new sale and waits for the complete write sequence.

    Customer and item list are checked first, so a rejected request never
    reaches the store. The catalog is then loaded, the requested products are
    put into a fresh cart (unknown product ids are ignored with a warning,
    repeated ids are summed) and the cart is submitted. The request is
    answered only after all three stages ran, so a failure can be reported with its stage.

    Args:
        sale (NewSaleRequest): Customer and requested products.
        gateway (PersistenceGateway): Store access, injected per request.

    Returns:
        SaleRecord: Id, customer, total and line item count of the new sale.

    Responses:
        422: ValidationError (blank customer, no known products).
        502: PersistenceError with stage, saleId, productId and decremented products.
    """
    log.info(f"[Sale: {sale.customer}] Neuer Verkauf über API erhalten ({len(sale.items)} Positionen).")

    validate_selection(sale.customer, len(sale.items))

    cart = CartAggregator()
    cart.load_catalog(gateway)
    cart.set_customer(sale.customer)

    requested = {}
    for item in sale.items:
        requested[item.productId] = requested.get(item.productId, 0) + item.quantity
    ignored = []
    for product_id, quantity in requested.items():
        cart.add_product_by_id(product_id)
        if product_id in cart:
            cart.update_quantity(product_id, quantity)
        else:
            ignored.append(product_id)
    if ignored:
        log.warning(f"[Sale: {sale.customer}] Unbekannte Produkte ignoriert: {ignored}")

    return complete_sale(cart, SaleSubmissionWorkflow(gateway))


@app.get("/v1/products", response_model=List[Product], response_model_by_alias=False)
def list_products(gateway=Depends(get_gateway)):
    return gateway.list_products()


@app.get("/v1/sales", response_model=List[Sale], response_model_by_alias=False)
def list_sales(gateway=Depends(get_gateway)):
    """Returns all sales, newest first, with their line items."""
    return gateway.list_sales()


@app.get("/v1/sales/{sale_id}", response_model=Sale, response_model_by_alias=False)
def get_sale(sale_id: str, gateway=Depends(get_gateway)):
    return gateway.get_sale(sale_id)


# Health Check Endpoint
@app.get("/health")
def health_check():
    """
    Simple health check endpoint.

    Returns:
        dict: A basic JSON object indicating service availability.
    """
    return {"status": "ok"}
