"""
This module provides the communication client for the remote managed data store
that backs the point of sale (catalog and sales ledger):
- PersistenceGateway: the narrow interface the cart and the workflow depend on
- StoreClient: implementation over the store's REST interface (PostgREST style)
The client encapsulates the wire format, error handling and connection management.
"""

import logging
import os
from decimal import Decimal
from typing import Iterable, List, Optional, Protocol

import httpx

from .errors import GatewayError, NotFoundError
from .models import LineItem, Product, Sale

# Service-Adresse und Zugang (normalerweise aus Env Vars)
STORE_SERVICE_URL = os.environ.get("STORE_SERVICE_URL", "http://store_service:8002")
STORE_API_KEY = os.environ.get("STORE_API_KEY", "")
STORE_TIMEOUT = float(os.environ.get("STORE_TIMEOUT", "5.0"))

SALE_SELECT = (
    "*,venta_productos(id,cantidad,precio_unitario,subtotal,"
    "producto:productos(id,nombre,codigo))"
)

log = logging.getLogger(__name__)


class PersistenceGateway(Protocol):
    """Operations of the remote store used by the cart and the submission workflow."""

    def create_sale(self, customer: str, total: Decimal) -> str: ...

    def create_line_items(self, sale_id: str, items: Iterable[LineItem]) -> None: ...

    def decrement_stock(self, product_id: str, quantity: int) -> None: ...

    def list_products(self) -> List[Product]: ...

    def list_sales(self) -> List[Sale]: ...

    def get_sale(self, sale_id: str) -> Sale: ...


# --- Store Client (REST) ---
class StoreClient:
    """
    Client for the remote data store (REST API).
    Every call is a single request; nothing is retried here.

    Args:
        client (httpx.Client, optional): Preconfigured HTTP client. When omitted,
            a client for STORE_SERVICE_URL is created and owned by this instance.
    """
    def __init__(self, client: Optional[httpx.Client] = None):
        """
        Initializes the HTTP client with proper timeout configuration.
        """
        self._owns_client = client is None
        if client is None:
            timeout_config = httpx.Timeout(STORE_TIMEOUT, read=8.0)
            client = httpx.Client(base_url=STORE_SERVICE_URL, timeout=timeout_config)
        client.headers.update({
            "apikey": STORE_API_KEY,
            "Authorization": f"Bearer {STORE_API_KEY}",
        })
        self.client = client

    def __del__(self):
        """Closes the HTTP client session."""
        self.close()

    def close(self):
        client = getattr(self, "client", None)
        if self._owns_client and client is not None and not client.is_closed:
            client.close()

    def _request(self, operation: str, method: str, url: str, **kwargs) -> httpx.Response:
        """
        Sends one request and raises GatewayError for transport faults and 4xx/5xx.
        """
        try:
            response = self.client.request(method, url, **kwargs)
            response.raise_for_status()  # Löst HTTPStatusError bei 4xx/5xx aus
            return response
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            log.error(f"[Store] {operation} abgelehnt (HTTP {e.response.status_code}): {message}")
            raise GatewayError(operation, message, status_code=e.response.status_code) from e
        except httpx.TransportError as e:
            # Timeout oder Verbindungsfehler: Ergebnis auf Store-Seite unbekannt.
            log.error(f"[Store] {operation} nicht erreichbar ({type(e).__name__}): {e}")
            raise GatewayError(operation, str(e) or type(e).__name__) from e

    # --- Writes used by the submission workflow ---
    def create_sale(self, customer: str, total: Decimal) -> str:
        """
        Inserts a sale row and returns the id assigned by the store.
        Args:
            customer (str): Customer identifier.
            total (Decimal): Sale total.
        Returns:
            str: The new sale id.
        Raises:
            GatewayError: If the insert fails or no id comes back.
        """
        response = self._request(
            "create_sale", "POST", "/rest/v1/ventas",
            json=[{"cliente": customer, "total": str(total)}],
            headers={"Prefer": "return=representation"},
        )
        rows = response.json()
        if not rows or rows[0].get("id") is None:
            raise GatewayError("create_sale", "store returned no sale id", response.status_code)
        return str(rows[0]["id"])

    def create_line_items(self, sale_id: str, items: Iterable[LineItem]) -> None:
        """
        Bulk inserts the line items of a sale.
        Args:
            sale_id (str): Sale the items belong to.
            items (Iterable[LineItem]): Items to persist.
        Raises:
            GatewayError: If the insert fails.
        """
        payload = [
            {
                "venta_id": sale_id,
                "producto_id": item.product_id,
                "cantidad": item.quantity,
                "precio_unitario": str(item.unit_price),
                "subtotal": str(item.subtotal),
            }
            for item in items
        ]
        self._request("create_line_items", "POST", "/rest/v1/venta_productos", json=payload)

    def decrement_stock(self, product_id: str, quantity: int) -> None:
        """
        Calls the store's atomic decrement procedure.
        The procedure refuses to go below zero stock instead of clamping.
        Raises:
            GatewayError: If the decrement is refused or the call fails.
        """
        response = self._request(
            "decrement_stock", "POST", "/rest/v1/rpc/decrement_product",
            json={"p_producto_id": product_id, "p_cantidad": quantity},
        )
        log.debug(f"[Store] Bestand für {product_id} aktualisiert: {response.text}")

    # --- Read paths ---
    def list_products(self) -> List[Product]:
        response = self._request(
            "list_products", "GET", "/rest/v1/productos",
            params={"select": "*", "order": "nombre"},
        )
        return [Product.model_validate(row) for row in response.json()]

    def list_sales(self) -> List[Sale]:
        response = self._request(
            "list_sales", "GET", "/rest/v1/ventas",
            params={"select": SALE_SELECT, "order": "fecha.desc"},
        )
        return [Sale.model_validate(row) for row in response.json()]

    def get_sale(self, sale_id: str) -> Sale:
        """
        Loads one sale with its line items.
        Raises:
            NotFoundError: If no sale has this id.
            GatewayError: If the call fails.
        """
        response = self._request(
            "get_sale", "GET", "/rest/v1/ventas",
            params={"select": SALE_SELECT, "id": f"eq.{sale_id}"},
        )
        rows = response.json()
        if not rows:
            raise NotFoundError(f"sale {sale_id} not found")
        return Sale.model_validate(rows[0])


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        if isinstance(body.get("detail"), dict):
            body = body["detail"]
        return str(body.get("message") or body.get("detail") or body)
    return str(body)
