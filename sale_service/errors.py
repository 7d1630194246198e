"""
errors.py — Error Taxonomy for Sale Submission

This module defines the exceptions raised by the cart, the persistence
gateway and the submission workflow.

Taxonomy:
    - ValidationError: caller-fixable, raised before any remote write.
    - PersistenceError: raised by a specific submission stage
      ("sale", "line_items" or "stock"), carrying the context needed
      for manual or automated reconciliation.
    - NotFoundError: a lookup for a cart entry or a sale found nothing.
    - GatewayError: a single call to the remote store failed.
"""

from enum import Enum
from typing import Optional, Tuple


class Stage(str, Enum):
    """The three durable writes of a sale submission, in execution order."""
    SALE = "sale"
    LINE_ITEMS = "line_items"
    STOCK = "stock"


class SubmissionError(Exception):
    """Base class for every failure reported by the submission workflow."""


class ValidationError(SubmissionError):
    """
    The snapshot was rejected before any call to the persistence gateway.

    Attributes:
        message (str): Human readable reason, e.g. "customer required".
    """
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PersistenceError(SubmissionError):
    """
    A stage of the submission failed at the persistence gateway.

    Attributes:
        stage (Stage): The stage that failed.
        sale_id (str | None): Id of the sale created in stage "sale", if any.
        product_id (str | None): Product whose decrement failed (stage "stock" only).
        decremented (tuple[str, ...]): Products already decremented before the failure,
            in cart order.
        cause (Exception | None): The underlying gateway error.
    """
    def __init__(
            self,
            stage: Stage,
            cause: Optional[Exception] = None,
            sale_id: Optional[str] = None,
            product_id: Optional[str] = None,
            decremented: Tuple[str, ...] = (),
    ):
        self.stage = Stage(stage)
        self.cause = cause
        self.sale_id = sale_id
        self.product_id = product_id
        self.decremented = tuple(decremented)
        super().__init__(self._describe())

    def _describe(self) -> str:
        text = f"stage '{self.stage.value}' failed"
        if self.sale_id is not None:
            text += f" (sale {self.sale_id})"
        if self.product_id is not None:
            text += f" at product {self.product_id}"
        if self.cause is not None:
            text += f": {self.cause}"
        return text


class NotFoundError(LookupError):
    """Raised when a product is not in the cart or a sale does not exist."""


class GatewayError(Exception):
    """
    A call to the remote store failed (non-2xx status or transport fault).

    Attributes:
        operation (str): Gateway operation name, e.g. "decrement_stock".
        status_code (int | None): HTTP status, None for transport failures.
        message (str): Error text reported by the store or the transport.
    """
    def __init__(self, operation: str, message: str, status_code: Optional[int] = None):
        self.operation = operation
        self.status_code = status_code
        self.message = message
        status = f"HTTP {status_code}" if status_code is not None else "no response"
        super().__init__(f"{operation} failed ({status}): {message}")
