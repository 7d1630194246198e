"""
workflow.py — Core Orchestration Logic for Sale Submission

This module contains the workflow that turns a cart snapshot into a durable sale.
It drives the persistence gateway through three writes in a fixed order.

Workflow Overview:
1. Create the sale record (customer, total) and obtain its id
2. Insert the line items tagged with that sale id
3. Decrement the stock of every sold product, one call per item, in cart order

The store offers no transaction spanning these calls. Every step runs exactly
once per submit() call; a failure stops the workflow and is reported with the
stage that failed. No compensating writes are issued: a sale without line
items, or a partially decremented stock run, is left in place for
reconciliation and is fully described by the raised PersistenceError.
"""

import logging

from .cart import CartAggregator
from .errors import PersistenceError, Stage, ValidationError
from .models import CartSnapshot, SaleRecord

log = logging.getLogger(__name__)


def validate_selection(customer: str, item_count: int):
    """
    Checks the customer and that something was selected.

    Usable before a cart is built, so a request can be rejected without touching the store.

    Raises:
        ValidationError: If the customer is blank or nothing was selected.
    """
    if not customer.strip():
        raise ValidationError("customer required")
    if item_count < 1:
        raise ValidationError("no products selected")


def validate_snapshot(snapshot: CartSnapshot):
    """
    Checks the submission preconditions. Runs before any remote call.

    Raises:
        ValidationError: If the customer is blank, the cart is empty, or a line item
            has a quantity below 1 or a negative unit price.
    """
    validate_selection(snapshot.customer, len(snapshot.items))
    for item in snapshot.items:
        if item.quantity < 1:
            raise ValidationError(f"invalid quantity for product {item.product_id}")
        if item.unit_price < 0:
            raise ValidationError(f"invalid unit price for product {item.product_id}")


class SaleSubmissionWorkflow:
    """
    Executes the three-stage write sequence of a sale.

    Args:
        gateway (PersistenceGateway): The remote store capability. Injected, never
            looked up globally.
    """
    def __init__(self, gateway):
        self.gateway = gateway

    def submit(self, snapshot: CartSnapshot) -> SaleRecord:
        """
        Persists a sale, its line items and the stock decrements.

        Args:
            snapshot (CartSnapshot): Finalized cart content and customer.

        Returns:
            SaleRecord: Id, customer, total and line item count of the new sale.

        Raises:
            ValidationError: Preconditions failed; the gateway was not called.
            PersistenceError: A stage failed. Stages after it did not run.
                - stage "sale": nothing was written.
                - stage "line_items": a sale exists without line items or decrements.
                - stage "stock": sale and line items exist; the products listed in
                  `decremented` were decremented, `product_id` and the ones after it
                  were not.
        """
        validate_snapshot(snapshot)

        customer = snapshot.customer
        total = snapshot.total
        items = snapshot.items
        log_prefix = f"[Sale: {customer}]"

        log.info(f"{log_prefix} Starte Verkauf ({len(items)} Positionen, Summe {total}).")

        # --- 1. Sale ---
        log.info(f"{log_prefix} Schritt 1: Lege Verkauf an...")
        try:
            sale_id = self.gateway.create_sale(customer, total)
        except Exception as e:
            log.error(f"{log_prefix} Abgebrochen: Verkauf konnte nicht angelegt werden. {e}")
            raise PersistenceError(Stage.SALE, cause=e) from e

        log_prefix = f"[Sale: {sale_id}]"
        log.info(f"{log_prefix} Verkauf angelegt.")

        # --- 2. Line items ---
        log.info(f"{log_prefix} Schritt 2: Speichere {len(items)} Positionen...")
        try:
            self.gateway.create_line_items(sale_id, items)
        except Exception as e:
            # Verkauf existiert ohne Positionen und ohne Bestandsbuchung.
            log.critical(f"{log_prefix} Positionen nicht gespeichert! Verkauf ohne Positionen, "
                         f"manueller Abgleich nötig. {e}")
            raise PersistenceError(Stage.LINE_ITEMS, cause=e, sale_id=sale_id) from e

        # --- 3. Stock ---
        log.info(f"{log_prefix} Schritt 3: Aktualisiere Bestand...")
        decremented = []
        for item in items:
            try:
                self.gateway.decrement_stock(item.product_id, item.quantity)
            except Exception as e:
                log.critical(
                    f"{log_prefix} Bestand für {item.product_id} nicht aktualisiert! "
                    f"Bereits gebucht: {decremented or 'keine'}. Manueller Abgleich nötig. {e}"
                )
                raise PersistenceError(
                    Stage.STOCK,
                    cause=e,
                    sale_id=sale_id,
                    product_id=item.product_id,
                    decremented=tuple(decremented),
                ) from e
            decremented.append(item.product_id)
            log.info(f"{log_prefix} Bestand für {item.product_id} um {item.quantity} reduziert.")

        log.info(f"{log_prefix} Verkauf erfolgreich abgeschlossen.")
        return SaleRecord(
            sale_id=sale_id,
            customer=customer,
            total=total,
            line_item_count=len(items),
        )


def complete_sale(cart: CartAggregator, workflow: SaleSubmissionWorkflow) -> SaleRecord:
    """
    Submits the cart and resets it on success.

    On failure the cart is left as it was; the caller decides whether a new
    submission is safe, since stock may already be partially decremented.
    """
    record = workflow.submit(cart.snapshot())
    cart.start()
    return record
