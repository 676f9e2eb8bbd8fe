# stockapp/storage/purchases.py
import logging
from collections import defaultdict
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockapp.core import pricing, schemas
from stockapp.core.errors import (
    InsufficientStockError,
    InvalidInputError,
    NotFoundError,
)
from stockapp.storage import models
from stockapp.utils.logger import operation

log = logging.getLogger(__name__)

P = models.Purchase


def item_summaries(s: Session, purchase_ids) -> dict[int, str]:
    """
    "3 x Widget, 1 x Gadget" per purchase id, in line order.
    Lines whose product was deleted since the sale are kept.
    """
    ids = list(purchase_ids)
    if not ids:
        return {}
    rows = s.execute(
        select(
            models.PurchaseItem.purchase_id,
            models.PurchaseItem.quantity_purchased,
            models.Product.name,
        )
        .join(models.Product, models.Product.id == models.PurchaseItem.product_id, isouter=True)
        .where(models.PurchaseItem.purchase_id.in_(ids))
        .order_by(models.PurchaseItem.purchase_id, models.PurchaseItem.id)
    ).all()
    parts = defaultdict(list)
    for purchase_id, qty, name in rows:
        parts[purchase_id].append(pricing.format_item(name, qty))
    return {pid: ", ".join(lines) for pid, lines in parts.items()}


def summaries(s: Session, stmt) -> list[schemas.PurchaseSummary]:
    """Runs a purchases select (with client_name) and attaches product summaries."""
    rows = [dict(r._mapping) for r in s.execute(stmt).all()]
    summary = item_summaries(s, (r["id"] for r in rows))
    return [schemas.PurchaseSummary(**r, products=summary.get(r["id"], "")) for r in rows]


def purchases_with_client():
    return (
        select(
            P.id, P.client_id, P.purchase_date, P.total_price,
            models.Client.name.label("client_name"),
        )
        .join(models.Client, models.Client.id == P.client_id)
    )


class PurchaseRepository:
    """
    Purchases: creation with stock decrement in one exclusive transaction,
    and the read paths for client history and reports.
    """

    def __init__(self, database, clock=datetime.now):
        self.db = database
        self.clock = clock

    @operation("purchases.create")
    def create(self, client_id: int, items) -> int:
        lines = [schemas.coerce(schemas.PurchaseLine, i) for i in items or []]
        if not lines:
            raise InvalidInputError("A purchase needs at least one item")

        try:
            # BEGIN IMMEDIATE: no other writer between the stock check and the decrement
            with self.db.session_scope(exclusive=True) as s:
                # --- 1. Stock check and price snapshot ---
                products = {}
                remaining = {}
                snapshot = []
                for line in lines:
                    product = products.get(line.product_id)
                    if product is None:
                        product = s.get(models.Product, line.product_id)
                        if product is None:
                            raise InsufficientStockError(line.product_id, None, 0, line.quantity)
                        products[product.id] = product
                        remaining[product.id] = product.quantity
                    if line.quantity > remaining[product.id]:
                        raise InsufficientStockError(
                            product.id, product.name, remaining[product.id], line.quantity
                        )
                    remaining[product.id] -= line.quantity
                    snapshot.append((product, line.quantity, product.price))

                total = pricing.purchase_total((price, qty) for _, qty, price in snapshot)

                # --- 2. Purchase header ---
                purchase = models.Purchase(
                    client_id=client_id,
                    purchase_date=self.clock(),
                    total_price=total,
                )
                s.add(purchase)
                s.flush()

                # --- 3. Lines with the price at sale time ---
                for product, qty, price in snapshot:
                    s.add(
                        models.PurchaseItem(
                            purchase_id=purchase.id,
                            product_id=product.id,
                            quantity_purchased=qty,
                            price_at_purchase=price,
                        )
                    )

                # --- 4. Stock decrement ---
                for product_id, qty in remaining.items():
                    products[product_id].quantity = qty

                s.flush()
                new_id = purchase.id
        except IntegrityError as err:
            raise self.db.constraint_violation(err, P.__table__, {"client_id": client_id}) from err

        log.info(f"Purchase {new_id} created for client {client_id}: {len(lines)} line(s), total {total}")
        return new_id

    @operation("purchases.get_for_client")
    def get_for_client(self, client_id: int) -> list[schemas.PurchaseSummary]:
        with self.db.read_scope() as s:
            stmt = (
                purchases_with_client()
                .where(P.client_id == client_id)
                .order_by(P.purchase_date.desc(), P.id.desc())
            )
            return summaries(s, stmt)

    @operation("purchases.get_by_ids")
    def get_by_ids(self, client_id: int, purchase_ids: list[int]) -> list[schemas.PurchaseSummary]:
        """Selection for a client activity report; ids of other clients are ignored."""
        if not purchase_ids:
            return []
        with self.db.read_scope() as s:
            stmt = (
                purchases_with_client()
                .where(P.client_id == client_id, P.id.in_(purchase_ids))
                .order_by(P.purchase_date.desc(), P.id.desc())
            )
            return summaries(s, stmt)

    @operation("purchases.get_by_id")
    def get_by_id(self, purchase_id: int) -> schemas.PurchaseDetail:
        with self.db.read_scope() as s:
            purchase = s.get(models.Purchase, purchase_id)
            if purchase is None:
                raise NotFoundError("Purchase", purchase_id)
            rows = s.execute(
                select(
                    models.PurchaseItem.id,
                    models.PurchaseItem.product_id,
                    models.Product.name.label("product_name"),
                    models.PurchaseItem.quantity_purchased,
                    models.PurchaseItem.price_at_purchase,
                )
                .join(models.Product, models.Product.id == models.PurchaseItem.product_id, isouter=True)
                .where(models.PurchaseItem.purchase_id == purchase_id)
                .order_by(models.PurchaseItem.id)
            ).all()
            return schemas.PurchaseDetail(
                id=purchase.id,
                client_id=purchase.client_id,
                purchase_date=purchase.purchase_date,
                total_price=purchase.total_price,
                items=[schemas.PurchaseItem.model_validate(dict(r._mapping)) for r in rows],
            )
