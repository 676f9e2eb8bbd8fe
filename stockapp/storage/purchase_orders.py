# stockapp/storage/purchase_orders.py
import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from stockapp.core import pricing, schemas
from stockapp.core.errors import InvalidInputError, NotFoundError, OrderStateError
from stockapp.storage import models
from stockapp.storage.db import Database
from stockapp.utils.logger import operation

log = logging.getLogger(__name__)

PO = models.PurchaseOrder
POI = models.PurchaseOrderItem

RECEIVED = schemas.PurchaseOrderStatus.RECEIVED.value
CANCELLED = schemas.PurchaseOrderStatus.CANCELLED.value


def _orders_with_supplier():
    return (
        select(
            PO.id, PO.supplier_id, PO.status, PO.order_date, PO.expected_date,
            PO.received_date, PO.total_cost,
            models.Supplier.name.label("supplier_name"),
        )
        .join(models.Supplier, models.Supplier.id == PO.supplier_id)
    )


def _items(s, order_id: int) -> list[schemas.PurchaseOrderItem]:
    rows = s.execute(
        select(
            POI.id, POI.product_id, POI.quantity, POI.cost_price,
            models.Product.name.label("product_name"),
        )
        .join(models.Product, models.Product.id == POI.product_id, isouter=True)
        .where(POI.purchase_order_id == order_id)
        .order_by(POI.id)
    ).all()
    return [schemas.PurchaseOrderItem.model_validate(dict(r._mapping)) for r in rows]


class PurchaseOrderRepository:
    """
    Stock intake from suppliers. Orders are created with their cost lines;
    receiving one adds every line to stock, exactly once.
    """

    def __init__(self, database: Database, clock=datetime.now):
        self.db = database
        self.clock = clock

    @operation("purchase_orders.get_all")
    def get_all(self) -> list[schemas.PurchaseOrder]:
        """Newest first, without lines."""
        with self.db.read_scope() as s:
            stmt = _orders_with_supplier().order_by(PO.order_date.desc(), PO.id.desc())
            return [schemas.PurchaseOrder.model_validate(dict(r._mapping)) for r in s.execute(stmt).all()]

    @operation("purchase_orders.get_by_id")
    def get_by_id(self, order_id: int) -> schemas.PurchaseOrder:
        with self.db.read_scope() as s:
            row = s.execute(_orders_with_supplier().where(PO.id == order_id)).first()
            if row is None:
                raise NotFoundError("Purchase order", order_id)
            return schemas.PurchaseOrder(**row._mapping, items=_items(s, order_id))

    @operation("purchase_orders.create")
    def create(self, data: schemas.PurchaseOrderData | dict) -> int:
        data = schemas.coerce(schemas.PurchaseOrderData, data)
        if not data.items:
            raise InvalidInputError("A purchase order needs at least one item")

        total = pricing.purchase_total((line.cost_price, line.quantity) for line in data.items)
        try:
            with self.db.session_scope() as s:
                for line in data.items:
                    if s.get(models.Product, line.product_id) is None:
                        raise NotFoundError("Product", line.product_id)

                order = models.PurchaseOrder(
                    supplier_id=data.supplier_id,
                    status=data.status,
                    order_date=self.clock(),
                    expected_date=data.expected_date,
                    total_cost=total,
                )
                s.add(order)
                s.flush()
                for line in data.items:
                    s.add(
                        models.PurchaseOrderItem(
                            purchase_order_id=order.id,
                            product_id=line.product_id,
                            quantity=line.quantity,
                            cost_price=line.cost_price,
                        )
                    )
                s.flush()
                new_id = order.id
        except IntegrityError as err:
            raise self.db.constraint_violation(err, PO.__table__, {"supplier_id": data.supplier_id}) from err

        log.info(f"Purchase order {new_id} created for supplier {data.supplier_id}: total cost {total}")
        return new_id

    @operation("purchase_orders.receive")
    def receive(self, order_id: int) -> schemas.PurchaseOrder:
        """
        Marks the order Received and adds each line's quantity to stock, in one
        exclusive transaction. Lines whose product was deleted are skipped.
        """
        with self.db.session_scope(exclusive=True) as s:
            order = s.get(models.PurchaseOrder, order_id)
            if order is None:
                raise NotFoundError("Purchase order", order_id)
            if order.status in (RECEIVED, CANCELLED):
                raise OrderStateError(order_id, order.status, "received")

            lines = s.scalars(select(POI).where(POI.purchase_order_id == order_id).order_by(POI.id)).all()
            for line in lines:
                if line.product_id is None:
                    log.warning(f"Purchase order {order_id}: line {line.id} has no product anymore, skipped")
                    continue
                product = s.get(models.Product, line.product_id)
                product.quantity += line.quantity

            order.status = RECEIVED
            order.received_date = self.clock()

        log.info(f"Purchase order {order_id} received: {len(lines)} line(s) into stock")
        return self.get_by_id(order_id)

    @operation("purchase_orders.cancel")
    def cancel(self, order_id: int) -> None:
        with self.db.session_scope() as s:
            order = s.get(models.PurchaseOrder, order_id)
            if order is None:
                raise NotFoundError("Purchase order", order_id)
            if order.status == RECEIVED:
                raise OrderStateError(order_id, order.status, "cancelled")
            order.status = CANCELLED
        log.info(f"Purchase order {order_id} cancelled")
