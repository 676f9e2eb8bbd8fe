# stockapp/storage/suppliers.py
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError

from stockapp.core import schemas
from stockapp.core.errors import ConstraintViolationError, NotFoundError
from stockapp.storage import models
from stockapp.storage.db import Database
from stockapp.utils.logger import operation

log = logging.getLogger(__name__)


class SupplierRepository:
    """CRUD over suppliers. A supplier with purchase orders cannot be deleted."""

    def __init__(self, database: Database):
        self.db = database

    @operation("suppliers.get_all")
    def get_all(self) -> list[schemas.Supplier]:
        with self.db.read_scope() as s:
            rows = s.scalars(select(models.Supplier).order_by(models.Supplier.name.asc())).all()
            return [schemas.Supplier.model_validate(r) for r in rows]

    @operation("suppliers.get_by_id")
    def get_by_id(self, supplier_id: int) -> schemas.Supplier:
        with self.db.read_scope() as s:
            supplier = s.get(models.Supplier, supplier_id)
            if supplier is None:
                raise NotFoundError("Supplier", supplier_id)
            return schemas.Supplier.model_validate(supplier)

    @operation("suppliers.add")
    def add(self, data: schemas.SupplierData | dict) -> int:
        data = schemas.coerce(schemas.SupplierData, data)
        with self.db.session_scope() as s:
            supplier = models.Supplier(**data.model_dump())
            s.add(supplier)
            s.flush()
            new_id = supplier.id
        log.info(f"Supplier {new_id} created ({data.name})")
        return new_id

    @operation("suppliers.update")
    def update(self, data: schemas.SupplierUpdate | dict) -> None:
        data = schemas.coerce(schemas.SupplierUpdate, data)
        with self.db.session_scope() as s:
            supplier = s.get(models.Supplier, data.id)
            if supplier is None:
                raise NotFoundError("Supplier", data.id)
            for key, value in data.model_dump().items():
                setattr(supplier, key, value)

    @operation("suppliers.get_purchase_order_count")
    def get_purchase_order_count(self, supplier_id: int) -> int:
        with self.db.read_scope() as s:
            return s.scalar(
                select(func.count(models.PurchaseOrder.id))
                .where(models.PurchaseOrder.supplier_id == supplier_id)
            ) or 0

    @operation("suppliers.delete")
    def delete(self, supplier_id: int) -> None:
        try:
            with self.db.session_scope() as s:
                orders = s.scalar(
                    select(func.count(models.PurchaseOrder.id))
                    .where(models.PurchaseOrder.supplier_id == supplier_id)
                )
                if orders:
                    raise ConstraintViolationError(
                        f"Cannot delete this supplier: it is referenced by {orders} purchase order(s)",
                        field="supplier_id",
                        value=supplier_id,
                    )
                result = s.execute(delete(models.Supplier).where(models.Supplier.id == supplier_id))
                if result.rowcount == 0:
                    raise NotFoundError("Supplier", supplier_id)
        except IntegrityError as err:
            # RESTRICT key on purchase_orders.supplier_id
            raise ConstraintViolationError(
                "Cannot delete this supplier: it is referenced by purchase orders",
                field="supplier_id",
                value=supplier_id,
            ) from err
        log.info(f"Supplier {supplier_id} deleted")
