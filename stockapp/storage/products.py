# stockapp/storage/products.py
import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from stockapp.core import schemas
from stockapp.core.errors import InsufficientStockError, NotFoundError, constraint_violation_from
from stockapp.storage import models
from stockapp.storage.db import Database
from stockapp.utils.logger import operation

log = logging.getLogger(__name__)


class ProductRepository:
    """CRUD over the products table, plus manual stock adjustments."""

    def __init__(self, database: Database):
        self.db = database

    @operation("products.get_all")
    def get_all(self) -> list[schemas.Product]:
        with self.db.read_scope() as s:
            rows = s.scalars(select(models.Product).order_by(models.Product.name.asc())).all()
            return [schemas.Product.model_validate(r) for r in rows]

    @operation("products.get_by_id")
    def get_by_id(self, product_id: int) -> schemas.Product:
        with self.db.read_scope() as s:
            product = s.get(models.Product, product_id)
            if product is None:
                raise NotFoundError("Product", product_id)
            return schemas.Product.model_validate(product)

    @operation("products.add")
    def add(self, data: schemas.ProductData | dict) -> int:
        data = schemas.coerce(schemas.ProductData, data)
        values = data.model_dump()
        try:
            with self.db.session_scope() as s:
                product = models.Product(**values)
                s.add(product)
                s.flush()
                new_id = product.id
        except IntegrityError as err:
            raise constraint_violation_from(err, values) from err
        log.info(f"Product {new_id} created ({data.name}, qty={data.quantity})")
        return new_id

    @operation("products.update")
    def update(self, data: schemas.ProductUpdate | dict) -> None:
        """
        Full replace of name, quantity and price. Purchase lines keep their
        own price snapshot, so a price change never touches sales history.
        """
        data = schemas.coerce(schemas.ProductUpdate, data)
        values = data.model_dump()
        try:
            with self.db.session_scope() as s:
                product = s.get(models.Product, data.id)
                if product is None:
                    raise NotFoundError("Product", data.id)
                for key, value in values.items():
                    setattr(product, key, value)
        except IntegrityError as err:
            raise constraint_violation_from(err, values) from err

    @operation("products.adjust_stock")
    def adjust_stock(self, product_id: int, delta: int) -> schemas.Product:
        """Adds (delta > 0) or removes (delta < 0) units; never below zero."""
        with self.db.session_scope(exclusive=True) as s:
            product = s.get(models.Product, product_id)
            if product is None:
                raise NotFoundError("Product", product_id)
            new_qty = product.quantity + int(delta)
            if new_qty < 0:
                raise InsufficientStockError(product.id, product.name, product.quantity, -int(delta))
            product.quantity = new_qty
            s.flush()
            result = schemas.Product.model_validate(product)
        log.info(f"Stock of product {product_id} adjusted by {delta} -> {result.quantity}")
        return result

    @operation("products.delete")
    def delete(self, product_id: int) -> None:
        """Historical purchase lines survive with product_id set to NULL."""
        with self.db.session_scope() as s:
            result = s.execute(delete(models.Product).where(models.Product.id == product_id))
            if result.rowcount == 0:
                raise NotFoundError("Product", product_id)
        log.info(f"Product {product_id} deleted")
