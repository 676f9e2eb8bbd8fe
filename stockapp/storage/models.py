# stockapp/storage/models.py
# ======================================================
# StockApp ORM models
# Sales side: clients, products, staff, repairs,
# purchases and purchase_items
# Stock intake: suppliers, purchase_orders and
# purchase_order_items
# ======================================================

from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Text,
    ForeignKey, CheckConstraint,
)
from sqlalchemy.orm import relationship

from .db import Base


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    id_card = Column(String, unique=True, nullable=False)
    address = Column(String, nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    picture = Column(Text, nullable=True)

    repairs = relationship("Repair", back_populates="client", passive_deletes=True)
    purchases = relationship("Purchase", back_populates="client", passive_deletes=True)

    def __repr__(self):
        return f"<Client id={self.id} name={self.name}>"


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_products_quantity"),
        CheckConstraint("price >= 0", name="ck_products_price"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=0, server_default="0")
    price = Column(Float, nullable=False)

    def __repr__(self):
        return f"<Product name={self.name} qty={self.quantity} price={self.price}>"


class StaffMember(Base):
    """
    Staff account. `is_available` keeps the 0/1 storage encoding;
    the staff repository is the only place that translates it.
    """
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    role = Column(String, nullable=False, default="Not Assigned", server_default="Not Assigned")
    is_available = Column(Integer, nullable=False, default=1, server_default="1")
    email = Column(String, unique=True, nullable=False)
    phone = Column(String, nullable=True)
    picture = Column(Text, nullable=True)
    password_hash = Column(String, nullable=False)

    repairs = relationship("Repair", back_populates="staff", passive_deletes=True)

    def __repr__(self):
        return f"<StaffMember email={self.email} role={self.role}>"


class Repair(Base):
    """Work order. Client/staff names are joined at read time, never stored here."""
    __tablename__ = "repairs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    description = Column(Text, nullable=False)
    status = Column(String, nullable=False, default="Not Started", server_default="Not Started")
    priority = Column(String, nullable=False, default="Medium", server_default="Medium")
    request_date = Column(DateTime, nullable=False)
    due_date = Column(DateTime, nullable=True)
    total_price = Column(Float, nullable=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    staff_id = Column(Integer, ForeignKey("staff.id", ondelete="SET NULL"), nullable=True, index=True)

    client = relationship("Client", back_populates="repairs")
    staff = relationship("StaffMember", back_populates="repairs")

    def __repr__(self):
        return f"<Repair id={self.id} status={self.status} client={self.client_id}>"


class Purchase(Base):
    __tablename__ = "purchases"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    purchase_date = Column(DateTime, nullable=False)
    total_price = Column(Float, nullable=False)

    client = relationship("Client", back_populates="purchases")
    items = relationship("PurchaseItem", back_populates="purchase", passive_deletes=True)

    def __repr__(self):
        return f"<Purchase id={self.id} client={self.client_id} total={self.total_price}>"


class PurchaseItem(Base):
    """
    One line of a purchase. `price_at_purchase` is the product price at
    sale time and is never rewritten afterwards.
    """
    __tablename__ = "purchase_items"
    __table_args__ = (
        CheckConstraint("quantity_purchased > 0", name="ck_purchase_items_quantity"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    purchase_id = Column(Integer, ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    quantity_purchased = Column(Integer, nullable=False)
    price_at_purchase = Column(Float, nullable=False)

    purchase = relationship("Purchase", back_populates="items")
    product = relationship("Product")

    def __repr__(self):
        return f"<PurchaseItem purchase={self.purchase_id} product={self.product_id} qty={self.quantity_purchased}>"


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    contact_person = Column(String, nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)

    purchase_orders = relationship("PurchaseOrder", back_populates="supplier", passive_deletes=True)

    def __repr__(self):
        return f"<Supplier id={self.id} name={self.name}>"


class PurchaseOrder(Base):
    """Stock ordered from a supplier. Receiving it puts the quantities into stock."""
    __tablename__ = "purchase_orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # RESTRICT: a supplier with orders cannot be deleted
    supplier_id = Column(Integer, ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False, index=True)
    status = Column(String, nullable=False, default="Pending", server_default="Pending")
    order_date = Column(DateTime, nullable=False)
    expected_date = Column(DateTime, nullable=True)
    received_date = Column(DateTime, nullable=True)
    total_cost = Column(Float, nullable=False)

    supplier = relationship("Supplier", back_populates="purchase_orders")
    items = relationship("PurchaseOrderItem", back_populates="purchase_order", passive_deletes=True)

    def __repr__(self):
        return f"<PurchaseOrder id={self.id} supplier={self.supplier_id} status={self.status}>"


class PurchaseOrderItem(Base):
    __tablename__ = "purchase_order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_purchase_order_items_quantity"),
        CheckConstraint("cost_price >= 0", name="ck_purchase_order_items_cost"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    purchase_order_id = Column(
        Integer, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    quantity = Column(Integer, nullable=False)
    cost_price = Column(Float, nullable=False)

    purchase_order = relationship("PurchaseOrder", back_populates="items")
    product = relationship("Product")

    def __repr__(self):
        return f"<PurchaseOrderItem order={self.purchase_order_id} product={self.product_id} qty={self.quantity}>"
