# stockapp/core/schemas.py
# Input and read models exchanged with callers.

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StaffRole(str, Enum):
    MANAGER = "Manager"
    TECHNICIAN = "Technician"
    INVENTORY_ASSOCIATE = "Inventory Associate"
    CASHIER = "Cashier"
    NOT_ASSIGNED = "Not Assigned"


class RepairStatus(str, Enum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    ON_HOLD = "On Hold"
    COMPLETED = "Completed"


class RepairPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


class PurchaseOrderStatus(str, Enum):
    PENDING = "Pending"
    ORDERED = "Ordered"
    RECEIVED = "Received"
    CANCELLED = "Cancelled"


class _InputModel(BaseModel):
    # enums are stored as their plain string values
    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class _ReadModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# --- Clients ---
class ClientData(_InputModel):
    name: str = Field(..., min_length=1)
    id_card: str = Field(..., min_length=1)
    address: str | None = None
    email: str | None = None
    phone: str | None = None
    picture: str | None = None


class ClientUpdate(ClientData):
    id: int


class Client(_ReadModel):
    id: int
    name: str
    id_card: str
    address: str | None = None
    email: str | None = None
    phone: str | None = None
    picture: str | None = None


# --- Products ---
class ProductData(_InputModel):
    name: str = Field(..., min_length=1)
    quantity: int = Field(0, ge=0)
    price: float = Field(..., ge=0)


class ProductUpdate(ProductData):
    id: int


class Product(_ReadModel):
    id: int
    name: str
    quantity: int
    price: float


# --- Staff ---
class StaffData(_InputModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    role: StaffRole = StaffRole.NOT_ASSIGNED
    is_available: bool = True
    phone: str | None = None
    picture: str | None = None
    password: str = Field(..., min_length=1)


class StaffUpdate(_InputModel):
    id: int
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    role: StaffRole
    is_available: bool
    phone: str | None = None
    picture: str | None = None


class SignUpData(_InputModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: str | None = None
    password: str = Field(..., min_length=1)


class ProfileUpdate(_InputModel):
    id: int
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: str | None = None


class StaffMember(_ReadModel):
    id: int
    name: str
    role: StaffRole
    is_available: bool
    email: str
    phone: str | None = None
    picture: str | None = None


# --- Repairs ---
class RepairData(_InputModel):
    description: str = Field(..., min_length=1)
    status: RepairStatus = RepairStatus.NOT_STARTED
    priority: RepairPriority = RepairPriority.MEDIUM
    due_date: datetime | None = None
    total_price: float | None = Field(None, ge=0)
    client_id: int
    staff_id: int | None = None

    @field_validator("staff_id", mode="before")
    @classmethod
    def _unassigned(cls, value):
        # The UI posts 0 for "unassigned"
        if value in (0, "0", ""):
            return None
        return value


class RepairUpdate(RepairData):
    id: int


class Repair(_ReadModel):
    id: int
    description: str
    status: RepairStatus
    priority: RepairPriority
    request_date: datetime
    due_date: datetime | None = None
    total_price: float | None = None
    client_id: int
    staff_id: int | None = None
    client_name: str | None = None
    client_location: str | None = None
    staff_name: str | None = None


# --- Purchases ---
class PurchaseLine(_InputModel):
    product_id: int
    quantity: int = Field(..., gt=0)


class PurchaseItem(_ReadModel):
    id: int
    product_id: int | None = None
    product_name: str | None = None
    quantity_purchased: int
    price_at_purchase: float


class PurchaseSummary(_ReadModel):
    id: int
    client_id: int
    client_name: str | None = None
    purchase_date: datetime
    total_price: float
    products: str = ""


class PurchaseDetail(_ReadModel):
    id: int
    client_id: int
    purchase_date: datetime
    total_price: float
    items: list[PurchaseItem] = []


# --- Suppliers ---
class SupplierData(_InputModel):
    name: str = Field(..., min_length=1)
    contact_person: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None


class SupplierUpdate(SupplierData):
    id: int


class Supplier(_ReadModel):
    id: int
    name: str
    contact_person: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None


# --- Purchase orders ---
class PurchaseOrderLine(_InputModel):
    product_id: int
    quantity: int = Field(..., gt=0)
    cost_price: float = Field(..., ge=0)


class PurchaseOrderData(_InputModel):
    supplier_id: int
    # Received is reached only through receive()
    status: PurchaseOrderStatus = PurchaseOrderStatus.PENDING
    expected_date: datetime | None = None
    items: list[PurchaseOrderLine] = []

    @field_validator("status")
    @classmethod
    def _not_received(cls, value):
        if value == PurchaseOrderStatus.RECEIVED.value:
            raise ValueError("a new purchase order cannot start as Received")
        return value


class PurchaseOrderItem(_ReadModel):
    id: int
    product_id: int | None = None
    product_name: str | None = None
    quantity: int
    cost_price: float


class PurchaseOrder(_ReadModel):
    id: int
    supplier_id: int
    supplier_name: str | None = None
    status: PurchaseOrderStatus
    order_date: datetime
    expected_date: datetime | None = None
    received_date: datetime | None = None
    total_cost: float
    items: list[PurchaseOrderItem] = []


# --- History ---
class HistoryEvent(BaseModel):
    type: str
    id: int
    event_date: datetime
    client_name: str | None = None
    primary_detail: str
    secondary_detail: str | None = None
    total_price: float | None = None


# --- Dashboard ---
class DashboardStats(BaseModel):
    total_clients: int = 0
    total_staff: int = 0
    total_repairs: int = 0
    total_sales: float = 0.0
    stock_value: float = 0.0
    out_of_stock_count: int = 0
    stock_to_sales_ratio: float = 0.0


class ChartDataPoint(BaseModel):
    name: str
    value: int


class DailySalesPoint(BaseModel):
    date: str
    total_sales: float


class TechnicianStats(BaseModel):
    active_assigned: int = 0
    overdue: int = 0
    total_completed: int = 0


class ActiveRepair(_ReadModel):
    id: int
    description: str
    priority: RepairPriority
    status: RepairStatus
    due_date: datetime | None = None
    client_name: str | None = None


class InventoryStats(BaseModel):
    total_skus: int = 0
    total_units: int = 0
    stock_value: float = 0.0
    low_stock_count: int = 0
    out_of_stock_count: int = 0


def coerce(model_cls, data):
    """Validates dicts or other models (e.g. a fetched read model) into model_cls."""
    if isinstance(data, BaseModel) and not isinstance(data, model_cls):
        data = data.model_dump()
    return model_cls.model_validate(data)
