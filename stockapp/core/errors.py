"""Typed failures raised by the store layer and the gate."""

import re

from sqlalchemy.exc import IntegrityError

_UNIQUE_RE = re.compile(r"UNIQUE constraint failed: (\w+)\.(\w+)")
_NOT_NULL_RE = re.compile(r"NOT NULL constraint failed: (\w+)\.(\w+)")
_CHECK_RE = re.compile(r"CHECK constraint failed: (\w+)")

# Human labels for the unique columns callers can trip over
_FIELD_LABELS = {
    ("clients", "id_card"): "ID card",
    ("staff", "email"): "email",
}


class StockAppError(Exception):
    """Base class for every error surfaced to callers."""


class InvalidInputError(StockAppError, ValueError):
    """Request rejected before it reaches the store (e.g. an order without lines)."""


class ConstraintViolationError(StockAppError):
    """Uniqueness, foreign-key or column constraint violation."""

    def __init__(self, message, field=None, value=None):
        super().__init__(message)
        self.field = field
        self.value = value


class NotFoundError(StockAppError):
    def __init__(self, entity, id):
        super().__init__(f"{entity} {id} not found")
        self.entity = entity
        self.id = id


class InsufficientStockError(StockAppError):
    def __init__(self, product_id, product_name, available, requested):
        name = product_name or f"Product {product_id}"
        super().__init__(
            f"Insufficient stock for {name}: available {available}, requested {requested}"
        )
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested


class OrderStateError(StockAppError):
    """A purchase order transition that its current status does not allow."""

    def __init__(self, order_id, status, action):
        super().__init__(f"Purchase order {order_id} is {status} and cannot be {action}")
        self.order_id = order_id
        self.status = status
        self.action = action


class AuthenticationError(StockAppError):
    def __init__(self, message="Invalid credentials"):
        super().__init__(message)


class PermissionDeniedError(StockAppError):
    def __init__(self, role, permission):
        super().__init__(f"Role '{role}' is not allowed to perform '{permission}'")
        self.role = role
        self.permission = permission


class SchemaInitializationError(StockAppError):
    """The schema could not be created; the application cannot start."""


def is_foreign_key_failure(exc: IntegrityError) -> bool:
    return "FOREIGN KEY constraint failed" in str(exc.orig if exc.orig is not None else exc)


def constraint_violation_from(
    exc: IntegrityError,
    values: dict | None = None,
    broken: dict | None = None,
) -> ConstraintViolationError:
    """
    Translates a raw IntegrityError into a ConstraintViolationError whose
    message names the offending field and value instead of a driver code.

    SQLite does not say which reference failed; `broken` carries the
    references the caller found missing (see Database.broken_references).
    """
    values = values or {}
    raw = str(exc.orig) if exc.orig is not None else str(exc)

    m = _UNIQUE_RE.search(raw)
    if m:
        table, column = m.group(1), m.group(2)
        label = _FIELD_LABELS.get((table, column), column)
        value = values.get(column)
        return ConstraintViolationError(
            f"A record with {label} '{value}' already exists",
            field=column,
            value=value,
        )

    if is_foreign_key_failure(exc):
        refs = broken or {k: v for k, v in values.items() if k.endswith("_id") and v is not None}
        detail = ", ".join(f"{k}={v}" for k, v in refs.items()) or "unknown reference"
        field = next(iter(refs), None)
        return ConstraintViolationError(
            f"Referenced record does not exist ({detail})",
            field=field,
            value=refs.get(field) if field else None,
        )

    m = _NOT_NULL_RE.search(raw)
    if m:
        return ConstraintViolationError(f"{m.group(2)} is required", field=m.group(2))

    m = _CHECK_RE.search(raw)
    if m:
        return ConstraintViolationError(f"A value is out of range ({m.group(1)})")

    return ConstraintViolationError("The change violates a store constraint")
