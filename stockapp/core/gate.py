# stockapp/core/gate.py
import logging

from stockapp.core import schemas
from stockapp.core.errors import AuthenticationError, PermissionDeniedError
from stockapp.core.permissions import has_permission

log = logging.getLogger(__name__)

TECHNICIAN = schemas.StaffRole.TECHNICIAN.value

# Dashboard flavour per role; anything else gets the default one
_DASHBOARDS = {
    schemas.StaffRole.MANAGER.value: "manager",
    schemas.StaffRole.CASHIER.value: "manager",
    TECHNICIAN: "technician",
    schemas.StaffRole.INVENTORY_ASSOCIATE.value: "inventory",
}


class Gate:
    """
    Session holder and permission check in front of the app.

    Repositories assume authorized calls; this is where authorization happens.
    Operations that depend on who is asking (technician scoping, own profile)
    take the staff id from the session, never from the caller.
    """

    def __init__(self, app):
        self.app = app
        self.user: schemas.StaffMember | None = None

    # --- Session ---
    def log_in(self, email: str, password: str) -> schemas.StaffMember:
        self.user = self.app.staff.authenticate(email, password)
        return self.user

    def sign_up(self, data) -> schemas.StaffMember:
        new_id = self.app.staff.sign_up(data)
        self.user = self.app.staff.get_by_id(new_id)
        return self.user

    def log_out(self) -> None:
        if self.user is not None:
            log.info(f"[AUTH] {self.user.email} logged out.")
        self.user = None

    @property
    def role(self) -> str | None:
        return self.user.role.value if self.user else None

    @property
    def is_technician(self) -> bool:
        return self.role == TECHNICIAN

    # --- Checks ---
    def can(self, permission: str) -> bool:
        return self.user is not None and has_permission(self.role, permission)

    def authenticated(self) -> schemas.StaffMember:
        if self.user is None:
            raise AuthenticationError("Authentication required. Please log in again.")
        return self.user

    def deny(self, permission: str):
        log.warning(f"[AUTH] FORBIDDEN: {self.user.email} ({self.role}) attempted '{permission}'")
        raise PermissionDeniedError(self.role, permission)

    def require(self, permission: str) -> schemas.StaffMember:
        self.authenticated()
        if not has_permission(self.role, permission):
            self.deny(permission)
        return self.user

    def call(self, permission: str, fn, *args, **kwargs):
        """Runs fn(*args, **kwargs) after checking the permission."""
        self.require(permission)
        return fn(*args, **kwargs)

    def dashboard_variant(self) -> str:
        return _DASHBOARDS.get(self.role, "default")

    # --- Repairs, scoped by role ---
    def get_repairs(self) -> list[schemas.Repair]:
        """Everything for roles that read all repairs; a technician sees only their own."""
        user = self.authenticated()
        if self.can("repairs:read"):
            return self.app.repairs.get_all()
        if self.can("repairs:read-assigned"):
            return self.app.repairs.get_for_staff(user.id)
        self.deny("repairs:read")

    def get_client_repairs(self, client_id: int) -> list[schemas.Repair]:
        user = self.require("clients:read")
        if self.is_technician:
            return self.app.repairs.get_for_client_by_staff(client_id, user.id)
        return self.app.repairs.get_for_client(client_id)

    def add_repair(self, data) -> schemas.Repair:
        user = self.require("repairs:create")
        data = schemas.coerce(schemas.RepairData, data)
        if self.is_technician:
            data = data.model_copy(update={"staff_id": user.id})
        return self.app.repairs.get_by_id(self.app.repairs.add(data))

    def update_repair(self, data) -> schemas.Repair:
        user = self.authenticated()
        if not (self.can("repairs:update") or self.can("repairs:update-assigned")):
            self.deny("repairs:update")
        data = schemas.coerce(schemas.RepairUpdate, data)
        if self.is_technician:
            if self.app.repairs.get_by_id(data.id).staff_id != user.id:
                self.deny("repairs:update-assigned")
            data = data.model_copy(update={"staff_id": user.id})
        self.app.repairs.update(data)
        return self.app.repairs.get_by_id(data.id)

    # --- Technician dashboard, always for the logged-in member ---
    def get_technician_stats(self) -> schemas.TechnicianStats:
        user = self.require("dashboard:read-limited")
        return self.app.reports.get_technician_stats(user.id)

    def get_technician_work_orders_by_status(self) -> list[schemas.ChartDataPoint]:
        user = self.require("dashboard:read-limited")
        return self.app.reports.get_technician_work_orders_by_status(user.id)

    def get_active_repairs(self) -> list[schemas.ActiveRepair]:
        user = self.require("dashboard:read-limited")
        return self.app.reports.get_active_repairs_for_staff(user.id)

    # --- Own account ---
    def update_profile(self, data) -> schemas.StaffMember:
        user = self.authenticated()
        data = schemas.coerce(schemas.ProfileUpdate, data)
        if data.id != user.id:
            self.deny("staff:update-profile")
        self.app.staff.update_profile(data)
        self.user = self.app.staff.get_by_id(user.id)
        return self.user

    def change_password(self, staff_id: int, old_password: str, new_password: str) -> None:
        user = self.authenticated()
        if staff_id != user.id:
            self.deny("staff:change-password")
        self.app.staff.change_password(user.id, old_password, new_password)
