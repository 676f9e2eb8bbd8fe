from datetime import datetime

import pytest

from stockapp.core.errors import AuthenticationError, PermissionDeniedError
from stockapp.core.gate import Gate
from stockapp.core.permissions import has_permission, permissions_for
from stockapp.core.schemas import StaffRole


@pytest.fixture
def gate(app):
    return Gate(app)


@pytest.mark.parametrize("role, permission, allowed", [
    ("Manager", "anything:at-all", True),
    (StaffRole.MANAGER, "staff:delete", True),
    ("Technician", "repairs:read-assigned", True),
    ("Technician", "clients:create-purchase", False),
    ("Inventory Associate", "products:delete", True),
    ("Inventory Associate", "clients:read", False),
    ("Cashier", "clients:create-purchase", True),
    ("Cashier", "staff:delete", False),
    ("Not Assigned", "products:read", False),
    ("Janitor", "products:read", False),
    (None, "products:read", False),
])
def test_has_permission(role, permission, allowed):
    assert has_permission(role, permission) is allowed


def test_not_assigned_has_nothing():
    assert permissions_for("Not Assigned") == frozenset()


def test_require_needs_a_session(gate):
    assert not gate.can("products:read")
    with pytest.raises(AuthenticationError):
        gate.require("products:read")


def test_technician_session(gate, technician_id):
    member = gate.log_in("tina@shop.com", "s3cret")
    assert member.id == technician_id
    assert gate.role == "Technician"
    assert gate.dashboard_variant() == "technician"
    assert gate.can("repairs:create")

    with pytest.raises(PermissionDeniedError) as exc:
        gate.require("staff:delete")
    assert exc.value.role == "Technician"
    assert exc.value.permission == "staff:delete"

    gate.log_out()
    assert gate.user is None
    assert gate.dashboard_variant() == "default"


def test_call_runs_only_when_allowed(gate, app, widget_id, technician_id):
    gate.log_in("tina@shop.com", "s3cret")
    assert gate.call("products:read", app.products.get_by_id, widget_id).name == "Widget"
    with pytest.raises(PermissionDeniedError):
        gate.call("products:delete", app.products.delete, widget_id)
    assert app.products.get_by_id(widget_id).quantity == 10


def test_bad_login_leaves_no_session(gate, technician_id):
    with pytest.raises(AuthenticationError):
        gate.log_in("tina@shop.com", "wrong")
    assert gate.user is None


def test_sign_up_logs_in(gate):
    boss = gate.sign_up({"name": "Boss", "email": "boss@shop.com", "password": "pw"})
    assert boss.role == StaffRole.MANAGER
    assert gate.dashboard_variant() == "manager"
    assert gate.can("staff:delete")

    newbie = Gate(gate.app).sign_up({"name": "New", "email": "new@shop.com", "password": "pw"})
    assert newbie.role == StaffRole.NOT_ASSIGNED


@pytest.mark.parametrize("role, variant", [
    ("Manager", "manager"),
    ("Cashier", "manager"),
    ("Technician", "technician"),
    ("Inventory Associate", "inventory"),
    ("Not Assigned", "default"),
])
def test_dashboard_variant(gate, app, role, variant):
    app.staff.add({"name": "X", "email": "x@shop.com", "role": role, "password": "pw"})
    gate.log_in("x@shop.com", "pw")
    assert gate.dashboard_variant() == variant


@pytest.fixture
def other_tech_id(app):
    return app.staff.add({"name": "Otto Tech", "email": "otto@shop.com", "role": "Technician", "password": "pw"})


@pytest.fixture
def tech_gate(app, technician_id):
    app.gate.log_in("tina@shop.com", "s3cret")
    return app.gate


def test_app_exposes_a_gate(app):
    assert isinstance(app.gate, Gate)
    assert app.gate.app is app
    assert app.gate.user is None


def test_technician_sees_only_own_repairs(app, tech_gate, client_id, technician_id, other_tech_id):
    mine = app.repairs.add({"description": "Mine", "client_id": client_id, "staff_id": technician_id})
    app.repairs.add({"description": "Otto's", "client_id": client_id, "staff_id": other_tech_id})
    app.repairs.add({"description": "Nobody's", "client_id": client_id})

    assert [r.id for r in tech_gate.get_repairs()] == [mine]
    assert [r.id for r in tech_gate.get_client_repairs(client_id)] == [mine]


def test_cashier_sees_every_repair(app, gate, client_id, technician_id):
    app.repairs.add({"description": "A", "client_id": client_id, "staff_id": technician_id})
    app.repairs.add({"description": "B", "client_id": client_id})
    app.staff.add({"name": "Cass", "email": "cass@shop.com", "role": "Cashier", "password": "pw"})
    gate.log_in("cass@shop.com", "pw")
    assert len(gate.get_repairs()) == 2
    assert len(gate.get_client_repairs(client_id)) == 2


def test_inventory_associate_cannot_read_repairs(app, gate):
    app.staff.add({"name": "Ivy", "email": "ivy@shop.com", "role": "Inventory Associate", "password": "pw"})
    gate.log_in("ivy@shop.com", "pw")
    with pytest.raises(PermissionDeniedError):
        gate.get_repairs()


def test_technician_add_is_self_assigned(tech_gate, client_id, technician_id, other_tech_id):
    repair = tech_gate.add_repair({"description": "Hinge", "client_id": client_id, "staff_id": other_tech_id})
    assert repair.staff_id == technician_id

    repair = tech_gate.add_repair({"description": "Fan", "client_id": client_id})
    assert repair.staff_id == technician_id


def test_manager_add_keeps_the_chosen_technician(app, gate, client_id, technician_id):
    app.staff.add({"name": "Boss", "email": "boss@shop.com", "role": "Manager", "password": "pw"})
    gate.log_in("boss@shop.com", "pw")
    repair = gate.add_repair({"description": "Hinge", "client_id": client_id, "staff_id": technician_id})
    assert repair.staff_id == technician_id


def test_technician_updates_only_own_repairs(app, tech_gate, client_id, technician_id, other_tech_id):
    mine = tech_gate.add_repair({"description": "Mine", "client_id": client_id})
    theirs = app.repairs.add({"description": "Theirs", "client_id": client_id, "staff_id": other_tech_id})

    updated = tech_gate.update_repair({**mine.model_dump(), "status": "In Progress", "staff_id": other_tech_id})
    assert updated.status == "In Progress"
    assert updated.staff_id == technician_id

    with pytest.raises(PermissionDeniedError):
        tech_gate.update_repair({**app.repairs.get_by_id(theirs).model_dump(), "status": "Completed"})
    assert app.repairs.get_by_id(theirs).status == "Not Started"


def test_technician_dashboard_uses_the_session(app, tech_gate, clock, client_id, technician_id, other_tech_id):
    app.repairs.add({
        "description": "Late", "client_id": client_id, "staff_id": technician_id,
        "due_date": datetime(2024, 8, 1),
    })
    app.repairs.add({"description": "Otto's", "client_id": client_id, "staff_id": other_tech_id})

    stats = tech_gate.get_technician_stats()
    assert (stats.active_assigned, stats.overdue) == (1, 1)
    assert {p.name: p.value for p in tech_gate.get_technician_work_orders_by_status()} == {"Not Started": 1}
    assert [r.description for r in tech_gate.get_active_repairs()] == ["Late"]


def test_dashboard_needs_a_session(gate):
    with pytest.raises(AuthenticationError):
        gate.get_technician_stats()


def test_profile_changes_only_for_yourself(tech_gate, technician_id, other_tech_id):
    member = tech_gate.update_profile({"id": technician_id, "name": "Tina T.", "email": "tina@shop.com"})
    assert member.name == "Tina T."
    assert tech_gate.user.name == "Tina T."

    with pytest.raises(PermissionDeniedError):
        tech_gate.update_profile({"id": other_tech_id, "name": "Hacked", "email": "otto@shop.com"})
    assert tech_gate.app.staff.get_by_id(other_tech_id).name == "Otto Tech"


def test_password_changes_only_for_yourself(tech_gate, technician_id, other_tech_id):
    with pytest.raises(PermissionDeniedError):
        tech_gate.change_password(other_tech_id, "pw", "owned")
    assert tech_gate.app.staff.verify_password("otto@shop.com", "pw")

    tech_gate.change_password(technician_id, "s3cret", "n3w")
    assert tech_gate.app.staff.verify_password("tina@shop.com", "n3w")
