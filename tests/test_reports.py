from datetime import date, datetime

import pytest


@pytest.fixture
def reports(app):
    return app.reports


def test_stats_without_sales(app, reports, client_id, widget_id, technician_id):
    stats = reports.get_stats()
    assert stats.total_clients == 1
    assert stats.total_staff == 1
    assert stats.total_repairs == 0
    assert stats.total_sales == 0
    assert stats.stock_value == 50.0
    assert stats.out_of_stock_count == 0
    assert stats.stock_to_sales_ratio == 0


def test_stats_with_sales(app, reports, client_id, widget_id):
    app.products.add({"name": "Empty shelf", "quantity": 0, "price": 3})
    app.purchases.create(client_id, [{"product_id": widget_id, "quantity": 2}])

    stats = reports.get_stats()
    assert stats.total_sales == 10.0
    assert stats.stock_value == 40.0
    assert stats.out_of_stock_count == 1
    assert stats.stock_to_sales_ratio == 4.0


def test_empty_store_has_zeroes(reports):
    stats = reports.get_stats()
    assert stats.model_dump() == {
        "total_clients": 0,
        "total_staff": 0,
        "total_repairs": 0,
        "total_sales": 0,
        "stock_value": 0,
        "out_of_stock_count": 0,
        "stock_to_sales_ratio": 0,
    }
    assert reports.get_daily_sales() == []
    assert reports.get_work_orders_by_status() == []
    assert reports.get_inventory_stats().total_units == 0


def test_work_orders_grouped(app, reports, client_id):
    for status, priority in [
        ("Not Started", "High"),
        ("Not Started", "Low"),
        ("Completed", "High"),
    ]:
        app.repairs.add({"description": "x", "client_id": client_id, "status": status, "priority": priority})

    by_status = {p.name: p.value for p in reports.get_work_orders_by_status()}
    by_priority = {p.name: p.value for p in reports.get_work_orders_by_priority()}
    assert by_status == {"Completed": 1, "Not Started": 2}
    assert by_priority == {"High": 2, "Low": 1}


def test_daily_sales_only_days_with_purchases(app, reports, clock, client_id, widget_id):
    clock.now = datetime(2024, 8, 15, 9, 0)
    app.purchases.create(client_id, [{"product_id": widget_id, "quantity": 1}])
    clock.now = datetime(2024, 8, 18, 12, 0)
    app.purchases.create(client_id, [{"product_id": widget_id, "quantity": 2}])
    clock.now = datetime(2024, 8, 18, 17, 30)
    app.purchases.create(client_id, [{"product_id": widget_id, "quantity": 1}])
    # outside the trailing window
    clock.now = datetime(2024, 8, 1, 12, 0)
    app.purchases.create(client_id, [{"product_id": widget_id, "quantity": 1}])

    points = reports.get_daily_sales(days=7, today=date(2024, 8, 20))
    assert [(p.date, p.total_sales) for p in points] == [
        ("2024-08-15", 5.0),
        ("2024-08-18", 15.0),
    ]


def test_recent_lists(app, reports, clock, client_id, widget_id):
    purchase_ids = []
    repair_ids = []
    for _ in range(6):
        purchase_ids.append(app.purchases.create(client_id, [{"product_id": widget_id, "quantity": 1}]))
        repair_ids.append(app.repairs.add({"description": "x", "client_id": client_id}))
        clock.advance(minutes=1)

    recent_purchases = reports.get_recent_purchases()
    assert [p.id for p in recent_purchases] == purchase_ids[::-1][:5]
    assert recent_purchases[0].client_name == "John Doe"
    assert recent_purchases[0].products == "1 x Widget"
    assert [r.id for r in reports.get_recent_repairs(limit=2)] == repair_ids[::-1][:2]


def test_technician_dashboard(app, reports, clock, client_id, technician_id):
    overdue = app.repairs.add({
        "description": "Late", "client_id": client_id, "staff_id": technician_id,
        "status": "In Progress", "due_date": datetime(2024, 8, 19),
    })
    upcoming = app.repairs.add({
        "description": "Soon", "client_id": client_id, "staff_id": technician_id,
        "due_date": datetime(2024, 8, 30),
    })
    undated = app.repairs.add({"description": "Whenever", "client_id": client_id, "staff_id": technician_id})
    app.repairs.add({
        "description": "Done", "client_id": client_id, "staff_id": technician_id,
        "status": "Completed", "due_date": datetime(2024, 8, 1),
    })
    app.repairs.add({"description": "Not mine", "client_id": client_id})

    stats = reports.get_technician_stats(technician_id, now=clock.now)
    assert (stats.active_assigned, stats.overdue, stats.total_completed) == (3, 1, 1)

    by_status = {p.name: p.value for p in reports.get_technician_work_orders_by_status(technician_id)}
    assert by_status == {"Completed": 1, "In Progress": 1, "Not Started": 2}

    active = reports.get_active_repairs_for_staff(technician_id)
    assert [r.id for r in active] == [overdue, upcoming, undated]
    assert active[0].client_name == "John Doe"


def test_inventory_dashboard(app, reports, widget_id):
    app.products.add({"name": "Cable", "quantity": 3, "price": 2})
    app.products.add({"name": "Adapter", "quantity": 3, "price": 4})
    app.products.add({"name": "Battery", "quantity": 0, "price": 10})

    stats = reports.get_inventory_stats(threshold=5)
    assert stats.total_skus == 4
    assert stats.total_units == 16
    assert stats.stock_value == 68.0
    assert stats.low_stock_count == 3
    assert stats.out_of_stock_count == 1

    low = reports.get_low_stock_products(threshold=5)
    assert [p.name for p in low] == ["Battery", "Adapter", "Cable"]
    assert [p.name for p in reports.get_low_stock_products(threshold=0)] == ["Battery"]


def test_defaults_follow_the_app_clock(app, reports, clock, client_id, widget_id, technician_id):
    app.purchases.create(client_id, [{"product_id": widget_id, "quantity": 1}])
    app.repairs.add({
        "description": "Due in a few days", "client_id": client_id, "staff_id": technician_id,
        "due_date": datetime(2024, 8, 25),
    })

    assert [p.date for p in reports.get_daily_sales()] == ["2024-08-20"]
    assert reports.get_technician_stats(technician_id).overdue == 0

    clock.advance(days=10)
    assert reports.get_technician_stats(technician_id).overdue == 1
    assert reports.get_daily_sales() == []
