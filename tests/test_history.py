def test_newest_event_first(app, clock, client_id, widget_id):
    repair_id = app.repairs.add({"description": "Cracked case", "client_id": client_id})
    clock.advance(days=1)
    purchase_id = app.purchases.create(client_id, [{"product_id": widget_id, "quantity": 2}])

    events = app.history.get()
    assert [(e.type, e.id) for e in events] == [("purchase", purchase_id), ("repair", repair_id)]

    purchase, repair = events
    assert purchase.primary_detail == "2 x Widget"
    assert purchase.secondary_detail is None
    assert purchase.total_price == 10.0
    assert purchase.client_name == "John Doe"
    assert repair.primary_detail == "Cracked case"


def test_events_interleave_by_date(app, clock, client_id, widget_id, technician_id):
    p1 = app.purchases.create(client_id, [{"product_id": widget_id, "quantity": 1}])
    clock.advance(hours=1)
    r1 = app.repairs.add({"description": "One", "client_id": client_id, "staff_id": technician_id})
    clock.advance(hours=1)
    p2 = app.purchases.create(client_id, [{"product_id": widget_id, "quantity": 1}])
    clock.advance(hours=1)
    r2 = app.repairs.add({"description": "Two", "client_id": client_id})

    events = app.history.get()
    assert [(e.type, e.id) for e in events] == [
        ("repair", r2), ("purchase", p2), ("repair", r1), ("purchase", p1),
    ]
    assert events[2].secondary_detail == "Tina Tech"
    dates = [e.event_date for e in events]
    assert dates == sorted(dates, reverse=True)


def test_client_filter(app, clock, client_id, widget_id):
    other_client = app.clients.add({"name": "Jane Roe", "id_card": "CD000002"})
    app.purchases.create(client_id, [{"product_id": widget_id, "quantity": 1}])
    app.repairs.add({"description": "Theirs", "client_id": other_client})

    assert [e.client_name for e in app.history.get(client_id)] == ["John Doe"]
    assert [e.client_name for e in app.history.get(other_client)] == ["Jane Roe"]
    assert len(app.history.get()) == 2


def test_empty_store(app):
    assert app.history.get() == []
