from datetime import datetime, timedelta

import pytest

from stockapp.main import build_app
from stockapp.storage.db import Database
from stockapp.storage.schema import init_schema


class FakeClock:
    """Callable stand-in for datetime.now that tests can move around."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 8, 20, 10, 0, 0))


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'stockapp-test.db'}")
    init_schema(db)
    yield db
    db.dispose()


@pytest.fixture
def app(database, clock):
    return build_app(database, clock=clock)


@pytest.fixture
def client_id(app):
    return app.clients.add({"name": "John Doe", "id_card": "AB123456", "email": "john@x.com"})


@pytest.fixture
def widget_id(app):
    return app.products.add({"name": "Widget", "quantity": 10, "price": 5.00})


@pytest.fixture
def technician_id(app):
    return app.staff.add({
        "name": "Tina Tech",
        "email": "tina@shop.com",
        "role": "Technician",
        "password": "s3cret",
    })


@pytest.fixture
def supplier_id(app):
    return app.suppliers.add({"name": "Acme Parts", "contact_person": "Ann", "email": "sales@acme.test"})
