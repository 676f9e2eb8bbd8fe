import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime

from stockapp.core.gate import Gate
from stockapp.core.history import HistoryService
from stockapp.core.reports import ReportService
from stockapp.storage.clients import ClientRepository
from stockapp.storage.db import Database
from stockapp.storage.products import ProductRepository
from stockapp.storage.purchase_orders import PurchaseOrderRepository
from stockapp.storage.purchases import PurchaseRepository
from stockapp.storage.repairs import RepairRepository
from stockapp.storage.schema import init_schema
from stockapp.storage.staff import StaffRepository
from stockapp.storage.suppliers import SupplierRepository
from stockapp.utils.logger import configure_logging

log = logging.getLogger(__name__)


@dataclass
class StockApp:
    """
    Everything the UI layer talks to, wired around one store handle.
    `gate` holds the logged-in member and enforces permissions.
    """
    database: Database
    clients: ClientRepository
    products: ProductRepository
    staff: StaffRepository
    repairs: RepairRepository
    purchases: PurchaseRepository
    reports: ReportService
    history: HistoryService
    suppliers: SupplierRepository
    purchase_orders: PurchaseOrderRepository
    gate: Gate = field(init=False, repr=False)

    def __post_init__(self):
        self.gate = Gate(self)


def build_app(database: Database, clock=datetime.now) -> StockApp:
    return StockApp(
        database=database,
        clients=ClientRepository(database),
        products=ProductRepository(database),
        staff=StaffRepository(database),
        repairs=RepairRepository(database, clock=clock),
        purchases=PurchaseRepository(database, clock=clock),
        reports=ReportService(database, clock=clock),
        history=HistoryService(database),
        suppliers=SupplierRepository(database),
        purchase_orders=PurchaseOrderRepository(database, clock=clock),
    )


# --- Lifespan ---
@contextmanager
def lifespan(database_url: str | None = None, clock=datetime.now):
    """
    Opens the store, makes sure the schema exists and yields the wired app.
    A schema failure is fatal: the store is closed and the error propagates.
    """
    configure_logging()
    database = Database(database_url)
    try:
        init_schema(database)
        log.info("[startup] Store initialized, tables created if missing.")
        yield build_app(database, clock=clock)
    finally:
        database.dispose()
        log.info("[shutdown] StockApp closed.")


if __name__ == "__main__":
    with lifespan() as app:
        stats = app.reports.get_stats()
        log.info(f"Dashboard: {stats.model_dump()}")
