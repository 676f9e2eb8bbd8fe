# stockapp/core/reports.py
import logging
import os
from datetime import date, datetime, timedelta

from sqlalchemy import func, select

from stockapp.core import pricing, schemas
from stockapp.storage import models
from stockapp.storage.db import Database
from stockapp.storage.purchases import purchases_with_client, summaries
from stockapp.storage.repairs import joined_repairs
from stockapp.utils.logger import operation

log = logging.getLogger(__name__)

LOW_STOCK_THRESHOLD = int(os.getenv("STOCKAPP_LOW_STOCK_THRESHOLD", "5"))
DAILY_SALES_DAYS = int(os.getenv("STOCKAPP_DAILY_SALES_DAYS", "7"))
RECENT_LIMIT = 5

COMPLETED = schemas.RepairStatus.COMPLETED.value

R = models.Repair
P = models.Purchase
PR = models.Product


def _count(s, column, *where) -> int:
    stmt = select(func.count(column))
    if where:
        stmt = stmt.where(*where)
    return int(s.scalar(stmt) or 0)


def _grouped(s, column, *where) -> list[schemas.ChartDataPoint]:
    stmt = (
        select(column.label("name"), func.count(R.id).label("value"))
        .group_by(column)
        .order_by(column)
    )
    if where:
        stmt = stmt.where(*where)
    return [schemas.ChartDataPoint(**r._mapping) for r in s.execute(stmt).all()]


class ReportService:
    """
    Read-only dashboard queries. Every aggregate is computed in SQL
    and every empty sum comes back as 0, never None.
    """

    def __init__(self, database: Database, clock=datetime.now):
        self.db = database
        self.clock = clock

    # === 1. Manager dashboard ===
    @operation("reports.get_stats")
    def get_stats(self) -> schemas.DashboardStats:
        with self.db.read_scope() as s:
            total_sales = pricing.money(s.scalar(select(func.coalesce(func.sum(P.total_price), 0))))
            stock_value = pricing.money(
                s.scalar(select(func.coalesce(func.sum(PR.quantity * PR.price), 0)))
            )
            return schemas.DashboardStats(
                total_clients=_count(s, models.Client.id),
                total_staff=_count(s, models.StaffMember.id),
                total_repairs=_count(s, R.id),
                total_sales=total_sales,
                stock_value=stock_value,
                out_of_stock_count=_count(s, PR.id, PR.quantity == 0),
                stock_to_sales_ratio=pricing.ratio(stock_value, total_sales),
            )

    @operation("reports.get_work_orders_by_status")
    def get_work_orders_by_status(self) -> list[schemas.ChartDataPoint]:
        with self.db.read_scope() as s:
            return _grouped(s, R.status)

    @operation("reports.get_work_orders_by_priority")
    def get_work_orders_by_priority(self) -> list[schemas.ChartDataPoint]:
        with self.db.read_scope() as s:
            return _grouped(s, R.priority)

    @operation("reports.get_daily_sales")
    def get_daily_sales(self, days: int = DAILY_SALES_DAYS, today: date | None = None) -> list[schemas.DailySalesPoint]:
        """
        Sales per calendar day over the trailing window, today included,
        oldest first. Days without purchases are simply absent.
        """
        today = today or self.clock().date()
        start = today - timedelta(days=days - 1)
        day = func.date(P.purchase_date)
        stmt = (
            select(day.label("date"), func.coalesce(func.sum(P.total_price), 0).label("total_sales"))
            .where(day >= start.isoformat(), day <= today.isoformat())
            .group_by(day)
            .order_by(day.asc())
        )
        with self.db.read_scope() as s:
            return [
                schemas.DailySalesPoint(date=r.date, total_sales=pricing.money(r.total_sales))
                for r in s.execute(stmt).all()
            ]

    @operation("reports.get_recent_purchases")
    def get_recent_purchases(self, limit: int = RECENT_LIMIT) -> list[schemas.PurchaseSummary]:
        stmt = (
            purchases_with_client()
            .order_by(P.purchase_date.desc(), P.id.desc())
            .limit(limit)
        )
        with self.db.read_scope() as s:
            return summaries(s, stmt)

    @operation("reports.get_recent_repairs")
    def get_recent_repairs(self, limit: int = RECENT_LIMIT) -> list[schemas.Repair]:
        stmt = joined_repairs().order_by(R.request_date.desc(), R.id.desc()).limit(limit)
        with self.db.read_scope() as s:
            return [schemas.Repair.model_validate(dict(r._mapping)) for r in s.execute(stmt).all()]

    # === 2. Technician dashboard ===
    @operation("reports.get_technician_stats")
    def get_technician_stats(self, staff_id: int, now: datetime | None = None) -> schemas.TechnicianStats:
        now = now or self.clock()
        mine = R.staff_id == staff_id
        with self.db.read_scope() as s:
            return schemas.TechnicianStats(
                active_assigned=_count(s, R.id, mine, R.status != COMPLETED),
                overdue=_count(
                    s, R.id, mine, R.status != COMPLETED,
                    R.due_date.is_not(None), R.due_date < now,
                ),
                total_completed=_count(s, R.id, mine, R.status == COMPLETED),
            )

    @operation("reports.get_technician_work_orders_by_status")
    def get_technician_work_orders_by_status(self, staff_id: int) -> list[schemas.ChartDataPoint]:
        with self.db.read_scope() as s:
            return _grouped(s, R.status, R.staff_id == staff_id)

    @operation("reports.get_active_repairs_for_staff")
    def get_active_repairs_for_staff(self, staff_id: int) -> list[schemas.ActiveRepair]:
        stmt = (
            select(
                R.id, R.description, R.priority, R.status, R.due_date,
                models.Client.name.label("client_name"),
            )
            .join(models.Client, models.Client.id == R.client_id)
            .where(R.staff_id == staff_id, R.status != COMPLETED)
            # Undated work orders last
            .order_by(R.due_date.is_(None), R.due_date.asc(), R.request_date.asc())
        )
        with self.db.read_scope() as s:
            return [schemas.ActiveRepair.model_validate(dict(r._mapping)) for r in s.execute(stmt).all()]

    # === 3. Inventory dashboard ===
    @operation("reports.get_inventory_stats")
    def get_inventory_stats(self, threshold: int = LOW_STOCK_THRESHOLD) -> schemas.InventoryStats:
        with self.db.read_scope() as s:
            row = s.execute(
                select(
                    func.count(PR.id).label("total_skus"),
                    func.coalesce(func.sum(PR.quantity), 0).label("total_units"),
                    func.coalesce(func.sum(PR.quantity * PR.price), 0).label("stock_value"),
                )
            ).one()
            return schemas.InventoryStats(
                total_skus=row.total_skus,
                total_units=row.total_units,
                stock_value=pricing.money(row.stock_value),
                low_stock_count=_count(s, PR.id, PR.quantity <= threshold),
                out_of_stock_count=_count(s, PR.id, PR.quantity == 0),
            )

    @operation("reports.get_low_stock_products")
    def get_low_stock_products(self, threshold: int = LOW_STOCK_THRESHOLD) -> list[schemas.Product]:
        stmt = (
            select(PR)
            .where(PR.quantity <= threshold)
            .order_by(PR.quantity.asc(), PR.name.asc())
        )
        with self.db.read_scope() as s:
            return [schemas.Product.model_validate(p) for p in s.scalars(stmt).all()]
