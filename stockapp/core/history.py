# stockapp/core/history.py
import heapq
import logging
from operator import attrgetter

from sqlalchemy import select

from stockapp.core import schemas
from stockapp.storage import models
from stockapp.storage.db import Database
from stockapp.storage.purchases import item_summaries, purchases_with_client
from stockapp.utils.logger import operation

log = logging.getLogger(__name__)

R = models.Repair
P = models.Purchase


class HistoryService:
    """Purchases and repairs as one feed, newest first."""

    def __init__(self, database: Database):
        self.db = database

    def _repair_events(self, s, client_id=None) -> list[schemas.HistoryEvent]:
        stmt = (
            select(
                R.id, R.request_date, R.description, R.total_price,
                models.Client.name.label("client_name"),
                models.StaffMember.name.label("staff_name"),
            )
            .join(models.Client, models.Client.id == R.client_id)
            .join(models.StaffMember, models.StaffMember.id == R.staff_id, isouter=True)
            .order_by(R.request_date.desc(), R.id.desc())
        )
        if client_id is not None:
            stmt = stmt.where(R.client_id == client_id)
        return [
            schemas.HistoryEvent(
                type="repair",
                id=r.id,
                event_date=r.request_date,
                client_name=r.client_name,
                primary_detail=r.description,
                secondary_detail=r.staff_name,
                total_price=r.total_price,
            )
            for r in s.execute(stmt).all()
        ]

    def _purchase_events(self, s, client_id=None) -> list[schemas.HistoryEvent]:
        stmt = purchases_with_client().order_by(P.purchase_date.desc(), P.id.desc())
        if client_id is not None:
            stmt = stmt.where(P.client_id == client_id)
        rows = s.execute(stmt).all()
        details = item_summaries(s, (r.id for r in rows))
        return [
            schemas.HistoryEvent(
                type="purchase",
                id=r.id,
                event_date=r.purchase_date,
                client_name=r.client_name,
                primary_detail=details.get(r.id, ""),
                secondary_detail=None,
                total_price=r.total_price,
            )
            for r in rows
        ]

    @operation("history.get")
    def get(self, client_id: int | None = None) -> list[schemas.HistoryEvent]:
        """
        Both streams come sorted newest first from SQL and are merged by date,
        so events interleave instead of being listed type by type.
        """
        with self.db.read_scope() as s:
            purchases = self._purchase_events(s, client_id)
            repairs = self._repair_events(s, client_id)
        return list(
            heapq.merge(purchases, repairs, key=attrgetter("event_date"), reverse=True)
        )
