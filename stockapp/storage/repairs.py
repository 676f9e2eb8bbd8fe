# stockapp/storage/repairs.py
import logging
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from stockapp.core import schemas
from stockapp.core.errors import NotFoundError
from stockapp.storage import models
from stockapp.storage.db import Database
from stockapp.utils.logger import operation

log = logging.getLogger(__name__)

R = models.Repair

_REPAIR_COLUMNS = (
    R.id, R.description, R.status, R.priority, R.request_date, R.due_date,
    R.total_price, R.client_id, R.staff_id,
)


def joined_repairs():
    """Repairs with client name/address and (optional) staff name."""
    return (
        select(
            *_REPAIR_COLUMNS,
            models.Client.name.label("client_name"),
            models.Client.address.label("client_location"),
            models.StaffMember.name.label("staff_name"),
        )
        .join(models.Client, models.Client.id == R.client_id, isouter=True)
        .join(models.StaffMember, models.StaffMember.id == R.staff_id, isouter=True)
    )


def _client_scoped_repairs(client_id: int):
    # The client is already known here; only the staff name is joined in
    return (
        select(*_REPAIR_COLUMNS, models.StaffMember.name.label("staff_name"))
        .join(models.StaffMember, models.StaffMember.id == R.staff_id, isouter=True)
        .where(R.client_id == client_id)
        .order_by(R.request_date.desc(), R.id.desc())
    )


def _rows(s, stmt) -> list[schemas.Repair]:
    return [schemas.Repair.model_validate(dict(r._mapping)) for r in s.execute(stmt).all()]


class RepairRepository:
    """Work orders. Joined names are computed per query, never stored."""

    def __init__(self, database: Database, clock=datetime.now):
        self.db = database
        self.clock = clock

    @operation("repairs.get_all")
    def get_all(self) -> list[schemas.Repair]:
        with self.db.read_scope() as s:
            return _rows(s, joined_repairs().order_by(R.request_date.desc(), R.id.desc()))

    @operation("repairs.get_by_id")
    def get_by_id(self, repair_id: int) -> schemas.Repair:
        with self.db.read_scope() as s:
            rows = _rows(s, joined_repairs().where(R.id == repair_id))
        if not rows:
            raise NotFoundError("Repair", repair_id)
        return rows[0]

    @operation("repairs.get_for_client")
    def get_for_client(self, client_id: int) -> list[schemas.Repair]:
        with self.db.read_scope() as s:
            return _rows(s, _client_scoped_repairs(client_id))

    @operation("repairs.get_for_client_by_staff")
    def get_for_client_by_staff(self, client_id: int, staff_id: int) -> list[schemas.Repair]:
        with self.db.read_scope() as s:
            return _rows(s, _client_scoped_repairs(client_id).where(R.staff_id == staff_id))

    @operation("repairs.get_for_staff")
    def get_for_staff(self, staff_id: int) -> list[schemas.Repair]:
        with self.db.read_scope() as s:
            stmt = (
                joined_repairs()
                .where(R.staff_id == staff_id)
                .order_by(R.request_date.desc(), R.id.desc())
            )
            return _rows(s, stmt)

    @operation("repairs.get_by_ids")
    def get_by_ids(self, client_id: int, repair_ids: list[int]) -> list[schemas.Repair]:
        """Selection for a client activity report; ids of other clients are ignored."""
        if not repair_ids:
            return []
        with self.db.read_scope() as s:
            return _rows(s, _client_scoped_repairs(client_id).where(R.id.in_(repair_ids)))

    @operation("repairs.add")
    def add(self, data: schemas.RepairData | dict) -> int:
        data = schemas.coerce(schemas.RepairData, data)
        values = data.model_dump()
        try:
            with self.db.session_scope() as s:
                repair = models.Repair(**values, request_date=self.clock())
                s.add(repair)
                s.flush()
                new_id = repair.id
        except IntegrityError as err:
            raise self.db.constraint_violation(err, models.Repair.__table__, values) from err
        log.info(f"Repair {new_id} opened for client {data.client_id}")
        return new_id

    @operation("repairs.update")
    def update(self, data: schemas.RepairUpdate | dict) -> None:
        """Full replace of the editable fields; request_date stays as created."""
        data = schemas.coerce(schemas.RepairUpdate, data)
        values = data.model_dump()
        try:
            with self.db.session_scope() as s:
                repair = s.get(models.Repair, data.id)
                if repair is None:
                    raise NotFoundError("Repair", data.id)
                for key, value in values.items():
                    setattr(repair, key, value)
        except IntegrityError as err:
            raise self.db.constraint_violation(err, models.Repair.__table__, values) from err

    @operation("repairs.delete")
    def delete(self, repair_id: int) -> None:
        with self.db.session_scope() as s:
            result = s.execute(delete(models.Repair).where(models.Repair.id == repair_id))
            if result.rowcount == 0:
                raise NotFoundError("Repair", repair_id)
        log.info(f"Repair {repair_id} deleted")
