# stockapp/storage/clients.py
import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from stockapp.core import schemas
from stockapp.core.errors import NotFoundError, constraint_violation_from
from stockapp.storage import models
from stockapp.storage.db import Database
from stockapp.utils.logger import operation

log = logging.getLogger(__name__)


class ClientRepository:
    """CRUD over the clients table."""

    def __init__(self, database: Database):
        self.db = database

    @operation("clients.get_all")
    def get_all(self) -> list[schemas.Client]:
        with self.db.read_scope() as s:
            rows = s.scalars(select(models.Client).order_by(models.Client.name.asc())).all()
            return [schemas.Client.model_validate(r) for r in rows]

    @operation("clients.get_by_id")
    def get_by_id(self, client_id: int) -> schemas.Client:
        with self.db.read_scope() as s:
            client = s.get(models.Client, client_id)
            if client is None:
                raise NotFoundError("Client", client_id)
            return schemas.Client.model_validate(client)

    @operation("clients.add")
    def add(self, data: schemas.ClientData | dict) -> int:
        data = schemas.coerce(schemas.ClientData, data)
        values = data.model_dump()
        try:
            with self.db.session_scope() as s:
                client = models.Client(**values)
                s.add(client)
                s.flush()
                new_id = client.id
        except IntegrityError as err:
            raise constraint_violation_from(err, values) from err
        log.info(f"Client {new_id} created ({data.name})")
        return new_id

    @operation("clients.update")
    def update(self, data: schemas.ClientUpdate | dict) -> None:
        data = schemas.coerce(schemas.ClientUpdate, data)
        values = data.model_dump()
        try:
            with self.db.session_scope() as s:
                client = s.get(models.Client, data.id)
                if client is None:
                    raise NotFoundError("Client", data.id)
                for key, value in values.items():
                    setattr(client, key, value)
        except IntegrityError as err:
            raise constraint_violation_from(err, values) from err

    @operation("clients.delete")
    def delete(self, client_id: int) -> None:
        """Removes the client; its repairs and purchases go with it (ON DELETE CASCADE)."""
        with self.db.session_scope() as s:
            result = s.execute(delete(models.Client).where(models.Client.id == client_id))
            if result.rowcount == 0:
                raise NotFoundError("Client", client_id)
        log.info(f"Client {client_id} deleted")
