# stockapp/storage/staff.py
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from stockapp.core import schemas
from stockapp.core.errors import (
    AuthenticationError,
    InvalidInputError,
    NotFoundError,
    constraint_violation_from,
)
from stockapp.storage import models
from stockapp.storage.db import Database
from stockapp.utils.logger import operation

log = logging.getLogger(__name__)

# Compared against when the email is unknown, so both failure paths cost the same
_DUMMY_HASH = generate_password_hash("stockapp-dummy-password")


def _encode_available(value: bool) -> int:
    return 1 if value else 0


def _to_member(row: models.StaffMember) -> schemas.StaffMember:
    return schemas.StaffMember(
        id=row.id,
        name=row.name,
        role=row.role,
        is_available=bool(row.is_available),
        email=row.email,
        phone=row.phone,
        picture=row.picture,
    )


class StaffRepository:
    """
    Staff accounts and credentials.

    The 0/1 availability encoding and the password hash never leave this class.
    """

    def __init__(self, database: Database):
        self.db = database

    # --- Reads ---
    @operation("staff.get_all")
    def get_all(self) -> list[schemas.StaffMember]:
        with self.db.read_scope() as s:
            rows = s.scalars(select(models.StaffMember).order_by(models.StaffMember.name.asc())).all()
            return [_to_member(r) for r in rows]

    @operation("staff.get_by_id")
    def get_by_id(self, staff_id: int) -> schemas.StaffMember:
        with self.db.read_scope() as s:
            row = s.get(models.StaffMember, staff_id)
            if row is None:
                raise NotFoundError("Staff member", staff_id)
            return _to_member(row)

    @operation("staff.get_technicians")
    def get_technicians(self) -> list[schemas.StaffMember]:
        with self.db.read_scope() as s:
            rows = s.scalars(
                select(models.StaffMember)
                .where(models.StaffMember.role == schemas.StaffRole.TECHNICIAN.value)
                .order_by(models.StaffMember.name.asc())
            ).all()
            return [_to_member(r) for r in rows]

    @operation("staff.count")
    def count(self) -> int:
        with self.db.read_scope() as s:
            return s.scalar(select(func.count(models.StaffMember.id))) or 0

    # --- Writes ---
    @operation("staff.add")
    def add(self, data: schemas.StaffData | dict) -> int:
        data = schemas.coerce(schemas.StaffData, data)
        values = data.model_dump(exclude={"password"})
        values["is_available"] = _encode_available(data.is_available)
        try:
            with self.db.session_scope() as s:
                row = models.StaffMember(
                    **values,
                    password_hash=generate_password_hash(data.password),
                )
                s.add(row)
                s.flush()
                new_id = row.id
        except IntegrityError as err:
            raise constraint_violation_from(err, values) from err
        log.info(f"Staff member {new_id} created ({data.email}, {data.role})")
        return new_id

    @operation("staff.sign_up")
    def sign_up(self, data: schemas.SignUpData | dict) -> int:
        """
        Self registration. The very first account becomes Manager;
        everybody else waits as Not Assigned until a manager sets a role.
        """
        data = schemas.coerce(schemas.SignUpData, data)
        role = schemas.StaffRole.NOT_ASSIGNED
        if self.count() == 0:
            role = schemas.StaffRole.MANAGER
            log.info("First user detected, promoting to Manager.")
        return self.add(schemas.StaffData(**data.model_dump(), role=role))

    @operation("staff.update")
    def update(self, data: schemas.StaffUpdate | dict) -> None:
        data = schemas.coerce(schemas.StaffUpdate, data)
        values = data.model_dump()
        values["is_available"] = _encode_available(data.is_available)
        self._replace(data.id, values)

    @operation("staff.update_profile")
    def update_profile(self, data: schemas.ProfileUpdate | dict) -> None:
        """Own-profile edit: name, email and phone only."""
        data = schemas.coerce(schemas.ProfileUpdate, data)
        self._replace(data.id, data.model_dump())

    def _replace(self, staff_id: int, values: dict) -> None:
        try:
            with self.db.session_scope() as s:
                row = s.get(models.StaffMember, staff_id)
                if row is None:
                    raise NotFoundError("Staff member", staff_id)
                for key, value in values.items():
                    setattr(row, key, value)
        except IntegrityError as err:
            raise constraint_violation_from(err, values) from err

    @operation("staff.delete")
    def delete(self, staff_id: int) -> None:
        """Repairs assigned to this member stay, unassigned (ON DELETE SET NULL)."""
        with self.db.session_scope() as s:
            result = s.execute(delete(models.StaffMember).where(models.StaffMember.id == staff_id))
            if result.rowcount == 0:
                raise NotFoundError("Staff member", staff_id)
        log.info(f"Staff member {staff_id} deleted")

    # --- Credentials ---
    def _find_by_email(self, s, email: str):
        return s.scalars(
            select(models.StaffMember).where(models.StaffMember.email == (email or "").strip())
        ).first()

    @operation("staff.verify_password")
    def verify_password(self, email: str, password: str) -> bool:
        with self.db.read_scope() as s:
            row = self._find_by_email(s, email)
            if row is None:
                check_password_hash(_DUMMY_HASH, password or "")
                return False
            return check_password_hash(row.password_hash, password or "")

    @operation("staff.authenticate")
    def authenticate(self, email: str, password: str) -> schemas.StaffMember:
        """Returns the member for valid credentials; one generic error otherwise."""
        with self.db.read_scope() as s:
            row = self._find_by_email(s, email)
            if row is None:
                check_password_hash(_DUMMY_HASH, password or "")
                raise AuthenticationError()
            if not check_password_hash(row.password_hash, password or ""):
                raise AuthenticationError()
            member = _to_member(row)
        log.info(f"Staff member {member.id} logged in")
        return member

    @operation("staff.change_password")
    def change_password(self, staff_id: int, old_password: str, new_password: str) -> None:
        if not new_password:
            raise InvalidInputError("The new password cannot be empty")
        with self.db.session_scope() as s:
            row = s.get(models.StaffMember, staff_id)
            if row is None:
                raise NotFoundError("Staff member", staff_id)
            if not check_password_hash(row.password_hash, old_password or ""):
                raise AuthenticationError("Current password is incorrect")
            row.password_hash = generate_password_hash(new_password)
        log.info(f"Password changed for staff member {staff_id}")
