"""Per-row update-or-insert reconciliation of employee records."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Sequence

import bcrypt
from sqlalchemy.engine import Connection

from feed import db
from feed.notify import WelcomeNotifier
from feed.sheet import EmployeeRecord, extract_record

logger = logging.getLogger(__name__)


REGISTERED_ROLE = "registered"


class Outcome(str, enum.Enum):
    PROCESSED = "processed"
    SKIPPED = "skipped"
    ERRORED = "errored"


@dataclass(frozen=True)
class RowResult:
    outcome: Outcome
    employee_id: str | None = None
    action: str | None = None  # "updated" or "inserted"
    error: str | None = None


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def _user_values(record: EmployeeRecord) -> dict[str, Any]:
    return {
        "firstname": record.first_name,
        "lastname": record.last_name,
        "username": record.username,
        "email": record.email,
        "role": REGISTERED_ROLE,
        "employeeid": record.employee_id,
        "fullname": record.full_name,
        "employee": 1,
    }


def _profile_values(record: EmployeeRecord) -> dict[str, Any]:
    return {
        "phone": record.phone,
        "email": record.email,
        "employeeid": record.employee_id,
    }


def _employee_values(record: EmployeeRecord) -> dict[str, Any]:
    return {
        "employeeid": record.employee_id,
        "fullname": record.full_name,
        "employeeEmail": record.email,
        "employeetenure": record.role,
        "employeeidasint": record.employee_id_as_int,
    }


class Reconciler:
    """
    Reconciles records against the store over one connection.

    Each row runs in its own transaction: the existence check, the one to
    three writes and (for new users) the welcome dispatch either all take
    effect or the row is rolled back.
    """

    def __init__(self, conn: Connection, tables: db.FeedTables, notifier: WelcomeNotifier, default_password: str) -> None:
        self._conn = conn
        self._tables = tables
        self._notifier = notifier
        self._default_password = default_password

    def reconcile(self, record: EmployeeRecord) -> RowResult:
        if not record.employee_id or not record.email:
            logger.warning(
                "Skipping row due to missing required data. EmployeeId: %s, Email: %s",
                record.employee_id,
                record.email,
            )
            return RowResult(Outcome.SKIPPED, employee_id=record.employee_id)

        with self._conn.begin():
            user_id = db.find_user_id(self._conn, self._tables, record.employee_id)
            if user_id is not None:
                logger.info("User %s exists. Updating records.", record.employee_id)
                db.update_aggregate(
                    self._conn,
                    self._tables,
                    user_id,
                    _user_values(record),
                    _profile_values(record),
                    _employee_values(record),
                )
                return RowResult(Outcome.PROCESSED, employee_id=record.employee_id, action="updated")

            user = _user_values(record)
            user["hashedpassword"] = hash_password(self._default_password)
            new_id = db.insert_aggregate(
                self._conn,
                self._tables,
                user,
                _profile_values(record),
                _employee_values(record),
            )
            logger.info("Created user %s for employee %s", new_id, record.employee_id)
            self._notifier.send_welcome(record.email, record.first_name)
        return RowResult(Outcome.PROCESSED, employee_id=record.employee_id, action="inserted")

    def reconcile_row(self, record: EmployeeRecord) -> RowResult:
        """Reconcile one record; any failure becomes an ERRORED result instead of an exception."""
        try:
            return self.reconcile(record)
        except Exception as exc:
            logger.exception("Error processing row for employee %s", record.employee_id)
            return RowResult(Outcome.ERRORED, employee_id=record.employee_id, error=str(exc))

    def process_row(self, row: Sequence[Any], columns: dict[str, int]) -> RowResult:
        """Extract and reconcile one worksheet row inside the same error boundary."""
        try:
            record = extract_record(row, columns)
        except Exception as exc:
            logger.exception("Error reading worksheet row")
            return RowResult(Outcome.ERRORED, error=str(exc))
        return self.reconcile_row(record)
