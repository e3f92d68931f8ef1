"""Tests for the update-or-insert reconciliation of a single record."""

from __future__ import annotations

import bcrypt
import pytest
from sqlalchemy import insert

from feed import db
from feed.notify import WELCOME_SUBJECT, WelcomeNotifier
from feed.reconcile import Outcome, Reconciler
from feed.sheet import EmployeeRecord

PASSWORD = "Temp-Pass-1"


def _record(**overrides) -> EmployeeRecord:
    values = dict(
        employee_id="4521",
        first_name="Ann",
        last_name="Lee",
        email="ann@x.com",
        phone="555-0100",
        role="Senior",
        username="annl",
    )
    values.update(overrides)
    return EmployeeRecord(**values)


@pytest.fixture
def reconcile_with(engine, tables, sender):
    """Run records through a Reconciler on one connection, like the batch does."""

    def _run(*records):
        notifier = WelcomeNotifier(sender, PASSWORD, timeout=5)
        with engine.connect() as conn:
            reconciler = Reconciler(conn, tables, notifier, PASSWORD)
            return [reconciler.reconcile_row(r) for r in records]

    return _run


def _seed_user(engine, tables, employee_id="4521"):
    with engine.begin() as conn:
        user_id = conn.execute(
            insert(tables.users).values(
                firstname="Old",
                lastname="Name",
                username="old",
                email="old@x.com",
                role="guest",
                hashedpassword="keep-me",
                employeeid=employee_id,
                fullname="Old Name",
                employee=0,
            )
        ).inserted_primary_key[0]
        conn.execute(insert(tables.userprofile).values(userid=user_id, phone="000", email="old@x.com", employeeid=employee_id))
        conn.execute(
            insert(tables.employees).values(
                userid=user_id,
                employeeid=employee_id,
                fullname="Old Name",
                employeeEmail="old@x.com",
                employeetenure="Junior",
                employeeidasint=0,
            )
        )
    return user_id


@pytest.mark.parametrize(
    "overrides",
    [
        {"employee_id": None},
        {"employee_id": ""},
        {"email": None},
        {"employee_id": None, "email": None},
    ],
)
def test_missing_id_or_email_is_skipped_without_writes(reconcile_with, tables, fetch_all, sender, overrides):
    (result,) = reconcile_with(_record(**overrides))
    assert result.outcome is Outcome.SKIPPED
    assert fetch_all(tables.users) == []
    assert sender.messages == []


def test_new_employee_inserts_aggregate_and_sends_one_welcome(reconcile_with, tables, fetch_all, sender):
    (result,) = reconcile_with(_record())
    assert result.outcome is Outcome.PROCESSED
    assert result.action == "inserted"

    (user,) = fetch_all(tables.users)
    assert user["employeeid"] == "4521"
    assert user["fullname"] == "Ann Lee"
    assert user["role"] == "registered"
    assert user["employee"] == 1
    assert bcrypt.checkpw(PASSWORD.encode("utf-8"), user["hashedpassword"].encode("utf-8"))

    (profile,) = fetch_all(tables.userprofile)
    assert profile["userid"] == user["id"]
    assert profile["phone"] == "555-0100"

    (employee,) = fetch_all(tables.employees)
    assert employee["userid"] == user["id"]
    assert employee["employeeidasint"] == 4521
    assert employee["employeetenure"] == "Senior"
    assert employee["employeeEmail"] == "ann@x.com"

    (payload,) = sender.payloads()
    assert payload["To"] == "ann@x.com"
    assert payload["Subject"] == WELCOME_SUBJECT
    assert PASSWORD in payload["Body"]


def test_non_numeric_identifier_stores_zero(reconcile_with, tables, fetch_all):
    reconcile_with(_record(employee_id="A123"))
    (employee,) = fetch_all(tables.employees)
    assert employee["employeeidasint"] == 0


def test_existing_employee_updates_all_three_rows_without_notification(engine, reconcile_with, tables, fetch_all, sender):
    user_id = _seed_user(engine, tables)

    (result,) = reconcile_with(_record())
    assert result.outcome is Outcome.PROCESSED
    assert result.action == "updated"

    (user,) = fetch_all(tables.users)
    assert user["id"] == user_id
    assert user["email"] == "ann@x.com"
    assert user["role"] == "registered"
    assert user["employee"] == 1
    assert user["hashedpassword"] == "keep-me"

    (profile,) = fetch_all(tables.userprofile)
    assert (profile["phone"], profile["email"]) == ("555-0100", "ann@x.com")

    (employee,) = fetch_all(tables.employees)
    assert employee["fullname"] == "Ann Lee"
    assert employee["employeetenure"] == "Senior"
    assert employee["employeeidasint"] == 4521

    assert sender.messages == []


def test_failed_dispatch_rolls_back_the_new_aggregate(reconcile_with, tables, fetch_all, sender):
    sender.fail = True
    (result,) = reconcile_with(_record())
    assert result.outcome is Outcome.ERRORED
    assert "Service Bus unavailable" in result.error
    assert fetch_all(tables.users) == []
    assert fetch_all(tables.userprofile) == []
    assert fetch_all(tables.employees) == []


def test_write_failure_mid_row_is_isolated(monkeypatch, reconcile_with, tables, fetch_all, sender):
    real_insert = db.insert_aggregate

    def failing_insert(conn, tbls, user, profile, employee):
        if user["employeeid"] == "E2":
            conn.execute(insert(tbls.users).values(**user))
            raise RuntimeError("constraint violation")
        return real_insert(conn, tbls, user, profile, employee)

    monkeypatch.setattr(db, "insert_aggregate", failing_insert)

    results = reconcile_with(
        _record(employee_id="E1", email="e1@x.com"),
        _record(employee_id="E2", email="e2@x.com"),
        _record(employee_id="E3", email="e3@x.com"),
    )
    assert [r.outcome for r in results] == [Outcome.PROCESSED, Outcome.ERRORED, Outcome.PROCESSED]
    assert sorted(u["employeeid"] for u in fetch_all(tables.users)) == ["E1", "E3"]
    assert [p["To"] for p in sender.payloads()] == ["e1@x.com", "e3@x.com"]
