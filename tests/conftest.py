"""Shared fixtures: in-memory store, in-memory workbooks and a recording Service Bus sender."""

from __future__ import annotations

import io
import json
from contextlib import contextmanager

import pytest
from openpyxl import Workbook
from sqlalchemy import create_engine, select
from sqlalchemy.pool import StaticPool

from feed import db
from feed.config import FeedSettings

SERVICE_BUS_CONNECTION = "Endpoint=sb://example.servicebus.windows.net/;SharedAccessKeyName=k;SharedAccessKey=v"
HEADER = ["id", "first_name", "last_name", "email", "phone", "role", "username", "grade"]


class FakeSender:
    """Records messages instead of sending them; raises when ``fail`` is set."""

    def __init__(self) -> None:
        self.messages = []
        self.fail = False
        self.closed = False

    def send_messages(self, message, timeout=None) -> None:
        if self.fail:
            raise ConnectionError("Service Bus unavailable")
        self.messages.append(message)

    def payloads(self) -> list[dict]:
        return [json.loads(b"".join(m.body)) for m in self.messages]


def make_workbook(rows: list[list]) -> io.BytesIO:
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    db.feed_tables(None).metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def tables():
    return db.feed_tables(None)


@pytest.fixture
def settings() -> FeedSettings:
    return FeedSettings(
        SqlConnectionString="sqlite://",
        ServiceBusConnection=SERVICE_BUS_CONNECTION,
        DefaultUserPassword="Temp-Pass-1",
        EmailQueueName="certs-queue",
        SCHEMA="",
        ServiceBusTimeoutSeconds=5,
    )


@pytest.fixture
def sender() -> FakeSender:
    return FakeSender()


@pytest.fixture
def open_sender(sender):
    opened = []

    @contextmanager
    def factory(connection_string, queue_name):
        opened.append((connection_string, queue_name))
        try:
            yield sender
        finally:
            sender.closed = True

    factory.opened = opened
    return factory


@pytest.fixture
def fetch_all(engine):
    """Return all rows of a table as dicts."""

    def _fetch(table):
        with engine.connect() as conn:
            return [dict(r) for r in conn.execute(select(table)).mappings()]

    return _fetch
