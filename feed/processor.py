"""Batch orchestration: one uploaded workbook in, one summary out."""

from __future__ import annotations

import logging
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Any, BinaryIO, Callable

from openpyxl import load_workbook
from sqlalchemy.engine import Engine

from feed import db
from feed.config import FeedSettings
from feed.notify import WelcomeNotifier, open_email_sender
from feed.reconcile import Outcome, Reconciler, RowResult
from feed.sheet import header_index, is_valid_employee_sheet, iter_data_rows, read_header

logger = logging.getLogger(__name__)

SenderFactory = Callable[[str, str], AbstractContextManager[Any]]


@dataclass
class FeedSummary:
    processed: int = 0
    skipped: int = 0
    errors: int = 0

    @property
    def total(self) -> int:
        return self.processed + self.skipped + self.errors

    def record(self, result: RowResult) -> None:
        if result.outcome is Outcome.PROCESSED:
            self.processed += 1
        elif result.outcome is Outcome.SKIPPED:
            self.skipped += 1
        else:
            self.errors += 1

    def __str__(self) -> str:
        return f"Processed: {self.processed}, Skipped: {self.skipped}, Errors: {self.errors}"


def process_employee_feed(
    stream: BinaryIO,
    name: str,
    *,
    engine: Engine,
    settings: FeedSettings,
    open_sender: SenderFactory = open_email_sender,
) -> FeedSummary | None:
    """
    Validate the first worksheet of an uploaded workbook and reconcile every data row.

    Returns None when the sheet lacks the required columns (nothing is written).
    Row failures are counted; workbook, connection and sender failures are logged
    and re-raised so the host marks the invocation failed.
    """
    logger.info("Processing blob: %s", name)
    try:
        workbook = load_workbook(stream, read_only=True, data_only=True)
        try:
            worksheet = workbook.worksheets[0]
            header = read_header(worksheet)
            if not is_valid_employee_sheet(header):
                logger.warning("Skipping blob %s: does not contain required employee columns.", name)
                return None
            columns = header_index(header)
            tables = db.feed_tables(settings.db_schema)
            summary = FeedSummary()

            with engine.connect() as conn, open_sender(settings.service_bus_connection, settings.queue_name) as sender:
                notifier = WelcomeNotifier(sender, settings.default_password, timeout=settings.send_timeout)
                reconciler = Reconciler(conn, tables, notifier, settings.default_password)
                for _row_number, row in iter_data_rows(worksheet):
                    summary.record(reconciler.process_row(row, columns))
        finally:
            workbook.close()
    except Exception:
        logger.exception("Error processing blob %s", name)
        raise

    logger.info("Processing complete for %s. %s", name, summary)
    return summary
