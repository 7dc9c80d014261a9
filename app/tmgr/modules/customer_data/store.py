"""
In-memory customer dataset.

The dataset is replaced wholesale by each successful ingestion; there is no
per-record update. Every replace (and clear) bumps `version`, which derived
views use as their cache key.

Concurrency: loads are not serialized. If two loads overlap, the one that
finishes last wins, regardless of which started first. Readers always see one
complete collection.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from app.tmgr.modules.customer_data.records import Customer
from app.tmgr.modules.customer_data.snapshot import SnapshotStore
from app.tmgr.modules.sales_import.parsers.csv import ParseError
from app.tmgr.modules.sales_import.service import ParseResult, parse_sales_csv

logger = logging.getLogger(__name__)


class DatasetLoadError(RuntimeError):
    """Ingestion produced no customers. The previous dataset is left in place."""

    def __init__(self, message: str, errors: list[ParseError] | None = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])


def _summarize_failure(errors: list[ParseError]) -> str:
    if not errors:
        return "No customers parsed from CSV."
    return f"No customers parsed from CSV. Errors: {', '.join(e.message for e in errors)}"


class CustomerStore:
    def __init__(
        self,
        snapshots: SnapshotStore | None = None,
        *,
        parser: Callable[[str | bytes], ParseResult] = parse_sales_csv,
    ) -> None:
        self.snapshots = snapshots
        self._parser = parser
        self._lock = threading.Lock()
        self._customers: tuple[Customer, ...] = ()
        self._version = 0
        self._in_flight = 0
        self._error: str | None = None
        self._last_updated: str | None = None
        self.last_result: ParseResult | None = None

    # -- read side -------------------------------------------------------

    @property
    def customers(self) -> tuple[Customer, ...]:
        return self._customers

    @property
    def version(self) -> int:
        return self._version

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def last_updated(self) -> str | None:
        return self._last_updated

    def snapshot(self) -> tuple[int, tuple[Customer, ...]]:
        """(version, customers) read together."""
        with self._lock:
            return self._version, self._customers

    def get_customer(self, customer_number: str) -> Customer | None:
        for c in self._customers:
            if c.customer_number == customer_number:
                return c
        return None

    # -- write side ------------------------------------------------------

    def _replace(self, customers: list[Customer], *, last_updated: str | None) -> None:
        with self._lock:
            self._customers = tuple(customers)
            self._version += 1
            self._last_updated = last_updated

    def load(self, text: str | bytes) -> ParseResult:
        """
        Parse a sales export and replace the dataset with its customers.

        Raises DatasetLoadError when the export yields zero customers; the
        current dataset is kept in that case.
        """
        with self._lock:
            self._in_flight += 1
        self._error = None
        try:
            result = self._parser(text)
            self.last_result = result
            if result.errors:
                logger.warning(
                    "CSV parsing warnings: %s",
                    ", ".join(f"{e.code}@{e.row}" for e in result.errors[:20]),
                )
            if not result.data:
                raise DatasetLoadError(_summarize_failure(result.errors), result.errors)

            last_updated = None
            if self.snapshots is not None:
                try:
                    last_updated = self.snapshots.save(result.data)
                except Exception:
                    logger.exception("Failed to persist dataset snapshot")
            self._replace(result.data, last_updated=last_updated)
            logger.info(
                "Loaded dataset version=%s customers=%s rows=%s warnings=%s",
                self._version,
                len(result.data),
                result.meta.total_rows,
                len(result.errors),
            )
            return result
        except Exception as e:
            self._error = str(e) or e.__class__.__name__
            raise
        finally:
            with self._lock:
                self._in_flight -= 1

    def load_from_storage(self) -> bool:
        """Restore the last saved snapshot. Returns False when none exists or it is unreadable."""
        if self.snapshots is None:
            return False
        snap = self.snapshots.load()
        if snap is None:
            return False
        self._replace(snap.customers, last_updated=snap.last_updated)
        logger.info("Restored dataset snapshot: customers=%s version=%s", len(snap.customers), self._version)
        return True

    def clear(self) -> None:
        """Drop the dataset and its persisted snapshot."""
        self._replace([], last_updated=None)
        self._error = None
        self.last_result = None
        if self.snapshots is not None:
            self.snapshots.clear()

    def reset(self) -> None:
        """Drop in-memory state only (tests, app teardown); the snapshot is untouched."""
        self._replace([], last_updated=None)
        self._error = None
        self.last_result = None
