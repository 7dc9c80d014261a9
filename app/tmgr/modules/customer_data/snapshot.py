from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from app.tmgr.modules.customer_data.records import Customer
from app.tmgr.storage import Storage, StorageError

logger = logging.getLogger(__name__)

CUSTOMERS_KEY = "territory-customers.json"
LAST_UPDATED_KEY = "territory-last-updated.txt"


@dataclass(frozen=True)
class Snapshot:
    customers: list[Customer]
    last_updated: str | None


class SnapshotStore:
    """
    Persists the customer dataset as a JSON array plus an ISO-8601 timestamp.

    A snapshot that cannot be read back (bad JSON, wrong shape, unknown
    territory...) or whose backend cannot be reached is reported as absent;
    load() never raises for corrupt data.
    """

    def __init__(self, storage: Storage, prefix: str = "snapshots") -> None:
        self.storage = storage
        self.prefix = prefix.strip("/")

    def _key(self, name: str) -> str:
        return f"{self.prefix}/{name}" if self.prefix else name

    def save(self, customers: list[Customer], *, now: datetime | None = None) -> str:
        ts = (now or datetime.now(timezone.utc)).isoformat()
        body = json.dumps([c.to_dict() for c in customers], separators=(",", ":"))
        self.storage.put_bytes(self._key(CUSTOMERS_KEY), body.encode("utf-8"), content_type="application/json")
        self.storage.put_bytes(self._key(LAST_UPDATED_KEY), ts.encode("utf-8"), content_type="text/plain")
        logger.info("Saved dataset snapshot: customers=%s at=%s", len(customers), ts)
        return ts

    def load(self) -> Snapshot | None:
        key = self._key(CUSTOMERS_KEY)
        try:
            if not self.storage.exists(key):
                return None
            raw = json.loads(self.storage.read_bytes(key).decode("utf-8"))
            if not isinstance(raw, list):
                raise ValueError("snapshot is not a JSON array")
            customers = [Customer.from_dict(d) for d in raw]
            if len({c.customer_number for c in customers}) != len(customers):
                raise ValueError("duplicate customer numbers")
        except (StorageError, UnicodeDecodeError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Ignoring unreadable dataset snapshot %s: %s", key, e)
            return None
        return Snapshot(customers=customers, last_updated=self.last_updated())

    def last_updated(self) -> str | None:
        key = self._key(LAST_UPDATED_KEY)
        try:
            if not self.storage.exists(key):
                return None
            value = self.storage.read_bytes(key).decode("utf-8").strip()
            datetime.fromisoformat(value)
        except (StorageError, UnicodeDecodeError, ValueError) as e:
            logger.warning("Ignoring unreadable snapshot timestamp %s: %s", key, e)
            return None
        return value

    def clear(self) -> None:
        self.storage.delete(self._key(CUSTOMERS_KEY))
        self.storage.delete(self._key(LAST_UPDATED_KEY))
