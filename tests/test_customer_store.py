"""
Tests for the in-memory customer dataset and its JSON snapshot.

Tests cover:
- Replace semantics and version counter
- Zero-customer loads (error kept, previous data kept)
- Snapshot save / restore / clear
- Corrupt snapshots treated as no data
"""

import json
from datetime import datetime, timezone

import pytest

from app.tmgr.modules.customer_data.snapshot import CUSTOMERS_KEY, LAST_UPDATED_KEY, SnapshotStore
from app.tmgr.modules.customer_data.store import CustomerStore, DatasetLoadError
from app.tmgr.modules.sales_import.service import parse_sales_csv
from app.tmgr.storage import LocalStorage, S3Storage, Storage, StorageError


GOOD_CSV = (
    "PAC,Account Name (CN),Address,Brand,1Q24,2Q24\n"
    'Kim Coates,Glow Clinic (CN100001),"1 Main St, Littleton, CO",RHA,$100,$200\n'
    "Kaiti Green,Spa Nine (CN100009),,DAXXIFY,,$50\n"
)

OTHER_CSV = (
    "PAC,Account Name (CN),Brand,1Q24\n"
    "Kim Coates,Bright Skin (CN200002),SKINPEN,$75\n"
)


@pytest.fixture()
def storage(tmp_path):
    return LocalStorage(root=tmp_path / "storage")


@pytest.fixture()
def snapshots(storage):
    return SnapshotStore(storage, prefix="snapshots")


class _UnreachableStorage(Storage):
    def exists(self, key):
        raise StorageError("connection refused")

    def read_bytes(self, key):
        raise StorageError("connection refused")


class TestCustomerStore:
    def test_starts_empty(self):
        store = CustomerStore()
        assert store.customers == ()
        assert store.version == 0
        assert store.loading is False
        assert store.error is None
        assert store.last_updated is None

    def test_load_replaces_and_bumps_version(self):
        store = CustomerStore()
        result = store.load(GOOD_CSV)

        assert [c.customer_number for c in store.customers] == ["CN100001", "CN100009"]
        assert store.version == 1
        assert store.last_result is result
        assert store.loading is False

        store.load(OTHER_CSV)
        assert [c.customer_number for c in store.customers] == ["CN200002"]
        assert store.version == 2

    def test_get_customer(self):
        store = CustomerStore()
        store.load(GOOD_CSV)
        assert store.get_customer("CN100009").account_name == "Spa Nine"
        assert store.get_customer("CN999999") is None

    def test_zero_customers_raises_and_keeps_previous(self):
        store = CustomerStore()
        store.load(GOOD_CSV)

        with pytest.raises(DatasetLoadError) as exc:
            store.load("PAC,Account Name (CN)\nKim Coates,Glow Clinic (CN100001)\n")

        assert str(exc.value) == "No customers parsed from CSV. Errors: Missing required columns: brand"
        assert [e.code for e in exc.value.errors] == ["MISSING_COLUMNS"]
        assert store.error == str(exc.value)
        assert len(store.customers) == 2
        assert store.version == 1
        assert store.loading is False

    def test_zero_customers_without_errors(self):
        store = CustomerStore()
        with pytest.raises(DatasetLoadError) as exc:
            store.load("PAC,Account Name (CN),Brand,1Q24\n")
        assert str(exc.value) == "No customers parsed from CSV."
        assert exc.value.errors == []

    def test_error_cleared_by_next_successful_load(self):
        store = CustomerStore()
        with pytest.raises(DatasetLoadError):
            store.load('PAC,Brand\n"abc')
        assert store.error is not None

        store.load(GOOD_CSV)
        assert store.error is None

    def test_parser_failure_sets_error_and_propagates(self):
        def boom(_text):
            raise RuntimeError("tokenizer exploded")

        store = CustomerStore(parser=boom)
        with pytest.raises(RuntimeError):
            store.load("x")
        assert store.error == "tokenizer exploded"
        assert store.loading is False

    def test_loading_flag_during_parse(self):
        seen = []
        store = CustomerStore()

        def spy(text):
            seen.append(store.loading)
            return parse_sales_csv(text)

        store._parser = spy
        store.load(GOOD_CSV)
        assert seen == [True]
        assert store.loading is False

    def test_reset_keeps_snapshot(self, snapshots):
        store = CustomerStore(snapshots)
        store.load(GOOD_CSV)
        store.reset()

        assert store.customers == ()
        assert store.version == 2
        assert snapshots.load() is not None


class TestSnapshotPersistence:
    def test_load_saves_snapshot(self, snapshots, storage):
        store = CustomerStore(snapshots)
        store.load(GOOD_CSV)

        assert storage.exists(f"snapshots/{CUSTOMERS_KEY}")
        assert storage.exists(f"snapshots/{LAST_UPDATED_KEY}")
        raw = json.loads(storage.read_bytes(f"snapshots/{CUSTOMERS_KEY}"))
        assert [d["customerNumber"] for d in raw] == ["CN100001", "CN100009"]
        assert store.last_updated is not None
        datetime.fromisoformat(store.last_updated)

    def test_restore_round_trip(self, snapshots):
        first = CustomerStore(snapshots)
        first.load(GOOD_CSV)

        second = CustomerStore(snapshots)
        assert second.load_from_storage() is True
        assert list(second.customers) == list(first.customers)
        assert second.last_updated == first.last_updated
        assert second.version == 1

    def test_save_timestamp(self, snapshots):
        ts = snapshots.save([], now=datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
        assert ts == "2025-01-02T03:04:05+00:00"
        assert snapshots.last_updated() == ts
        assert snapshots.load().customers == []

    def test_no_snapshot(self, snapshots):
        assert snapshots.load() is None
        assert snapshots.last_updated() is None
        assert CustomerStore(snapshots).load_from_storage() is False
        assert CustomerStore().load_from_storage() is False

    @pytest.mark.parametrize(
        "body",
        [
            b"{not json",
            b'{"customerNumber": "CN100001"}',
            b'[{"customerNumber": "CN100001"}]',
            b"\xff\xfe\x00",
        ],
    )
    def test_corrupt_snapshot_is_no_data(self, snapshots, storage, body):
        storage.put_bytes(f"snapshots/{CUSTOMERS_KEY}", body)
        assert snapshots.load() is None

        store = CustomerStore(snapshots)
        assert store.load_from_storage() is False
        assert store.customers == ()

    def test_unknown_territory_is_corrupt(self, snapshots, storage):
        CustomerStore(snapshots).load(GOOD_CSV)
        raw = json.loads(storage.read_bytes(f"snapshots/{CUSTOMERS_KEY}"))
        raw[0]["territory"] = "denver"
        storage.put_bytes(f"snapshots/{CUSTOMERS_KEY}", json.dumps(raw).encode("utf-8"))
        assert snapshots.load() is None

    @pytest.mark.parametrize("amount", [0, -5, float("nan"), float("inf"), "100", True])
    def test_invalid_sales_amount_is_corrupt(self, snapshots, storage, amount):
        CustomerStore(snapshots).load(GOOD_CSV)
        raw = json.loads(storage.read_bytes(f"snapshots/{CUSTOMERS_KEY}"))
        raw[0]["salesData"]["rha"]["salesByPeriod"]["2024-Q1"] = amount
        storage.put_bytes(f"snapshots/{CUSTOMERS_KEY}", json.dumps(raw).encode("utf-8"))

        assert snapshots.load() is None
        assert CustomerStore(snapshots).load_from_storage() is False

    def test_unreachable_backend_is_no_data(self):
        snapshots = SnapshotStore(_UnreachableStorage(), prefix="snapshots")
        assert snapshots.load() is None
        assert snapshots.last_updated() is None

        store = CustomerStore(snapshots)
        assert store.load_from_storage() is False
        assert store.customers == ()

    def test_duplicate_customer_numbers_are_corrupt(self, snapshots, storage):
        CustomerStore(snapshots).load(GOOD_CSV)
        raw = json.loads(storage.read_bytes(f"snapshots/{CUSTOMERS_KEY}"))
        storage.put_bytes(f"snapshots/{CUSTOMERS_KEY}", json.dumps(raw + raw[:1]).encode("utf-8"))
        assert snapshots.load() is None

    def test_bad_timestamp_is_ignored(self, snapshots, storage):
        CustomerStore(snapshots).load(GOOD_CSV)
        storage.put_bytes(f"snapshots/{LAST_UPDATED_KEY}", b"yesterday")
        snap = snapshots.load()
        assert snap is not None
        assert snap.last_updated is None

    def test_clear_removes_snapshot(self, snapshots, storage):
        store = CustomerStore(snapshots)
        store.load(GOOD_CSV)
        store.clear()

        assert store.customers == ()
        assert store.last_updated is None
        assert store.version == 2
        assert not storage.exists(f"snapshots/{CUSTOMERS_KEY}")
        assert CustomerStore(snapshots).load_from_storage() is False

    def test_snapshot_write_failure_still_loads(self, snapshots, monkeypatch):
        def fail(*args, **kwargs):
            raise StorageError("disk full")

        monkeypatch.setattr(snapshots, "save", fail)
        store = CustomerStore(snapshots)
        store.load(GOOD_CSV)

        assert len(store.customers) == 2
        assert store.last_updated is None
        assert store.error is None


class TestLocalStorage:
    def test_rejects_parent_traversal(self, storage):
        with pytest.raises(StorageError):
            storage.put_bytes("../escape.txt", b"x")

    def test_read_missing(self, storage):
        with pytest.raises(StorageError):
            storage.read_bytes("nope.json")

    def test_delete_missing_is_noop(self, storage):
        storage.delete("nope.json")


class _FailingS3Client:
    def __init__(self, error):
        self.error = error

    def head_object(self, **kwargs):
        raise self.error

    def get_object(self, **kwargs):
        raise self.error

    def put_object(self, **kwargs):
        raise self.error


class TestS3Storage:
    @pytest.fixture()
    def s3(self):
        return S3Storage(endpoint="", region="nyc3", bucket="tmgr", access_key_id="k", secret_access_key="s")

    def test_connection_failure_raises_storage_error(self, s3, monkeypatch):
        from botocore.exceptions import EndpointConnectionError

        client = _FailingS3Client(EndpointConnectionError(endpoint_url="https://example.invalid"))
        monkeypatch.setattr(S3Storage, "_client", lambda self: client)

        with pytest.raises(StorageError):
            s3.exists("snapshots/territory-customers.json")
        with pytest.raises(StorageError):
            s3.read_bytes("snapshots/territory-customers.json")
        with pytest.raises(StorageError):
            s3.put_bytes("snapshots/territory-customers.json", b"[]")

        snapshots = SnapshotStore(s3, prefix="snapshots")
        assert snapshots.load() is None
        assert CustomerStore(snapshots).load_from_storage() is False

    def test_missing_object_is_not_an_error(self, s3, monkeypatch):
        from botocore.exceptions import ClientError

        missing = ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        monkeypatch.setattr(S3Storage, "_client", lambda self: _FailingS3Client(missing))
        assert s3.exists("snapshots/territory-customers.json") is False

    def test_access_denied_raises_storage_error(self, s3, monkeypatch):
        from botocore.exceptions import ClientError

        denied = ClientError({"Error": {"Code": "403", "Message": "Forbidden"}}, "HeadObject")
        monkeypatch.setattr(S3Storage, "_client", lambda self: _FailingS3Client(denied))
        with pytest.raises(StorageError):
            s3.exists("snapshots/territory-customers.json")
