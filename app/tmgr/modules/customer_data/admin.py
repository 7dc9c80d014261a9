from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from app.tmgr.audit import record_event
from app.tmgr.db import db_session
from app.tmgr.modules.customer_data.store import CustomerStore, DatasetLoadError

bp = Blueprint("customer_data", __name__)


def _store() -> CustomerStore:
    return current_app.extensions["customer_store"]


def _dataset_state(store: CustomerStore) -> dict:
    return {
        "version": store.version,
        "loading": store.loading,
        "error": store.error,
        "lastUpdated": store.last_updated,
    }


@bp.get("/customers")
def customers_list():
    store = _store()
    return jsonify({**_dataset_state(store), "customers": [c.to_dict() for c in store.customers]})


@bp.get("/customers/<customer_number>")
def customer_detail(customer_number: str):
    c = _store().get_customer(customer_number.strip().upper())
    if c is None:
        return jsonify({"error": "Customer not found"}), 404
    return jsonify(c.to_dict())


@bp.post("/customers/import")
def customers_import():
    """
    Replace the dataset from a sales export.
    Accepts a multipart upload (csv_file) or the CSV text as the raw request body.
    """
    f = request.files.get("csv_file")
    if f is not None and f.filename:
        payload: bytes = f.read()
        source_name = f.filename
    else:
        payload = request.get_data(cache=False)
        source_name = None
    if not payload or not payload.strip():
        return jsonify({"error": "Choose a CSV file to import."}), 400

    store = _store()
    s = db_session()
    try:
        result = store.load(payload)
    except DatasetLoadError as e:
        record_event(
            s,
            action="customer_dataset.import_failed",
            entity_type="CustomerDataset",
            reason=str(e)[:512],
            metadata={"source": source_name, "error_codes": sorted({err.code for err in e.errors})},
        )
        s.commit()
        return jsonify({"error": str(e), "errors": [err.to_dict() for err in e.errors]}), 422

    record_event(
        s,
        action="customer_dataset.import",
        entity_type="CustomerDataset",
        entity_id=str(store.version),
        metadata={
            "source": source_name,
            "customers": len(result.data),
            "total_rows": result.meta.total_rows,
            "warnings": len(result.errors),
            "quarters": [q["standardized"] for q in result.meta.quarter_columns],
        },
    )
    s.commit()
    return jsonify(
        {
            **_dataset_state(store),
            "customerCount": len(result.data),
            "errors": [e.to_dict() for e in result.errors],
            "meta": result.meta.to_dict(),
        }
    )


@bp.post("/customers/reload")
def customers_reload():
    store = _store()
    loaded = store.load_from_storage()
    s = db_session()
    record_event(
        s,
        action="customer_dataset.reload",
        entity_type="CustomerDataset",
        entity_id=str(store.version),
        metadata={"loaded": loaded, "customers": len(store.customers)},
    )
    s.commit()
    return jsonify({**_dataset_state(store), "loaded": loaded, "customerCount": len(store.customers)})


@bp.delete("/customers")
def customers_clear():
    store = _store()
    dropped = len(store.customers)
    store.clear()
    s = db_session()
    record_event(
        s,
        action="customer_dataset.clear",
        entity_type="CustomerDataset",
        entity_id=str(store.version),
        metadata={"customers": dropped},
    )
    s.commit()
    return jsonify({**_dataset_state(store), "customerCount": 0})
