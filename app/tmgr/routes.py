from flask import Blueprint, current_app

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    store = current_app.extensions["customer_store"]
    return {"service": "territory-manager", "customers": len(store.customers), "version": store.version}


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for container probes. No DB or storage access.
    """
    return "ok", 200
