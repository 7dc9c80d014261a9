from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from app.tmgr.constants import TERRITORIES, format_territory_name
from app.tmgr.modules.territory.analytics import TerritoryAnalytics, territory_summary

bp = Blueprint("territory", __name__)


def _analytics() -> TerritoryAnalytics:
    return current_app.extensions["territory_analytics"]


@bp.get("/territories")
def territories_list():
    analytics = _analytics()
    return jsonify({"territories": territory_summary(analytics.territory_stats(), TERRITORIES)})


@bp.get("/territories/<territory>/customers")
def territory_customers(territory: str):
    if territory not in TERRITORIES:
        return jsonify({"error": f"Unknown territory: {territory}"}), 404
    customers = _analytics().get_customers_by_territory(territory)
    return jsonify(
        {
            "territory": territory,
            "name": format_territory_name(territory),
            "customers": [c.to_dict() for c in customers],
        }
    )


@bp.get("/sales-reps")
def sales_reps_list():
    include_customers = (request.args.get("include_customers") or "").strip() in ("1", "true")
    reps = _analytics().sales_representatives()
    return jsonify({"salesReps": [r.to_dict(include_customers=include_customers) for r in reps]})
