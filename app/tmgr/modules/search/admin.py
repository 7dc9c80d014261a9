from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from app.tmgr.modules.search.service import SearchState, parse_search_args

bp = Blueprint("search", __name__)


@bp.get("/search")
def search():
    try:
        query, filters = parse_search_args(request.args)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    state = SearchState(current_app.extensions["customer_store"])
    state.set_query(query)
    for key, value in filters.items():
        state.set_filter(key, value)

    results = state.results
    return jsonify(
        {
            "query": state.query.strip(),
            "filters": state.filters,
            "hasActiveSearch": state.has_active_search,
            "count": len(results),
            "results": [c.to_dict() for c in results],
        }
    )
