from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from api.schemas.api_responses import FilingsQuery, PersonQuery, SuggestQuery, fail, ok
from api.services import filing_filters
from api.services.filings_service import FilingsService
from models.filings import FilingFilters

filings_v1_bp = Blueprint("filings_v1", __name__)


def _service() -> FilingsService:
    return current_app.extensions["filings_service"]


def _bad_request(message: str, details: dict | None = None):
    return jsonify(fail(message, code="invalid_request", details=details)), 400


def _filters_from(query: FilingsQuery) -> FilingFilters:
    # Raises ValueError on malformed dates.
    return filing_filters.build_filters(
        date_from=query.start,
        date_to=query.end,
        form_types=query.forms,
        owner_only=query.owner_only,
    )


@filings_v1_bp.get("/resolve")
def resolve():
    """Resolve a ticker / company name / CIK.

    Query params:
    - q: required

    An ambiguous query is not an error here: `data.exact` is null and
    `data.candidates` holds the disambiguation list.
    """

    result = _service().resolve(request.args.get("q") or "")
    return jsonify(ok(result.as_dict()))


@filings_v1_bp.get("/suggest")
def suggest():
    query = SuggestQuery.model_validate(request.args.to_dict())
    candidates = _service().suggest(query.q, limit=query.limit)
    return jsonify(ok({"query": query.q, "candidates": [c.as_dict() for c in candidates]}))


@filings_v1_bp.get("/filings/<identifier>")
def list_filings(identifier: str):
    """Paginated filings for one entity.

    Query params:
    - forms: comma-separated form prefixes or families (OWNERSHIP, REGISTRATION, ...)
    - start/end: YYYY, YYYY-MM or YYYY-MM-DD (inclusive)
    - ownerOnly: restrict to Forms 3/4/5
    - page (1-based), pageSize (max 50)
    - enrich: mine each filing on the page for signals
    """

    query = FilingsQuery.model_validate(request.args.to_dict())
    try:
        filters = _filters_from(query)
    except ValueError as e:
        return _bad_request(str(e))

    page = _service().list_filings(
        identifier,
        filters=filters,
        page=query.page,
        page_size=query.page_size,
        enrich=query.enrich,
    )
    return jsonify(ok(page.as_dict()))


@filings_v1_bp.get("/filings/<identifier>/person")
def search_by_person(identifier: str):
    query = PersonQuery.model_validate(request.args.to_dict())
    if not query.name.strip():
        return _bad_request("Missing required query parameter: name")
    try:
        filters = _filters_from(query)
    except ValueError as e:
        return _bad_request(str(e))

    page = _service().search_by_person(
        identifier,
        query.name,
        filters=filters,
        page=query.page,
        page_size=query.page_size,
    )
    return jsonify(ok(page.as_dict()))


@filings_v1_bp.get("/filings/<identifier>/latest")
def latest_filing(identifier: str):
    form = (request.args.get("form") or "").strip() or None
    filing = _service().latest_filing(identifier, form_type=form)
    return jsonify(ok(filing.as_dict()))
