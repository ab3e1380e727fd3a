from __future__ import annotations

from typing import Any


def _ok(resp, status: int = 200) -> Any:
    assert resp.status_code == status, resp.get_data(as_text=True)
    payload = resp.get_json()
    assert payload["ok"] is True
    assert payload["error"] is None
    return payload["data"]


def _err(resp, status: int, code: str) -> dict:
    assert resp.status_code == status, resp.get_data(as_text=True)
    payload = resp.get_json()
    assert payload["ok"] is False
    assert payload["data"] is None
    assert payload["error"]["code"] == code
    return payload["error"]


def test_filings_nvda_eight_k_page(client):
    data = _ok(client.get("/api/v1/filings/NVDA?forms=8-K&pageSize=5"))

    assert data["registry_id"] == "0001045810"
    assert data["count"] == 5
    assert data["total"] == 7
    assert data["has_more"] is True
    assert data["filters"]["form_types"] == ["8-K"]
    dates = [i["filed_date"] for i in data["items"]]
    assert dates == sorted(dates, reverse=True)
    assert all(i["accession_id"] and i["index_url"].endswith("-index.htm") for i in data["items"])


def test_filings_date_filters_and_owner_only(client):
    data = _ok(client.get("/api/v1/filings/NVDA?start=2024-06&end=2024-09&ownerOnly=true"))

    assert [i["form_type"] for i in data["items"]] == ["4", "4"]
    assert data["filters"]["date_from"] == "2024-06-01"
    assert data["filters"]["date_to"] == "2024-09-30"


def test_filings_page_size_is_clamped(client):
    data = _ok(client.get("/api/v1/filings/NVDA?pageSize=500"))

    assert data["page_size"] == 50
    assert data["count"] == 15


def test_enrich_flag_adds_signal_fields(client):
    data = _ok(client.get("/api/v1/filings/NVDA?forms=10-K&pageSize=1&enrich=1"))

    item = data["items"][0]
    assert data["enriched"] is True
    assert item["mined"] is False
    assert data["unminable"] == 1
    assert item["item_codes"] == []
    # Same flat shape as an un-enriched item, plus the signal fields.
    assert item["accession_id"] == "0001045810-24-000100"
    assert item["form_type"] == "10-K"
    assert "filing" not in item


def test_resolve_exact(client):
    data = _ok(client.get("/api/v1/resolve?q=nvda"))

    assert data["exact"]["ticker"] == "NVDA"
    assert data["ambiguous"] is False


def test_resolve_ambiguous_is_not_an_error(client):
    data = _ok(client.get("/api/v1/resolve?q=apple"))

    assert data["exact"] is None
    assert data["ambiguous"] is True
    assert [c["ticker"] for c in data["candidates"]] == ["AAPL", "APLE"]


def test_resolve_empty_query(client):
    _err(client.get("/api/v1/resolve?q="), 400, "invalid_identifier")


def test_filings_for_ambiguous_identifier(client):
    err = _err(client.get("/api/v1/filings/apple"), 300, "ambiguous_identifier")

    assert len(err["details"]["candidates"]) == 2


def test_filings_unknown_cik(client):
    _err(client.get("/api/v1/filings/42"), 404, "not_found")


def test_bad_date_is_rejected(client):
    _err(client.get("/api/v1/filings/NVDA?start=yesterday"), 400, "invalid_request")


def test_bad_page_is_rejected(client):
    err = _err(client.get("/api/v1/filings/NVDA?page=abc"), 400, "invalid_request")

    assert err["details"]["fields"] == ["page"]


def test_person_requires_name(client):
    _err(client.get("/api/v1/filings/NVDA/person?name="), 400, "invalid_request")


def test_person_search_reports_scan(client):
    data = _ok(client.get("/api/v1/filings/NVDA/person?name=Jane%20Public"))

    assert data["count"] == 0
    assert data["scanned"] == 6
    assert data["unminable"] == 6
    assert data["filters"]["form_types"] == ["OWNERSHIP"]


def test_latest(client):
    data = _ok(client.get("/api/v1/filings/NVDA/latest?form=10-K"))

    assert data["accession_id"] == "0001045810-24-000100"
    assert data["full_text_url"].endswith("0001045810-24-000100.txt")


def test_suggest(client):
    data = _ok(client.get("/api/v1/suggest?q=brk&limit=3"))

    assert [c["registry_id"] for c in data["candidates"]] == ["0001067983"]


def test_suggest_limit_validated(client):
    _err(client.get("/api/v1/suggest?q=a&limit=0"), 400, "invalid_request")


def test_health_reports_index_state(client):
    data = _ok(client.get("/health"))
    assert data["identifier_index"]["loaded"] is False

    client.get("/api/v1/resolve?q=nvda")
    data = _ok(client.get("/health"))

    assert data["identifier_index"]["loaded"] is True
    assert data["identifier_index"]["records"] == 6
    assert data["identifier_index"]["stale"] is False


def test_unknown_route_is_json_404(client):
    _err(client.get("/nope"), 404, "not_found")
