from __future__ import annotations

import pytest
from pydantic import ValidationError

from api.schemas.api_responses import FilingsQuery, PersonQuery, fail, ok


def _assert_envelope(payload: dict) -> None:
    assert set(payload) == {"ok", "data", "error", "meta"}
    assert isinstance(payload["ok"], bool)
    assert set(payload["meta"]) == {"request_id"}


def test_ok_envelope():
    payload = ok({"count": 1, "items": [{"form_type": "8-K"}]})

    _assert_envelope(payload)
    assert payload["ok"] is True
    assert payload["error"] is None
    assert payload["data"]["items"][0]["form_type"] == "8-K"


def test_fail_envelope():
    payload = fail("nope", code="not_found", details={"registry_id": "0000000042"})

    _assert_envelope(payload)
    assert payload["ok"] is False
    assert payload["data"] is None
    assert payload["error"] == {
        "code": "not_found",
        "message": "nope",
        "details": {"registry_id": "0000000042"},
    }


def test_filings_query_reads_camel_case_and_blanks():
    q = FilingsQuery.model_validate(
        {"forms": "8-K", "pageSize": "5", "ownerOnly": "true", "page": "", "enrich": "", "start": " "}
    )

    assert q.forms == "8-K"
    assert q.page_size == 5
    assert q.owner_only is True
    assert q.page == 1
    assert q.enrich is False
    assert q.start is None


def test_filings_query_rejects_garbage():
    with pytest.raises(ValidationError):
        FilingsQuery.model_validate({"pageSize": "lots"})


def test_person_query_defaults():
    q = PersonQuery.model_validate({"name": "Jane Public"})

    assert q.name == "Jane Public"
    assert q.page_size is None
    assert q.forms is None
