from __future__ import annotations

import pytest

from api.services.document_fetcher import (
    DocumentFetcher,
    DocumentKind,
    DocumentRef,
    FetchedDocument,
    document_kind,
    extract_xml_payload,
    html_to_text,
)
from pytests.common import filing
from utils.errors import UpstreamUnavailable


class _FakeResponse:
    def __init__(self, *, status_code: int, content: bytes = b"", headers: dict | None = None):
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}


class _FakeSession:
    def __init__(self, responses):
        self._responses = list(responses)
        self.urls: list[str] = []

    def get(self, url, headers=None, timeout=None):
        self.urls.append(url)
        return self._responses.pop(0)


class _CountingLimiter:
    def __init__(self):
        self.acquires = 0

    def acquire(self):
        self.acquires += 1


ACC = "0001045810-24-000002"
BASE = "https://www.sec.gov/Archives/edgar/data/1045810/000104581024000002/"


@pytest.mark.parametrize(
    "name,kind",
    [
        ("form4.xml", DocumentKind.STRUCTURED),
        ("nvda-8k.htm", DocumentKind.MARKUP),
        ("EX-99.HTML", DocumentKind.MARKUP),
        ("0001045810-24-000002.txt", DocumentKind.PLAIN),
        (None, DocumentKind.PLAIN),
    ],
)
def test_document_kind(name, kind):
    assert document_kind(name) is kind


def test_primary_ref_drops_xsl_rendering_prefix():
    ref = DocumentRef.primary_for(filing(ACC, "2024-11-01", "4", primary="xslF345X05/wk-form4_1.xml"))

    assert ref.document_name == "wk-form4_1.xml"
    assert ref.kind is DocumentKind.STRUCTURED
    assert ref.url == BASE + "wk-form4_1.xml"


def test_full_text_ref():
    ref = DocumentRef.full_text_for(filing(ACC, "2024-11-01"))

    assert ref.resolved_name == f"{ACC}.txt"
    assert ref.url == BASE + f"{ACC}.txt"


def test_fetch_for_filing_falls_back_to_full_text_on_404():
    session = _FakeSession(
        [
            _FakeResponse(status_code=404),
            _FakeResponse(status_code=200, content=b"<SEC-DOCUMENT>Item 2.02</SEC-DOCUMENT>"),
        ]
    )
    limiter = _CountingLimiter()
    fetcher = DocumentFetcher(rate_limiter=limiter, session=session)

    doc = fetcher.fetch_for_filing(filing(ACC, "2024-11-01", primary="nvda-8k.htm"))

    assert session.urls == [BASE + "nvda-8k.htm", BASE + f"{ACC}.txt"]
    assert "Item 2.02" in doc.content
    assert doc.kind is DocumentKind.PLAIN
    # Every request went through the limiter.
    assert limiter.acquires == 2


def test_filing_without_primary_document_goes_to_full_text():
    session = _FakeSession([_FakeResponse(status_code=200, content=b"text")])
    fetcher = DocumentFetcher(rate_limiter=_CountingLimiter(), session=session)

    fetcher.fetch_for_filing(filing(ACC, "2024-11-01", primary=None))

    assert session.urls == [BASE + f"{ACC}.txt"]


def test_upstream_error_does_not_fall_back():
    session = _FakeSession([_FakeResponse(status_code=403)])
    fetcher = DocumentFetcher(rate_limiter=_CountingLimiter(), session=session, max_attempts=1)

    with pytest.raises(UpstreamUnavailable):
        fetcher.fetch_for_filing(filing(ACC, "2024-11-01"))
    assert len(session.urls) == 1


def test_try_fetch_returns_none_on_failure():
    session = _FakeSession([_FakeResponse(status_code=404), _FakeResponse(status_code=404)])
    fetcher = DocumentFetcher(rate_limiter=_CountingLimiter(), session=session)

    assert fetcher.try_fetch_for_filing(filing(ACC, "2024-11-01")) is None


def test_html_to_text_strips_markup_and_scripts():
    html = (
        "<html><head><style>p {color: red}</style><script>var x = 1;</script></head>"
        "<body><p>Item&nbsp;2.02</p>\n\n<p>Results   of Operations</p></body></html>"
    )

    text = html_to_text(html)

    assert "Item" in text and "2.02" in text
    assert "Results of Operations" in text
    assert "var x" not in text
    assert "color" not in text


def test_extract_xml_payload_from_full_submission():
    full = (
        "<SEC-DOCUMENT>\n<DOCUMENT>\n<TYPE>4\n<TEXT>\n<XML>\n"
        "<?xml version=\"1.0\"?>\n<ownershipDocument></ownershipDocument>\n"
        "</XML>\n</TEXT>\n</DOCUMENT>\n</SEC-DOCUMENT>"
    )

    payload = extract_xml_payload(full)

    assert payload.startswith("<?xml")
    assert payload.endswith("</ownershipDocument>")


def test_extract_xml_payload_raw_and_missing():
    assert extract_xml_payload("<ownershipDocument/>") == "<ownershipDocument/>"
    assert extract_xml_payload("<html>no xml</html>") is None


def test_fetched_document_views():
    ref = DocumentRef.full_text_for(filing(ACC, "2024-11-01", "4"))
    doc = FetchedDocument(ref=ref, content="<TEXT><XML><ownershipDocument/></XML></TEXT>")

    assert doc.xml() == "<ownershipDocument/>"
    assert doc.kind is DocumentKind.PLAIN
