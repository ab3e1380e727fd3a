"""Shared helpers for tests.

Intended usage:
- build directory snapshots and submissions payloads without the network
- fake clocks and document fetchers for the mining loop
- wire a FilingsService entirely from fakes

These utilities keep tests small and consistent.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from api.services.document_fetcher import DocumentRef, FetchedDocument
from api.services.filing_index import FilingIndexAggregator
from api.services.filing_miner import FilingMiner
from api.services.filings_service import FilingsService
from api.services.identifier_index import IdentifierIndex
from models.filings import FilingRecord
from models.identifiers import IdentifierRecord
from utils.errors import NotFound

__all__ = [
    "DIRECTORY",
    "FORM4_XML",
    "FakeClock",
    "FakeDocumentFetcher",
    "filing",
    "make_service",
    "static_loader",
    "submissions_block",
]

NVDA_CIK = "0001045810"

DIRECTORY: list[IdentifierRecord] = [
    IdentifierRecord("NVDA", "NVIDIA CORP", NVDA_CIK, "Nasdaq"),
    IdentifierRecord("AAPL", "Apple Inc.", "0000320193", "Nasdaq"),
    IdentifierRecord("APLE", "Apple Hospitality REIT, Inc.", "0001418121", "NYSE"),
    IdentifierRecord("BRK-B", "BERKSHIRE HATHAWAY INC", "0001067983", "NYSE"),
    IdentifierRecord("BRK-A", "BERKSHIRE HATHAWAY INC", "0001067983", "NYSE"),
    IdentifierRecord("MSFT", "MICROSOFT CORP", "0000789019", "Nasdaq"),
]


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += float(seconds)


def static_loader(records: list[IdentifierRecord], source: str = "test"):
    calls = {"n": 0}

    def _load():
        calls["n"] += 1
        return list(records), source

    _load.calls = calls  # type: ignore[attr-defined]
    return _load


_COLUMNS = (
    "accessionNumber",
    "filingDate",
    "reportDate",
    "form",
    "primaryDocument",
    "primaryDocDescription",
)


def submissions_block(rows: list[dict[str, Any]]) -> dict[str, list]:
    """Column-oriented block (the SEC layout) from row dicts."""

    return {c: [r.get(c, "") for r in rows] for c in _COLUMNS}


def filing(
    accession: str,
    filed: str,
    form: str = "8-K",
    *,
    cik: str = NVDA_CIK,
    primary: str | None = "doc.htm",
) -> FilingRecord:
    return FilingRecord(
        registry_id=cik,
        form_type=form,
        filed_date=date.fromisoformat(filed),
        accession_id=accession,
        primary_document=primary,
    )


class FakeDocumentFetcher:
    """Stands in for DocumentFetcher in the mining loop.

    `documents` maps accession id -> content; missing ids are unminable.
    Each fetch advances `clock` by `cost_seconds` when a clock is given.
    """

    def __init__(self, documents: dict[str, str], *, clock: FakeClock | None = None,
                 cost_seconds: float = 0.0):
        self.documents = dict(documents)
        self.clock = clock
        self.cost_seconds = cost_seconds
        self.calls: list[str] = []

    def try_fetch_for_filing(self, filing_record: FilingRecord) -> FetchedDocument | None:
        self.calls.append(filing_record.accession_id)
        if self.clock is not None:
            self.clock.advance(self.cost_seconds)
        content = self.documents.get(filing_record.accession_id)
        if content is None:
            return None
        return FetchedDocument(ref=DocumentRef.full_text_for(filing_record), content=content)


def make_service(
    *,
    directory: list[IdentifierRecord] | None = None,
    submissions: dict[str, dict] | None = None,
    files: dict[str, Any] | None = None,
    documents: dict[str, str] | None = None,
    clock: FakeClock | None = None,
    cost_seconds: float = 0.0,
    **kwargs,
) -> FilingsService:
    """FilingsService backed by in-memory fakes (no network)."""

    clock = clock or FakeClock()
    submissions = submissions or {}
    files = files or {}

    def _fetch_recent(cik: str) -> dict:
        if cik not in submissions:
            raise NotFound(f"no submissions for {cik}")
        return submissions[cik]

    def _fetch_file(name: str) -> dict:
        payload = files.get(name)
        if isinstance(payload, Exception):
            raise payload
        if payload is None:
            raise NotFound(f"no file {name}")
        return payload

    index = IdentifierIndex(loader=static_loader(directory or DIRECTORY), clock=clock)
    fetcher = FakeDocumentFetcher(documents or {}, clock=clock, cost_seconds=cost_seconds)
    return FilingsService(
        index=index,
        aggregator=FilingIndexAggregator(fetch_recent=_fetch_recent, fetch_file=_fetch_file),
        fetcher=fetcher,  # type: ignore[arg-type]
        miner=FilingMiner(fetcher, clock=clock),  # type: ignore[arg-type]
        **kwargs,
    )


# Form 4 as filed (two owners, one repeated).
FORM4_XML = """<?xml version="1.0"?>
<ownershipDocument>
  <schemaVersion>X0508</schemaVersion>
  <documentType>4</documentType>
  <issuer><issuerCik>0001045810</issuerCik><issuerName>NVIDIA CORP</issuerName></issuer>
  <reportingOwner>
    <reportingOwnerId>
      <rptOwnerCik>0001197647</rptOwnerCik>
      <rptOwnerName>HUANG JEN HSUN</rptOwnerName>
    </reportingOwnerId>
    <reportingOwnerRelationship>
      <isDirector>1</isDirector>
      <isOfficer>true</isOfficer>
      <officerTitle>President and CEO</officerTitle>
      <isTenPercentOwner>0</isTenPercentOwner>
    </reportingOwnerRelationship>
  </reportingOwner>
  <reportingOwner>
    <reportingOwnerId><rptOwnerName>Jen-Hsun &amp; Lori Huang Foundation</rptOwnerName></reportingOwnerId>
    <reportingOwnerRelationship>
      <isOther>1</isOther>
      <otherText>See Remarks</otherText>
    </reportingOwnerRelationship>
  </reportingOwner>
  <reportingOwner>
    <reportingOwnerId><rptOwnerName>HUANG JEN HSUN</rptOwnerName></reportingOwnerId>
    <reportingOwnerRelationship><isDirector>1</isDirector></reportingOwnerRelationship>
  </reportingOwner>
</ownershipDocument>
"""
