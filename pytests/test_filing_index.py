from __future__ import annotations

from datetime import date

import pytest

from api.services.filing_index import (
    FilingIndexAggregator,
    SubmissionsFormatError,
    manifest_file_names,
    merge_filings,
    parse_submissions_block,
)
from pytests.common import filing, submissions_block
from utils.errors import InvalidIdentifier, NotFound, UpstreamUnavailable

CIK = "0000320193"


def _main(recent_rows, files=()):
    return {
        "name": "Apple Inc.",
        "filings": {
            "recent": submissions_block(recent_rows),
            "files": [{"name": n} for n in files],
        },
    }


def test_parse_block_transposes_columns():
    block = submissions_block(
        [
            {
                "accessionNumber": "000032019324000123",
                "filingDate": "2024-11-01",
                "reportDate": "2024-09-28",
                "form": "10-K",
                "primaryDocument": "aapl-20240928.htm",
                "primaryDocDescription": "10-K",
            }
        ]
    )
    block["someNewColumn"] = ["ignored"]

    rows = parse_submissions_block(block, CIK)

    assert len(rows) == 1
    r = rows[0]
    assert r.accession_id == "0000320193-24-000123"
    assert r.accession_key == "000032019324000123"
    assert r.filed_date == date(2024, 11, 1)
    assert r.report_date == date(2024, 9, 28)
    assert r.document_url == (
        "https://www.sec.gov/Archives/edgar/data/320193/000032019324000123/aapl-20240928.htm"
    )


def test_parse_block_skips_malformed_rows():
    block = submissions_block(
        [
            {"accessionNumber": "", "filingDate": "2024-01-01", "form": "8-K"},
            {"accessionNumber": "0000320193-24-000002", "filingDate": "not-a-date", "form": "8-K"},
            {"accessionNumber": "0000320193-24-000003", "filingDate": "2024-01-03", "form": "8-K"},
        ]
    )

    rows = parse_submissions_block(block, CIK)

    assert [r.accession_id for r in rows] == ["0000320193-24-000003"]


def test_parse_block_missing_required_column_fails_closed():
    block = submissions_block([{"accessionNumber": "x", "filingDate": "2024-01-01", "form": "4"}])
    del block["form"]

    with pytest.raises(SubmissionsFormatError):
        parse_submissions_block(block, CIK)


def test_manifest_file_names_in_order():
    main = {"filings": {"files": [{"name": "b.json"}, {"bogus": 1}, {"name": "a.json"}]}}

    assert manifest_file_names(main) == ["b.json", "a.json"]


def test_merge_dedups_and_sorts_stably():
    recent = [
        filing("0000320193-24-000003", "2024-03-01"),
        filing("0000320193-24-000002", "2024-02-01", form="4"),
    ]
    historical = [
        filing("000032019324000002", "2024-02-01", form="4/A"),  # same accession, other spelling
        filing("0000320193-24-000001", "2024-02-01", form="10-Q"),
        filing("0000320193-19-000001", "2019-01-01"),
    ]

    merged = merge_filings([recent, historical])

    assert [f.accession_key for f in merged] == [
        "000032019324000003",
        "000032019324000002",
        "000032019324000001",
        "000032019319000001",
    ]
    # First occurrence wins; ties keep recent before historical.
    assert merged[1].form_type == "4"
    dates = [f.filed_date for f in merged]
    assert dates == sorted(dates, reverse=True)


def test_aggregator_merges_recent_and_historical():
    main = _main(
        [{"accessionNumber": "0000320193-24-000001", "filingDate": "2024-01-02", "form": "8-K"}],
        files=["CIK0000320193-submissions-001.json"],
    )
    history = submissions_block(
        [{"accessionNumber": "0000320193-10-000001", "filingDate": "2010-01-02", "form": "10-K"}]
    )
    fetched = []

    agg = FilingIndexAggregator(
        fetch_recent=lambda cik: fetched.append(cik) or main,
        fetch_file=lambda name: history,
    )
    idx = agg.load("320193")

    assert fetched == [CIK]
    assert idx.company_name == "Apple Inc."
    assert [f.form_type for f in idx.filings] == ["8-K", "10-K"]
    assert idx.skipped_sources == 0


def test_historical_recent_wrapper_is_accepted():
    main = _main([], files=["old.json"])
    wrapped = {
        "filings": {
            "recent": submissions_block(
                [{"accessionNumber": "0000320193-05-000001", "filingDate": "2005-01-02", "form": "4"}]
            )
        }
    }

    agg = FilingIndexAggregator(fetch_recent=lambda cik: main, fetch_file=lambda name: wrapped)

    assert [f.accession_id for f in agg.list_all(CIK)] == ["0000320193-05-000001"]


def test_historical_failure_is_skipped():
    main = _main(
        [{"accessionNumber": "0000320193-24-000001", "filingDate": "2024-01-02", "form": "8-K"}],
        files=["broken.json", "missing.json"],
    )

    def _fetch_file(name):
        if name == "broken.json":
            return {"not": "columns"}
        raise UpstreamUnavailable("503")

    idx = FilingIndexAggregator(fetch_recent=lambda cik: main, fetch_file=_fetch_file).load(CIK)

    assert len(idx.filings) == 1
    assert idx.skipped_sources == 2


def test_invalid_registry_id_raises_before_network():
    calls = []
    agg = FilingIndexAggregator(fetch_recent=lambda cik: calls.append(cik), fetch_file=lambda n: {})

    with pytest.raises(InvalidIdentifier):
        agg.load("AAPL")
    assert calls == []


def test_primary_index_failures_are_fatal():
    def _missing(cik):
        raise NotFound("404")

    def _down(cik):
        raise UpstreamUnavailable("502")

    with pytest.raises(NotFound):
        FilingIndexAggregator(fetch_recent=_missing).load(CIK)
    with pytest.raises(UpstreamUnavailable):
        FilingIndexAggregator(fetch_recent=_down).load(CIK)
