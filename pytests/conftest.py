from __future__ import annotations

import os
import tempfile
from pathlib import Path

# Keep per-module log files out of the working tree during tests.
os.environ.setdefault(
    "FILING_SCOUT_LOG_DIR", str(Path(tempfile.gettempdir()) / "filing_scout_test_logs")
)

import pytest

from app import create_app
from pytests.common import NVDA_CIK, FakeClock, make_service, submissions_block


def _nvda_rows() -> list[dict]:
    # Newest first, as SEC publishes them; mix of 8-Ks, Form 4s and periodic reports.
    rows = []
    for i in range(12):
        rows.append(
            {
                "accessionNumber": f"0001045810-24-{i + 1:06d}",
                "filingDate": f"2024-{12 - i:02d}-15",
                "form": "8-K" if i % 2 == 0 else "4",
                "primaryDocument": "nvda-8k.htm" if i % 2 == 0 else "xslF345X05/wk-form4.xml",
            }
        )
    rows.append(
        {
            "accessionNumber": "0001045810-24-000100",
            "filingDate": "2024-02-21",
            "form": "10-K",
            "primaryDocument": "nvda-10k.htm",
        }
    )
    return rows


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def nvda_submissions() -> dict:
    return {
        "cik": "1045810",
        "name": "NVIDIA CORP",
        "filings": {
            "recent": submissions_block(_nvda_rows()),
            "files": [{"name": "CIK0001045810-submissions-001.json", "filingCount": 2}],
        },
    }


@pytest.fixture()
def nvda_history() -> dict:
    return {
        "CIK0001045810-submissions-001.json": submissions_block(
            [
                {"accessionNumber": "0001045810-03-000001", "filingDate": "2003-05-01", "form": "8-K"},
                {"accessionNumber": "0001045810-02-000001", "filingDate": "2002-03-01", "form": "10-K"},
            ]
        )
    }


@pytest.fixture()
def service(nvda_submissions, nvda_history, clock):
    return make_service(
        submissions={NVDA_CIK: nvda_submissions},
        files=nvda_history,
        clock=clock,
    )


@pytest.fixture()
def client(service):
    app = create_app(service=service)
    app.config.update(TESTING=True)

    with app.test_client() as c:
        yield c
