from __future__ import annotations

import json
import logging

from api.services.identifier_index import load_local_directory
from jobs import build_ticker_map, scan_filings
from logging_utils import set_log_level
from models.identifiers import IdentifierRecord


def test_build_ticker_map_writes_loadable_snapshot(tmp_path, monkeypatch):
    records = [
        IdentifierRecord("BRK-B", "BERKSHIRE HATHAWAY INC", "0001067983", "NYSE"),
        IdentifierRecord("", "SOME FOREIGN ISSUER", "0000000007"),
    ]
    monkeypatch.setattr(build_ticker_map, "load_remote_directory", lambda: records)
    out = tmp_path / "data" / "ticker_map.json"

    build_ticker_map.main(["--output", str(out)])

    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["records"][0]["ticker_variants"] == ["BRK-B", "BRK.B", "BRKB"]
    assert load_local_directory(out) == records


def test_scan_filings_list(service, capsys):
    code = scan_filings.main(["list", "NVDA", "--forms", "8-K", "--page-size", "2"], service=service)

    out = json.loads(capsys.readouterr().out)
    assert code == 0
    assert out["ok"] is True
    assert out["data"]["count"] == 2
    assert out["data"]["total"] == 7


def test_scan_filings_reports_errors_as_json(service, capsys):
    code = scan_filings.main(["latest", "42"], service=service)

    out = json.loads(capsys.readouterr().out)
    assert code == 1
    assert out["error"]["code"] == "not_found"


def test_scan_filings_bad_date(service, capsys):
    code = scan_filings.main(["person", "NVDA", "Jane Public", "--start", "soon"], service=service)

    out = json.loads(capsys.readouterr().out)
    assert code == 2
    assert out["error"]["code"] == "invalid_request"


def test_log_level_flag_reaches_existing_module_loggers(service, capsys, monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    try:
        scan_filings.main(["--log-level", "DEBUG", "resolve", "NVDA"], service=service)

        assert scan_filings.logger.level == logging.DEBUG
        assert all(h.level == logging.DEBUG for h in scan_filings.logger.handlers)
        assert logging.getLogger("filing_scout").level == logging.DEBUG
    finally:
        set_log_level("INFO")
    capsys.readouterr()
