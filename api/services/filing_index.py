"""Aggregate an entity's complete filing history.

SEC publishes the newest ~1000 filings in `submissions/CIK##########.json`
under `filings.recent` and links older ones through `filings.files`
(one JSON document per chunk). Both use the same column-oriented layout:

    {"accessionNumber": [...], "filingDate": [...], "form": [...], ...}

which is transposed into `FilingRecord` rows here, at the boundary, so the
rest of the code never touches raw upstream JSON.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from logging_utils import get_logger
from models.filings import FilingRecord
from utils.errors import FilingsError, UpstreamUnavailable
from utils.identifiers import accession_dashed, accession_key, pad_cik
from utils.sec_edgar_api import fetch_submissions, fetch_submissions_file

logger = get_logger(__name__)

REQUIRED_COLUMNS = ("accessionNumber", "filingDate", "form")


class SubmissionsFormatError(UpstreamUnavailable):
    code = "upstream_format"


@dataclass(frozen=True)
class FilingIndex:
    registry_id: str
    company_name: str | None
    filings: list[FilingRecord] = field(default_factory=list)
    skipped_sources: int = 0


def _column(block: dict, name: str) -> list:
    col = block.get(name)
    return col if isinstance(col, list) else []


def _opt_date(value: Any) -> date | None:
    raw = str(value or "").strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def _opt_str(value: Any) -> str | None:
    s = str(value).strip() if value is not None else ""
    return s or None


def parse_submissions_block(block: Any, registry_id: str) -> list[FilingRecord]:
    """Transpose one column-oriented submissions block into rows.

    Raises:
        SubmissionsFormatError: when `block` is not an object or a required
            column is missing. Individual malformed rows are skipped.
    """

    if not isinstance(block, dict):
        raise SubmissionsFormatError("submissions block: expected an object")
    missing = [c for c in REQUIRED_COLUMNS if not isinstance(block.get(c), list)]
    if missing:
        raise SubmissionsFormatError(f"submissions block: missing columns {missing}")

    accessions = block["accessionNumber"]
    dates = block["filingDate"]
    forms = block["form"]
    primary_docs = _column(block, "primaryDocument")
    report_dates = _column(block, "reportDate")
    descriptions = _column(block, "primaryDocDescription")

    def _at(col: list, i: int) -> Any:
        return col[i] if i < len(col) else None

    out: list[FilingRecord] = []
    skipped = 0
    for i in range(min(len(accessions), len(dates), len(forms))):
        acc = accession_dashed(str(accessions[i] or ""))
        form = str(forms[i] or "").strip()
        filed = _opt_date(dates[i])
        if not acc or not form or filed is None:
            skipped += 1
            continue
        out.append(
            FilingRecord(
                registry_id=registry_id,
                form_type=form,
                filed_date=filed,
                accession_id=acc,
                primary_document=_opt_str(_at(primary_docs, i)),
                report_date=_opt_date(_at(report_dates, i)),
                primary_document_description=_opt_str(_at(descriptions, i)),
            )
        )

    if skipped:
        logger.debug("Skipped malformed submission rows | cik=%s skipped=%s", registry_id, skipped)
    return out


def _historical_block(payload: Any) -> Any:
    # Historical chunks are normally bare column blocks; tolerate the
    # `filings.recent` wrapper as well.
    if isinstance(payload, dict) and "accessionNumber" not in payload:
        recent = (payload.get("filings") or {}).get("recent")
        if isinstance(recent, dict):
            return recent
    return payload


def manifest_file_names(submissions: dict) -> list[str]:
    files = (submissions.get("filings") or {}).get("files")
    if not isinstance(files, list):
        return []
    names = []
    for f in files:
        name = f.get("name") if isinstance(f, dict) else None
        if isinstance(name, str) and name.strip():
            names.append(name.strip())
    return names


def merge_filings(sources: list[list[FilingRecord]]) -> list[FilingRecord]:
    """De-duplicate on accession (first occurrence wins) and sort newest first.

    The sort is stable, so same-day filings keep source order (recent index
    before historical chunks).
    """

    seen: set[str] = set()
    merged: list[FilingRecord] = []
    for rows in sources:
        for r in rows:
            key = accession_key(r.accession_id)
            if key in seen:
                continue
            seen.add(key)
            merged.append(r)
    merged.sort(key=lambda r: r.filed_date, reverse=True)
    return merged


class FilingIndexAggregator:
    def __init__(
        self,
        *,
        fetch_recent: Callable[[str], dict] = fetch_submissions,
        fetch_file: Callable[[str], dict] = fetch_submissions_file,
    ):
        self._fetch_recent = fetch_recent
        self._fetch_file = fetch_file

    def load(self, registry_id: str) -> FilingIndex:
        """Fetch recent + historical indexes for a CIK.

        Raises:
            InvalidIdentifier: malformed CIK (before any network call).
            NotFound: SEC has no submissions for this CIK.
            UpstreamUnavailable: the recent index could not be fetched/parsed.
        """

        cik = pad_cik(registry_id)
        main = self._fetch_recent(cik)
        if not isinstance(main, dict):
            raise SubmissionsFormatError(f"submissions for CIK {cik}: expected an object")

        recent = (main.get("filings") or {}).get("recent")
        sources = [parse_submissions_block(recent, cik)] if recent is not None else []

        skipped = 0
        for name in manifest_file_names(main):
            try:
                sources.append(parse_submissions_block(_historical_block(self._fetch_file(name)), cik))
            except FilingsError as e:
                skipped += 1
                logger.warning(
                    "Skipping historical submissions file | cik=%s file=%s err=%s", cik, name, e
                )

        filings = merge_filings(sources)
        logger.info(
            "Filing index loaded | cik=%s filings=%s sources=%s skipped_sources=%s",
            cik,
            len(filings),
            len(sources),
            skipped,
        )
        return FilingIndex(
            registry_id=cik,
            company_name=_opt_str(main.get("name")),
            filings=filings,
            skipped_sources=skipped,
        )

    def list_all(self, registry_id: str) -> list[FilingRecord]:
        return self.load(registry_id).filings
