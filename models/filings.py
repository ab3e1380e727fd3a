from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any
from urllib.parse import quote

from utils.identifiers import accession_key, cik_path_segment

ARCHIVES_BASE_URL = "https://www.sec.gov/Archives/edgar/data"


@dataclass(frozen=True)
class FilingRecord:
    """A single filing row from the submissions index.

    `accession_id` is kept dashed (0000320193-24-000001); `accession_key` is
    the separator-free form used in archive paths and for de-duplication.
    """

    registry_id: str
    form_type: str
    filed_date: date
    accession_id: str
    primary_document: str | None = None
    report_date: date | None = None
    primary_document_description: str | None = None

    @property
    def accession_key(self) -> str:
        return accession_key(self.accession_id)

    @property
    def archive_base_url(self) -> str:
        return f"{ARCHIVES_BASE_URL}/{cik_path_segment(self.registry_id)}/{self.accession_key}/"

    @property
    def document_url(self) -> str | None:
        if not self.primary_document:
            return None
        return self.archive_base_url + quote(self.primary_document)

    @property
    def index_url(self) -> str:
        return f"{self.archive_base_url}{self.accession_id}-index.htm"

    @property
    def full_text_url(self) -> str:
        return f"{self.archive_base_url}{self.accession_id}.txt"

    def as_dict(self) -> dict[str, Any]:
        return {
            "registry_id": self.registry_id,
            "form_type": self.form_type,
            "filed_date": self.filed_date.isoformat(),
            "report_date": self.report_date.isoformat() if self.report_date else None,
            "accession_id": self.accession_id,
            "accession_key": self.accession_key,
            "primary_document": self.primary_document,
            "primary_document_description": self.primary_document_description,
            "document_url": self.document_url,
            "index_url": self.index_url,
            "full_text_url": self.full_text_url,
        }


@dataclass(frozen=True)
class ExtractedSignals:
    item_codes: tuple[str, ...] = ()
    highlight_labels: tuple[str, ...] = ()
    largest_amount: float | None = None
    owner_names: tuple[str, ...] = ()
    owner_roles: tuple[str, ...] = ()

    @property
    def empty(self) -> bool:
        return (
            not self.item_codes
            and not self.highlight_labels
            and self.largest_amount is None
            and not self.owner_names
            and not self.owner_roles
        )


@dataclass(frozen=True)
class EnrichedFiling:
    """A filing plus the signals mined from its document.

    `mined` is False when the document could not be fetched or the batch
    deadline expired before this filing was reached.
    """

    filing: FilingRecord
    signals: ExtractedSignals = field(default_factory=ExtractedSignals)
    mined: bool = False

    def as_dict(self) -> dict[str, Any]:
        out = self.filing.as_dict()
        out.update(
            {
                "item_codes": list(self.signals.item_codes),
                "highlight_labels": list(self.signals.highlight_labels),
                "largest_amount": self.signals.largest_amount,
                "owner_names": list(self.signals.owner_names),
                "owner_roles": list(self.signals.owner_roles),
                "mined": self.mined,
            }
        )
        return out


@dataclass(frozen=True)
class FilingFilters:
    """Date / form predicates applied before pagination.

    `form_types` holds raw user tokens (case-insensitive prefixes or family
    aliases such as OWNERSHIP).
    """

    date_from: date | None = None
    date_to: date | None = None
    form_types: frozenset[str] = frozenset()
    owner_only: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "date_from": self.date_from.isoformat() if self.date_from else None,
            "date_to": self.date_to.isoformat() if self.date_to else None,
            "form_types": sorted(self.form_types),
            "owner_only": self.owner_only,
        }


@dataclass(frozen=True)
class PageWindow:
    items: list
    total: int
    page: int
    page_size: int
    has_more: bool


@dataclass
class FilingsPage:
    """Outbound page for list/person-search operations."""

    registry_id: str
    company_name: str | None
    items: list
    total: int
    page: int
    page_size: int
    has_more: bool
    filters: FilingFilters = field(default_factory=FilingFilters)
    enriched: bool = False
    partial: bool = False
    unminable: int = 0
    scanned: int | None = None
    skipped_sources: int = 0

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "registry_id": self.registry_id,
            "company_name": self.company_name,
            "count": len(self.items),
            "total": self.total,
            "page": self.page,
            "page_size": self.page_size,
            "has_more": self.has_more,
            "filters": self.filters.as_dict(),
            "enriched": self.enriched,
            "partial": self.partial,
            "unminable": self.unminable,
            "skipped_sources": self.skipped_sources,
            "items": [i.as_dict() for i in self.items],
        }
        if self.scanned is not None:
            out["scanned"] = self.scanned
        return out
