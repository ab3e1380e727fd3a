"""Fetch filing documents from the EDGAR archives for mining.

Every request goes through the shared `PolitenessRateLimiter`.
"""

from __future__ import annotations

import enum
import re
import warnings
from dataclasses import dataclass

import requests
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from logging_utils import get_logger
from models.filings import FilingRecord
from utils.errors import FilingsError, NotFound
from utils.sec_edgar_api import (
    PolitenessRateLimiter,
    archive_document_url,
    fetch_filing_document,
    first_success,
)

logger = get_logger(__name__)

_XML_BLOCK_RE = re.compile(r"<XML>(.*?)</XML>", re.IGNORECASE | re.DOTALL)
_WS_RE = re.compile(r"\s+")
# Ownership forms are linked through an XSL rendering directory
# (e.g. xslF345X05/wk-form4_1700000000.xml); the raw XML sits one level up.
_XSL_PREFIX_RE = re.compile(r"^xsl[^/]*/", re.IGNORECASE)


class DocumentKind(str, enum.Enum):
    MARKUP = "markup"
    STRUCTURED = "structured"
    PLAIN = "plain"


def document_kind(document_name: str | None) -> DocumentKind:
    name = (document_name or "").lower()
    if name.endswith(".xml"):
        return DocumentKind.STRUCTURED
    if name.endswith((".htm", ".html")):
        return DocumentKind.MARKUP
    return DocumentKind.PLAIN


def html_to_text(content: str) -> str:
    """Strip tags and collapse whitespace."""

    if "<" not in content:
        return _WS_RE.sub(" ", content).strip()
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", XMLParsedAsHTMLWarning)
        soup = BeautifulSoup(content, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return _WS_RE.sub(" ", soup.get_text(separator=" ")).strip()


def extract_xml_payload(content: str) -> str | None:
    """Raw XML of a structured document, or the <XML> block of a full submission."""

    m = _XML_BLOCK_RE.search(content or "")
    if m:
        return m.group(1).strip()
    stripped = (content or "").lstrip()
    if stripped.startswith("<?xml") or stripped.startswith("<ownershipDocument"):
        return stripped
    return None


@dataclass(frozen=True)
class DocumentRef:
    """Archive address of one document.

    `document_name=None` addresses the full submission text (<accession>.txt).
    """

    registry_id: str
    accession_id: str
    document_name: str | None = None

    @property
    def resolved_name(self) -> str:
        return self.document_name or f"{self.accession_id}.txt"

    @property
    def kind(self) -> DocumentKind:
        return document_kind(self.resolved_name)

    @property
    def url(self) -> str:
        return archive_document_url(
            cik=self.registry_id,
            accession_number=self.accession_id,
            document_name=self.resolved_name,
        )

    @classmethod
    def primary_for(cls, filing: FilingRecord) -> "DocumentRef | None":
        if not filing.primary_document:
            return None
        name = _XSL_PREFIX_RE.sub("", filing.primary_document)
        return cls(filing.registry_id, filing.accession_id, name)

    @classmethod
    def full_text_for(cls, filing: FilingRecord) -> "DocumentRef":
        return cls(filing.registry_id, filing.accession_id, None)


@dataclass(frozen=True)
class FetchedDocument:
    ref: DocumentRef
    content: str

    @property
    def kind(self) -> DocumentKind:
        return self.ref.kind

    def text(self) -> str:
        return html_to_text(self.content)

    def xml(self) -> str | None:
        return extract_xml_payload(self.content)


class DocumentFetcher:
    def __init__(
        self,
        *,
        rate_limiter: PolitenessRateLimiter | None = None,
        session: requests.Session | None = None,
        timeout_seconds: float = 15.0,
        max_attempts: int = 2,
    ):
        self.rate_limiter = rate_limiter or PolitenessRateLimiter()
        self._session = session or requests.Session()
        self.timeout_seconds = float(timeout_seconds)
        self.max_attempts = int(max_attempts)

    def fetch(self, ref: DocumentRef) -> FetchedDocument:
        """Fetch one document (throttled).

        Raises:
            NotFound, UpstreamUnavailable, FetchTimeout
        """

        resp = fetch_filing_document(
            cik=ref.registry_id,
            accession_number=ref.accession_id,
            document_name=ref.resolved_name,
            session=self._session,
            rate_limiter=self.rate_limiter,
            timeout_seconds=self.timeout_seconds,
            max_attempts=self.max_attempts,
        )
        logger.debug("Fetched document | url=%s bytes=%s", ref.url, len(resp.content))
        return FetchedDocument(ref=ref, content=resp.text())

    def fetch_for_filing(self, filing: FilingRecord) -> FetchedDocument:
        """Primary document first, full submission text when it is missing."""

        refs = [r for r in (DocumentRef.primary_for(filing), DocumentRef.full_text_for(filing)) if r]
        strategies = [lambda r=r: self.fetch(r) for r in refs]
        return first_success(strategies, recoverable=(NotFound,))

    def try_fetch_for_filing(self, filing: FilingRecord) -> FetchedDocument | None:
        """Batch-friendly variant: failures are logged and mean "no document"."""

        try:
            return self.fetch_for_filing(filing)
        except FilingsError as e:
            logger.warning(
                "Document unavailable; no signal for filing | accession=%s form=%s code=%s err=%s",
                filing.accession_id,
                filing.form_type,
                e.code,
                e,
            )
            return None
