"""Request-level orchestration: resolve -> index -> filter/paginate -> mine.

`FilingsService` is the only object the HTTP layer and the CLI jobs talk to.
Everything it needs is injectable; `create_filings_service(config)` wires the
production collaborators from a Flask config mapping (or `SETTINGS`).
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

import requests

from logging_utils import get_logger
from models.filings import FilingFilters, FilingRecord, FilingsPage
from models.identifiers import IdentifierRecord, MatchCandidate, ResolveResult
from settings import SETTINGS
from api.services import filing_filters
from api.services.document_fetcher import DocumentFetcher
from api.services.filing_index import FilingIndexAggregator
from api.services.filing_miner import FilingMiner
from api.services.identifier_index import IdentifierIndex, make_directory_loader
from api.services.identifier_resolver import IdentifierResolver, ResolverWeights
from utils.errors import AmbiguousIdentifier, InvalidIdentifier, NotFound
from utils.sec_edgar_api import PolitenessRateLimiter, fetch_submissions, fetch_submissions_file

logger = get_logger(__name__)

_limiters_lock = threading.Lock()
_document_limiters: dict[float, PolitenessRateLimiter] = {}


def shared_document_limiter(interval_seconds: float) -> PolitenessRateLimiter:
    """One limiter per interval for the whole process (all requests share it)."""

    key = float(interval_seconds)
    with _limiters_lock:
        limiter = _document_limiters.get(key)
        if limiter is None:
            limiter = PolitenessRateLimiter(key)
            _document_limiters[key] = limiter
        return limiter


class FilingsService:
    def __init__(
        self,
        *,
        index: IdentifierIndex,
        resolver: IdentifierResolver | None = None,
        aggregator: FilingIndexAggregator | None = None,
        fetcher: DocumentFetcher | None = None,
        miner: FilingMiner | None = None,
        default_page_size: int = 10,
        max_page_size: int = filing_filters.MAX_PAGE_SIZE,
        mining_deadline_seconds: float | None = 45.0,
        person_search_max_documents: int = 200,
        person_search_deadline_seconds: float | None = 60.0,
    ):
        self.index = index
        self.resolver = resolver or IdentifierResolver(index)
        self.aggregator = aggregator or FilingIndexAggregator()
        self.fetcher = fetcher or DocumentFetcher()
        self.miner = miner or FilingMiner(self.fetcher)
        self.default_page_size = int(default_page_size)
        self.max_page_size = int(max_page_size)
        self.mining_deadline_seconds = mining_deadline_seconds
        self.person_search_max_documents = int(person_search_max_documents)
        self.person_search_deadline_seconds = person_search_deadline_seconds

    # --- identifiers --------------------------------------------------------

    def resolve(self, query: str) -> ResolveResult:
        return self.resolver.resolve(query)

    def suggest(self, query: str, limit: int = 10) -> list[MatchCandidate]:
        return self.resolver.suggest(query, limit=limit)

    def resolve_registry_id(self, identifier: str) -> IdentifierRecord:
        """Resolve to exactly one entity.

        Raises:
            AmbiguousIdentifier: several candidates scored too close to pick.
        """

        result = self.resolver.resolve(identifier)
        if result.exact is None:
            raise AmbiguousIdentifier(
                f"{identifier!r} matches several companies; pick one.",
                candidates=list(result.candidates),
            )
        return result.exact

    # --- filings ------------------------------------------------------------

    def _page_kwargs(self) -> dict[str, int]:
        return {"max_page_size": self.max_page_size, "default_page_size": self.default_page_size}

    def list_filings(
        self,
        identifier: str,
        filters: FilingFilters | None = None,
        page: int | None = 1,
        page_size: int | None = None,
        enrich: bool = False,
    ) -> FilingsPage:
        filters = filters or FilingFilters()
        record = self.resolve_registry_id(identifier)
        idx = self.aggregator.load(record.registry_id)

        window = filing_filters.apply(idx.filings, filters, page, page_size, **self._page_kwargs())
        result = FilingsPage(
            registry_id=idx.registry_id,
            company_name=idx.company_name or record.display_name,
            items=window.items,
            total=window.total,
            page=window.page,
            page_size=window.page_size,
            has_more=window.has_more,
            filters=filters,
            skipped_sources=idx.skipped_sources,
        )

        if enrich and window.items:
            batch = self.miner.enrich(window.items, deadline_seconds=self.mining_deadline_seconds)
            result.items = batch.items
            result.enriched = True
            result.partial = batch.partial
            result.unminable = batch.unminable
        return result

    def search_by_person(
        self,
        identifier: str,
        person_name: str,
        filters: FilingFilters | None = None,
        page: int | None = 1,
        page_size: int | None = None,
    ) -> FilingsPage:
        """Filings of `identifier` whose documents mention `person_name`.

        Without a form filter only ownership filings (3/4/5) are scanned.
        Scanning stops after `person_search_max_documents` documents or the
        deadline, whichever comes first; the page then reports `partial`.
        """

        name = (person_name or "").strip()
        if not name:
            raise InvalidIdentifier("Missing person name.")

        filters = filters or FilingFilters()
        if not filters.form_types and not filters.owner_only:
            filters = replace(filters, form_types=frozenset({"OWNERSHIP"}))

        record = self.resolve_registry_id(identifier)
        idx = self.aggregator.load(record.registry_id)
        candidates = filing_filters.apply_filters(idx.filings, filters)

        batch = self.miner.search_person(
            candidates,
            name,
            deadline_seconds=self.person_search_deadline_seconds,
            max_documents=self.person_search_max_documents,
        )
        window = filing_filters.paginate(batch.items, page, page_size, **self._page_kwargs())
        return FilingsPage(
            registry_id=idx.registry_id,
            company_name=idx.company_name or record.display_name,
            items=window.items,
            total=window.total,
            page=window.page,
            page_size=window.page_size,
            has_more=window.has_more,
            filters=filters,
            enriched=True,
            partial=batch.partial,
            unminable=batch.unminable,
            scanned=batch.scanned,
            skipped_sources=idx.skipped_sources,
        )

    def latest_filing(self, identifier: str, form_type: str | None = None) -> FilingRecord:
        """Most recent filing, optionally of one form type.

        Raises:
            NotFound: the entity has no (matching) filing.
        """

        record = self.resolve_registry_id(identifier)
        filings = self.aggregator.list_all(record.registry_id)
        if form_type and form_type.strip():
            filings = filing_filters.apply_filters(
                filings, filing_filters.build_filters(form_types=form_type)
            )
        if not filings:
            suffix = f" of form {form_type.strip().upper()}" if form_type and form_type.strip() else ""
            raise NotFound(f"No filing{suffix} found for CIK {record.registry_id}.")
        return filings[0]


def _cfg(config: Mapping[str, Any], key: str) -> Any:
    value = config.get(key)
    return SETTINGS[key] if value is None else value


def create_filings_service(
    config: Mapping[str, Any] | None = None, *, session: requests.Session | None = None
) -> FilingsService:
    """Wire a production FilingsService from a config mapping (Flask app.config)."""

    config = config if config is not None else SETTINGS
    session = session or requests.Session()

    index = IdentifierIndex(
        loader=make_directory_loader(
            local_path=(config.get("LOCAL_TICKER_MAP_PATH") or None), session=session
        ),
        ttl_seconds=float(_cfg(config, "IDENTIFIER_INDEX_TTL_SECONDS")),
    )
    weights = ResolverWeights(
        disambiguation_margin=float(_cfg(config, "RESOLVER_DISAMBIGUATION_MARGIN")),
        relevance_floor=float(_cfg(config, "RESOLVER_RELEVANCE_FLOOR")),
        max_candidates=int(_cfg(config, "RESOLVER_MAX_CANDIDATES")),
    )
    aggregator = FilingIndexAggregator(
        fetch_recent=lambda cik: fetch_submissions(cik, session=session),
        fetch_file=lambda name: fetch_submissions_file(name, session=session),
    )
    fetcher = DocumentFetcher(
        rate_limiter=shared_document_limiter(float(_cfg(config, "DOCUMENT_THROTTLE_SECONDS"))),
        session=session,
        timeout_seconds=float(_cfg(config, "DOCUMENT_TIMEOUT_SECONDS")),
    )

    logger.info(
        "Filings service configured | ttl_s=%s throttle_s=%s local_map=%s",
        index.ttl_seconds,
        fetcher.rate_limiter.interval_seconds,
        bool(config.get("LOCAL_TICKER_MAP_PATH")),
    )
    return FilingsService(
        index=index,
        resolver=IdentifierResolver(index, weights=weights),
        aggregator=aggregator,
        fetcher=fetcher,
        default_page_size=int(_cfg(config, "DEFAULT_PAGE_SIZE")),
        max_page_size=int(_cfg(config, "MAX_PAGE_SIZE")),
        mining_deadline_seconds=float(_cfg(config, "MINING_DEADLINE_SECONDS")),
        person_search_max_documents=int(_cfg(config, "PERSON_SEARCH_MAX_DOCUMENTS")),
        person_search_deadline_seconds=float(_cfg(config, "PERSON_SEARCH_DEADLINE_SECONDS")),
    )
