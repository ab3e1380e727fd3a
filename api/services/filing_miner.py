"""Sequential document mining over a list of filings.

Documents are fetched one at a time through the fetcher's shared rate
limiter. A soft deadline wraps the whole batch: once it passes, the remaining
filings are returned un-mined and the batch is flagged `partial`.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from logging_utils import get_logger
from models.filings import EnrichedFiling, ExtractedSignals, FilingRecord
from api.services.document_fetcher import DocumentFetcher, FetchedDocument
from api.services.name_matcher import matches
from api.services.signal_extractor import extract_signals

logger = get_logger(__name__)


@dataclass
class MiningBatch:
    items: list[EnrichedFiling] = field(default_factory=list)
    partial: bool = False
    unminable: int = 0
    scanned: int = 0


def document_mentions(document: FetchedDocument, signals: ExtractedSignals, person_name: str) -> bool:
    """True when the document names `person_name`.

    Ownership documents are matched on their reporting owners (each one is a
    reporting person by definition); everything else on the plain text.
    """

    if signals.owner_names:
        return any(matches(f"reporting owner {n}", person_name) for n in signals.owner_names)
    return matches(document.text(), person_name)


class FilingMiner:
    def __init__(self, fetcher: DocumentFetcher, *, clock: Callable[[], float] = time.monotonic):
        self._fetcher = fetcher
        self._clock = clock

    def _mine_one(self, filing: FilingRecord) -> tuple[EnrichedFiling, FetchedDocument | None]:
        document = self._fetcher.try_fetch_for_filing(filing)
        if document is None:
            return EnrichedFiling(filing=filing, mined=False), None
        signals = extract_signals(document.content, filing.form_type)
        return EnrichedFiling(filing=filing, signals=signals, mined=True), document

    def enrich(self, filings: Sequence[FilingRecord], *, deadline_seconds: float | None = None) -> MiningBatch:
        batch = MiningBatch()
        deadline = self._deadline(deadline_seconds)

        for filing in filings:
            if deadline is not None and self._clock() >= deadline:
                batch.partial = True
                batch.items.append(EnrichedFiling(filing=filing, mined=False))
                continue
            enriched, _document = self._mine_one(filing)
            batch.scanned += 1
            if not enriched.mined:
                batch.unminable += 1
            batch.items.append(enriched)

        if batch.partial or batch.unminable:
            logger.info(
                "Mining batch incomplete | filings=%s scanned=%s unminable=%s partial=%s",
                len(filings),
                batch.scanned,
                batch.unminable,
                batch.partial,
            )
        return batch

    def search_person(
        self,
        filings: Sequence[FilingRecord],
        person_name: str,
        *,
        deadline_seconds: float | None = None,
        max_documents: int | None = None,
    ) -> MiningBatch:
        """Scan filings newest first; keep the ones that mention `person_name`."""

        batch = MiningBatch()
        deadline = self._deadline(deadline_seconds)

        for filing in filings:
            if max_documents is not None and batch.scanned >= max_documents:
                batch.partial = True
                break
            if deadline is not None and self._clock() >= deadline:
                batch.partial = True
                break

            enriched, document = self._mine_one(filing)
            batch.scanned += 1
            if document is None:
                batch.unminable += 1
                continue
            if document_mentions(document, enriched.signals, person_name):
                batch.items.append(enriched)

        logger.info(
            "Person search done | filings=%s scanned=%s matches=%s unminable=%s partial=%s",
            len(filings),
            batch.scanned,
            len(batch.items),
            batch.unminable,
            batch.partial,
        )
        return batch

    def _deadline(self, seconds: float | None) -> float | None:
        if seconds is None or seconds <= 0:
            return None
        return self._clock() + float(seconds)
