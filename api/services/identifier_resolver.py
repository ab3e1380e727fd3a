"""Free-text identifier -> CIK resolution.

Scores every directory row against the query. Ticker matches always outrank
the corresponding name matches (tickers are less ambiguous). The thresholds
are empirical and live in `ResolverWeights` / settings so they can be tuned
without code changes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from logging_utils import get_logger
from models.identifiers import IdentifierRecord, MatchCandidate, ResolveResult
from api.services.identifier_index import IdentifierIndex, IdentifierSnapshot
from utils.errors import InvalidIdentifier, NotFound
from utils.identifiers import is_registry_id, pad_cik, ticker_key

logger = get_logger(__name__)

_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class ResolverWeights:
    ticker_exact: float = 100.0
    # Prefix/substring scores are scaled by len(query)/len(ticker):
    # base + span * tightness, so tighter matches rank higher.
    ticker_prefix_base: float = 60.0
    ticker_prefix_span: float = 20.0
    ticker_substring_base: float = 40.0
    ticker_substring_span: float = 10.0
    name_exact: float = 70.0
    name_prefix_base: float = 40.0
    name_prefix_span: float = 15.0
    name_substring_base: float = 25.0
    name_substring_span: float = 10.0
    # All query words found in the name (any order); scaled by coverage.
    name_words: float = 20.0

    disambiguation_margin: float = 10.0
    relevance_floor: float = 15.0
    max_candidates: int = 10


def normalize_ticker_query(query: str) -> str:
    return ticker_key(query)


def normalize_name(value: str) -> str:
    return _WS_RE.sub(" ", str(value or "").strip().lower())


def _scaled(base: float, span: float, part: int, whole: int) -> float:
    if whole <= 0:
        return base
    return base + span * (part / whole)


def score_record(
    record: IdentifierRecord, ticker_q: str, name_q: str, weights: ResolverWeights
) -> float:
    """Best score of `record` for a normalized query (0 when nothing matched)."""

    best = 0.0

    t = ticker_key(record.ticker)
    if ticker_q and t:
        if t == ticker_q:
            best = weights.ticker_exact
        elif t.startswith(ticker_q):
            best = _scaled(
                weights.ticker_prefix_base, weights.ticker_prefix_span, len(ticker_q), len(t)
            )
        elif ticker_q in t:
            best = _scaled(
                weights.ticker_substring_base,
                weights.ticker_substring_span,
                len(ticker_q),
                len(t),
            )

    name = normalize_name(record.display_name)
    if name_q and name:
        s = 0.0
        if name == name_q:
            s = weights.name_exact
        elif name.startswith(name_q):
            s = _scaled(weights.name_prefix_base, weights.name_prefix_span, len(name_q), len(name))
        elif name_q in name:
            s = _scaled(
                weights.name_substring_base, weights.name_substring_span, len(name_q), len(name)
            )
        else:
            words = name_q.split(" ")
            hits = sum(1 for w in words if w and w in name)
            if hits == len(words):
                s = weights.name_words * (len(name_q) / max(len(name), 1))
        best = max(best, s)

    return best


class IdentifierResolver:
    def __init__(self, index: IdentifierIndex, *, weights: ResolverWeights | None = None):
        self._index = index
        self.weights = weights or ResolverWeights()

    def resolve(self, query: str) -> ResolveResult:
        """Resolve a ticker, company name or CIK.

        Raises:
            InvalidIdentifier: empty query.
            NotFound: nothing scored above the relevance floor.
            UpstreamUnavailable: the directory could not be loaded.
        """

        raw = (query or "").strip()
        if not raw:
            raise InvalidIdentifier("Missing identifier. Provide a CIK, ticker, or company name.")

        if is_registry_id(raw):
            return self._resolve_registry_id(raw)

        ranked = self._rank(raw, self._index.snapshot())
        if not ranked:
            raise NotFound(f"No company matches {raw!r}. Pick from suggestions or enter a numeric CIK.")

        top = ranked[: self._max_candidates()]
        exact = None
        if len(top) == 1 or top[0].score - top[1].score >= self.weights.disambiguation_margin:
            exact = top[0].identifier

        logger.debug(
            "Resolved query | q=%r exact=%s candidates=%s top_score=%.1f",
            raw,
            exact.registry_id if exact else None,
            len(top),
            top[0].score,
        )
        return ResolveResult(exact=exact, candidates=tuple(top))

    def suggest(self, query: str, *, limit: int = 10) -> list[MatchCandidate]:
        """Typeahead variant: same ranking, empty list instead of NotFound."""

        raw = (query or "").strip()
        if not raw:
            return []
        if is_registry_id(raw):
            return list(self._resolve_registry_id(raw).candidates)[:limit]
        return self._rank(raw, self._index.snapshot())[: max(1, int(limit))]

    def _max_candidates(self) -> int:
        return max(5, min(int(self.weights.max_candidates), 15))

    def _resolve_registry_id(self, raw: str) -> ResolveResult:
        cik = pad_cik(raw)
        snap = self._index.peek()
        record = snap.by_registry_id.get(cik) if snap is not None else None
        if record is None:
            record = IdentifierRecord(ticker="", display_name=f"CIK {cik}", registry_id=cik)
        return ResolveResult(
            exact=record,
            candidates=(MatchCandidate(identifier=record, score=self.weights.ticker_exact),),
        )

    def _rank(self, raw: str, snapshot: IdentifierSnapshot) -> list[MatchCandidate]:
        ticker_q = normalize_ticker_query(raw)
        name_q = normalize_name(raw)

        best_by_id: dict[str, MatchCandidate] = {}
        for record in snapshot.records:
            score = score_record(record, ticker_q, name_q, self.weights)
            if score < self.weights.relevance_floor:
                continue
            prev = best_by_id.get(record.registry_id)
            if prev is None or score > prev.score:
                best_by_id[record.registry_id] = MatchCandidate(identifier=record, score=score)

        return sorted(
            best_by_id.values(),
            key=lambda c: (-c.score, c.identifier.ticker, c.identifier.registry_id),
        )
