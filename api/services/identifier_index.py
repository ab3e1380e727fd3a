"""In-process cache of the SEC ticker directory.

The directory (~10k rows) is loaded in bulk, wrapped in an immutable
`IdentifierSnapshot` and swapped in with a single attribute assignment, so
readers always see a complete old or new snapshot.

Refresh is single-flight: at most one upstream load runs at a time. While it
runs, readers that already have a (stale) snapshot keep using it; only a cold
start waits for the load.
"""

from __future__ import annotations

import json
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import requests

from logging_utils import get_logger
from models.identifiers import IdentifierRecord
from utils.errors import FilingsError, UpstreamUnavailable
from utils.identifiers import is_registry_id, pad_cik, ticker_key
from utils.sec_edgar_api import (
    fetch_company_tickers,
    fetch_company_tickers_exchange,
    first_success,
)

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 6 * 60 * 60
# After a failed refresh with a stale snapshot on hand, wait this long before retrying.
FAILED_REFRESH_RETRY_SECONDS = 60.0


class DirectoryFormatError(UpstreamUnavailable):
    code = "upstream_format"


@dataclass(frozen=True)
class IdentifierSnapshot:
    records: tuple[IdentifierRecord, ...]
    loaded_at: float
    source: str = "sec"
    by_registry_id: dict[str, IdentifierRecord] = field(
        default_factory=dict, compare=False, repr=False
    )

    @classmethod
    def build(
        cls, records: list[IdentifierRecord], *, loaded_at: float, source: str
    ) -> "IdentifierSnapshot":
        by_id: dict[str, IdentifierRecord] = {}
        for r in records:
            # First row per CIK is SEC's primary ticker for that entity.
            by_id.setdefault(r.registry_id, r)
        return cls(
            records=tuple(records), loaded_at=loaded_at, source=source, by_registry_id=by_id
        )

    def __len__(self) -> int:
        return len(self.records)


def _record_from_parts(cik: Any, ticker: Any, title: Any, exchange: Any = None):
    if cik is None or not is_registry_id(str(cik).strip()):
        return None
    t = str(ticker or "").strip().upper()
    name = str(title or "").strip()
    if not t and not name:
        return None
    ex = str(exchange).strip() if exchange else None
    return IdentifierRecord(
        ticker=t, display_name=name or t, registry_id=pad_cik(str(cik).strip()), exchange=ex or None
    )


def parse_company_tickers(payload: Any) -> list[IdentifierRecord]:
    """Parse company_tickers.json ({"0": {cik_str, ticker, title}, ...}).

    Rows without a usable CIK are skipped; a payload that yields no rows at
    all is treated as a format error.
    """

    if not isinstance(payload, dict):
        raise DirectoryFormatError("company_tickers.json: expected an object")

    out: list[IdentifierRecord] = []
    for row in payload.values():
        if not isinstance(row, dict):
            continue
        rec = _record_from_parts(row.get("cik_str"), row.get("ticker"), row.get("title"))
        if rec is not None:
            out.append(rec)

    if payload and not out:
        raise DirectoryFormatError("company_tickers.json: no usable rows")
    return out


def parse_company_tickers_exchange(payload: Any) -> list[IdentifierRecord]:
    """Parse company_tickers_exchange.json ({"fields": [...], "data": [[...]]})."""

    if not isinstance(payload, dict):
        raise DirectoryFormatError("company_tickers_exchange.json: expected an object")
    fields = payload.get("fields")
    data = payload.get("data")
    if not isinstance(fields, list) or not isinstance(data, list):
        raise DirectoryFormatError("company_tickers_exchange.json: missing fields/data")

    try:
        i_cik = fields.index("cik")
        i_ticker = fields.index("ticker")
    except ValueError as e:
        raise DirectoryFormatError(f"company_tickers_exchange.json: {e}") from e
    i_name = fields.index("name") if "name" in fields else None
    i_exchange = fields.index("exchange") if "exchange" in fields else None

    out: list[IdentifierRecord] = []
    for row in data:
        if not isinstance(row, list) or len(row) < len(fields):
            continue
        rec = _record_from_parts(
            row[i_cik],
            row[i_ticker],
            row[i_name] if i_name is not None else None,
            row[i_exchange] if i_exchange is not None else None,
        )
        if rec is not None:
            out.append(rec)
    return out


def merge_directory(
    base: list[IdentifierRecord], exchange_rows: list[IdentifierRecord]
) -> list[IdentifierRecord]:
    """Attach exchange labels to base rows; append exchange-only rows."""

    exchange_by_key = {(r.registry_id, ticker_key(r.ticker)): r for r in exchange_rows}
    seen: set[tuple[str, str]] = set()
    out: list[IdentifierRecord] = []

    for r in base:
        key = (r.registry_id, ticker_key(r.ticker))
        if key in seen:
            continue
        seen.add(key)
        ex = exchange_by_key.get(key)
        if ex is not None and ex.exchange and not r.exchange:
            r = IdentifierRecord(r.ticker, r.display_name, r.registry_id, ex.exchange)
        out.append(r)

    for r in exchange_rows:
        key = (r.registry_id, ticker_key(r.ticker))
        if key not in seen:
            seen.add(key)
            out.append(r)
    return out


def parse_local_snapshot(payload: Any) -> list[IdentifierRecord]:
    """Parse the JSON file written by jobs/build_ticker_map.py."""

    rows = payload.get("records") if isinstance(payload, dict) else None
    if not isinstance(rows, list):
        raise DirectoryFormatError("local ticker map: missing records")
    out = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        rec = _record_from_parts(
            row.get("registry_id"), row.get("ticker"), row.get("display_name"), row.get("exchange")
        )
        if rec is not None:
            out.append(rec)
    if not out:
        raise DirectoryFormatError("local ticker map: no usable rows")
    return out


def load_remote_directory(*, session: requests.Session | None = None) -> list[IdentifierRecord]:
    base = parse_company_tickers(fetch_company_tickers(session=session))
    try:
        exchange_rows = parse_company_tickers_exchange(
            fetch_company_tickers_exchange(session=session)
        )
    except FilingsError as e:
        logger.warning("Exchange directory unavailable; continuing without it | err=%s", e)
        exchange_rows = []
    return merge_directory(base, exchange_rows)


def load_local_directory(path: str | Path) -> list[IdentifierRecord]:
    p = Path(path)
    try:
        payload = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise UpstreamUnavailable(f"Local ticker map unreadable: {p}: {e}") from e
    return parse_local_snapshot(payload)


def make_directory_loader(
    *, local_path: str | None = None, session: requests.Session | None = None
) -> Callable[[], tuple[list[IdentifierRecord], str]]:
    """Build the loader used by IdentifierIndex.

    Live SEC directory first, then the optional local snapshot.
    """

    def _remote():
        return load_remote_directory(session=session), "sec"

    def _local():
        return load_local_directory(local_path), f"local:{local_path}"

    strategies = [_remote]
    if local_path:
        strategies.append(_local)

    def _load() -> tuple[list[IdentifierRecord], str]:
        return first_success(strategies)

    return _load


class IdentifierIndex:
    def __init__(
        self,
        *,
        loader: Callable[[], tuple[list[IdentifierRecord], str]] | None = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._loader = loader or make_directory_loader()
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._snapshot: IdentifierSnapshot | None = None
        self._refresh_lock = threading.Lock()
        self._generation = 0
        self._last_failure_at: float | None = None

    def peek(self) -> IdentifierSnapshot | None:
        """Current snapshot without any I/O (may be None or stale)."""
        return self._snapshot

    def age_seconds(self) -> float | None:
        snap = self._snapshot
        if snap is None:
            return None
        return self._clock() - snap.loaded_at

    def is_stale(self, snap: IdentifierSnapshot | None = None) -> bool:
        snap = snap if snap is not None else self._snapshot
        if snap is None:
            return True
        return (self._clock() - snap.loaded_at) >= self.ttl_seconds

    def refresh(self) -> IdentifierSnapshot:
        """Load the directory and swap it in.

        Concurrent callers share one upstream load: a caller that had to wait
        for an in-flight refresh gets that refresh's snapshot.

        Raises:
            UpstreamUnavailable: when every directory source failed.
        """

        generation = self._generation
        with self._refresh_lock:
            if self._generation != generation and self._snapshot is not None:
                return self._snapshot
            return self._refresh_locked()

    def snapshot(self) -> IdentifierSnapshot:
        """Return a usable snapshot, refreshing when older than the TTL.

        A stale snapshot is served as-is while another thread refreshes, and
        also when the refresh fails (logged).
        """

        snap = self._snapshot
        if snap is not None and not self.is_stale(snap):
            return snap

        if snap is not None:
            if self._recently_failed():
                return snap
            if not self._refresh_lock.acquire(blocking=False):
                return snap
            try:
                return self._refresh_locked()
            except FilingsError as e:
                logger.warning(
                    "Identifier index refresh failed; serving stale snapshot | age_s=%.0f err=%s",
                    self._clock() - snap.loaded_at,
                    e,
                )
                return snap
            finally:
                self._refresh_lock.release()

        # Cold start: wait for whoever is loading, or load ourselves.
        with self._refresh_lock:
            snap = self._snapshot
            if snap is not None:
                return snap
            return self._refresh_locked()

    def _recently_failed(self) -> bool:
        return (
            self._last_failure_at is not None
            and self._clock() - self._last_failure_at < FAILED_REFRESH_RETRY_SECONDS
        )

    def _refresh_locked(self) -> IdentifierSnapshot:
        started = time.perf_counter()
        try:
            records, source = self._loader()
        except FilingsError:
            self._last_failure_at = self._clock()
            raise

        snap = IdentifierSnapshot.build(records, loaded_at=self._clock(), source=source)
        self._snapshot = snap
        self._generation += 1
        self._last_failure_at = None
        logger.info(
            "Identifier index refreshed | records=%s entities=%s source=%s ms=%.1f",
            len(snap.records),
            len(snap.by_registry_id),
            source,
            (time.perf_counter() - started) * 1000.0,
        )
        return snap
