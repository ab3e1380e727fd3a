from __future__ import annotations

import json
import threading
import time
from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

import requests

from logging_utils import get_logger
from settings import SETTINGS
from utils.errors import FetchTimeout, FilingsError, NotFound, UpstreamUnavailable
from utils.identifiers import accession_key, cik_path_segment, pad_cik

logger = get_logger(__name__)

T = TypeVar("T")


SEC_BASE_URL = "https://data.sec.gov"
SEC_WWW_BASE_URL = "https://www.sec.gov"

COMPANY_TICKERS_URL = f"{SEC_WWW_BASE_URL}/files/company_tickers.json"
COMPANY_TICKERS_EXCHANGE_URL = f"{SEC_WWW_BASE_URL}/files/company_tickers_exchange.json"


class SecEdgarApiError(UpstreamUnavailable):
    """Non-2xx answer from SEC after retries."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message, details={"status_code": status_code})
        self.status_code = status_code


@dataclass(frozen=True)
class SecResponse:
    url: str
    status_code: int
    content: bytes
    content_type: str | None

    def text(self, encoding: str | None = None) -> str:
        return self.content.decode(encoding or "utf-8", errors="replace")

    def json(self) -> Any:
        try:
            return json.loads(self.content.decode("utf-8"))
        except ValueError as e:
            raise UpstreamUnavailable(f"Invalid JSON from {self.url}: {e}") from e


def _safe_preview_bytes(data: bytes | None, *, limit: int = 2000) -> str:
    """Best-effort, log-safe preview of response body."""

    if not data:
        return ""
    return data[:limit].decode("utf-8", errors="replace")


def _headers_for_log(headers: dict[str, str]) -> dict[str, str]:
    """Return a redacted copy of headers for logging."""

    redacted: dict[str, str] = {}
    for k, v in (headers or {}).items():
        lk = str(k).lower()
        if (
            lk in {"authorization", "x-api-key", "api-key"}
            or "token" in lk
            or "secret" in lk
        ):
            redacted[str(k)] = "<redacted>"
        else:
            redacted[str(k)] = str(v)
    return redacted


class SlidingWindowRateLimiter:
    """Thread-safe sliding-window rate limiter.

    Enforces at most `max_requests` in any `window_seconds` wall-clock window.

    Default for SEC EDGAR: 9 requests per 1 second (stays under 10 req/s).
    Used for index and directory calls.
    """

    def __init__(self, *, max_requests: int = 9, window_seconds: float = 1.0):
        if max_requests <= 0:
            raise ValueError("max_requests must be > 0")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._max_requests = int(max_requests)
        self._window_seconds = float(window_seconds)
        self._lock = threading.Lock()
        self._events: deque[float] = deque()  # monotonic timestamps

    def acquire(self) -> None:
        """Block until a request token is available."""
        while True:
            now = time.monotonic()

            with self._lock:
                cutoff = now - self._window_seconds
                while self._events and self._events[0] <= cutoff:
                    self._events.popleft()

                if len(self._events) < self._max_requests:
                    self._events.append(now)
                    return

                oldest = self._events[0]
                sleep_for = max((oldest + self._window_seconds) - now, 0.001)

            time.sleep(sleep_for)


class PolitenessRateLimiter:
    """Fixed minimum interval between consecutive document fetches.

    Every `throttle()` call returns no earlier than `interval_seconds` after
    the call itself and after the slot handed to the previous caller, so N
    calls always span at least N * interval. Slots are assigned under a lock
    and the sleep happens outside of it, which serializes callers from any
    thread.
    """

    def __init__(
        self,
        interval_seconds: float = 0.12,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if interval_seconds < 0:
            raise ValueError("interval_seconds must be >= 0")
        self.interval_seconds = float(interval_seconds)
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_slot: float | None = None

    def throttle(self) -> None:
        with self._lock:
            now = self._clock()
            start = now if self._last_slot is None else max(now, self._last_slot)
            slot = start + self.interval_seconds
            self._last_slot = slot
        wait = slot - now
        if wait > 0:
            self._sleep(wait)

    # Lets the limiter be passed wherever `_request(rate_limiter=...)` is used.
    acquire = throttle


_default_rate_limiter = SlidingWindowRateLimiter(max_requests=9, window_seconds=1.0)


def _sec_user_agent() -> str:
    """Resolve User-Agent for SEC requests.

    SEC requires a descriptive UA that includes contact info.

    Configure via:
      SEC_USER_AGENT="AppName your@email.com"  (or SETTINGS["SEC_USER_AGENT"])
    """

    ua = SETTINGS.get("SEC_USER_AGENT")
    if isinstance(ua, str) and ua.strip():
        return ua.strip()
    return "filing-scout (contact: unset)"


def _parse_retry_after_seconds(value: str | None) -> float | None:
    if not value:
        return None
    v = value.strip()
    if not v:
        return None

    # Retry-After can be integer seconds or an HTTP date; only seconds are honored.
    try:
        return float(int(v))
    except ValueError:
        return None


def _sleep_backoff(
    attempt_index: int, *, base_seconds: float = 0.5, cap_seconds: float = 8.0
) -> None:
    # Basic exponential backoff: 0.5, 1, 2 ... capped
    delay = min(base_seconds * (2**attempt_index), cap_seconds)
    time.sleep(delay)


def _request(
    *,
    url: str,
    session: requests.Session | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 30.0,
    rate_limiter: Any | None = None,
    max_attempts: int = 3,
) -> SecResponse:
    """HTTP GET with SEC constraints (UA + throttling + retry/backoff).

    Raises:
        NotFound: on 404.
        FetchTimeout: when the last attempt timed out.
        SecEdgarApiError: on any other non-2xx after retries.
        UpstreamUnavailable: on other transport errors.
    """

    if max_attempts <= 0:
        raise ValueError("max_attempts must be >= 1")

    s = session or requests.Session()
    rl = rate_limiter or _default_rate_limiter

    merged_headers = {"User-Agent": _sec_user_agent(), "Accept-Encoding": "gzip"}
    if headers:
        merged_headers.update(headers)

    for attempt in range(max_attempts):
        rl.acquire()
        try:
            resp = s.get(url, headers=merged_headers, timeout=timeout_seconds)
        except requests.RequestException as e:
            logger.warning(
                "SEC request failed | url=%s attempt=%s err=%s",
                url,
                attempt + 1,
                e,
            )
            if attempt < max_attempts - 1:
                _sleep_backoff(attempt)
                continue
            if isinstance(e, requests.Timeout):
                raise FetchTimeout(f"SEC request timed out url={url}") from e
            raise UpstreamUnavailable(f"SEC request failed url={url}: {e}") from e

        if 200 <= resp.status_code < 300:
            return SecResponse(
                url=url,
                status_code=resp.status_code,
                content=resp.content,
                content_type=resp.headers.get("Content-Type"),
            )

        retry_after_raw = resp.headers.get("Retry-After")
        retry_after = _parse_retry_after_seconds(retry_after_raw)

        logger.warning(
            "SEC non-2xx response | status=%s url=%s attempt=%s/%s content_type=%s retry_after=%s headers=%s body_preview=%s",
            resp.status_code,
            url,
            attempt + 1,
            max_attempts,
            resp.headers.get("Content-Type"),
            retry_after_raw,
            _headers_for_log(merged_headers),
            _safe_preview_bytes(getattr(resp, "content", b"")),
        )

        if resp.status_code == 404:
            raise NotFound(f"SEC resource not found url={url}")

        if resp.status_code in (429, 500, 502, 503, 504):
            if attempt < max_attempts - 1:
                if retry_after is not None:
                    time.sleep(retry_after)
                else:
                    _sleep_backoff(attempt)
                continue

        raise SecEdgarApiError(
            f"SEC request failed status={resp.status_code} url={url}",
            status_code=resp.status_code,
        )

    raise SecEdgarApiError(f"SEC request failed url={url}")


def first_success(
    strategies: Sequence[Callable[[], T]],
    *,
    recoverable: tuple[type[BaseException], ...] = (FilingsError,),
) -> T:
    """Try `strategies` in order and return the first result.

    A strategy raising one of `recoverable` moves on to the next one; the last
    such error is re-raised when every strategy failed.
    """

    if not strategies:
        raise ValueError("at least one strategy is required")

    last_exc: BaseException | None = None
    for strategy in strategies:
        try:
            return strategy()
        except recoverable as e:
            logger.info(
                "Fetch strategy failed, trying next | strategy=%s err=%s",
                getattr(strategy, "__name__", strategy),
                e,
            )
            last_exc = e
    assert last_exc is not None
    raise last_exc


def fetch_company_tickers(*, session: requests.Session | None = None) -> dict:
    """Fetch SEC's ticker -> CIK directory.

    Endpoint:
      https://www.sec.gov/files/company_tickers.json
    Shape: {"0": {"cik_str": 320193, "ticker": "AAPL", "title": "Apple Inc."}, ...}
    """

    r = _request(
        url=COMPANY_TICKERS_URL, session=session, headers={"Accept": "application/json"}
    )
    return r.json()


def fetch_company_tickers_exchange(*, session: requests.Session | None = None) -> dict:
    """Fetch the directory variant that also carries the listing exchange.

    Shape: {"fields": ["cik", "name", "ticker", "exchange"], "data": [[...], ...]}
    """

    r = _request(
        url=COMPANY_TICKERS_EXCHANGE_URL,
        session=session,
        headers={"Accept": "application/json"},
    )
    return r.json()


def fetch_submissions(cik: str, *, session: requests.Session | None = None) -> dict:
    """Fetch SEC submissions JSON (recent filings index) for a CIK.

    Endpoint:
      https://data.sec.gov/submissions/CIK##########.json
    """

    url = f"{SEC_BASE_URL}/submissions/CIK{pad_cik(cik)}.json"
    r = _request(url=url, session=session, headers={"Accept": "application/json"})
    return r.json()


def fetch_submissions_file(name: str, *, session: requests.Session | None = None) -> dict:
    """Fetch one historical submissions document named in `filings.files`.

    Endpoint:
      https://data.sec.gov/submissions/CIK##########-submissions-001.json
    """

    safe = str(name).strip().lstrip("/")
    if not safe or "/" in safe:
        raise UpstreamUnavailable(f"Unexpected submissions file name: {name!r}")
    url = f"{SEC_BASE_URL}/submissions/{safe}"
    r = _request(url=url, session=session, headers={"Accept": "application/json"})
    return r.json()


def archive_document_url(*, cik: str, accession_number: str, document_name: str) -> str:
    doc = str(document_name).lstrip("/")
    return (
        f"{SEC_WWW_BASE_URL}/Archives/edgar/data/{cik_path_segment(cik)}/"
        f"{accession_key(accession_number)}/{doc}"
    )


def fetch_filing_document(
    *,
    cik: str,
    accession_number: str,
    document_name: str,
    session: requests.Session | None = None,
    rate_limiter: Any | None = None,
    timeout_seconds: float = 30.0,
    max_attempts: int = 2,
) -> SecResponse:
    """Fetch a specific filing document from the EDGAR archives."""

    url = archive_document_url(
        cik=cik, accession_number=accession_number, document_name=document_name
    )
    return _request(
        url=url,
        session=session,
        rate_limiter=rate_limiter,
        timeout_seconds=timeout_seconds,
        max_attempts=max_attempts,
    )
