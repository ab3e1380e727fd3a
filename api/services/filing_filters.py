from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from datetime import date

from models.filings import FilingFilters, FilingRecord, PageWindow
from utils.time_utils import parse_partial_date

MAX_PAGE_SIZE = 50

OWNERSHIP_FORMS = ("3", "4", "5")

# Coarse families a single filter token can stand for.
FORM_FAMILY_ALIASES: dict[str, tuple[str, ...]] = {
    "OWNERSHIP": OWNERSHIP_FORMS,
    "INSIDER": OWNERSHIP_FORMS,
    "345": OWNERSHIP_FORMS,
    "REGISTRATION": ("S-1", "S-3", "F-1", "F-3", "424B"),
    "13D": ("SC 13D", "13D"),
    "13G": ("SC 13G", "13G"),
}


def parse_form_tokens(raw: str | Iterable[str] | None) -> frozenset[str]:
    """'10-K, 8-k,,4' -> {'10-K', '8-K', '4'}."""

    if raw is None:
        return frozenset()
    parts = raw.split(",") if isinstance(raw, str) else list(raw)
    return frozenset(p.strip().upper() for p in parts if p and p.strip())


def build_filters(
    *,
    date_from: str | date | None = None,
    date_to: str | date | None = None,
    form_types: str | Iterable[str] | None = None,
    owner_only: bool = False,
) -> FilingFilters:
    """Build filters from loose inputs (YYYY / YYYY-MM / YYYY-MM-DD dates).

    Raises:
        ValueError: for unparseable dates.
    """

    if not isinstance(date_from, date):
        date_from = parse_partial_date(date_from)
    if not isinstance(date_to, date):
        date_to = parse_partial_date(date_to, end=True)
    return FilingFilters(
        date_from=date_from,
        date_to=date_to,
        form_types=parse_form_tokens(form_types),
        owner_only=bool(owner_only),
    )


def _expand_tokens(tokens: Iterable[str]) -> tuple[str, ...]:
    out: list[str] = []
    for t in tokens:
        out.extend(FORM_FAMILY_ALIASES.get(t.upper(), (t.upper(),)))
    return tuple(dict.fromkeys(out))


def form_matches(form_type: str, token: str) -> bool:
    """Case-insensitive prefix match of a single (already expanded) token.

    A purely numeric token must not run into further digits, so "10" matches
    10-K and 10-Q while "4" never matches 424B2 or 40-F.
    """

    form = (form_type or "").strip().upper()
    tok = (token or "").strip().upper()
    if not tok:
        return False
    if tok.isdigit():
        return re.match(rf"{re.escape(tok)}(?!\d)", form) is not None
    return form.startswith(tok)


def is_ownership_form(form_type: str) -> bool:
    return any(form_matches(form_type, t) for t in OWNERSHIP_FORMS)


def apply_filters(filings: Sequence[FilingRecord], filters: FilingFilters) -> list[FilingRecord]:
    tokens = _expand_tokens(filters.form_types)

    def _keep(f: FilingRecord) -> bool:
        if filters.date_from and f.filed_date < filters.date_from:
            return False
        if filters.date_to and f.filed_date > filters.date_to:
            return False
        if filters.owner_only and not is_ownership_form(f.form_type):
            return False
        if tokens and not any(form_matches(f.form_type, t) for t in tokens):
            return False
        return True

    return [f for f in filings if _keep(f)]


def clamp_page(page: int | None, page_size: int | None, *, max_page_size: int = MAX_PAGE_SIZE,
               default_page_size: int = 10) -> tuple[int, int]:
    try:
        p = int(page or 1)
    except (TypeError, ValueError):
        p = 1
    try:
        size = int(page_size or default_page_size)
    except (TypeError, ValueError):
        size = default_page_size
    # Bounds the number of documents a single page can fan out to.
    cap = max(1, min(int(max_page_size), MAX_PAGE_SIZE))
    return max(1, p), max(1, min(size, cap))


def paginate(items: Sequence, page: int, page_size: int, **clamp_kwargs) -> PageWindow:
    page, page_size = clamp_page(page, page_size, **clamp_kwargs)
    total = len(items)
    start = (page - 1) * page_size
    return PageWindow(
        items=list(items[start : start + page_size]),
        total=total,
        page=page,
        page_size=page_size,
        has_more=start + page_size < total,
    )


def apply(
    filings: Sequence[FilingRecord],
    filters: FilingFilters,
    page: int,
    page_size: int,
    **clamp_kwargs,
) -> PageWindow:
    return paginate(apply_filters(filings, filters), page, page_size, **clamp_kwargs)
