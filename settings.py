"""App settings.

Flask reads the runtime values through ``config.Config`` (environment
overrides). The ``SETTINGS`` dict below is the single source of defaults and is
also read directly by ``utils/*`` modules that run outside a Flask app (jobs,
tests).
"""

import os

# Single source of truth for app configuration.
SETTINGS: dict[str, object] = {
    # Flask
    "SECRET_KEY": "dev-not-secret",
    # Logging
    "LOG_LEVEL": "INFO",
    # SEC EDGAR
    # SEC requires a descriptive User-Agent that includes contact info.
    # Example: "FilingScout your.name@domain.com"
    "SEC_USER_AGENT": os.getenv("SEC_USER_AGENT", ""),
    # Identifier index (company_tickers.json) cache
    "IDENTIFIER_INDEX_TTL_SECONDS": 6 * 60 * 60,
    # Optional local fallback written by jobs/build_ticker_map.py
    "LOCAL_TICKER_MAP_PATH": os.getenv("LOCAL_TICKER_MAP_PATH", ""),
    # Document mining
    "DOCUMENT_THROTTLE_SECONDS": 0.12,
    "DOCUMENT_TIMEOUT_SECONDS": 15.0,
    "MINING_DEADLINE_SECONDS": 45.0,
    "PERSON_SEARCH_MAX_DOCUMENTS": 200,
    "PERSON_SEARCH_DEADLINE_SECONDS": 60.0,
    # Pagination
    "DEFAULT_PAGE_SIZE": 10,
    "MAX_PAGE_SIZE": 50,
    # Resolver tuning (empirical; see DESIGN.md)
    "RESOLVER_DISAMBIGUATION_MARGIN": 10.0,
    "RESOLVER_RELEVANCE_FLOOR": 15.0,
    "RESOLVER_MAX_CANDIDATES": 10,
}

# Provide a more descriptive default SEC User-Agent to reduce the chance of
# 403 blocks during local/dev runs when the environment isn't configured.
if not SETTINGS["SEC_USER_AGENT"]:
    SETTINGS["SEC_USER_AGENT"] = "filing-scout/0.1 (local dev; contact: unset)"

# Optional convenience exports (mirrors earlier style).
SECRET_KEY = SETTINGS["SECRET_KEY"]
LOG_LEVEL = SETTINGS["LOG_LEVEL"]
SEC_USER_AGENT = SETTINGS["SEC_USER_AGENT"]
