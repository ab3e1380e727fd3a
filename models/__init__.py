"""Value objects shared by the services, the API layer and the jobs.

Nothing here is persisted; filings are fetched per request.
"""

from models.filings import (  # noqa: F401
    EnrichedFiling,
    ExtractedSignals,
    FilingFilters,
    FilingRecord,
    FilingsPage,
    PageWindow,
)
from models.identifiers import IdentifierRecord, MatchCandidate, ResolveResult  # noqa: F401
