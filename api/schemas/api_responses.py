from __future__ import annotations

from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")


class ApiError(BaseModel):
    """Standard error payload for API responses."""

    code: str = Field(default="error")
    message: str
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="ignore")


class ApiMeta(BaseModel):
    """Optional metadata attached to responses."""

    request_id: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class ApiResponse(BaseModel, Generic[T]):
    """Standard envelope for all API responses."""

    ok: bool
    data: Optional[T] = None
    error: Optional[ApiError] = None
    meta: ApiMeta = Field(default_factory=ApiMeta)

    model_config = ConfigDict(extra="ignore")


def ok(data: T = None, *, meta: Optional[ApiMeta] = None) -> Dict[str, Any]:
    """Create a success envelope as a JSON-serializable dict."""

    payload = ApiResponse[Any](ok=True, data=data, error=None, meta=meta or ApiMeta())
    return payload.model_dump(mode="json")


def fail(
    message: str,
    *,
    code: str = "error",
    details: Optional[Dict[str, Any]] = None,
    meta: Optional[ApiMeta] = None,
) -> Dict[str, Any]:
    """Create an error envelope as a JSON-serializable dict."""

    payload = ApiResponse[None](
        ok=False,
        data=None,
        error=ApiError(code=code, message=message, details=details),
        meta=meta or ApiMeta(),
    )
    return payload.model_dump(mode="json")


# --- request query models ---------------------------------------------------


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


class FilingsQuery(BaseModel):
    """Query string of the filings list endpoint (camelCase on the wire)."""

    forms: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None
    owner_only: bool = Field(default=False, alias="ownerOnly")
    page: int = 1
    page_size: Optional[int] = Field(default=None, alias="pageSize")
    enrich: bool = False

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("forms", "start", "end", "page_size", mode="before")
    @classmethod
    def _blank_optional(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("owner_only", "enrich", mode="before")
    @classmethod
    def _blank_flag(cls, v: Any) -> Any:
        return False if _blank_to_none(v) is None else v

    @field_validator("page", mode="before")
    @classmethod
    def _blank_page(cls, v: Any) -> Any:
        return 1 if _blank_to_none(v) is None else v


class PersonQuery(FilingsQuery):
    name: str = ""


class SuggestQuery(BaseModel):
    q: str = ""
    limit: int = Field(default=10, ge=1, le=50)

    model_config = ConfigDict(extra="ignore")

    @field_validator("limit", mode="before")
    @classmethod
    def _blank_limit(cls, v: Any) -> Any:
        return 10 if _blank_to_none(v) is None else v
