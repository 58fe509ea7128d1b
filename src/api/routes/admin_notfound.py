"""
Admin Not-Found API Routes.

Curation endpoints over the logged not-found requests: the most
frequently missed URLs are candidates for new redirects.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from src.adapters.request_logger import BufferedRequestLogger
from src.adapters.sqlite.notfound_log import NotFoundSuggestion, SQLiteNotFoundLogRepo
from src.api.deps import get_notfound_log_repo, get_request_logger

router = APIRouter()


class SuggestionResponse(BaseModel):
    """A missed URL with its hit count."""

    url: str
    hits: int
    last_seen: str
    referrers: dict[str, int] = Field(default_factory=dict)


class SuggestionListResponse(BaseModel):
    suggestions: list[SuggestionResponse]
    count: int


class DeleteResponse(BaseModel):
    deleted: int


# --- Helper Functions ---


def _suggestion_to_response(suggestion: NotFoundSuggestion) -> SuggestionResponse:
    return SuggestionResponse(
        url=suggestion.url,
        hits=suggestion.hits,
        last_seen=suggestion.last_seen.isoformat(),
        referrers=suggestion.referrers,
    )


def get_log_repo(
    repo: SQLiteNotFoundLogRepo = Depends(get_notfound_log_repo),
    request_logger: BufferedRequestLogger = Depends(get_request_logger),
) -> SQLiteNotFoundLogRepo:
    """Log repo with buffered entries written out first."""
    request_logger.flush()
    repo.ensure_schema()
    return repo


# --- Routes ---


@router.get("/suggestions", response_model=SuggestionListResponse)
def list_suggestions(
    limit: int = Query(100, ge=1, le=1000),
    min_hits: int = Query(1, ge=1),
    repo: SQLiteNotFoundLogRepo = Depends(get_log_repo),
) -> SuggestionListResponse:
    """List missed URLs, most frequent first."""
    suggestions = repo.list_suggestions(limit=limit, min_hits=min_hits)
    return SuggestionListResponse(
        suggestions=[_suggestion_to_response(s) for s in suggestions],
        count=len(suggestions),
    )


@router.delete("/suggestions", response_model=DeleteResponse)
def delete_all_suggestions(
    repo: SQLiteNotFoundLogRepo = Depends(get_log_repo),
) -> DeleteResponse:
    """Clear the not-found log."""
    return DeleteResponse(deleted=repo.delete_all())


@router.delete("/suggestions/{url:path}", response_model=DeleteResponse)
def delete_suggestion(
    url: str,
    repo: SQLiteNotFoundLogRepo = Depends(get_log_repo),
) -> DeleteResponse:
    """Forget every logged miss of one URL."""
    if not url.startswith("/"):
        url = "/" + url

    deleted = repo.delete_for_url(url)
    if deleted == 0:
        raise HTTPException(status_code=404, detail=f"No logged requests for '{url}'")
    return DeleteResponse(deleted=deleted)
