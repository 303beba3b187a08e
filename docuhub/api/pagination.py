"""Shared ``?page=&limit=`` query parameters."""

from dataclasses import dataclass
from typing import Optional

from fastapi import Query

from ..core.config import settings


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int


def page_params(
    page: int = Query(1, ge=1, description="1-based page number"),
    limit: Optional[int] = Query(None, description="Items per page, clamped to MAX_PAGE_SIZE"),
) -> PageParams:
    if limit is None:
        limit = settings.default_page_size
    return PageParams(page=page, limit=settings.clamp_page_size(limit))
