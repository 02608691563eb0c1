# Overview: Page/limit parsing and the pagination envelope used by list endpoints.

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app, request


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int | None  # None means "all=true"

    @property
    def offset(self) -> int:
        if self.limit is None:
            return 0
        return (self.page - 1) * self.limit


def get_page_params() -> PageParams:
    """
    Read ?page=&limit=&all= from the current request.

    page < 1 becomes 1; limit < 1 falls back to DEFAULT_PAGE_SIZE and is clamped to MAX_PAGE_SIZE.
    """
    if request.args.get("all") == "true":
        return PageParams(page=1, limit=None)

    default_limit = current_app.config.get("DEFAULT_PAGE_SIZE", 20)
    max_limit = current_app.config.get("MAX_PAGE_SIZE", 500)

    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", default_limit, type=int)

    if page < 1:
        page = 1
    if limit < 1:
        limit = default_limit
    if limit > max_limit:
        limit = max_limit

    return PageParams(page=page, limit=limit)


def pagination_meta(params: PageParams, total: int) -> dict:
    limit = params.limit if params.limit is not None else total
    total_pages = 0
    if total > 0 and limit > 0:
        total_pages = (total + limit - 1) // limit
    return {
        "page": params.page,
        "limit": limit,
        "total": total,
        "total_pages": total_pages,
    }
