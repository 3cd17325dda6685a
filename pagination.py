"""
pagination.py
-------------
Portfolio Listing - Page Metadata

Turns a total count, the current page and the page size into the
navigation block returned next to a listing.
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PageMetadata(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    current_page: int
    total_pages: int
    total_count: int
    has_next_page: bool
    has_prev_page: bool
    limit: int

    def to_dict(self) -> Dict[str, Any]:
        """camelCase dict for JSON responses."""
        return self.model_dump(by_alias=True)


def create_pagination_metadata(total_count: int, page: int, limit: int) -> PageMetadata:
    """
    Build page metadata for a listing.

    Args:
        total_count: Number of documents matching the filter
        page: Current page, 1-based (validated by the caller)
        limit: Page size, must be positive

    Raises:
        ValueError: If limit is not positive or total_count is negative
    """
    if limit <= 0:
        raise ValueError(f"limit must be a positive integer, got {limit}")
    if total_count < 0:
        raise ValueError(f"total_count must not be negative, got {total_count}")

    # integer ceiling, exact for any total
    total_pages = -(-total_count // limit)
    return PageMetadata(
        current_page=page,
        total_pages=total_pages,
        total_count=total_count,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
        limit=limit,
    )
