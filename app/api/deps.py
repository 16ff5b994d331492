"""API dependencies for common operations."""

from dataclasses import dataclass

from fastapi import Query

from app.database import get_db

__all__ = ["Page", "get_db", "get_page"]


@dataclass
class Page:
    page: int
    limit: int


async def get_page(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> Page:
    """Pagination query parameters."""
    return Page(page=page, limit=limit)
