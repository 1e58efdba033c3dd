from __future__ import annotations

from math import ceil
from typing import Generic, TypeVar

from pydantic import BaseModel

from educonnect.services.repository import Page

ItemT = TypeVar("ItemT")


class PaginationParams(BaseModel):
    offset: int = 0
    limit: int = 20


class PaginationMeta(BaseModel):
    offset: int
    limit: int
    total: int
    total_pages: int
    current_page: int
    has_next: bool
    has_prev: bool


class ListResponse(BaseModel, Generic[ItemT]):
    items: list[ItemT]
    pagination: PaginationMeta


class MessageResponse(BaseModel):
    status: str = "success"
    message: str


def pagination_meta(page: Page) -> PaginationMeta:
    return PaginationMeta(
        offset=page.offset,
        limit=page.limit,
        total=page.total,
        total_pages=ceil(page.total / page.limit) if page.total > 0 else 0,
        current_page=(page.offset // page.limit) + 1 if page.total > 0 else 0,
        has_next=page.has_next,
        has_prev=page.offset > 0,
    )


def list_response(page: Page) -> dict:
    return {"items": page.items, "pagination": pagination_meta(page)}
