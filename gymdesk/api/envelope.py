"""
Response envelope helpers: every REST endpoint answers
``{success, data, message?, warnings?, pagination?}`` in camelCase.
"""
import math
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Type

from fastapi import Query
from pydantic import BaseModel

from gymdesk.core.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT


@dataclass
class PageParams:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
) -> PageParams:
    return PageParams(page=page, limit=limit)


def pagination(params: PageParams, total: int) -> dict:
    total_pages = math.ceil(total / params.limit) if total else 0
    return {
        "page": params.page,
        "limit": params.limit,
        "total": total,
        "totalPages": total_pages,
        "pages": total_pages,
        "hasNext": params.page < total_pages,
        "hasPrev": params.page > 1,
    }


def dump(schema: Type[BaseModel], obj: Any) -> Optional[dict]:
    """Serialize a DTO through its response schema using camelCase keys."""
    if obj is None:
        return None
    return schema.model_validate(obj).model_dump(mode="json", by_alias=True)


def dump_list(schema: Type[BaseModel], items: Iterable[Any]) -> List[dict]:
    return [dump(schema, item) for item in items]


def ok(
    data: Any = None,
    message: Optional[str] = None,
    warnings: Optional[List[str]] = None,
    page: Optional[dict] = None,
) -> dict:
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    if warnings:
        body["warnings"] = warnings
    if page is not None:
        body["pagination"] = page
    return body


def error(code: str, message: str) -> dict:
    return {"success": False, "error": code, "message": message}
