"""
Response envelopes shared by every catalog endpoint.
"""

import math
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Pagination(BaseModel):
    """Echo of the normalized page request plus the filtered row total."""

    page: int
    size: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, size: int, total: int) -> "Pagination":
        return cls(
            page=page,
            size=size,
            total=total,
            total_pages=math.ceil(total / size) if size > 0 else 0,
        )


class ApiResponse(BaseModel, Generic[T]):
    data: T
    success: bool = True
    message: Optional[str] = None


class PaginatedResponse(BaseModel, Generic[T]):
    data: List[T]
    pagination: Pagination
    success: bool = True
