"""Response envelope shared by all endpoints."""
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """``{success, data, message}`` envelope."""

    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class PaginatedResponse(ApiResponse[list[T]], Generic[T]):
    """Envelope for paginated lists."""

    page: int
    limit: int
    total: int
    total_pages: int
