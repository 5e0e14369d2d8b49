"""Utility modules."""

from phone_registry.utils.normalization import (
    is_valid_email,
    normalize_email,
    normalize_name,
    normalize_phone,
)
from phone_registry.utils.pagination import (
    PaginatedResponse,
    PaginationParams,
    get_pagination,
    paginate_query,
)

__all__ = [
    # Normalization
    "is_valid_email",
    "normalize_email",
    "normalize_name",
    "normalize_phone",
    # Pagination
    "PaginationParams",
    "PaginatedResponse",
    "get_pagination",
    "paginate_query",
]
