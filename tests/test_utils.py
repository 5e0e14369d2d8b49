import pytest

from phone_registry.core.structured_logging import build_log_context
from phone_registry.utils.normalization import (
    is_valid_email,
    normalize_email,
    normalize_name,
    normalize_phone,
)
from phone_registry.utils.pagination import PaginatedResponse, PaginationParams, normalize_sort_order


def test_normalize_phone():
    assert normalize_phone(" 13800000001\n") == "13800000001"
    for bad in (None, "", "1380000000", "138-0000-0001", "03800000001"):
        with pytest.raises(ValueError):
            normalize_phone(bad)


def test_email_helpers():
    assert normalize_email("  Bob@Example.com ") == "bob@example.com"
    assert normalize_email("   ") is None
    assert is_valid_email("bob@example.com")
    assert not is_valid_email("bob@")
    assert not is_valid_email(None)


def test_normalize_name():
    assert normalize_name("  Li   Na ") == "Li Na"
    assert normalize_name("   ") is None


def test_sort_order_defaults_to_ascending():
    assert normalize_sort_order("DESC") == "desc"
    assert normalize_sort_order("sideways") == "asc"
    assert normalize_sort_order(None) == "asc"


def test_paginated_response_pages():
    page = PaginatedResponse.create([1, 2], total=5, pagination=PaginationParams(page=2, limit=2))
    assert page.total_pages == 3
    assert page.current_page == 2
    assert PaginationParams(page=3, limit=20).offset == 40


def test_log_context_masks_email():
    context = build_log_context(job_id="j1", email="alice@example.com", task_id=None)
    assert context == {"job_id": "j1", "email": "ali...@example.com"}
