"""Validators for search options and filter values. Pure functions, no infrastructure."""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional

from auditdna.domain.exceptions import DomainValidationError
from auditdna.domain.models.engine import SearchOptions, SortOrder

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
DEFAULT_SORT_BY = "createdAt"

# Query-string keys that are options, never filters.
RESERVED_PARAMS = frozenset({"query", "page", "limit", "sortBy", "sortOrder"})


def build_search_options(
    page: Optional[int] = None,
    limit: Optional[int] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    *,
    default_sort_by: Optional[str] = None,
) -> SearchOptions:
    """Apply defaults and bounds. Raises DomainValidationError on out-of-range values."""
    page = DEFAULT_PAGE if page is None else page
    limit = DEFAULT_LIMIT if limit is None else limit
    if page < 1:
        raise DomainValidationError(f"page must be >= 1, got {page}")
    if not 1 <= limit <= MAX_LIMIT:
        raise DomainValidationError(f"limit must be between 1 and {MAX_LIMIT}, got {limit}")
    try:
        order = SortOrder((sort_order or SortOrder.DESC.value).lower())
    except ValueError:
        raise DomainValidationError("sortOrder must be 'asc' or 'desc'") from None
    return SearchOptions(
        page=page,
        limit=limit,
        sort_by=(sort_by or "").strip() or default_sort_by,  # None -> engine default
        sort_order=order,
    )


def validate_sort_field(sort_by: str, sortable: Iterable[str]) -> None:
    allowed = sorted(sortable)
    if sort_by not in allowed:
        raise DomainValidationError(
            f"Cannot sort by '{sort_by}'; sortable fields: {', '.join(allowed)}"
        )


def split_filters(params: Mapping[str, Any]) -> Dict[str, Any]:
    """Everything in the query string except the reserved option keys, blank values dropped."""
    return {
        key: value
        for key, value in params.items()
        if key not in RESERVED_PARAMS and value not in (None, "")
    }


def parse_float_filter(filters: Mapping[str, Any], key: str) -> Optional[float]:
    raw = filters.get(key)
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise DomainValidationError(f"Filter '{key}' must be numeric, got {raw!r}") from None


def parse_timestamp(raw: Any) -> Optional[datetime]:
    """Parse an ISO date/datetime (or datetime) to an aware UTC datetime. None if unparsable."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        value = raw
    else:
        try:
            value = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
        except ValueError:
            return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def parse_date_filter(filters: Mapping[str, Any], key: str) -> Optional[datetime]:
    raw = filters.get(key)
    if raw in (None, ""):
        return None
    value = parse_timestamp(raw)
    if value is None:
        raise DomainValidationError(f"Filter '{key}' must be an ISO date, got {raw!r}")
    return value
