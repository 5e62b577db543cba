"""Domain validators. Pure validation functions."""

from auditdna.domain.validators.compliance_rules import evaluate_rule, evaluate_rules, resolve_rules
from auditdna.domain.validators.search_validator import (
    build_search_options,
    parse_date_filter,
    parse_float_filter,
    parse_timestamp,
    split_filters,
    validate_sort_field,
)

__all__ = [
    "build_search_options",
    "evaluate_rule",
    "evaluate_rules",
    "parse_date_filter",
    "parse_float_filter",
    "parse_timestamp",
    "resolve_rules",
    "split_filters",
    "validate_sort_field",
]
