"""
Compliance rule evaluation. Pure functions, no infrastructure.

A rule is a mapping with a name plus the parameters of one check:
completeness (required / requiredFields), numeric range (min / max on field),
staleness (maxAge days on field), membership (allowed / validCommodities on field).
Rules are evaluated independently; every rule produces a result.
"""

import math
from datetime import datetime, timezone
from numbers import Real
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from auditdna.domain.exceptions import DomainValidationError
from auditdna.domain.models.engine import ComplianceStatus, RuleResult, RuleStatus
from auditdna.domain.validators.search_validator import parse_timestamp

COMPLETENESS = "completeness"
RANGE = "range"
STALENESS = "staleness"
MEMBERSHIP = "membership"

RULE_KINDS = (COMPLETENESS, RANGE, STALENESS, MEMBERSHIP)


def _rule_kind(rule: Mapping[str, Any]) -> Optional[str]:
    explicit = rule.get("type")
    if explicit in RULE_KINDS:
        return explicit
    if "required" in rule or "requiredFields" in rule:
        return COMPLETENESS
    if "min" in rule or "max" in rule:
        return RANGE
    if "maxAge" in rule:
        return STALENESS
    if "allowed" in rule or "validCommodities" in rule:
        return MEMBERSHIP
    return None


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, dict, tuple, set)):
        return len(value) == 0
    return False


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, Real):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(number) else number


def _check_completeness(rule: Mapping[str, Any], data: Mapping[str, Any]) -> Tuple[bool, str]:
    required = rule.get("required") or rule.get("requiredFields") or []
    missing = [name for name in required if _is_blank(data.get(name))]
    if missing:
        return False, f"Missing required fields: {', '.join(missing)}"
    return True, ""


def _check_range(rule: Mapping[str, Any], data: Mapping[str, Any], field: str) -> Tuple[bool, str]:
    low = rule.get("min")
    high = rule.get("max")
    value = _as_number(data.get(field))
    if value is None:
        return False, f"Value for '{field}' is missing or not numeric"
    if (low is not None and value < low) or (high is not None and value > high):
        bounds = f"{'-inf' if low is None else low}-{'inf' if high is None else high}"
        return False, f"{field} {value:g} outside valid range {bounds}"
    return True, ""


def _check_staleness(
    rule: Mapping[str, Any], data: Mapping[str, Any], field: str, now: datetime
) -> Tuple[bool, str]:
    max_age = rule["maxAge"]
    timestamp = parse_timestamp(data.get(field))
    if timestamp is None and field != "date":
        timestamp = parse_timestamp(data.get("date"))
    if timestamp is None:
        return False, f"No valid timestamp in '{field}'"
    age_days = (now - timestamp).total_seconds() / 86400
    if age_days > max_age:
        return False, f"Data is {math.floor(age_days)} days old, exceeds maximum of {max_age} days"
    return True, ""


def _check_membership(rule: Mapping[str, Any], data: Mapping[str, Any], field: str) -> Tuple[bool, str]:
    allowed = rule.get("allowed") or rule.get("validCommodities") or []
    value = data.get(field)
    normalized = {str(item).lower() for item in allowed}
    if value is None or str(value).lower() not in normalized:
        return False, f"{field} {value} not in valid list: {', '.join(map(str, allowed))}"
    return True, ""


def evaluate_rule(
    rule: Mapping[str, Any],
    data: Mapping[str, Any],
    *,
    value_field: str = "value",
    timestamp_field: str = "testDate",
    now: Optional[datetime] = None,
) -> RuleResult:
    """Evaluate one rule. Rules with no recognizable criteria fail rather than pass silently."""
    now = now or datetime.now(timezone.utc)
    name = rule.get("name")
    kind = _rule_kind(rule)
    if kind == COMPLETENESS:
        ok, message = _check_completeness(rule, data)
    elif kind == RANGE:
        ok, message = _check_range(rule, data, rule.get("field") or value_field)
    elif kind == STALENESS:
        ok, message = _check_staleness(rule, data, rule.get("field") or timestamp_field, now)
    elif kind == MEMBERSHIP:
        default_field = "commodity" if "validCommodities" in rule else value_field
        ok, message = _check_membership(rule, data, rule.get("field") or default_field)
    else:
        ok, message = False, f"Rule {name} has no evaluable criteria"
    return RuleResult(
        rule=name,
        status=RuleStatus.PASSED if ok else RuleStatus.FAILED,
        message=f"Rule {name} passed" if ok else message,
        timestamp=now,
    )


def resolve_rules(
    rules: Optional[Sequence[Mapping[str, Any]]],
    defaults: Sequence[Mapping[str, Any]],
) -> List[Dict[str, Any]]:
    """
    Empty rules -> default set. A rule given by name only picks up the
    parameters of the default rule with that name.
    """
    if not rules:
        return [dict(rule) for rule in defaults]
    by_name = {rule["name"]: rule for rule in defaults}
    resolved = []
    for rule in rules:
        if not isinstance(rule, Mapping) or not rule.get("name"):
            raise DomainValidationError("Every compliance rule needs a name")
        if _rule_kind(rule) is None and rule["name"] in by_name:
            resolved.append({**by_name[rule["name"]], **rule})
        else:
            resolved.append(dict(rule))
    return resolved


def evaluate_rules(
    data: Mapping[str, Any],
    rules: Sequence[Mapping[str, Any]],
    *,
    value_field: str = "value",
    timestamp_field: str = "testDate",
) -> Tuple[List[RuleResult], ComplianceStatus]:
    """Evaluate all rules against data; compliant iff every result passed."""
    now = datetime.now(timezone.utc)
    results = [
        evaluate_rule(
            rule, data, value_field=value_field, timestamp_field=timestamp_field, now=now
        )
        for rule in rules
    ]
    overall = (
        ComplianceStatus.COMPLIANT
        if all(r.status == RuleStatus.PASSED for r in results)
        else ComplianceStatus.NON_COMPLIANT
    )
    return results, overall
