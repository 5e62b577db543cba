"""USDA commodity pricing engine: commodity/market filters, price rules and trend analysis."""

import logging
import statistics
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from auditdna.application.engine_repository import EngineRepository
from auditdna.domain.exceptions import DomainValidationError
from auditdna.domain.models.engine import EngineDescriptor, EngineRecord, SortOrder
from auditdna.domain.validators.search_validator import parse_date_filter, parse_float_filter
from auditdna.engines.stored import Predicate, SortKey, StoredEngine, sort_records

logger = logging.getLogger(__name__)

USDA_ENGINE_NAME = "usda_pricing"

USDA_DESCRIPTOR = EngineDescriptor(
    name=USDA_ENGINE_NAME,
    display_name="USDA Pricing",
    capabilities=("pricing_analysis", "risk_assessment", "compliance_check", "historical_data"),
    data_types=("commodity_prices", "market_data", "historical_trends", "risk_factors"),
    unit="USD/bushel",
)

VALID_COMMODITIES = ("corn", "wheat", "soybeans", "rice")

USDA_DEFAULT_RULES: Tuple[Dict[str, Any], ...] = (
    {"name": "price_range_check", "min": 0, "max": 1000, "field": "price"},
    {"name": "date_validity", "maxAge": 365, "field": "marketDate"},
    {"name": "location_verification", "requiredFields": ["location"]},
    {"name": "commodity_classification", "validCommodities": list(VALID_COMMODITIES), "field": "commodity"},
)

TIMEFRAMES: Dict[str, timedelta] = {
    "1month": timedelta(days=30),
    "3months": timedelta(days=91),
    "6months": timedelta(days=182),
    "1year": timedelta(days=365),
}

REPORT_TYPES_WITH_ANALYSIS = ("price_analysis", "market_trends")


def calculate_volatility(prices: Sequence[float]) -> float:
    """Population standard deviation. Zero for fewer than two prices."""
    if len(prices) < 2:
        return 0.0
    return statistics.pstdev(prices)


class USDAPricingEngine(StoredEngine):
    """Records carry commodity as name and cash price as value; marketDate is the record timestamp."""

    value_field = "price"
    timestamp_field = "marketDate"
    default_sort_by = "marketDate"
    sort_keys: Dict[str, SortKey] = {
        "marketDate": lambda r: r.recorded_at,
        "price": lambda r: r.value,
        "commodity": lambda r: r.name.lower(),
        "location": lambda r: r.location.lower(),
        "volume": lambda r: r.attributes.get("volume"),
        "score": lambda r: r.score,
        "createdAt": lambda r: r.created_at,
        "updatedAt": lambda r: r.updated_at,
    }

    def __init__(self, repository: EngineRepository, descriptor: EngineDescriptor = USDA_DESCRIPTOR) -> None:
        super().__init__(descriptor, repository)

    def _predicates(self, query: Optional[str], filters: Mapping[str, Any]) -> List[Predicate]:
        predicates: List[Predicate] = []
        if query:
            q = query.lower()
            predicates.append(lambda r: q in r.name.lower() or q in r.location.lower())
        commodity = filters.get("commodity")
        if commodity:
            wanted_commodity = str(commodity).lower()
            predicates.append(lambda r: r.name.lower() == wanted_commodity)
        location = filters.get("location")
        if location:
            wanted_location = str(location).lower()
            predicates.append(lambda r: r.location.lower() == wanted_location)
        date_from = parse_date_filter(filters, "dateFrom")
        if date_from is not None:
            predicates.append(lambda r: r.recorded_at >= date_from)
        date_to = parse_date_filter(filters, "dateTo")
        if date_to is not None:
            if len(str(filters["dateTo"]).strip()) == 10:
                # A bare date includes the whole day.
                date_to += timedelta(days=1) - timedelta(microseconds=1)
            predicates.append(lambda r: r.recorded_at <= date_to)
        price_min = parse_float_filter(filters, "priceMin")
        if price_min is not None:
            predicates.append(lambda r: r.value >= price_min)
        price_max = parse_float_filter(filters, "priceMax")
        if price_max is not None:
            predicates.append(lambda r: r.value <= price_max)
        return predicates

    def _default_rules(self) -> List[Dict[str, Any]]:
        return [dict(rule) for rule in USDA_DEFAULT_RULES]

    def serialize_record(self, record: EngineRecord) -> Dict[str, Any]:
        return {
            "id": record.record_id,
            "engine": record.engine,
            "commodity": record.name,
            "price": record.value,
            "priceUnit": record.unit,
            "marketDate": record.recorded_at.isoformat(),
            "location": record.location,
            "grade": record.attributes.get("grade"),
            "volume": record.attributes.get("volume"),
            "complianceStatus": record.compliance_status.value,
            "riskFactors": [rf.to_dict() for rf in record.risk_factors],
            "dataSource": record.data_source,
            "score": record.score,
            "createdAt": record.created_at.isoformat(),
            "updatedAt": record.updated_at.isoformat(),
        }

    async def analyze_price_trends(self, commodity: str, timeframe: str = "6months") -> Dict[str, Any]:
        """Trend direction and strength between the first and last price in the window."""
        if not commodity or not commodity.strip():
            raise DomainValidationError("Commodity is required for analysis")
        if timeframe not in TIMEFRAMES:
            raise DomainValidationError(
                f"Unsupported timeframe '{timeframe}'; expected one of {', '.join(TIMEFRAMES)}"
            )
        end = datetime.now(timezone.utc)
        start = end - TIMEFRAMES[timeframe]
        wanted = commodity.strip().lower()
        records = [
            r
            for r in await self._repository.list_records(self.name)
            if r.name.lower() == wanted and start <= r.recorded_at <= end
        ]
        if not records:
            return {
                "commodity": commodity,
                "timeframe": timeframe,
                "trend": "no_data",
                "analysis": "Insufficient data for analysis",
            }

        ordered = sort_records(records, lambda r: r.recorded_at, SortOrder.ASC)
        prices = [r.value for r in ordered]
        first, last = prices[0], prices[-1]
        strength = abs((last - first) / first) * 100 if first else 0.0
        result = {
            "commodity": commodity,
            "timeframe": timeframe,
            "trend": "upward" if last > first else "downward",
            "trendStrength": f"{strength:.2f}%",
            "analysis": {
                "avgPrice": round(statistics.fmean(prices), 2),
                "minPrice": round(min(prices), 2),
                "maxPrice": round(max(prices), 2),
                "volatility": round(calculate_volatility(prices), 2),
                "dataPoints": len(prices),
            },
        }
        logger.info(
            "price_trend_analyzed",
            extra={"commodity": wanted, "timeframe": timeframe, "data_points": len(prices)},
        )
        return result

    async def _prepare_report_data(self, report_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
        # Pricing reports for a commodity embed the current trend analysis.
        commodity = data.get("commodity")
        if report_type in REPORT_TYPES_WITH_ANALYSIS and commodity and "analysis" not in data:
            timeframe = data.get("timeframe") or "6months"
            return {**data, "analysis": await self.analyze_price_trends(str(commodity), timeframe)}
        return data

    def _report_title(self, report_type: str, data: Mapping[str, Any]) -> str:
        commodity = data.get("commodity")
        kind = report_type.replace("_", " ").title()
        if commodity:
            return f"{str(commodity).title()} {kind} Report"
        return f"USDA {kind} Report"
