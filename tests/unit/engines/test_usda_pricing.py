"""USDA pricing engine: commodity filters, price rules, trend analysis and mock data."""

from datetime import datetime, timedelta, timezone

import pytest

from auditdna.domain.exceptions import DomainValidationError
from auditdna.domain.models.engine import ComplianceStatus, build_engine_record
from auditdna.domain.validators.search_validator import build_search_options
from auditdna.engines.mock_data import USDA_BASE_PRICES, generate_usda_records
from auditdna.engines.usda_pricing import USDAPricingEngine, calculate_volatility
from auditdna.infrastructure.memory.engine_repository_memory import InMemoryEngineRepository

NOW = datetime.now(timezone.utc)


def _price(commodity: str, price: float, days_ago: float, location: str = "Omaha, NE"):
    return build_engine_record(
        engine="usda_pricing",
        name=commodity,
        value=price,
        unit="USD/bushel",
        recorded_at=NOW - timedelta(days=days_ago),
        location=location,
        attributes={"grade": "US No. 2", "volume": 1000},
    )


@pytest.fixture
def repository():
    return InMemoryEngineRepository()


@pytest.fixture
async def engine(repository):
    await repository.save_records(
        "usda_pricing",
        [
            _price("Corn", 4.00, 100),
            _price("Corn", 4.50, 50, location="Chicago, IL"),
            _price("Corn", 5.00, 10),
            _price("Wheat", 6.40, 20),
            _price("Wheat", 6.10, 5, location="Kansas City, MO"),
            _price("Corn", 3.00, 300),
        ],
    )
    return USDAPricingEngine(repository)


@pytest.mark.asyncio
async def test_commodity_filter_is_case_insensitive(engine):
    result = await engine.search(None, {"commodity": "CORN"}, build_search_options(limit=100))
    assert result.total == 4
    assert {r["commodity"] for r in result.results} == {"Corn"}


@pytest.mark.asyncio
async def test_location_and_price_filters(engine):
    result = await engine.search(None, {"location": "omaha, ne", "priceMin": "4.5"})
    assert [r["price"] for r in result.results] == [5.0, 6.4]


@pytest.mark.asyncio
async def test_default_sort_is_latest_market_date(engine):
    result = await engine.search(None, {}, build_search_options(limit=100))
    dates = [r["marketDate"] for r in result.results]
    assert dates == sorted(dates, reverse=True)


@pytest.mark.asyncio
async def test_bare_date_to_includes_whole_day(engine):
    day = (NOW - timedelta(days=5)).date().isoformat()
    result = await engine.search(None, {"dateFrom": day, "dateTo": day})
    assert result.total == 1
    assert result.results[0]["commodity"] == "Wheat"


@pytest.mark.asyncio
async def test_record_serialization(engine):
    result = await engine.search(None, {}, build_search_options(limit=1))
    record = result.results[0]
    assert set(record) >= {"commodity", "price", "priceUnit", "marketDate", "grade", "volume", "complianceStatus"}
    assert record["priceUnit"] == "USD/bushel"


@pytest.mark.asyncio
async def test_sort_by_generic_only_field_rejected(engine):
    with pytest.raises(DomainValidationError):
        await engine.search(None, {}, build_search_options(sort_by="testDate"))


@pytest.mark.asyncio
async def test_upward_trend(engine):
    analysis = await engine.analyze_price_trends("corn", "6months")
    assert analysis["trend"] == "upward"
    assert analysis["trendStrength"] == "25.00%"
    assert analysis["analysis"]["dataPoints"] == 3
    assert analysis["analysis"]["avgPrice"] == 4.5
    assert analysis["analysis"]["minPrice"] == 4.0
    assert analysis["analysis"]["maxPrice"] == 5.0


@pytest.mark.asyncio
async def test_downward_trend(engine):
    analysis = await engine.analyze_price_trends("Wheat", "1month")
    assert analysis["trend"] == "downward"
    assert analysis["analysis"]["dataPoints"] == 2


@pytest.mark.asyncio
async def test_no_data_in_window(engine):
    analysis = await engine.analyze_price_trends("rice", "1year")
    assert analysis["trend"] == "no_data"
    assert analysis["analysis"] == "Insufficient data for analysis"


@pytest.mark.asyncio
async def test_analysis_validates_input(engine):
    with pytest.raises(DomainValidationError):
        await engine.analyze_price_trends("corn", "decade")
    with pytest.raises(DomainValidationError):
        await engine.analyze_price_trends("  ")


def test_volatility_is_population_std():
    assert calculate_volatility([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]) == 2.0
    assert calculate_volatility([3.0]) == 0.0


@pytest.mark.asyncio
async def test_price_report_embeds_analysis(engine):
    report = await engine.generate_report("price_analysis", {"commodity": "corn"})
    assert report.title == "Corn Price Analysis Report"
    assert report.report_id.startswith("USDA_PRICING-")
    assert report.data["analysis"]["trend"] == "upward"


@pytest.mark.asyncio
async def test_default_rules_check_price_and_commodity(engine):
    data = {
        "commodity": "corn",
        "price": 4.85,
        "location": "Omaha, NE",
        "marketDate": NOW.isoformat(),
    }
    validation = await engine.validate_compliance(data)
    assert validation.overall_status == ComplianceStatus.COMPLIANT
    assert len(validation.results) == 4

    validation = await engine.validate_compliance({**data, "commodity": "barley"})
    assert validation.overall_status == ComplianceStatus.NON_COMPLIANT


def test_mock_records_are_deterministic_and_bounded():
    first = generate_usda_records("usda_pricing", 40, seed=42, now=NOW)
    second = generate_usda_records("usda_pricing", 40, seed=42, now=NOW)
    assert [r.record_id for r in first] == [r.record_id for r in second]
    for record in first:
        base = USDA_BASE_PRICES[record.name]
        assert base * 0.85 - 0.01 <= record.value <= base * 1.15 + 0.01
        assert 1000 <= record.attributes["volume"] <= 50000
