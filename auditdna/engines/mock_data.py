"""Deterministic mock records for demo deployments. Seeded so every process sees the same data."""

import random
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from auditdna.domain.models.engine import (
    ComplianceStatus,
    EngineDescriptor,
    EngineRecord,
    RiskFactor,
    Severity,
    build_engine_record,
)

GENERIC_LOCATIONS = ("New York, NY", "Los Angeles, CA", "Chicago, IL", "Houston, TX", "Phoenix, AZ")

USDA_MARKETS = ("Chicago, IL", "Kansas City, MO", "Minneapolis, MN", "Omaha, NE", "Des Moines, IA")

# Base cash price in USD/bushel.
USDA_BASE_PRICES = {
    "Corn": 4.85,
    "Wheat": 6.42,
    "Soybeans": 12.33,
    "Rice": 15.10,
}

USDA_GRADES = ("US No. 1", "US No. 2", "US No. 3")

RISK_FACTORS = ("price_volatility", "supply_disruption", "regulatory_change", "data_quality")


def _record_id(rng: random.Random) -> str:
    return uuid.UUID(int=rng.getrandbits(128), version=4).hex


def _risk_factors(rng: random.Random) -> List[RiskFactor]:
    return [
        RiskFactor(
            factor=rng.choice(RISK_FACTORS),
            severity=rng.choice(list(Severity)),
            impact=round(rng.random(), 2),
        )
        for _ in range(rng.randint(0, 2))
    ]


def generate_generic_records(
    descriptor: EngineDescriptor,
    count: int,
    seed: int,
    now: Optional[datetime] = None,
) -> List[EngineRecord]:
    rng = random.Random(f"{seed}:{descriptor.name}")
    now = now or datetime.now(timezone.utc)
    records = []
    for i in range(1, count + 1):
        records.append(
            build_engine_record(
                record_id=_record_id(rng),
                engine=descriptor.name,
                name=f"{descriptor.display_name} Sample {i}",
                value=round(rng.random() * 100, 4),
                unit=descriptor.unit,
                recorded_at=now - timedelta(days=rng.random() * 365),
                location=rng.choice(GENERIC_LOCATIONS),
                compliance_status=rng.choice(list(ComplianceStatus)),
                risk_factors=_risk_factors(rng),
                data_source="mock",
                score=round(rng.random(), 4),
                created_at=now - timedelta(minutes=count - i),
            )
        )
    return records


def generate_usda_records(
    engine: str,
    count: int,
    seed: int,
    now: Optional[datetime] = None,
) -> List[EngineRecord]:
    rng = random.Random(f"{seed}:{engine}")
    now = now or datetime.now(timezone.utc)
    commodities = list(USDA_BASE_PRICES)
    records = []
    for i in range(1, count + 1):
        commodity = commodities[(i - 1) % len(commodities)]
        price = USDA_BASE_PRICES[commodity] * (1 + rng.uniform(-0.15, 0.15))
        records.append(
            build_engine_record(
                record_id=_record_id(rng),
                engine=engine,
                name=commodity,
                value=round(price, 2),
                unit="USD/bushel",
                recorded_at=now - timedelta(days=rng.random() * 365),
                location=rng.choice(USDA_MARKETS),
                compliance_status=rng.choice(list(ComplianceStatus)),
                risk_factors=_risk_factors(rng),
                data_source="USDA AMS",
                score=round(0.7 + rng.random() * 0.3, 4),
                attributes={
                    "grade": rng.choice(USDA_GRADES),
                    "volume": rng.randint(1000, 50000),
                },
                created_at=now - timedelta(minutes=count - i),
            )
        )
    return records
