"""Descriptor-driven engines sharing the generic record shape and rule set."""

from typing import Any, Dict, List, Tuple

from auditdna.domain.models.engine import EngineDescriptor
from auditdna.engines.stored import StoredEngine

GENERIC_DEFAULT_RULES: Tuple[Dict[str, Any], ...] = (
    {"name": "data_completeness", "required": ["name", "value", "location"]},
    {"name": "value_range", "min": 0, "max": 1000, "field": "value"},
    {"name": "date_validity", "maxAge": 365, "field": "testDate"},
)

BASIC_ENGINE_DESCRIPTORS: Tuple[EngineDescriptor, ...] = (
    EngineDescriptor(
        name="water_tech",
        display_name="Water Tech Upload/Analysis",
        capabilities=("water_quality_analysis", "contamination_detection", "compliance_validation", "reporting"),
        data_types=("water_samples", "test_results", "compliance_reports", "environmental_data"),
        unit="ppm",
    ),
    EngineDescriptor(
        name="global_compliance",
        display_name="Global Compliance & Ethics",
        capabilities=("compliance_monitoring", "ethics_validation", "regulatory_tracking", "audit_trail"),
        data_types=("compliance_documents", "regulatory_updates", "ethics_reports", "audit_logs"),
        unit="score",
    ),
    EngineDescriptor(
        name="search_meta",
        display_name="Search Engines (Meta-layer)",
        capabilities=("cross_engine_search", "data_aggregation", "intelligent_routing", "unified_results"),
        data_types=("search_queries", "aggregated_results", "engine_metadata", "search_analytics"),
        unit="relevance",
    ),
    EngineDescriptor(
        name="mortgage_realestate",
        display_name="Mortgage & Real Estate",
        capabilities=("property_valuation", "mortgage_analysis", "risk_assessment", "market_trends"),
        data_types=("property_data", "mortgage_applications", "market_valuations", "risk_profiles"),
        unit="USD",
    ),
    EngineDescriptor(
        name="factoring",
        display_name="Factoring",
        capabilities=("invoice_analysis", "credit_assessment", "risk_evaluation", "cash_flow_analysis"),
        data_types=("invoices", "credit_reports", "payment_histories", "cash_flow_data"),
        unit="USD",
    ),
    EngineDescriptor(
        name="compliance",
        display_name="Compliance",
        capabilities=("regulatory_monitoring", "compliance_tracking", "violation_detection", "remediation_planning"),
        data_types=("compliance_documents", "regulatory_requirements", "violation_reports", "remediation_plans"),
        unit="score",
    ),
)


class BasicEngine(StoredEngine):
    """One class serves every generic engine; behaviour differs only by descriptor."""

    def _default_rules(self) -> List[Dict[str, Any]]:
        return [dict(rule) for rule in GENERIC_DEFAULT_RULES]
