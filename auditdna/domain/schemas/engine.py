"""Pydantic schemas for engine API request bodies. Strict validation, no DB or infrastructure."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ReportCreateRequest(BaseModel):
    """POST /api/engines/{engineName}/report body."""

    model_config = ConfigDict(populate_by_name=True)

    report_type: str = Field(..., alias="reportType", min_length=1, description="Report type is required")
    data: Dict[str, Any] = Field(default_factory=dict)
    options: Dict[str, Any] = Field(default_factory=dict)


class ComplianceValidateRequest(BaseModel):
    """POST /api/engines/{engineName}/validate body. Empty rules select the engine defaults."""

    data: Dict[str, Any] = Field(..., description="Data object is required")
    rules: List[Dict[str, Any]] = Field(default_factory=list)


class PriceAnalysisRequest(BaseModel):
    """POST /api/engines/{engineName}/analyze body."""

    commodity: str = Field(..., min_length=1, description="Commodity is required for analysis")
    timeframe: Literal["1month", "3months", "6months", "1year"] = "6months"
