"""
Dashboard Schemas

Health and cost blocks are synthetic placeholders, not telemetry or billing data.
"""

from typing import List

from pydantic import BaseModel, Field


class SummaryEntry(BaseModel):
    """One bucket of a dimension rollup (type, location or environment)."""

    label: str
    count: int
    percentage: float


class HealthSummary(BaseModel):
    healthy: int
    warning: int
    critical: int


class CostSummary(BaseModel):
    estimated_monthly_cost: float
    top_cost_driver: str


class DashboardSummary(BaseModel):
    total_resources: int
    total_subscriptions: int
    total_resource_groups: int
    total_locations: int
    resource_types: List[SummaryEntry] = Field(default_factory=list)
    locations: List[SummaryEntry] = Field(default_factory=list)
    environments: List[SummaryEntry] = Field(default_factory=list)
    health_summary: HealthSummary
    cost_summary: CostSummary
