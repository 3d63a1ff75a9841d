"""Reporting, insight and coaching endpoints."""

from datetime import datetime
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field

from educrm.agents.insights import ALL_INSIGHTS, generate_crm_insights
from educrm.agents.performance import analyze_performance_trends, generate_personalized_coaching
from educrm.agents.reporting import generate_custom_report, report_filename
from educrm.api.dependencies import (
    get_correlation_id,
    get_params,
    get_reasoner,
    get_store,
    require_admin,
    require_user,
)
from educrm.models.config import SystemParams
from educrm.store.repository import EntityStore
from educrm.utils.csv_export import report_to_csv
from educrm.utils.reasoning import ReasoningClient

router = APIRouter(tags=["analytics"])


class CustomReportRequest(BaseModel):
    report_type: str
    filters: dict[str, Any] = Field(default_factory=dict)
    format: Literal["json", "csv"] = "json"
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


class CRMInsightsRequest(BaseModel):
    report_type: str = ALL_INSIGHTS


class PerformanceTrendsRequest(BaseModel):
    filters: dict[str, Any] = Field(default_factory=dict)


class CoachingRequest(BaseModel):
    counselor_id: str


@router.post("/reports/custom", dependencies=[Depends(require_admin)])
def custom_report(
    body: CustomReportRequest,
    store: EntityStore = Depends(get_store),
    params: SystemParams = Depends(get_params),
    correlation_id: str = Depends(get_correlation_id),
):
    """Build a report as JSON, or as a CSV attachment when format is "csv"."""
    report = generate_custom_report(
        store,
        params,
        body.report_type,
        filters=body.filters,
        date_from=body.date_from,
        date_to=body.date_to,
        correlation_id=correlation_id,
    )
    if body.format == "csv":
        return Response(
            content=report_to_csv(report),
            media_type="text/csv",
            headers={
                "Content-Disposition": f'attachment; filename="{report_filename(body.report_type)}"'
            },
        )
    return report


@router.post("/insights/crm", dependencies=[Depends(require_admin)])
async def crm_insights(
    body: CRMInsightsRequest,
    store: EntityStore = Depends(get_store),
    reasoner: ReasoningClient = Depends(get_reasoner),
    params: SystemParams = Depends(get_params),
    correlation_id: str = Depends(get_correlation_id),
):
    return await generate_crm_insights(
        store, reasoner, params, body.report_type, correlation_id=correlation_id
    )


@router.post("/insights/performance-trends", dependencies=[Depends(require_user)])
async def performance_trends(
    body: PerformanceTrendsRequest,
    store: EntityStore = Depends(get_store),
    reasoner: ReasoningClient = Depends(get_reasoner),
    params: SystemParams = Depends(get_params),
    correlation_id: str = Depends(get_correlation_id),
):
    return await analyze_performance_trends(
        store, reasoner, params, filters=body.filters, correlation_id=correlation_id
    )


@router.post("/coaching", dependencies=[Depends(require_user)])
async def coaching(
    body: CoachingRequest,
    store: EntityStore = Depends(get_store),
    reasoner: ReasoningClient = Depends(get_reasoner),
    params: SystemParams = Depends(get_params),
    correlation_id: str = Depends(get_correlation_id),
):
    return await generate_personalized_coaching(
        store, reasoner, params, body.counselor_id, correlation_id=correlation_id
    )
