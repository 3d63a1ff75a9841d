"""Student-centred endpoints: matching, risk detection, financial aid."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from educrm.agents.at_risk import detect_at_risk_students
from educrm.agents.matching import match_universities_and_courses
from educrm.agents.scholarships import recommend_financial_aid
from educrm.api.dependencies import (
    get_correlation_id,
    get_params,
    get_reasoner,
    get_store,
    require_user,
)
from educrm.models.config import SystemParams
from educrm.store.repository import EntityStore
from educrm.utils.reasoning import ReasoningClient

router = APIRouter(tags=["students"], dependencies=[Depends(require_user)])


class MatchingRequest(BaseModel):
    student_profile_id: str


class AtRiskRequest(BaseModel):
    student_id: Optional[str] = None
    run_for_all: bool = False


class FinancialAidRequest(BaseModel):
    student_id: str


@router.post("/matching")
async def matching(
    body: MatchingRequest,
    store: EntityStore = Depends(get_store),
    reasoner: ReasoningClient = Depends(get_reasoner),
    params: SystemParams = Depends(get_params),
    correlation_id: str = Depends(get_correlation_id),
):
    return await match_universities_and_courses(
        store, reasoner, params, body.student_profile_id, correlation_id=correlation_id
    )


@router.post("/students/at-risk")
async def at_risk(
    body: AtRiskRequest,
    store: EntityStore = Depends(get_store),
    reasoner: ReasoningClient = Depends(get_reasoner),
    params: SystemParams = Depends(get_params),
    correlation_id: str = Depends(get_correlation_id),
):
    return await detect_at_risk_students(
        store,
        reasoner,
        params,
        student_id=body.student_id,
        run_for_all=body.run_for_all,
        correlation_id=correlation_id,
    )


@router.post("/scholarships/recommend")
async def scholarships(
    body: FinancialAidRequest,
    store: EntityStore = Depends(get_store),
    reasoner: ReasoningClient = Depends(get_reasoner),
    params: SystemParams = Depends(get_params),
    correlation_id: str = Depends(get_correlation_id),
):
    return await recommend_financial_aid(
        store, reasoner, params, body.student_id, correlation_id=correlation_id
    )
