"""University outreach endpoints."""

from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from educrm.agents.outreach import (
    close_outreach,
    generate_follow_up,
    generate_outreach_campaign,
    generate_university_outreaches,
    log_outreach_response,
    send_outreach,
)
from educrm.api.dependencies import (
    CurrentUser,
    get_correlation_id,
    get_mailer,
    get_params,
    get_reasoner,
    get_store,
    require_user,
)
from educrm.models.config import SystemParams
from educrm.store.repository import EntityStore
from educrm.utils.mailer import Mailer
from educrm.utils.reasoning import ReasoningClient

router = APIRouter(prefix="/outreach", tags=["outreach"], dependencies=[Depends(require_user)])


class CampaignRequest(BaseModel):
    outreach_type: str
    objective: str
    student_criteria: dict[str, Any] = Field(default_factory=dict)
    university_criteria: dict[str, Any] = Field(default_factory=dict)
    target_universities: Optional[list[str]] = None


class OutreachResponseRequest(BaseModel):
    response_content: str = Field(min_length=1)


@router.post("/generate")
async def generate(
    store: EntityStore = Depends(get_store),
    reasoner: ReasoningClient = Depends(get_reasoner),
    params: SystemParams = Depends(get_params),
    correlation_id: str = Depends(get_correlation_id),
):
    return await generate_university_outreaches(store, reasoner, params, correlation_id=correlation_id)


@router.post("/campaign")
async def campaign(
    body: CampaignRequest,
    user: CurrentUser = Depends(require_user),
    store: EntityStore = Depends(get_store),
    reasoner: ReasoningClient = Depends(get_reasoner),
    params: SystemParams = Depends(get_params),
    correlation_id: str = Depends(get_correlation_id),
):
    return await generate_outreach_campaign(
        store,
        reasoner,
        params,
        body.outreach_type,
        body.objective,
        student_criteria=body.student_criteria,
        university_criteria=body.university_criteria,
        target_universities=body.target_universities,
        created_by=user.email or user.id,
        correlation_id=correlation_id,
    )


@router.post("/{outreach_id}/send")
async def send(
    outreach_id: str,
    store: EntityStore = Depends(get_store),
    mailer: Mailer = Depends(get_mailer),
    correlation_id: str = Depends(get_correlation_id),
):
    return await send_outreach(store, mailer, outreach_id, correlation_id=correlation_id)


@router.post("/{outreach_id}/response")
async def response(
    outreach_id: str,
    body: OutreachResponseRequest,
    store: EntityStore = Depends(get_store),
    reasoner: ReasoningClient = Depends(get_reasoner),
    params: SystemParams = Depends(get_params),
    correlation_id: str = Depends(get_correlation_id),
):
    return await log_outreach_response(
        store, reasoner, params, outreach_id, body.response_content, correlation_id=correlation_id
    )


@router.post("/{outreach_id}/follow-up")
async def follow_up(
    outreach_id: str,
    store: EntityStore = Depends(get_store),
    reasoner: ReasoningClient = Depends(get_reasoner),
    params: SystemParams = Depends(get_params),
    correlation_id: str = Depends(get_correlation_id),
):
    return await generate_follow_up(store, reasoner, params, outreach_id, correlation_id=correlation_id)


@router.post("/{outreach_id}/close")
def close(
    outreach_id: str,
    store: EntityStore = Depends(get_store),
    correlation_id: str = Depends(get_correlation_id),
):
    return close_outreach(store, outreach_id, correlation_id=correlation_id)
