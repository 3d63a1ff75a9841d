"""Application tracking endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from educrm.agents.applications import (
    complete_milestone,
    parse_application_status_email,
    transition_application,
)
from educrm.api.dependencies import (
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

router = APIRouter(prefix="/applications", tags=["applications"], dependencies=[Depends(require_user)])


class StatusEmailRequest(BaseModel):
    email_subject: str = Field(min_length=1)
    email_body: str = Field(min_length=1)
    email_from: str = ""
    student_email: str = Field(min_length=1)


class MilestoneRequest(BaseModel):
    milestone: str
    notes: Optional[str] = None


class TransitionRequest(BaseModel):
    status: str
    notes: Optional[str] = None


@router.post("/parse-status-email")
async def parse_status_email(
    body: StatusEmailRequest,
    store: EntityStore = Depends(get_store),
    reasoner: ReasoningClient = Depends(get_reasoner),
    mailer: Mailer = Depends(get_mailer),
    params: SystemParams = Depends(get_params),
    correlation_id: str = Depends(get_correlation_id),
):
    return await parse_application_status_email(
        store,
        reasoner,
        mailer,
        params,
        body.email_subject,
        body.email_body,
        body.email_from,
        body.student_email,
        correlation_id=correlation_id,
    )


@router.post("/{application_id}/milestones")
def milestones(
    application_id: str,
    body: MilestoneRequest,
    store: EntityStore = Depends(get_store),
    correlation_id: str = Depends(get_correlation_id),
):
    return complete_milestone(
        store, application_id, body.milestone, notes=body.notes, correlation_id=correlation_id
    )


@router.post("/{application_id}/transition")
def transition(
    application_id: str,
    body: TransitionRequest,
    store: EntityStore = Depends(get_store),
    correlation_id: str = Depends(get_correlation_id),
):
    return transition_application(
        store, application_id, body.status, notes=body.notes, correlation_id=correlation_id
    )
