"""Partner training, bulk messaging and reminder endpoints."""

from typing import Any, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from educrm.agents.messaging import send_bulk_email
from educrm.agents.reminders import process_reminders
from educrm.agents.training import submit_quiz
from educrm.api.dependencies import (
    get_correlation_id,
    get_mailer,
    get_params,
    get_store,
    require_admin,
    require_user,
)
from educrm.models.config import SystemParams
from educrm.store.repository import EntityStore
from educrm.utils.mailer import Mailer

router = APIRouter(tags=["engagement"])


class QuizSubmission(BaseModel):
    module_id: str
    answers: Union[list[Any], dict[str, Any]]
    questions: list[dict[str, Any]] = Field(min_length=1)


class BulkEmailRequest(BaseModel):
    filters: dict[str, Any] = Field(default_factory=dict)
    subject: str = ""
    body: str = ""


@router.post("/training/{training_id}/quiz", dependencies=[Depends(require_user)])
def quiz(
    training_id: str,
    body: QuizSubmission,
    store: EntityStore = Depends(get_store),
    params: SystemParams = Depends(get_params),
    correlation_id: str = Depends(get_correlation_id),
):
    return submit_quiz(
        store,
        params,
        training_id,
        body.module_id,
        body.answers,
        body.questions,
        correlation_id=correlation_id,
    )


@router.post("/messaging/bulk-email", dependencies=[Depends(require_user)])
async def bulk_email(
    body: BulkEmailRequest,
    store: EntityStore = Depends(get_store),
    mailer: Mailer = Depends(get_mailer),
    correlation_id: str = Depends(get_correlation_id),
):
    return await send_bulk_email(
        store, mailer, body.subject, body.body, filters=body.filters, correlation_id=correlation_id
    )


@router.post("/reminders/process", dependencies=[Depends(require_admin)])
async def reminders(
    store: EntityStore = Depends(get_store),
    mailer: Mailer = Depends(get_mailer),
    correlation_id: str = Depends(get_correlation_id),
):
    return await process_reminders(store, mailer, correlation_id=correlation_id)
