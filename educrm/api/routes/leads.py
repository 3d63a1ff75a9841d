"""Lead scoring endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from educrm.agents.lead_scoring import score_inquiry, score_leads_batch
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

router = APIRouter(prefix="/leads", tags=["leads"], dependencies=[Depends(require_user)])


class BatchScoreRequest(BaseModel):
    student_ids: list[str] = Field(min_length=1)


@router.post("/score-batch")
async def score_batch(
    body: BatchScoreRequest,
    store: EntityStore = Depends(get_store),
    reasoner: ReasoningClient = Depends(get_reasoner),
    params: SystemParams = Depends(get_params),
    correlation_id: str = Depends(get_correlation_id),
):
    results = await score_leads_batch(
        store, reasoner, params, body.student_ids, correlation_id=correlation_id
    )
    scored = sum(1 for r in results if r["success"])
    return {"success": True, "scored": scored, "failed": len(results) - scored, "results": results}


@router.post("/{inquiry_id}/score")
async def score(
    inquiry_id: str,
    store: EntityStore = Depends(get_store),
    reasoner: ReasoningClient = Depends(get_reasoner),
    params: SystemParams = Depends(get_params),
    correlation_id: str = Depends(get_correlation_id),
):
    inquiry = await score_inquiry(store, reasoner, params, inquiry_id, correlation_id=correlation_id)
    return {"success": True, "inquiry": inquiry}
