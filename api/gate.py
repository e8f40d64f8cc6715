from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import ValidationFailed
from database import get_db
from schemas.gate import DecisionCreate, DecisionResponse, ProposalDetail, ProposalStage, ProposalSummary
from services import gate

router = APIRouter(prefix="/api/gate", tags=["gate"])


def _parse_stage(stage: Optional[str]) -> ProposalStage:
    if not stage:
        raise ValidationFailed("Query parameter 'stage' is required", allowed=[s.value for s in ProposalStage])
    try:
        return ProposalStage(stage.upper())
    except ValueError:
        raise ValidationFailed(
            f"Invalid stage '{stage}'", stage=stage, allowed=[s.value for s in ProposalStage]
        ) from None


@router.get("/proposals", response_model=list[ProposalSummary])
async def list_proposals(stage: Optional[str] = Query(None), db: AsyncSession = Depends(get_db)):
    return await gate.list_by_stage(db, _parse_stage(stage))


@router.get("/summary")
async def summary(db: AsyncSession = Depends(get_db)):
    return await gate.stage_counts(db)


@router.get("/proposals/{proposal_id}", response_model=ProposalDetail)
async def proposal_detail(proposal_id: str, db: AsyncSession = Depends(get_db)):
    return await gate.get_detail(db, proposal_id)


@router.post("/proposals/{proposal_id}/decision", status_code=201, response_model=DecisionResponse)
async def decide(proposal_id: str, body: DecisionCreate, db: AsyncSession = Depends(get_db)):
    return await gate.submit_decision(db, proposal_id, body)
