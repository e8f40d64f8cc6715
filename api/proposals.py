from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models import SubmittedProposal
from schemas.submission import ProposalSubmit, SubmissionReceipt
from services.submissions import get_submission, list_submissions, submit_proposal

router = APIRouter(prefix="/api/proposals", tags=["proposals"])


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def _submission_to_response(p: SubmittedProposal) -> dict[str, Any]:
    return {
        "proposalId": p.proposal_id,
        "stage": p.stage,
        "submittedAt": _iso(p.submitted_at),
        "payload": p.payload,
    }


@router.post("/submit", status_code=201, response_model=SubmissionReceipt)
async def submit(body: ProposalSubmit, db: AsyncSession = Depends(get_db)):
    proposal = await submit_proposal(db, body)
    return SubmissionReceipt(
        proposal_id=proposal.proposal_id,
        stage=proposal.stage,
        submitted_at=proposal.submitted_at,
    )


@router.get("/submissions")
async def submissions(db: AsyncSession = Depends(get_db)):
    return [
        {"proposalId": p.proposal_id, "submittedAt": _iso(p.submitted_at)}
        for p in await list_submissions(db)
    ]


@router.get("/submissions/{proposal_id}")
async def submission(proposal_id: str, db: AsyncSession = Depends(get_db)):
    return _submission_to_response(await get_submission(db, proposal_id))
