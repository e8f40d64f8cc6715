from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import Conflict, NotFound
from models import SubmittedProposal
from schemas.gate import ProposalStage
from schemas.submission import ProposalSubmit

logger = logging.getLogger(__name__)


async def submit_proposal(session: AsyncSession, body: ProposalSubmit) -> SubmittedProposal:
    """Persist a finished proposal; it enters the review workflow at DOC_REVIEW."""
    existing = await session.get(SubmittedProposal, body.proposal_id)
    if existing is not None:
        raise Conflict("Proposal already submitted", proposalId=body.proposal_id, stage=existing.stage)

    proposal = SubmittedProposal(
        proposal_id=body.proposal_id,
        stage=ProposalStage.DOC_REVIEW.value,
        submitted_at=datetime.now(timezone.utc),
        payload=body.payload.model_dump(mode="json", by_alias=True),
    )
    session.add(proposal)
    try:
        await session.flush()
    except IntegrityError as e:
        # Lost a race with a concurrent submission of the same id
        raise Conflict("Proposal already submitted", proposalId=body.proposal_id) from e

    logger.info(
        "Proposal %s submitted: group=%s members=%d total=%.2f",
        body.proposal_id,
        body.payload.group_id,
        len(body.payload.members),
        body.payload.total_amount,
    )
    return proposal


async def list_submissions(session: AsyncSession) -> list[SubmittedProposal]:
    result = await session.execute(select(SubmittedProposal).order_by(SubmittedProposal.submitted_at.desc()))
    return list(result.scalars().all())


async def get_submission(session: AsyncSession, proposal_id: str) -> SubmittedProposal:
    proposal = await session.get(SubmittedProposal, proposal_id)
    if proposal is None:
        raise NotFound("Submission not found", proposalId=proposal_id)
    return proposal
