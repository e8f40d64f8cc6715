"""
Back-office review workflow for submitted proposals.

    DOC_REVIEW --APPROVE--> RISK_REVIEW --APPROVE--> APPROVED
        |                       |
        +--REJECT--> REJECTED <-+--REJECT

APPROVED and REJECTED are final. A decision names the stage the reviewer saw; if the
proposal has moved on since, the decision is refused so the reviewer can reload.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.errors import AlreadyFinal, InvalidTransition, NotFound, StageMismatch
from models import ProposalDecision, SubmittedProposal
from schemas.gate import (
    DecisionCreate,
    DecisionRecord,
    DecisionResponse,
    DecisionType,
    ProposalDetail,
    ProposalStage,
    ProposalSummary,
)
from schemas.submission import ProposalPayload
from services.evidence import count_evidence

logger = logging.getLogger(__name__)

TRANSITIONS: dict[tuple[ProposalStage, DecisionType], ProposalStage] = {
    (ProposalStage.DOC_REVIEW, DecisionType.APPROVE): ProposalStage.RISK_REVIEW,
    (ProposalStage.DOC_REVIEW, DecisionType.REJECT): ProposalStage.REJECTED,
    (ProposalStage.RISK_REVIEW, DecisionType.APPROVE): ProposalStage.APPROVED,
    (ProposalStage.RISK_REVIEW, DecisionType.REJECT): ProposalStage.REJECTED,
}


def resolve_transition(current: ProposalStage, decision: DecisionType) -> ProposalStage:
    if current.is_final:
        raise AlreadyFinal(
            f"Proposal is already {current.value}; no further decisions are accepted",
            current_stage=current,
            decision=decision,
        )
    new_stage = TRANSITIONS.get((current, decision))
    if new_stage is None:
        raise InvalidTransition(
            f"Cannot {decision.value} a proposal at {current.value}",
            current_stage=current,
            decision=decision,
        )
    return new_stage


async def _get_proposal(session: AsyncSession, proposal_id: str) -> SubmittedProposal:
    proposal = await session.get(SubmittedProposal, proposal_id)
    if proposal is None:
        raise NotFound("Proposal not found", proposalId=proposal_id)
    return proposal


async def submit_decision(session: AsyncSession, proposal_id: str, body: DecisionCreate) -> DecisionResponse:
    """
    Record a reviewer decision and move the proposal to its next stage.

    Both writes share the request transaction; the stage update only applies while the
    proposal is still at the stage the reviewer decided on, so two concurrent decisions
    cannot both win.
    """
    proposal = await _get_proposal(session, proposal_id)
    current = ProposalStage(proposal.stage)
    if current.is_final:
        raise AlreadyFinal(
            f"Proposal is already {current.value}; no further decisions are accepted",
            current_stage=current,
            attempted_stage=body.stage,
            decision=body.decision,
        )
    if body.stage != current:
        raise StageMismatch(
            f"Proposal is at {current.value}, not {body.stage.value}",
            current_stage=current,
            attempted_stage=body.stage,
            decision=body.decision,
        )
    new_stage = resolve_transition(current, body.decision)

    decision = ProposalDecision(
        decision_id=f"dec-{uuid.uuid4().hex[:12]}",
        proposal_id=proposal.proposal_id,
        stage=current.value,
        decision=body.decision.value,
        reasons=list(body.reasons),
        comment=body.comment,
        user_id=body.user_id,
        created_at=datetime.now(timezone.utc),
    )
    session.add(decision)
    await session.flush()

    result = await session.execute(
        update(SubmittedProposal)
        .where(
            SubmittedProposal.proposal_id == proposal.proposal_id,
            SubmittedProposal.stage == current.value,
        )
        .values(stage=new_stage.value)
    )
    if result.rowcount != 1:
        # Raising rolls back the decision insert with the rest of the transaction
        latest = await session.scalar(
            select(SubmittedProposal.stage).where(SubmittedProposal.proposal_id == proposal.proposal_id)
        )
        raise StageMismatch(
            "Proposal stage changed while the decision was being recorded",
            current_stage=latest,
            attempted_stage=body.stage,
            decision=body.decision,
        )

    logger.info(
        "Decision %s on proposal %s by %s: %s -> %s",
        body.decision.value,
        proposal.proposal_id,
        body.user_id,
        current.value,
        new_stage.value,
    )
    return DecisionResponse(
        decision_id=decision.decision_id,
        previous_stage=current,
        new_stage=new_stage,
        decision=body.decision,
    )


def summarize(proposal: SubmittedProposal) -> ProposalSummary:
    payload = ProposalPayload.model_validate(proposal.payload)
    required = completed = 0
    for member in payload.members:
        member_required, member_completed = count_evidence(member.evidence, member.loan_goal)
        required += member_required
        completed += member_completed
    return ProposalSummary(
        proposal_id=proposal.proposal_id,
        group_id=payload.group_id,
        leader_name=payload.leader_name,
        members_count=len(payload.members),
        total_amount=payload.total_amount,
        submitted_at=proposal.submitted_at,
        stage=ProposalStage(proposal.stage),
        evidence_required_count=required,
        evidence_completed_count=completed,
    )


async def list_by_stage(session: AsyncSession, stage: ProposalStage) -> list[ProposalSummary]:
    result = await session.execute(
        select(SubmittedProposal)
        .where(SubmittedProposal.stage == stage.value)
        .order_by(SubmittedProposal.submitted_at.desc())
    )
    return [summarize(p) for p in result.scalars().all()]


async def get_detail(session: AsyncSession, proposal_id: str) -> ProposalDetail:
    result = await session.execute(
        select(SubmittedProposal)
        .where(SubmittedProposal.proposal_id == proposal_id)
        .options(selectinload(SubmittedProposal.decisions))
    )
    proposal = result.scalar_one_or_none()
    if proposal is None:
        raise NotFound("Proposal not found", proposalId=proposal_id)
    return ProposalDetail(
        proposal_id=proposal.proposal_id,
        stage=ProposalStage(proposal.stage),
        submitted_at=proposal.submitted_at,
        payload=proposal.payload,
        decisions=[DecisionRecord.model_validate(d) for d in proposal.decisions],
    )


async def stage_counts(session: AsyncSession) -> dict[str, int]:
    result = await session.execute(
        select(SubmittedProposal.stage, func.count()).group_by(SubmittedProposal.stage)
    )
    counts = {stage: count for stage, count in result.all()}
    return {stage.value: counts.get(stage.value, 0) for stage in ProposalStage}
