from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator

from schemas.origination import CamelModel


class ProposalStage(str, Enum):
    DOC_REVIEW = "DOC_REVIEW"
    RISK_REVIEW = "RISK_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_final(self) -> bool:
        return self in (ProposalStage.APPROVED, ProposalStage.REJECTED)


class DecisionType(str, Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class DecisionCreate(CamelModel):
    stage: ProposalStage
    decision: DecisionType
    reasons: list[str] = Field(default_factory=list)
    comment: Optional[str] = None
    user_id: str = Field(..., min_length=1)

    @field_validator("stage")
    @classmethod
    def _review_stage(cls, value: ProposalStage) -> ProposalStage:
        if value.is_final:
            raise ValueError("decisions are only made at DOC_REVIEW or RISK_REVIEW")
        return value


class DecisionResponse(CamelModel):
    decision_id: str
    previous_stage: ProposalStage
    new_stage: ProposalStage
    decision: DecisionType


class DecisionRecord(CamelModel):
    decision_id: str
    proposal_id: str
    stage: ProposalStage
    decision: DecisionType
    reasons: list[str]
    comment: Optional[str] = None
    user_id: str
    created_at: datetime

    model_config = {**CamelModel.model_config, "from_attributes": True}


class ProposalSummary(CamelModel):
    proposal_id: str
    group_id: str
    leader_name: str
    members_count: int
    total_amount: float
    submitted_at: datetime
    stage: ProposalStage
    evidence_required_count: int
    evidence_completed_count: int


class ProposalDetail(CamelModel):
    proposal_id: str
    stage: ProposalStage
    submitted_at: datetime
    payload: dict[str, Any]
    decisions: list[DecisionRecord]
