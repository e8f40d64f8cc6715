from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import Field, field_validator, model_validator

from schemas.origination import CamelModel, EvidenceItem, EvidenceKey, LoanGoal, fold_unknown_goal


class MemberPayload(CamelModel):
    member_id: str
    name: str
    phone: Optional[str] = None
    id_number: Optional[str] = None
    loan_amount: float
    loan_goal: Optional[LoanGoal] = None
    other_goal: Optional[str] = None
    installments: Optional[int] = None
    first_payment_date: Optional[str] = None
    evidence: dict[EvidenceKey, EvidenceItem] = Field(default_factory=dict)
    evidence_photos: Optional[list[str]] = None
    signature: Optional[str] = None

    @field_validator("loan_goal", mode="before")
    @classmethod
    def _parse_goal(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return LoanGoal.parse(value) or value

    @model_validator(mode="before")
    @classmethod
    def _unknown_goal_is_other(cls, data: Any) -> Any:
        return fold_unknown_goal(data)


class ProposalPayload(CamelModel):
    group_id: str
    group_name: str
    leader_name: str
    leader_phone: Optional[str] = None
    members: list[MemberPayload]
    total_amount: float
    contract_text: Optional[str] = None
    evidence_photos: Optional[list[str]] = None
    form_data: Optional[dict[str, Any]] = None

    model_config = {**CamelModel.model_config, "extra": "allow"}


class ProposalSubmit(CamelModel):
    proposal_id: str = Field(..., min_length=1)
    payload: ProposalPayload


class SubmissionReceipt(CamelModel):
    proposal_id: str
    stage: str
    submitted_at: datetime
