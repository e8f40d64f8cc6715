from schemas.completion import CompletionResult
from schemas.gate import (
    DecisionCreate,
    DecisionRecord,
    DecisionResponse,
    DecisionType,
    ProposalDetail,
    ProposalStage,
    ProposalSummary,
)
from schemas.origination import (
    BusinessData,
    ContractSignature,
    EvidenceItem,
    EvidenceKey,
    Group,
    LoanDetails,
    LoanGoal,
    LocalProposal,
    Member,
    ProfitAndLoss,
    ProposalData,
    ProposalStatus,
)
from schemas.submission import MemberPayload, ProposalPayload, ProposalSubmit, SubmissionReceipt

__all__ = [
    "BusinessData",
    "CompletionResult",
    "ContractSignature",
    "DecisionCreate",
    "DecisionRecord",
    "DecisionResponse",
    "DecisionType",
    "EvidenceItem",
    "EvidenceKey",
    "Group",
    "LoanDetails",
    "LoanGoal",
    "LocalProposal",
    "Member",
    "MemberPayload",
    "ProfitAndLoss",
    "ProposalData",
    "ProposalDetail",
    "ProposalPayload",
    "ProposalStage",
    "ProposalStatus",
    "ProposalSubmit",
    "ProposalSummary",
    "SubmissionReceipt",
]
