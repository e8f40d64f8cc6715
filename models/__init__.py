from models.decision import ProposalDecision
from models.proposal import SubmittedProposal

__all__ = [
    "ProposalDecision",
    "SubmittedProposal",
]
