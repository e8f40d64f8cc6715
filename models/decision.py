from sqlalchemy import Column, DateTime, ForeignKey, JSON, String, Text, func
from sqlalchemy.orm import relationship

from database import Base


class ProposalDecision(Base):
    """Append-only reviewer decision; rows are never updated or deleted."""

    __tablename__ = "decisions"

    decision_id = Column(String(64), primary_key=True, index=True)
    proposal_id = Column(String(64), ForeignKey("proposals.proposal_id"), nullable=False, index=True)
    stage = Column(String(32), nullable=False)
    decision = Column(String(16), nullable=False)
    reasons = Column(JSON, nullable=False, default=list)
    comment = Column(Text, nullable=True)
    user_id = Column(String(128), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    proposal = relationship("SubmittedProposal", back_populates="decisions")
