from sqlalchemy import Column, DateTime, JSON, String, func
from sqlalchemy.orm import relationship

from database import Base


class SubmittedProposal(Base):
    __tablename__ = "proposals"

    proposal_id = Column(String(64), primary_key=True, index=True)
    stage = Column(String(32), nullable=False, default="DOC_REVIEW", index=True)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    # Submission payload as received (camelCase, aligned with the field app)
    payload = Column(JSON, nullable=False)

    decisions = relationship(
        "ProposalDecision",
        back_populates="proposal",
        order_by="ProposalDecision.created_at",
    )
