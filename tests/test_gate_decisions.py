"""
Decision recording against a database: the guarded stage update and its rollback.
Run from the project root: python -m pytest tests/test_gate_decisions.py -v
"""
import unittest
from datetime import datetime, timezone

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from core.errors import StageMismatch
from database import Base
from models import ProposalDecision, SubmittedProposal
from schemas.gate import DecisionCreate, DecisionType, ProposalStage
from services.gate import submit_decision

PROPOSAL_ID = "prop-race"


class TestSubmitDecision(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.engine = create_async_engine(
            "sqlite+aiosqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.sessions = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

        async with self.sessions() as session:
            session.add(
                SubmittedProposal(
                    proposal_id=PROPOSAL_ID,
                    stage=ProposalStage.DOC_REVIEW.value,
                    submitted_at=datetime.now(timezone.utc),
                    payload={"groupId": "GRP-1", "groupName": "g", "leaderName": "Ana", "members": [], "totalAmount": 0},
                )
            )
            await session.commit()

    async def asyncTearDown(self):
        await self.engine.dispose()

    async def _decision_count(self) -> int:
        async with self.sessions() as session:
            return await session.scalar(select(func.count()).select_from(ProposalDecision))

    async def _stage(self) -> str:
        async with self.sessions() as session:
            return await session.scalar(
                select(SubmittedProposal.stage).where(SubmittedProposal.proposal_id == PROPOSAL_ID)
            )

    async def test_decision_and_stage_commit_together(self):
        body = DecisionCreate(stage=ProposalStage.DOC_REVIEW, decision=DecisionType.APPROVE, user_id="reviewer-1")
        async with self.sessions() as session:
            response = await submit_decision(session, PROPOSAL_ID, body)
            await session.commit()
        self.assertEqual(response.new_stage, ProposalStage.RISK_REVIEW)
        self.assertEqual(await self._stage(), "RISK_REVIEW")
        self.assertEqual(await self._decision_count(), 1)

    async def test_stage_moved_after_load_rolls_back_decision(self):
        body = DecisionCreate(stage=ProposalStage.DOC_REVIEW, decision=DecisionType.APPROVE, user_id="reviewer-1")
        async with self.sessions() as session:
            # The loaded object keeps DOC_REVIEW while the row moves on underneath it
            loaded = await session.get(SubmittedProposal, PROPOSAL_ID)
            await session.execute(
                text("UPDATE proposals SET stage = 'RISK_REVIEW' WHERE proposal_id = :id"), {"id": PROPOSAL_ID}
            )
            self.assertEqual(loaded.stage, "DOC_REVIEW")

            with self.assertRaises(StageMismatch) as ctx:
                await submit_decision(session, PROPOSAL_ID, body)
            self.assertEqual(ctx.exception.details["currentStage"], "RISK_REVIEW")
            self.assertEqual(ctx.exception.details["attemptedStage"], "DOC_REVIEW")
            await session.rollback()

        self.assertEqual(await self._decision_count(), 0)


if __name__ == "__main__":
    unittest.main()
