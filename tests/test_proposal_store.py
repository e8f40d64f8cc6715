"""
Officer-side proposal store: persistence and group editing rules.
Run from the project root: python -m pytest tests/test_proposal_store.py -v
"""
import json
import tempfile
import unittest
from pathlib import Path

from schemas.origination import EvidenceKey, LoanGoal, ProposalStatus
from services.proposal_store import (
    GroupInvariantError,
    ProposalNotFound,
    ProposalStore,
    StoreClosed,
)

from factories import make_group, make_loan_details, make_member


class TestProposalStore(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "store" / "proposals.json"
        self.store = ProposalStore(self.path).open()

    def tearDown(self):
        self.store.close()
        self._tmp.cleanup()

    def test_closed_store_refuses_access(self):
        store = ProposalStore(self.path)
        with self.assertRaises(StoreClosed):
            store.list_proposals()

    def test_create_from_group(self):
        proposal = self.store.create_from_group(make_group(3))
        self.assertTrue(proposal.id.startswith("prop-"))
        self.assertEqual(proposal.status, ProposalStatus.ON_GOING)
        self.assertEqual(proposal.leader_name, "First1 Last1")
        self.assertEqual(proposal.client_name, "First1 Last1")
        self.assertEqual(proposal.total_amount, 3000)
        self.assertEqual(proposal.amount, "3000")

    def test_create_rejects_empty_group(self):
        group = make_group(1)
        group.members = []
        with self.assertRaises(GroupInvariantError):
            self.store.create_from_group(group)

    def test_persists_across_reopen(self):
        proposal = self.store.create_from_group(make_group(3))
        self.store.set_loan_details(proposal.id, 2, make_loan_details(LoanGoal.INVESTMENT))
        self.store.close()

        raw = json.loads(self.path.read_text())
        self.assertEqual(raw[0]["groupId"], "GRP-1")
        self.assertIn("loanDetailsByMember", raw[0]["data"])

        with ProposalStore(self.path) as reopened:
            loaded = reopened.require(proposal.id)
            self.assertEqual(loaded.data.loan_details_by_member[2].loan_goal, LoanGoal.INVESTMENT)
            self.assertEqual(len(loaded.data.group.members), 3)

    def test_update_does_not_touch_stored_copy_on_error(self):
        proposal = self.store.create_from_group(make_group(3))

        def broken(p):
            p.data.group.group_name = "changed"
            raise RuntimeError("boom")

        with self.assertRaises(RuntimeError):
            self.store.update(proposal.id, broken)
        self.assertEqual(self.store.require(proposal.id).data.group.group_name, "Test Group")

    def test_update_bumps_updated_at(self):
        proposal = self.store.create_from_group(make_group(3))
        updated = self.store.set_leader(proposal.id, 2)
        self.assertGreaterEqual(updated.updated_at, proposal.updated_at)
        self.assertEqual(updated.leader_name, "First2 Last2")

    def test_add_member(self):
        proposal = self.store.create_from_group(make_group(2))
        updated = self.store.add_member(proposal.id, make_member(7))
        self.assertEqual([m.id for m in updated.data.group.members], [1, 2, 7])
        with self.assertRaises(GroupInvariantError):
            self.store.add_member(proposal.id, make_member(7))

    def test_update_member(self):
        proposal = self.store.create_from_group(make_group(3))
        updated = self.store.update_member(proposal.id, 1, first_name="Luci")
        self.assertEqual(updated.data.group.member(1).first_name, "Luci")
        self.assertEqual(updated.leader_name, "Luci Last1")

    def test_remove_leader_reassigns(self):
        proposal = self.store.create_from_group(make_group(3))
        self.store.set_loan_details(proposal.id, 1, make_loan_details())
        updated = self.store.remove_member(proposal.id, 1)
        self.assertEqual(updated.data.group.leader_id, 2)
        self.assertNotIn(1, updated.data.loan_details_by_member)
        self.assertEqual(updated.leader_name, "First2 Last2")

    def test_cannot_remove_last_member(self):
        proposal = self.store.create_from_group(make_group(1))
        with self.assertRaises(GroupInvariantError):
            self.store.remove_member(proposal.id, 1)
        self.assertEqual(len(self.store.require(proposal.id).data.group.members), 1)

    def test_leader_must_be_member(self):
        proposal = self.store.create_from_group(make_group(3))
        with self.assertRaises(GroupInvariantError):
            self.store.set_leader(proposal.id, 99)

    def test_capture_evidence(self):
        group = make_group(3)
        group.members[0].evidence = {}
        proposal = self.store.create_from_group(group)
        updated = self.store.capture_evidence(proposal.id, 1, EvidenceKey.ID_FRONT, "file:///id.jpg")
        self.assertEqual(updated.data.group.member(1).evidence[EvidenceKey.ID_FRONT].uri, "file:///id.jpg")

    def test_list_and_counts(self):
        first = self.store.create_from_group(make_group(3))
        self.store.create_from_group(make_group(3, group_id="GRP-2"))

        def evaluate(p):
            p.status = ProposalStatus.UNDER_EVALUATION
            return p

        self.store.update(first.id, evaluate)
        self.assertEqual([p.id for p in self.store.list_proposals(ProposalStatus.UNDER_EVALUATION)], [first.id])
        self.assertEqual(
            self.store.status_counts(), {"on_going": 1, "under_evaluation": 1, "completed": 0}
        )

    def test_delete(self):
        proposal = self.store.create_from_group(make_group(3))
        self.store.delete(proposal.id)
        self.assertIsNone(self.store.get(proposal.id))
        with self.assertRaises(ProposalNotFound):
            self.store.delete(proposal.id)


if __name__ == "__main__":
    unittest.main()
