"""
Officer-side proposal store: proposals being assembled in the field, persisted to a
JSON file. Open it on startup, every mutation flushes, close it on shutdown.
"""
from __future__ import annotations

import logging
import os
import tempfile
import uuid
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from pydantic import TypeAdapter

from schemas.origination import (
    EvidenceItem,
    EvidenceKey,
    Group,
    LoanDetails,
    LocalProposal,
    Member,
    ProposalData,
    ProposalStatus,
)
from utils.currency import parse_currency

logger = logging.getLogger(__name__)

_proposals_adapter = TypeAdapter(list[LocalProposal])


class ProposalStoreError(Exception):
    pass


class StoreClosed(ProposalStoreError):
    pass


class ProposalNotFound(ProposalStoreError):
    def __init__(self, proposal_id: str) -> None:
        super().__init__(f"Proposal {proposal_id} not found")
        self.proposal_id = proposal_id


class GroupInvariantError(ProposalStoreError):
    pass


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _with_leader_names(proposal: LocalProposal) -> LocalProposal:
    leader = proposal.data.group.leader
    name = leader.full_name if leader else ""
    return proposal.model_copy(update={"client_name": name, "leader_name": name})


class ProposalStore:
    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        self._proposals: Optional[dict[str, LocalProposal]] = None

    # lifecycle

    def open(self) -> "ProposalStore":
        if self._proposals is not None:
            return self
        if self.path.exists():
            loaded = _proposals_adapter.validate_json(self.path.read_bytes())
        else:
            loaded = []
        self._proposals = {p.id: p for p in loaded}
        logger.debug("Opened proposal store %s with %d proposals", self.path, len(self._proposals))
        return self

    def flush(self) -> None:
        proposals = self._require_open()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = _proposals_adapter.dump_json(list(proposals.values()), by_alias=True, indent=2)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".proposals-", suffix=".json")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise
        logger.debug("Flushed %d proposals to %s", len(proposals), self.path)

    def close(self) -> None:
        if self._proposals is None:
            return
        self.flush()
        self._proposals = None

    @property
    def is_open(self) -> bool:
        return self._proposals is not None

    def __enter__(self) -> "ProposalStore":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _require_open(self) -> dict[str, LocalProposal]:
        if self._proposals is None:
            raise StoreClosed(f"Proposal store {self.path} is not open")
        return self._proposals

    # queries

    def get(self, proposal_id: str) -> Optional[LocalProposal]:
        return self._require_open().get(str(proposal_id))

    def require(self, proposal_id: str) -> LocalProposal:
        proposal = self.get(proposal_id)
        if proposal is None:
            raise ProposalNotFound(proposal_id)
        return proposal

    def list_proposals(self, status: Optional[ProposalStatus] = None) -> list[LocalProposal]:
        proposals = list(self._require_open().values())
        if status is not None:
            proposals = [p for p in proposals if p.status == status]
        return proposals

    def status_counts(self) -> dict[str, int]:
        counts = Counter(p.status.value for p in self._require_open().values())
        return {status.value: counts.get(status.value, 0) for status in ProposalStatus}

    # mutations

    def create_from_group(self, group: Group) -> LocalProposal:
        proposals = self._require_open()
        if not group.members:
            raise GroupInvariantError("A proposal needs at least one group member")
        total = sum(parse_currency(m.requested_amount) for m in group.members)
        now = _now()
        proposal = _with_leader_names(
            LocalProposal(
                id=f"prop-{uuid.uuid4().hex[:12]}",
                group_id=group.group_id,
                client_name="",
                leader_name="",
                amount=str(int(total)) if float(total).is_integer() else f"{total:.2f}",
                total_amount=total,
                status=ProposalStatus.ON_GOING,
                date_created=now,
                created_at=now,
                updated_at=now,
                data=ProposalData(group=group),
            )
        )
        proposals[proposal.id] = proposal
        self.flush()
        logger.info("Created proposal %s for group %s (%d members)", proposal.id, group.group_id, len(group.members))
        return proposal

    def update(self, proposal_id: str, updater: Callable[[LocalProposal], LocalProposal]) -> LocalProposal:
        proposals = self._require_open()
        current = self.require(proposal_id)
        updated = updater(current.model_copy(deep=True))
        updated = _with_leader_names(updated).model_copy(update={"updated_at": _now()})
        proposals[current.id] = updated
        self.flush()
        return updated

    def delete(self, proposal_id: str) -> None:
        proposals = self._require_open()
        if proposals.pop(str(proposal_id), None) is None:
            raise ProposalNotFound(proposal_id)
        self.flush()
        logger.info("Deleted proposal %s", proposal_id)

    # group editing

    def _update_group(self, proposal_id: str, change: Callable[[ProposalData], None]) -> LocalProposal:
        def apply(p: LocalProposal) -> LocalProposal:
            change(p.data)
            # Re-validate so group invariants hold after every edit
            p.data.group = Group.model_validate(p.data.group.model_dump())
            return p

        return self.update(proposal_id, apply)

    def add_member(self, proposal_id: str, member: Member) -> LocalProposal:
        def change(data: ProposalData) -> None:
            if data.group.member(member.id) is not None:
                raise GroupInvariantError(f"Member {member.id} is already in the group")
            data.group.members.append(member)

        return self._update_group(proposal_id, change)

    def update_member(self, proposal_id: str, member_id: int, **fields) -> LocalProposal:
        def change(data: ProposalData) -> None:
            member = self._member(data, member_id)
            index = data.group.members.index(member)
            data.group.members[index] = Member.model_validate({**member.model_dump(), **fields})

        return self._update_group(proposal_id, change)

    def remove_member(self, proposal_id: str, member_id: int) -> LocalProposal:
        def change(data: ProposalData) -> None:
            member = self._member(data, member_id)
            if len(data.group.members) == 1:
                raise GroupInvariantError("Cannot remove the last member of a group")
            data.group.members.remove(member)
            data.loan_details_by_member.pop(member_id, None)
            if data.group.leader_id == member_id:
                data.group.leader_id = data.group.members[0].id

        return self._update_group(proposal_id, change)

    def set_leader(self, proposal_id: str, member_id: int) -> LocalProposal:
        def change(data: ProposalData) -> None:
            self._member(data, member_id)
            data.group.leader_id = member_id

        return self._update_group(proposal_id, change)

    def set_loan_details(self, proposal_id: str, member_id: int, details: LoanDetails) -> LocalProposal:
        def change(data: ProposalData) -> None:
            self._member(data, member_id)
            data.loan_details_by_member[member_id] = details

        return self._update_group(proposal_id, change)

    def capture_evidence(
        self,
        proposal_id: str,
        member_id: int,
        key: EvidenceKey,
        uri: str,
        captured_at: Optional[datetime] = None,
    ) -> LocalProposal:
        def change(data: ProposalData) -> None:
            member = self._member(data, member_id)
            member.evidence[EvidenceKey(key)] = EvidenceItem(uri=uri, captured_at=captured_at or _now())

        return self._update_group(proposal_id, change)

    @staticmethod
    def _member(data: ProposalData, member_id: int) -> Member:
        member = data.group.member(member_id)
        if member is None:
            raise GroupInvariantError(f"Member {member_id} is not in group {data.group.group_id}")
        return member
