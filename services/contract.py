"""
Contract reading, signing and submission for a complete proposal.

    INCOMPLETE -> READING_CONTRACT -> AWAITING_SIGNATURES -> READY_TO_SUBMIT -> SUBMITTED

The contract counts as read once it has been scrolled to the end; that is stored on
the group so re-opening the screen does not ask for it again. Each member signs on
their own, and the signature keeps a copy of the member's terms at signing time.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from schemas.origination import ContractSignature, LocalProposal, ProposalStatus
from schemas.submission import MemberPayload, ProposalPayload
from services.completion import is_proposal_complete_with_evidence, missing_by_member
from services.proposal_store import ProposalStore
from services.submission_client import SubmissionClient
from utils.currency import parse_currency

logger = logging.getLogger(__name__)

CONTRACT_TEXT = """CREDIT CONTRACT AGREEMENT

This Credit Contract Agreement is entered into by the Microfinance Institution ("Lender") and
the undersigned borrowers ("Borrowers"), who together form a lending group.

1. Each Borrower receives the amount set in their individual loan details and repays it in the
   agreed monthly installments, starting on the first payment date shown with their signature.
2. All Borrowers are jointly and severally liable for the total loan amount. The group leader
   coordinates payments and communication with the Lender.
3. Credit life insurance is included; optional insurance products add further coverage.
4. A Borrower is in default when a payment is more than 30 days past due, a material
   misrepresentation is found, or a Borrower becomes insolvent.
5. Each Borrower confirms the information in the application is true and that the proceeds
   will be used for the stated business purpose.

By signing, each Borrower acknowledges having read, understood and agreed to these terms.
"""


class ContractStage(str, Enum):
    INCOMPLETE = "incomplete"
    READING_CONTRACT = "reading_contract"
    AWAITING_SIGNATURES = "awaiting_signatures"
    READY_TO_SUBMIT = "ready_to_submit"
    SUBMITTED = "submitted"


class ContractFlowError(Exception):
    pass


class ProposalIncomplete(ContractFlowError):
    """Raised on entry to the contract screen; send the officer back to configuration."""

    def __init__(self, proposal_id: str, missing: dict[int, dict[str, list[str]]]) -> None:
        super().__init__("Complete the proposal before signing the contract.")
        self.proposal_id = proposal_id
        self.missing = missing
        self.redirect_to = f"/product-config/{proposal_id}"


class ContractNotRead(ContractFlowError):
    pass


class EmptySignature(ContractFlowError):
    pass


class NotReadyToSubmit(ContractFlowError):
    def __init__(self, stage: ContractStage) -> None:
        super().__init__(f"Proposal cannot be submitted from stage {stage.value}")
        self.stage = stage


class AlreadySubmitted(ContractFlowError):
    pass


def _now() -> datetime:
    return datetime.now(timezone.utc)


def all_members_signed(proposal: LocalProposal) -> bool:
    members = proposal.data.group.members
    return bool(members) and all(m.signatures.contract_signature is not None for m in members)


def contract_stage(proposal: LocalProposal, acknowledged: bool = False) -> ContractStage:
    if proposal.status != ProposalStatus.ON_GOING:
        return ContractStage.SUBMITTED
    if not is_proposal_complete_with_evidence(proposal.data.group, proposal.data.loan_details_by_member):
        return ContractStage.INCOMPLETE
    if proposal.data.group.contract_read_at is None:
        return ContractStage.READING_CONTRACT
    if acknowledged and all_members_signed(proposal):
        return ContractStage.READY_TO_SUBMIT
    return ContractStage.AWAITING_SIGNATURES


def _is_blank_signature(data_url: Optional[str]) -> bool:
    if not data_url or not data_url.strip():
        return True
    # "data:image/png;base64," with nothing after the comma is an empty pad
    if data_url.startswith("data:"):
        return not data_url.partition(",")[2].strip()
    return False


def build_submission_payload(proposal: LocalProposal) -> ProposalPayload:
    group = proposal.data.group
    loan_details = proposal.data.loan_details_by_member
    members: list[MemberPayload] = []
    for member in group.members:
        details = loan_details.get(member.id)
        signature = member.signatures.contract_signature
        if signature is not None:
            loan_amount = signature.loan_amount
            installments = signature.installments
            first_payment_date = signature.first_payment_date
        else:
            loan_amount = parse_currency(details.loan_value if details else member.requested_amount)
            installments = details.installments if details else None
            first_payment_date = details.first_payment_date if details else None
        members.append(
            MemberPayload(
                member_id=str(member.id),
                name=member.full_name,
                phone=member.contact1_number,
                id_number=member.document_number or None,
                loan_amount=loan_amount,
                loan_goal=details.loan_goal if details else None,
                other_goal=(details.other_goal or None) if details else None,
                installments=installments,
                first_payment_date=first_payment_date or None,
                evidence=dict(member.evidence),
                signature=signature.data_url if signature else None,
            )
        )
    leader = group.leader
    return ProposalPayload(
        group_id=group.group_id,
        group_name=group.group_name or group.group_id,
        leader_name=proposal.leader_name,
        leader_phone=leader.contact1_number if leader else None,
        members=members,
        total_amount=sum(m.loan_amount for m in members),
        contract_text=CONTRACT_TEXT,
        form_data={
            "contractReadAt": group.contract_read_at.isoformat() if group.contract_read_at else None,
            "loanDetailsByMember": {
                str(member_id): details.model_dump(mode="json", by_alias=True)
                for member_id, details in loan_details.items()
            },
        },
    )


class ContractFlow:
    """Contract screen state for one proposal, backed by the officer's proposal store."""

    def __init__(self, store: ProposalStore, proposal_id: str) -> None:
        self.store = store
        self.proposal_id = proposal_id
        self.acknowledged = False

    @property
    def proposal(self) -> LocalProposal:
        return self.store.require(self.proposal_id)

    @property
    def stage(self) -> ContractStage:
        return contract_stage(self.proposal, self.acknowledged)

    def enter(self) -> ContractStage:
        proposal = self.proposal
        stage = contract_stage(proposal, self.acknowledged)
        if stage == ContractStage.INCOMPLETE:
            missing = missing_by_member(proposal.data.group, proposal.data.loan_details_by_member)
            logger.info("Proposal %s is incomplete, redirecting to configuration", proposal.id)
            raise ProposalIncomplete(proposal.id, missing)
        return stage

    def _require_open_for_signing(self) -> LocalProposal:
        proposal = self.proposal
        stage = contract_stage(proposal, self.acknowledged)
        if stage == ContractStage.SUBMITTED:
            raise AlreadySubmitted(f"Proposal {proposal.id} was already submitted")
        if stage == ContractStage.INCOMPLETE:
            raise ProposalIncomplete(
                proposal.id, missing_by_member(proposal.data.group, proposal.data.loan_details_by_member)
            )
        return proposal

    def mark_contract_read(self) -> LocalProposal:
        proposal = self._require_open_for_signing()
        if proposal.data.group.contract_read_at is not None:
            return proposal

        def mark(p: LocalProposal) -> LocalProposal:
            p.data.group.contract_read_at = _now()
            return p

        return self.store.update(self.proposal_id, mark)

    def acknowledge(self, checked: bool = True) -> None:
        self.acknowledged = checked

    def sign(self, member_id: int, data_url: str) -> ContractSignature:
        proposal = self._require_open_for_signing()
        if proposal.data.group.contract_read_at is None:
            raise ContractNotRead("Read the contract to the end before signing")
        if _is_blank_signature(data_url):
            raise EmptySignature("Please draw a signature before saving")
        member = proposal.data.group.member(member_id)
        if member is None:
            raise ContractFlowError(f"Member {member_id} is not part of this proposal")

        details = proposal.data.loan_details_by_member.get(member_id)
        signature = ContractSignature(
            data_url=data_url,
            signed_at=_now(),
            signer_name=member.full_name,
            loan_amount=parse_currency(details.loan_value if details else "0"),
            first_payment_date=details.first_payment_date if details else "",
            installments=(details.installments or 0) if details else 0,
        )

        def save(p: LocalProposal) -> LocalProposal:
            p.data.group.member(member_id).signatures.contract_signature = signature
            return p

        self.store.update(self.proposal_id, save)
        return signature

    def clear_signature(self, member_id: int) -> None:
        self._require_open_for_signing()

        def clear(p: LocalProposal) -> LocalProposal:
            member = p.data.group.member(member_id)
            if member is not None:
                member.signatures.contract_signature = None
            return p

        self.store.update(self.proposal_id, clear)

    async def submit(self, client: SubmissionClient) -> dict[str, Any]:
        stage = self.stage
        if stage == ContractStage.SUBMITTED:
            raise AlreadySubmitted(f"Proposal {self.proposal_id} was already submitted")
        if stage != ContractStage.READY_TO_SUBMIT:
            raise NotReadyToSubmit(stage)

        payload = build_submission_payload(self.proposal)
        # On failure the local proposal is left as is so the officer can retry
        receipt = await client.submit(self.proposal_id, payload)

        def mark_submitted(p: LocalProposal) -> LocalProposal:
            p.status = ProposalStatus.UNDER_EVALUATION
            return p

        self.store.update(self.proposal_id, mark_submitted)
        logger.info("Proposal %s submitted for evaluation", self.proposal_id)
        return receipt
