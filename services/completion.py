"""
Completion scoring for proposals: how many mandatory fields and required evidence
photos are present per page, per member and per proposal.

A proposal may go to contract signing only when every member is fully filled in
and the group has at least MIN_GROUP_SIZE members. Smaller groups are scored
against MIN_GROUP_SIZE members so a two-member group can never look finished.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Mapping, Optional

from schemas.completion import CompletionResult
from schemas.origination import Group, LoanDetails, Member
from services.evidence import BASE_REQUIRED_EVIDENCE, count_evidence, missing_evidence
from utils.case import to_camel_key

MIN_GROUP_SIZE = 3

PageType = Literal["loan", "personal", "business", "financials"]

MANDATORY_FIELDS: dict[str, tuple[str, ...]] = {
    "loan": (
        "loan_value",
        "loan_type",
        "installments",
        "first_payment_date",
        "loan_goal",
    ),
    "personal": (
        "first_name",
        "last_name",
        "document_type",
        "document_number",
        "country_of_origin",
        "birth_date",
        "home_address1",
        "state",
        "city",
        "zip_code",
        "contact1_type",
        "contact1_number",
    ),
    "business": (
        "business_name",
        "business_type",
        "business_sector",
        "opening_month",
        "opening_year",
        "business_address1",
        "state",
        "city",
        "zip_code",
        "contact1_type",
        "business_contact1",
    ),
    "financials": (
        "earnings_monthly",
        "monthly_sales1",
        "operational_costs_monthly_total",
        "personal_expenses_monthly_total",
    ),
}

LoanDetailsByMember = Mapping[int, LoanDetails]


def is_filled(value: Any) -> bool:
    """Single rule for "this field has an answer": no None, no empty text, no zero amounts."""
    if value is None:
        return False
    if isinstance(value, (bool, Enum)):
        return True
    if isinstance(value, str):
        return value != ""
    if isinstance(value, (int, float)):
        return value != 0
    return True


def _percent(filled: int, total: int) -> int:
    if total <= 0:
        return 0
    # Half-up, as shown in the field app (Python's round() is half-even)
    return int(filled * 100 / total + 0.5)


def _result(filled: int, total: int) -> CompletionResult:
    return CompletionResult(filled=filled, total=total, percentage=_percent(filled, total))


def _count_filled(source: Any, fields: tuple[str, ...]) -> int:
    if source is None:
        return 0
    return sum(1 for name in fields if is_filled(getattr(source, name, None)))


def loan_page_completion(loan_details: Optional[LoanDetails]) -> CompletionResult:
    fields = MANDATORY_FIELDS["loan"]
    return _result(_count_filled(loan_details, fields), len(fields))


def personal_page_completion(member: Member) -> CompletionResult:
    fields = MANDATORY_FIELDS["personal"]
    return _result(_count_filled(member, fields), len(fields))


def business_page_completion(member: Member) -> CompletionResult:
    fields = MANDATORY_FIELDS["business"]
    return _result(_count_filled(member.business_data, fields), len(fields))


def financials_page_completion(member: Member) -> CompletionResult:
    fields = MANDATORY_FIELDS["financials"]
    return _result(_count_filled(member.pnl, fields), len(fields))


def page_completion(page: PageType, member: Member, loan_details: Optional[LoanDetails]) -> CompletionResult:
    if page == "loan":
        return loan_page_completion(loan_details)
    if page == "personal":
        return personal_page_completion(member)
    if page == "business":
        return business_page_completion(member)
    if page == "financials":
        return financials_page_completion(member)
    return CompletionResult(filled=0, total=0, percentage=0)


def member_completion(member: Member, loan_details: Optional[LoanDetails]) -> CompletionResult:
    pages = [
        loan_page_completion(loan_details),
        personal_page_completion(member),
        business_page_completion(member),
        financials_page_completion(member),
    ]
    return _result(sum(p.filled for p in pages), sum(p.total for p in pages))


def total_mandatory_fields_per_member() -> int:
    return sum(len(fields) for fields in MANDATORY_FIELDS.values())


def proposal_completion(group: Group, loan_details_by_member: LoanDetailsByMember) -> CompletionResult:
    filled = total = 0
    for member in group.members:
        completion = member_completion(member, loan_details_by_member.get(member.id))
        filled += completion.filled
        total += completion.total
    return _result(filled, total)


def proposal_completion_with_min_clients(
    group: Group, loan_details_by_member: LoanDetailsByMember
) -> CompletionResult:
    filled = sum(
        member_completion(m, loan_details_by_member.get(m.id)).filled for m in group.members
    )
    denominator_members = max(MIN_GROUP_SIZE, len(group.members))
    return _result(filled, total_mandatory_fields_per_member() * denominator_members)


def is_proposal_complete(group: Group, loan_details_by_member: LoanDetailsByMember) -> bool:
    if len(group.members) < MIN_GROUP_SIZE:
        return False
    completion = proposal_completion_with_min_clients(group, loan_details_by_member)
    return completion.percentage == 100 and completion.filled == completion.total


# Evidence-aware variants


def _goal(loan_details: Optional[LoanDetails]):
    return loan_details.loan_goal if loan_details else None


def member_evidence_completion(member: Member, loan_details: Optional[LoanDetails]) -> CompletionResult:
    required, completed = count_evidence(member.evidence, _goal(loan_details))
    return _result(completed, required)


def member_completion_with_evidence(member: Member, loan_details: Optional[LoanDetails]) -> CompletionResult:
    fields = member_completion(member, loan_details)
    evidence = member_evidence_completion(member, loan_details)
    return _result(fields.filled + evidence.filled, fields.total + evidence.total)


def proposal_completion_with_evidence(
    group: Group, loan_details_by_member: LoanDetailsByMember
) -> CompletionResult:
    filled = total = 0
    for member in group.members:
        completion = member_completion_with_evidence(member, loan_details_by_member.get(member.id))
        filled += completion.filled
        total += completion.total
    return _result(filled, total)


def proposal_completion_with_evidence_min_clients(
    group: Group, loan_details_by_member: LoanDetailsByMember
) -> CompletionResult:
    actual = proposal_completion_with_evidence(group, loan_details_by_member)
    # Members not yet added are assumed to need the base evidence set only
    absent = max(0, MIN_GROUP_SIZE - len(group.members))
    padding = absent * (total_mandatory_fields_per_member() + len(BASE_REQUIRED_EVIDENCE))
    return _result(actual.filled, actual.total + padding)


def is_proposal_complete_with_evidence(group: Group, loan_details_by_member: LoanDetailsByMember) -> bool:
    """Every member must be at 100% on their own; aggregate credit cannot hide a gap."""
    if len(group.members) < MIN_GROUP_SIZE:
        return False
    for member in group.members:
        completion = member_completion_with_evidence(member, loan_details_by_member.get(member.id))
        if completion.percentage != 100 or completion.filled != completion.total:
            return False
    return True


def missing_fields(member: Member, loan_details: Optional[LoanDetails]) -> dict[str, list[str]]:
    """Unfilled mandatory fields (camelCase, as named in the form) and missing evidence, per page."""
    sources = {
        "loan": loan_details,
        "personal": member,
        "business": member.business_data,
        "financials": member.pnl,
    }
    out: dict[str, list[str]] = {}
    for page, fields in MANDATORY_FIELDS.items():
        source = sources[page]
        missing = [to_camel_key(name) for name in fields if not is_filled(getattr(source, name, None))]
        if missing:
            out[page] = missing
    evidence = missing_evidence(member.evidence, _goal(loan_details))
    if evidence:
        out["evidence"] = [key.value for key in evidence]
    return out


def missing_by_member(group: Group, loan_details_by_member: LoanDetailsByMember) -> dict[int, dict[str, list[str]]]:
    out: dict[int, dict[str, list[str]]] = {}
    for member in group.members:
        missing = missing_fields(member, loan_details_by_member.get(member.id))
        if missing:
            out[member.id] = missing
    return out
