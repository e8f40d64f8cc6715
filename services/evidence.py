"""
Which evidence photos a member must provide, given the stated loan goal.
"""
from __future__ import annotations

from typing import Any, Literal, Mapping, NamedTuple

from schemas.origination import EvidenceItem, EvidenceKey, LoanGoal


class EvidenceMeta(NamedTuple):
    label: str
    category: Literal["identity", "business", "conditional"]


EVIDENCE_METADATA: dict[EvidenceKey, EvidenceMeta] = {
    EvidenceKey.CLIENT_SELFIE: EvidenceMeta("Client selfie", "identity"),
    EvidenceKey.ID_FRONT: EvidenceMeta("ID (front)", "identity"),
    EvidenceKey.ID_BACK: EvidenceMeta("ID (back)", "identity"),
    EvidenceKey.RESIDENCE_PROOF_OF_ADDRESS: EvidenceMeta("Residence proof of address", "identity"),
    EvidenceKey.BUSINESS_PROOF_OF_ADDRESS: EvidenceMeta("Business proof of address", "business"),
    EvidenceKey.BUSINESS_PHOTO: EvidenceMeta("Business photo", "business"),
    EvidenceKey.INVENTORY_PHOTO: EvidenceMeta("Inventory photo", "business"),
    EvidenceKey.UTILITY_BILL_ELECTRICITY: EvidenceMeta("Utility bill (electricity)", "business"),
    EvidenceKey.UTILITY_BILL_WATER: EvidenceMeta("Utility bill (water)", "business"),
    EvidenceKey.RENOVATION_PHOTO: EvidenceMeta("Renovation photo", "conditional"),
    EvidenceKey.NEW_MACHINERY_PHOTO: EvidenceMeta("New machinery photo", "conditional"),
}

BASE_REQUIRED_EVIDENCE: frozenset[EvidenceKey] = frozenset({
    EvidenceKey.CLIENT_SELFIE,
    EvidenceKey.ID_FRONT,
    EvidenceKey.ID_BACK,
    EvidenceKey.RESIDENCE_PROOF_OF_ADDRESS,
    EvidenceKey.BUSINESS_PROOF_OF_ADDRESS,
    EvidenceKey.BUSINESS_PHOTO,
})

GOAL_EVIDENCE: dict[LoanGoal, frozenset[EvidenceKey]] = {
    LoanGoal.INVESTMENT: frozenset({EvidenceKey.RENOVATION_PHOTO}),
    LoanGoal.EQUIPMENT_PURCHASE: frozenset({EvidenceKey.NEW_MACHINERY_PHOTO}),
}

EvidenceStatus = Literal["completed", "missing", "optional"]


def required_evidence_keys(goal: LoanGoal | str | None) -> frozenset[EvidenceKey]:
    """Base set plus the goal's extra photo. Never fails; unknown goals get the base set."""
    parsed = LoanGoal.parse(goal)
    if parsed is None:
        return BASE_REQUIRED_EVIDENCE
    return BASE_REQUIRED_EVIDENCE | GOAL_EVIDENCE.get(parsed, frozenset())


def keys_for_category(category: str, goal: LoanGoal | str | None = None) -> list[EvidenceKey]:
    """Keys shown under a capture tab; conditional keys only appear when the goal asks for them."""
    if category == "conditional":
        return sorted(required_evidence_keys(goal) - BASE_REQUIRED_EVIDENCE, key=_order)
    return [key for key, meta in EVIDENCE_METADATA.items() if meta.category == category]


def has_evidence(evidence: Mapping[Any, Any] | None, key: EvidenceKey) -> bool:
    if not evidence:
        return False
    item = evidence.get(key)
    if item is None:
        item = evidence.get(key.value)
    if isinstance(item, EvidenceItem):
        return bool(item.uri)
    if isinstance(item, Mapping):
        return bool(item.get("uri"))
    return False


def evidence_status(
    evidence: Mapping[Any, Any] | None,
    key: EvidenceKey,
    goal: LoanGoal | str | None,
) -> EvidenceStatus:
    if has_evidence(evidence, key):
        return "completed"
    if key in required_evidence_keys(goal):
        return "missing"
    return "optional"


def count_evidence(evidence: Mapping[Any, Any] | None, goal: LoanGoal | str | None) -> tuple[int, int]:
    """Return (required, completed) where completed only counts required keys."""
    required = required_evidence_keys(goal)
    completed = sum(1 for key in required if has_evidence(evidence, key))
    return len(required), completed


def missing_evidence(evidence: Mapping[Any, Any] | None, goal: LoanGoal | str | None) -> list[EvidenceKey]:
    return sorted(
        (key for key in required_evidence_keys(goal) if not has_evidence(evidence, key)),
        key=_order,
    )


def _order(key: EvidenceKey) -> int:
    return list(EvidenceKey).index(key)
