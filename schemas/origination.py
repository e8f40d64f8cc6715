"""
Origination-side records: members, groups, loan terms, evidence and the locally
stored proposal. Wire format is camelCase (field app); Python code uses snake_case.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class LoanGoal(str, Enum):
    INVENTORY_PURCHASE = "Inventory purchase"
    EQUIPMENT_PURCHASE = "Equipment purchase"
    INVESTMENT = "Investment"
    WORKING_CAPITAL = "Working capital"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: Any) -> Optional["LoanGoal"]:
        """Map an enum member, its label or a form option code to a goal; None if unknown."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str) or not value.strip():
            return None
        key = value.strip().lower()
        for goal in cls:
            if goal.value.lower() == key:
                return goal
        return _GOAL_CODES.get(key)


# Option codes sent by the loan configuration form
_GOAL_CODES = {
    "inventory": LoanGoal.INVENTORY_PURCHASE,
    "equipment": LoanGoal.EQUIPMENT_PURCHASE,
    "investment": LoanGoal.INVESTMENT,
    "working-capital": LoanGoal.WORKING_CAPITAL,
    "other": LoanGoal.OTHER,
}


def fold_unknown_goal(data: Any, goal_key: str = "loan_goal", other_key: str = "other_goal") -> Any:
    """
    Free-text goals the enum does not know become OTHER, keeping the text as the
    other goal. Accepts both snake_case and camelCase input.
    """
    if not isinstance(data, dict):
        return data
    for goal_name, other_name in ((goal_key, other_key), (to_camel(goal_key), to_camel(other_key))):
        value = data.get(goal_name)
        if isinstance(value, str) and value.strip() and LoanGoal.parse(value) is None:
            data = {**data, goal_name: LoanGoal.OTHER}
            if not data.get(other_key) and not data.get(to_camel(other_key)):
                data[other_name] = value.strip()
    return data


class EvidenceKey(str, Enum):
    CLIENT_SELFIE = "clientSelfie"
    ID_FRONT = "idFront"
    ID_BACK = "idBack"
    RESIDENCE_PROOF_OF_ADDRESS = "residenceProofOfAddress"
    BUSINESS_PROOF_OF_ADDRESS = "businessProofOfAddress"
    BUSINESS_PHOTO = "businessPhoto"
    INVENTORY_PHOTO = "inventoryPhoto"
    UTILITY_BILL_ELECTRICITY = "utilityBillElectricity"
    UTILITY_BILL_WATER = "utilityBillWater"
    RENOVATION_PHOTO = "renovationPhoto"
    NEW_MACHINERY_PHOTO = "newMachineryPhoto"


class ProposalStatus(str, Enum):
    ON_GOING = "on_going"
    UNDER_EVALUATION = "under_evaluation"
    COMPLETED = "completed"


class EvidenceItem(CamelModel):
    uri: str
    captured_at: datetime


class ContractSignature(CamelModel):
    data_url: str
    signed_at: datetime
    signer_name: str
    # Snapshot of the terms at signing time; later edits do not touch it
    loan_amount: float
    first_payment_date: str = ""
    installments: int = 0


class MemberSignatures(CamelModel):
    contract_signature: Optional[ContractSignature] = None


class BusinessData(CamelModel):
    business_name: str = ""
    business_type: str = ""
    other_business_type: Optional[str] = None
    business_sector: str = ""
    multiple_business: bool = False
    opening_month: str = ""
    opening_year: str = ""
    business_address1: str = ""
    business_address2: Optional[str] = None
    state: str = ""
    city: str = ""
    zip_code: str = ""
    contact1_type: str = ""
    business_contact1: str = ""
    contact2_type: Optional[str] = None
    business_contact2: Optional[str] = None
    business_name2: Optional[str] = None
    business_type2: Optional[str] = None
    business_sector2: Optional[str] = None
    business_name3: Optional[str] = None
    business_type3: Optional[str] = None
    business_sector3: Optional[str] = None


class ProfitAndLoss(CamelModel):
    earnings_monthly: float = 0
    monthly_sales1: float = 0
    operational_costs_monthly_total: float = 0
    personal_expenses_monthly_total: float = 0

    monthly_sales2: Optional[float] = None
    monthly_sales3: Optional[float] = None
    receivables_factoring: Optional[float] = None
    extra_income: Optional[float] = None
    deductions: Optional[float] = None
    payroll: Optional[float] = None
    sga: Optional[float] = None
    facilities_rent: Optional[float] = None
    cogs: Optional[float] = None
    investments_capex: Optional[float] = None
    operational_other: Optional[float] = None
    financial_costs_monthly: Optional[float] = None
    short_term_loans: Optional[float] = None
    long_term_loans: Optional[float] = None
    accounts_payable: Optional[float] = None
    home_rent: Optional[float] = None
    savings: Optional[float] = None
    monthly_savings: Optional[float] = None
    total_savings: Optional[float] = None
    financial_debts: Optional[float] = None

    @property
    def net_revenue_monthly(self) -> float:
        return (
            self.earnings_monthly
            + self.monthly_sales1
            + (self.monthly_sales2 or 0)
            + (self.monthly_sales3 or 0)
            + (self.receivables_factoring or 0)
            + (self.extra_income or 0)
            - (self.deductions or 0)
        )

    @property
    def gross_profit_monthly(self) -> float:
        return self.net_revenue_monthly - self.operational_costs_monthly_total

    @property
    def business_net_profit_monthly(self) -> float:
        return self.gross_profit_monthly - (self.financial_costs_monthly or 0)

    @property
    def annual_revenue(self) -> float:
        return self.net_revenue_monthly * 12

    @property
    def payment_capacity(self) -> float:
        return self.business_net_profit_monthly - self.personal_expenses_monthly_total

    @property
    def operational_margin(self) -> float:
        if self.net_revenue_monthly <= 0:
            return 0.0
        return self.business_net_profit_monthly / self.net_revenue_monthly * 100


class Member(CamelModel):
    id: int
    first_name: str = ""
    middle_name: Optional[str] = None
    last_name: str = ""
    requested_amount: str = ""
    document_type: str = ""
    document_number: str = ""
    country_of_origin: Optional[str] = None
    birth_date: Optional[str] = None
    home_address1: Optional[str] = None
    home_address2: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None
    contact1_type: Optional[str] = None
    contact1_number: Optional[str] = None
    contact2_type: Optional[str] = None
    contact2_number: Optional[str] = None
    contact3_type: Optional[str] = None
    contact3_number: Optional[str] = None
    reference_name1: Optional[str] = None
    reference_number1: Optional[str] = None
    reference_name2: Optional[str] = None
    reference_number2: Optional[str] = None
    business_data: Optional[BusinessData] = None
    pnl: Optional[ProfitAndLoss] = None
    evidence: dict[EvidenceKey, EvidenceItem] = Field(default_factory=dict)
    signatures: MemberSignatures = Field(default_factory=MemberSignatures)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Group(CamelModel):
    group_id: str
    group_name: Optional[str] = None
    leader_id: int
    members: list[Member] = Field(default_factory=list)
    contract_read_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _leader_is_member(self) -> "Group":
        if self.members and self.leader_id not in {m.id for m in self.members}:
            raise ValueError(f"leader {self.leader_id} is not a member of group {self.group_id}")
        return self

    def member(self, member_id: int) -> Optional[Member]:
        return next((m for m in self.members if m.id == member_id), None)

    @property
    def leader(self) -> Optional[Member]:
        return self.member(self.leader_id) or (self.members[0] if self.members else None)


class LoanDetails(CamelModel):
    loan_value: str = ""
    loan_type: str = ""
    interest_rate_apr: float = 14
    installments: Optional[int] = None
    first_payment_date: str = ""
    grace_period_days: int = 0
    loan_goal: Optional[LoanGoal] = None
    other_goal: str = ""
    borrowers_insurance: bool = True
    optional_insurance1: str = "None"
    optional_insurance2: str = "None"
    optional_insurance3: str = "None"

    @field_validator("loan_goal", mode="before")
    @classmethod
    def _parse_goal(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return LoanGoal.parse(value) or value

    @model_validator(mode="before")
    @classmethod
    def _unknown_goal_is_other(cls, data: Any) -> Any:
        return fold_unknown_goal(data)


class ProposalData(CamelModel):
    group: Group
    loan_details_by_member: dict[int, LoanDetails] = Field(default_factory=dict)
    validation_completed: bool = False


class LocalProposal(CamelModel):
    id: str
    group_id: str
    client_name: str
    leader_name: str
    amount: str
    total_amount: float
    status: ProposalStatus = ProposalStatus.ON_GOING
    date_created: datetime
    created_at: datetime
    updated_at: datetime
    data: ProposalData
