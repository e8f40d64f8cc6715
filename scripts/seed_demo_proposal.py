"""
Seed the officer-side proposal store with a complete three-member demo group.
Run: python -m scripts.seed_demo_proposal (from the project root).
"""
from datetime import date, datetime, timedelta, timezone

from config import settings
from core.logging import configure_logging
from schemas.origination import (
    BusinessData,
    EvidenceKey,
    Group,
    LoanDetails,
    LoanGoal,
    Member,
    ProfitAndLoss,
)
from services.evidence import required_evidence_keys
from services.proposal_store import ProposalStore


MEMBERS_DATA = [
    {
        "id": 1,
        "first_name": "Luci",
        "last_name": "Machado",
        "requested_amount": "$2,500.00",
        "document_number": "A1234567",
        "birth_date": "1988-04-12",
        "contact1_number": "(555) 010-1001",
        "business_name": "Luci's Bakery",
        "business_type": "Bakery",
        "loan_goal": LoanGoal.INVENTORY_PURCHASE,
    },
    {
        "id": 2,
        "first_name": "Carlos",
        "last_name": "Santos",
        "requested_amount": "$3,000.00",
        "document_number": "B7654321",
        "birth_date": "1979-09-30",
        "contact1_number": "(555) 010-1002",
        "business_name": "Santos Repairs",
        "business_type": "Repair shop",
        "loan_goal": LoanGoal.EQUIPMENT_PURCHASE,
    },
    {
        "id": 3,
        "first_name": "Maria",
        "last_name": "Rodriguez",
        "requested_amount": "$1,500.00",
        "document_number": "C1122334",
        "birth_date": "1992-01-18",
        "contact1_number": "(555) 010-1003",
        "business_name": "Maria's Tailoring",
        "business_type": "Tailor",
        "loan_goal": LoanGoal.WORKING_CAPITAL,
    },
]


def _first_payment_date(today: date) -> str:
    candidate = today + timedelta(days=20)
    if candidate.day > 15:
        candidate = (candidate.replace(day=1) + timedelta(days=32)).replace(day=10)
    return candidate.isoformat()


def _member(data: dict) -> Member:
    return Member(
        id=data["id"],
        first_name=data["first_name"],
        last_name=data["last_name"],
        requested_amount=data["requested_amount"],
        document_type="National ID",
        document_number=data["document_number"],
        country_of_origin="US",
        birth_date=data["birth_date"],
        home_address1="100 Main St",
        state="TX",
        city="Austin",
        zip_code="78701",
        contact1_type="Mobile",
        contact1_number=data["contact1_number"],
        business_data=BusinessData(
            business_name=data["business_name"],
            business_type=data["business_type"],
            business_sector="Services",
            opening_month="03",
            opening_year="2018",
            business_address1="200 Market St",
            state="TX",
            city="Austin",
            zip_code="78702",
            contact1_type="Mobile",
            business_contact1=data["contact1_number"],
        ),
        pnl=ProfitAndLoss(
            earnings_monthly=1200,
            monthly_sales1=4500,
            operational_costs_monthly_total=2100,
            personal_expenses_monthly_total=900,
        ),
    )


def seed(store: ProposalStore) -> str:
    today = date.today()
    group = Group(
        group_id="GRP-DEMO-001",
        group_name="Main Street Entrepreneurs",
        leader_id=MEMBERS_DATA[0]["id"],
        members=[_member(data) for data in MEMBERS_DATA],
    )
    proposal = store.create_from_group(group)
    for data in MEMBERS_DATA:
        store.set_loan_details(
            proposal.id,
            data["id"],
            LoanDetails(
                loan_value=data["requested_amount"],
                loan_type="Group",
                installments=12,
                first_payment_date=_first_payment_date(today),
                loan_goal=data["loan_goal"],
            ),
        )
        for key in sorted(required_evidence_keys(data["loan_goal"]), key=lambda k: k.value):
            store.capture_evidence(
                proposal.id,
                data["id"],
                EvidenceKey(key),
                f"file:///demo/{data['id']}/{key.value}.jpg",
                captured_at=datetime.now(timezone.utc),
            )
    return proposal.id


def main():
    configure_logging()
    with ProposalStore(settings.proposal_store_path) as store:
        proposal_id = seed(store)
    print(f"Seeded demo proposal {proposal_id} into {settings.proposal_store_path}")


if __name__ == "__main__":
    main()
