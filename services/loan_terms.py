"""
Loan term form rules for the configuration screen. Problems come back as a
field -> message mapping shown next to each input; nothing here raises.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from schemas.origination import LoanDetails, LoanGoal
from utils.currency import format_currency, parse_currency

MIN_LOAN_VALUE = 500
MAX_LOAN_VALUE = 50_000
MAX_DAYS_TO_FIRST_PAYMENT = 60
LAST_FIRST_PAYMENT_DAY = 15

REQUIRED = "This field is required"


def _parse_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def grace_period_days(first_payment_date: str, today: date) -> int:
    """Days between today and the first payment; 0 when the date is missing or in the past."""
    parsed = _parse_date(first_payment_date) if first_payment_date else None
    if parsed is None:
        return 0
    return max(0, (parsed - today).days)


def clamp_loan_value(loan_value: str, delta: float) -> str:
    amount = parse_currency(loan_value or "0") + delta
    amount = min(max(amount, MIN_LOAN_VALUE), MAX_LOAN_VALUE)
    return format_currency(amount)


def validate_loan_details(details: LoanDetails, today: date) -> dict[str, str]:
    errors: dict[str, str] = {}

    if not details.loan_value:
        errors["loanValue"] = REQUIRED
    else:
        amount = parse_currency(details.loan_value)
        if amount < MIN_LOAN_VALUE or amount > MAX_LOAN_VALUE:
            errors["loanValue"] = (
                f"Loan value must be between {format_currency(MIN_LOAN_VALUE)} and {format_currency(MAX_LOAN_VALUE)}"
            )

    if not details.loan_type:
        errors["loanType"] = REQUIRED
    if not details.installments:
        errors["installments"] = REQUIRED

    if not details.first_payment_date:
        errors["firstPaymentDate"] = REQUIRED
    else:
        selected = _parse_date(details.first_payment_date)
        if selected is None:
            errors["firstPaymentDate"] = "Enter the date as YYYY-MM-DD"
        else:
            diff_days = (selected - today).days
            if diff_days < 0 or diff_days > MAX_DAYS_TO_FIRST_PAYMENT or selected.day > LAST_FIRST_PAYMENT_DAY:
                errors["firstPaymentDate"] = (
                    f"First payment date must be within {MAX_DAYS_TO_FIRST_PAYMENT} days from today "
                    f"and on or before the {LAST_FIRST_PAYMENT_DAY}th of the month."
                )

    if details.loan_goal is None:
        errors["loanGoal"] = REQUIRED

    return errors


def apply_field_change(details: LoanDetails, field: str, value) -> LoanDetails:
    """Set one form field, resetting the fields that depend on it."""
    updated = LoanDetails.model_validate({**details.model_dump(), field: value})
    if field == "loan_goal" and updated.loan_goal is not LoanGoal.OTHER:
        updated.other_goal = ""
    if field == "optional_insurance1" and value == "None":
        updated.optional_insurance2 = "None"
        updated.optional_insurance3 = "None"
    if field == "optional_insurance2" and value == "None":
        updated.optional_insurance3 = "None"
    return updated
