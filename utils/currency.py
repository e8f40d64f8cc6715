"""Currency text as typed in the field app ("$5,000.00")."""
import re


def parse_currency(value: str | float | int | None) -> float:
    """Parse currency text to a float; anything unparseable is 0."""
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = re.sub(r"[^\d.]", "", value)
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def format_currency(amount: float) -> str:
    return f"${amount:,.2f}"
