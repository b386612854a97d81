"""Integer arithmetic utilities for money.

All prices, limits and steps use int (minor units / cents). No float, no Decimal.
"""


def validate_positive_cents(value: int, field: str = "amount") -> int:
    """Reject non-positive or non-integer money values."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field} must be an integer number of cents, got {value!r}")
    if value <= 0:
        raise ValueError(f"{field} must be greater than 0 cents, got {value}")
    return value


def cents_to_display(cents: int) -> str:
    """Convert cents to display string: 6500 -> '$65.00', -1200 -> '-$12.00'."""
    if cents < 0:
        abs_cents = -cents
        return f"-${abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"${cents // 100:,}.{cents % 100:02d}"
