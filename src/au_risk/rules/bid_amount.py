from src.au_common.cents import validate_positive_cents
from src.au_common.errors import InvalidBidAmountError

MAX_BID_CENTS = 10**13  # fits BIGINT with headroom for price + step


def check_bid_amount(limit: int) -> None:
    try:
        validate_positive_cents(limit, "limit")
    except ValueError as exc:
        raise InvalidBidAmountError(str(exc)) from None
    if limit > MAX_BID_CENTS:
        raise InvalidBidAmountError(f"limit exceeds {MAX_BID_CENTS} cents")
