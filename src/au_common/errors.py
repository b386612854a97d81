"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  3xxx: Auction item
  4xxx: Bid
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
        retryable: bool = False,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        self.retryable = retryable
        super().__init__(message)


# --- 1xxx: Auth/User ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired credentials", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


# --- 3xxx: Auction item ---

class AuctionClosedError(AppError):
    def __init__(self, item_id: str, detail: str = "auction is closed") -> None:
        super().__init__(3002, f"Auction {item_id}: {detail}", 422)


class AuctionNotFoundError(AuctionClosedError):
    """A missing item is reported as closed to bidders, with its own code."""

    def __init__(self, item_id: str) -> None:
        AppError.__init__(self, 3001, f"Auction not found: {item_id}", 404)


# --- 4xxx: Bid ---

class BidTooLowError(AppError):
    def __init__(self, minimum: int, submitted: int) -> None:
        super().__init__(
            4001,
            f"Bid too low: minimum {minimum} cents, submitted {submitted} cents",
            422,
        )
        self.minimum = minimum


class BidderNotEligibleError(AppError):
    def __init__(self, reason: str) -> None:
        super().__init__(4002, f"Bidder not eligible: {reason}", 403)


class BidderBannedError(AppError):
    def __init__(self, item_id: str) -> None:
        super().__init__(4003, f"Bidder has been rejected from auction {item_id}", 403)


class NotAuthorizedError(AppError):
    def __init__(self, detail: str = "Only the seller or a moderator may do this") -> None:
        super().__init__(4004, detail, 403)


class InvalidBidAmountError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4005, f"Invalid bid: {detail}", 422)


class BidNotFoundError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4006, f"Bid not found: {detail}", 404)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class ConcurrencyTimeoutError(AppError):
    def __init__(self, item_id: str) -> None:
        super().__init__(
            9003,
            f"Auction {item_id} is busy, please retry",
            503,
            retryable=True,
        )
