from __future__ import annotations


class PayablesError(Exception):
    """Base class for errors surfaced to callers of the payables engine."""

    code = "payables_error"
    default_detail = "Random payables error."

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class InvalidAmount(PayablesError):
    code = "invalid_amount"
    default_detail = "Amount must be greater than zero."


class SelfTransfer(PayablesError):
    code = "self_transfer"
    default_detail = "You cannot transfer points to yourself."


class RecipientNotFound(PayablesError):
    code = "recipient_not_found"
    default_detail = "Recipient user not found."


class InvalidPointType(PayablesError):
    code = "invalid_point_type"
    default_detail = "Invalid point type specified."


class InsufficientBalance(PayablesError):
    code = "insufficient_balance"
    default_detail = "Insufficient points in the selected category."

    def __init__(self, detail: str | None = None, *, balance: float = 0.0, requested: float = 0.0) -> None:
        self.balance = balance
        self.requested = requested
        super().__init__(detail)


class InsufficientPool(PayablesError):
    code = "insufficient_pool"
    default_detail = "Insufficient funds in the payout pool."


class InvalidConfiguration(PayablesError):
    code = "invalid_configuration"
    default_detail = "Invalid payout configuration."


class ProcessorError(Exception):
    """The payment processor rejected a transfer."""


class ProcessorUnavailable(ProcessorError):
    """The payment processor could not be reached."""


class ProcessorSetupRequired(Exception):
    """The payee has not completed processor-side setup."""


class ActivitySourceUnreachable(Exception):
    """An external activity source could not be queried."""


class ProbabilityInvariantError(AssertionError):
    """Probabilities over a non-empty pool did not sum to one."""
