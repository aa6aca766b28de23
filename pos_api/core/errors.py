"""Domain error taxonomy shared by services and the HTTP layer.

Every failure raised by the order subsystem derives from :class:`PosError`.
The API renders them uniformly (see ``pos_api.main``), so services never build
HTTP responses themselves.
"""

from __future__ import annotations

from typing import Any


class PosError(Exception):
    """Base class for all reported failures."""

    status_code: int = 500
    code: str = "internal_error"
    retryable: bool = False

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = details

    def to_payload(self) -> dict[str, Any]:
        return {
            "detail": self.message,
            "code": self.code,
            "details": {key: _jsonable(value) for key, value in self.details.items()},
            "retryable": self.retryable,
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(item) for item in value]
    return str(value)


# Validation: malformed or missing input.


class ValidationFailed(PosError):
    status_code = 400
    code = "validation_failed"


class InvalidPriceInput(ValidationFailed):
    code = "invalid_price_input"


class InvalidModifierSelection(ValidationFailed):
    code = "invalid_modifier_selection"


# Authorization: tenant or role mismatch.


class AuthorizationDenied(PosError):
    status_code = 403
    code = "forbidden"


class AuthenticationRequired(PosError):
    status_code = 401
    code = "unauthenticated"


# NotFound: referenced entity absent.


class NotFound(PosError):
    status_code = 404
    code = "not_found"


class VoucherNotFound(NotFound):
    code = "voucher_not_found"


class GiftCardNotFound(NotFound):
    code = "gift_card_not_found"


# Business rules: state machine and monetary invariants.


class BusinessRuleViolation(PosError):
    status_code = 400
    code = "business_rule_violation"


class InvalidStateTransition(BusinessRuleViolation):
    code = "invalid_state_transition"


class MenuItemUnavailable(BusinessRuleViolation):
    code = "menu_item_unavailable"


class OrderNotEditable(BusinessRuleViolation):
    code = "order_not_editable"


class LastItemRemoval(BusinessRuleViolation):
    code = "last_item_removal"


class VoucherAlreadyApplied(BusinessRuleViolation):
    code = "voucher_already_applied"


class VoucherInactive(BusinessRuleViolation):
    code = "voucher_inactive"


class VoucherNotStarted(BusinessRuleViolation):
    code = "voucher_not_started"


class VoucherExpired(BusinessRuleViolation):
    code = "voucher_expired"


class VoucherExhausted(BusinessRuleViolation):
    code = "voucher_exhausted"


class MinimumPurchaseNotMet(BusinessRuleViolation):
    code = "minimum_purchase_not_met"


class NoVoucherApplied(BusinessRuleViolation):
    code = "no_voucher_applied"


class DuplicateCode(BusinessRuleViolation):
    code = "duplicate_code"


class GiftCardInactive(BusinessRuleViolation):
    code = "gift_card_inactive"


class GiftCardExpired(BusinessRuleViolation):
    code = "gift_card_expired"


class InsufficientBalance(BusinessRuleViolation):
    code = "insufficient_balance"


class PaymentExceedsBalance(BusinessRuleViolation):
    code = "payment_exceeds_balance"


class PaymentNotRefundable(BusinessRuleViolation):
    code = "payment_not_refundable"


# Concurrency: conflicting write, caller may retry.


class ConcurrentModification(PosError):
    status_code = 409
    code = "concurrent_modification"
    retryable = True


class OrderNumberConflict(ConcurrentModification):
    code = "order_number_conflict"


# Store failures: transport or timeout towards persistence.


class StoreFailure(PosError):
    status_code = 503
    code = "store_failure"
    retryable = True


class StoreTimeout(StoreFailure):
    code = "store_timeout"
