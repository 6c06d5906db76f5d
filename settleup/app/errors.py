"""
errors.py: AppError base class and error code registry.

Every error returned by the SettleUp engine or API must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

Two families of errors exist:
  - Raised errors (AppError and subclasses): request-shape problems, rule
    violations on payments, rate lookups that failed, broken invariants.
  - Returned split errors: the split calculators never raise for user input.
    They hand back a SplitResult whose `error_code` is one of the SPLIT codes
    below, next to the partial split list, so an interactive caller can keep
    rendering work in progress.

Error codes are a versioned contract. They do not change once published.
Error messages are human-readable prose. They may be improved at any time.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


class ConversionError(AppError):
    """
    Exchange rate could not be obtained for a currency pair.

    Recoverable: the caller is expected to ask for a manually entered rate
    and retry with it. Amounts that depend on the conversion stay unresolved
    until then. Settlement operations never raise this; they work purely in
    the base currency.
    """

    def __init__(self, from_currency: str, to_currency: str, reason: str) -> None:
        super().__init__(
            ErrorCode.EXCHANGE_RATE_UNAVAILABLE,
            f"Could not get an exchange rate from {from_currency} to {to_currency}: "
            f"{reason}. Enter the rate manually to continue.",
            502,
            field="manual_rate",
        )
        self.from_currency = from_currency
        self.to_currency   = to_currency
        self.reason        = reason


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_CATEGORY           = "INVALID_CATEGORY"
    INVALID_SPLIT_METHOD       = "INVALID_SPLIT_METHOD"
    INVALID_CURRENCY           = "INVALID_CURRENCY"
    DUPLICATE_SPLIT_MEMBER     = "DUPLICATE_SPLIT_MEMBER"
    DUPLICATE_MEMBER           = "DUPLICATE_MEMBER"

    # ── Returned split errors (SplitResult.error_code, never raised) ──────
    TOO_FEW_PARTICIPANTS       = "TOO_FEW_PARTICIPANTS"
    SPLIT_SUM_MISMATCH         = "SPLIT_SUM_MISMATCH"
    PERCENTAGE_SUM_MISMATCH    = "PERCENTAGE_SUM_MISMATCH"
    ZERO_TOTAL_SHARES          = "ZERO_TOTAL_SHARES"

    # ── Business Rule Violations (422) ────────────────────────────────────
    SELF_SETTLEMENT            = "SELF_SETTLEMENT"
    MEMBER_NOT_FOUND           = "MEMBER_NOT_FOUND"

    # ── Routing Errors (404 / 405) ────────────────────────────────────────
    NOT_FOUND                  = "NOT_FOUND"
    METHOD_NOT_ALLOWED         = "METHOD_NOT_ALLOWED"

    # ── Upstream Errors (502) ──────────────────────────────────────────────
    EXCHANGE_RATE_UNAVAILABLE  = "EXCHANGE_RATE_UNAVAILABLE"

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"


# ── Warning Code Registry ──────────────────────────────────────────────────
#
# Warnings are returned alongside a 2xx response in the `warnings` array.
# They do not block the request.
# ──────────────────────────────────────────────────────────────────────────

class WarningCode:

    # Payment amount exceeds the planned debt between the two parties.
    # Still recorded: pre-payment is valid.
    OVERPAYMENT = "OVERPAYMENT"
