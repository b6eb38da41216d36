"""
Data types for ledger operations.

This module defines dataclasses used throughout the ledger for type-safe
data transfer between the service layer and its callers.

Types:
    LedgerFilter: Validated filter over transactions (date range, type, ...)
    FinancialSummary: Totals, balance and counts
    MonthlyBreakdown: Income / expense / net for one calendar month
    CategoryBreakdown: Total magnitude and count for one category
    PaymentCompletedEvent: A completed external payment to post

Usage:
    from finance.types import LedgerFilter, PaymentCompletedEvent

    filters = LedgerFilter(start_date=date(2024, 1, 1), type="expense")
    summary = ledger.get_financial_summary(filters)
    summary.to_dict()["balanceUSD"]

    event = PaymentCompletedEvent(payment_id="P1", amount_in_usd=Decimal("49.99"))
    ledger.post_payment_entry(event)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from core.exceptions import ValidationError
from core.filters import combine, in_range
from finance.models import TransactionCategory, TransactionSource, TransactionType

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

FILTER_PARAMS = frozenset(
    {"start_date", "startDate", "end_date", "endDate", "type", "category", "source"}
)


def quantize_usd(value: Any) -> Decimal:
    """
    Round a monetary value to 2 decimal places, half-up.

    None (an empty aggregate) becomes 0.00.

    Example:
        quantize_usd(Decimal("10.005"))  # Decimal("10.01")
    """
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Any, field_name: str = "amount") -> Decimal:
    """
    Parse a monetary input into a Decimal.

    Raises:
        ValidationError: If the value is not a finite number
    """
    if isinstance(value, bool):
        value = None
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        result = None
    if result is None or not result.is_finite():
        raise ValidationError(
            f"{field_name} must be a number",
            error_code="INVALID_AMOUNT",
            details={field_name: repr(value)},
        )
    return result


def _as_datetime(value: date | datetime | None, end_of_day: bool = False) -> datetime | None:
    # A bare date covers the whole day
    if value is None:
        return None
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.max if end_of_day else time.min)
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


@dataclass(frozen=True)
class LedgerFilter:
    """
    Filter over non-deleted transactions.

    Attributes:
        start_date: Inclusive lower bound on transaction_date
        end_date: Inclusive upper bound (a bare date covers the whole day)
        type: income / expense / adjustment
        category: Reporting category
        source: manual / payment_auto

    Raises:
        ValidationError: If start_date is after end_date, or type or
            source is not a recognized value
    """

    start_date: date | datetime | None = None
    end_date: date | datetime | None = None
    type: str | None = None
    category: str | None = None
    source: str | None = None

    def __post_init__(self) -> None:
        """Validate the filter values."""
        if self.type is not None and self.type not in TransactionType.values:
            raise ValidationError(
                f"Unrecognized transaction type '{self.type}'",
                error_code="INVALID_TYPE",
                details={"type": self.type, "allowed": list(TransactionType.values)},
            )
        if self.source is not None and self.source not in TransactionSource.values:
            raise ValidationError(
                f"Unrecognized transaction source '{self.source}'",
                error_code="INVALID_SOURCE",
                details={"source": self.source, "allowed": list(TransactionSource.values)},
            )
        # Raises INVALID_DATE_RANGE for start > end
        self.to_q()

    @classmethod
    def from_params(cls, params: dict[str, Any] | None) -> LedgerFilter:
        """
        Build a filter from loose query parameters.

        Accepts snake_case or camelCase keys; blank values are ignored and
        date strings are parsed as ISO 8601.

        Example:
            LedgerFilter.from_params({"startDate": "2024-01-01", "type": "income"})

        Raises:
            ValidationError: If a key is not a recognized filter parameter
        """
        params = params or {}
        unknown = sorted(set(params) - FILTER_PARAMS)
        if unknown:
            raise ValidationError(
                f"Unrecognized filter parameters: {', '.join(unknown)}",
                error_code="INVALID_FILTER",
                details={"unknown": unknown, "allowed": sorted(FILTER_PARAMS)},
            )

        def pick(*keys: str) -> Any:
            for key in keys:
                value = params.get(key)
                if value not in (None, ""):
                    return value
            return None

        return cls(
            start_date=_parse_date(pick("start_date", "startDate"), "start_date"),
            end_date=_parse_date(pick("end_date", "endDate"), "end_date"),
            type=pick("type"),
            category=pick("category"),
            source=pick("source"),
        )

    def to_q(self) -> Q:
        """Return the filter as a Q object over Transaction fields."""
        q = combine(
            in_range(
                _as_datetime(self.start_date),
                _as_datetime(self.end_date, end_of_day=True),
                field="transaction_date",
            )
        )
        if self.type is not None:
            q &= Q(type=self.type)
        if self.category is not None:
            q &= Q(category=self.category)
        if self.source is not None:
            q &= Q(source=self.source)
        return q

    def replace(self, **changes: Any) -> LedgerFilter:
        """Return a copy with some fields changed (validated again)."""
        values = {
            "start_date": self.start_date,
            "end_date": self.end_date,
            "type": self.type,
            "category": self.category,
            "source": self.source,
        }
        values.update(changes)
        return LedgerFilter(**values)


def _parse_date(value: Any, field_name: str) -> date | datetime | None:
    if value is None or isinstance(value, (date, datetime)):
        return value
    text = str(value).strip()
    try:
        # YYYY-MM-DD stays a date so an end bound covers the whole day
        parsed = date.fromisoformat(text) if len(text) == 10 else parse_datetime(text)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(
            f"{field_name} must be an ISO 8601 date",
            error_code="INVALID_DATE",
            details={field_name: text},
        )
    return parsed


@dataclass(frozen=True)
class FinancialSummary:
    """
    Totals over a set of transactions.

    All monetary values are rounded to 2 decimals. total_expense_usd is a
    magnitude (never negative) whatever sign expenses were stored with.
    """

    total_income_usd: Decimal = ZERO
    total_expense_usd: Decimal = ZERO
    total_adjustment_usd: Decimal = ZERO
    balance_usd: Decimal = ZERO
    transaction_count: int = 0
    income_count: int = 0
    expense_count: int = 0
    adjustment_count: int = 0

    @classmethod
    def empty(cls) -> FinancialSummary:
        """All-zero summary for an empty selection."""
        return cls()

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalIncomeUSD": self.total_income_usd,
            "totalExpenseUSD": self.total_expense_usd,
            "totalAdjustmentUSD": self.total_adjustment_usd,
            "balanceUSD": self.balance_usd,
            "transactionCount": self.transaction_count,
            "incomeCount": self.income_count,
            "expenseCount": self.expense_count,
            "adjustmentCount": self.adjustment_count,
        }


@dataclass(frozen=True)
class MonthlyBreakdown:
    """Income, expense magnitude and net for one calendar month (1-12)."""

    month: int
    income: Decimal
    expense: Decimal
    net: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "month": self.month,
            "income": self.income,
            "expense": self.expense,
            "net": self.net,
        }


@dataclass(frozen=True)
class CategoryBreakdown:
    """Sum of absolute amounts and row count for one category."""

    category: str
    total: Decimal
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"category": self.category, "total": self.total, "count": self.count}


@dataclass
class PaymentCompletedEvent:
    """
    A completed external payment, already converted to USD.

    Required Attributes:
        payment_id: Identifier of the external payment
        amount_in_usd: Positive USD amount

    Optional Attributes:
        category: Reporting category (default: service_payment)
        transaction_date: When the payment completed (default: now)
        description: Free-text note
        metadata: Arbitrary JSON-serializable data

    Raises:
        ValidationError: If payment_id is blank or amount_in_usd is not a
            positive number
    """

    payment_id: str
    amount_in_usd: Decimal
    category: str = TransactionCategory.SERVICE_PAYMENT
    transaction_date: datetime | None = None
    description: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate and normalize the event."""
        if self.payment_id is None or not str(self.payment_id).strip():
            raise ValidationError(
                "payment_id is required",
                error_code="INVALID_PAYMENT_EVENT",
                details={"payment_id": ["This field is required."]},
            )
        self.payment_id = str(self.payment_id).strip()
        self.amount_in_usd = quantize_usd(to_decimal(self.amount_in_usd, "amount_in_usd"))
        if self.amount_in_usd <= 0:
            raise ValidationError(
                "amount_in_usd must be positive",
                error_code="INVALID_PAYMENT_EVENT",
                details={"amount_in_usd": [str(self.amount_in_usd)]},
            )

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> PaymentCompletedEvent:
        """
        Build an event from a queue or webhook payload.

        Accepts snake_case or camelCase keys (paymentId, amountInUSD,
        transactionDate).

        Example:
            PaymentCompletedEvent.from_payload(
                {"paymentId": "P1", "amountInUSD": "49.99", "category": "product_sale"}
            )
        """
        payment_id = payload.get("payment_id", payload.get("paymentId"))
        amount = payload.get("amount_in_usd", payload.get("amountInUSD", payload.get("amount")))
        transaction_date = payload.get("transaction_date", payload.get("transactionDate"))
        if transaction_date is not None and not isinstance(transaction_date, datetime):
            transaction_date = _as_datetime(_parse_date(transaction_date, "transaction_date"))

        return cls(
            payment_id=payment_id,
            amount_in_usd=amount,
            category=payload.get("category") or TransactionCategory.SERVICE_PAYMENT,
            transaction_date=transaction_date,
            description=payload.get("description") or "",
            metadata=payload.get("metadata") or {},
        )
