"""Internal data schemas for parsed invoice data.

These models are what every parser strategy produces and what the
pipeline hands to the caller. Amounts are unsigned Decimals; the sign of
a transaction lives only in ``transaction_type``.
"""

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class TransactionType(str, Enum):
    """Direction of a transaction relative to the cardholder's balance."""

    EXPENSE = "EXPENSE"
    INCOME = "INCOME"


class TransactionScope(str, Enum):
    """Personal vs business attribution."""

    PERSONAL = "PERSONAL"
    BUSINESS = "BUSINESS"


class ParsedTransaction(BaseModel):
    """A single transaction extracted from an invoice.

    The date always carries a concrete year: strategies resolve bare
    day/month values against the invoice due date before building this.
    """

    model_config = ConfigDict(frozen=True)

    description: str = Field(..., description="Merchant text as printed (display form)")
    amount: Decimal = Field(..., ge=0, description="Unsigned magnitude in BRL")
    transaction_type: TransactionType = Field(..., description="EXPENSE or INCOME")
    transaction_date: date = Field(..., description="Purchase date with inferred year")
    category: str = Field(default="Outros", description="Category label")
    scope: TransactionScope = Field(default=TransactionScope.PERSONAL, description="PERSONAL or BUSINESS")
    due_date: date | None = Field(None, description="Due date of the invoice this row belongs to")
    card_name: str | None = Field(None, description="Card/account label (e.g. 'Santander 8854 (4258)')")
    cardholder_name: str | None = Field(None, description="Cardholder printed next to the card block")
    installment_number: int | None = Field(None, ge=1, description="Current installment index")
    installment_total: int | None = Field(None, ge=1, description="Total number of installments")

    @field_validator("description")
    @classmethod
    def description_not_empty(cls, v: str) -> str:
        """Ensure description is not empty."""
        if not v or not v.strip():
            raise ValueError("Description cannot be empty")
        return v.strip()

    @model_validator(mode="after")
    def installment_pair(self) -> "ParsedTransaction":
        """Installment fields come in pairs and the index never exceeds the total."""
        number, total = self.installment_number, self.installment_total
        if (number is None) != (total is None):
            raise ValueError("installment_number and installment_total must be set together")
        if number is not None and total is not None and number > total:
            raise ValueError("installment_number cannot exceed installment_total")
        return self

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the sign implied by the direction (expenses positive)."""
        return self.amount if self.transaction_type == TransactionType.EXPENSE else -self.amount

    def with_due_date(self, due_date: date | None) -> "ParsedTransaction":
        """Return a copy linked to the given due date."""
        return self.model_copy(update={"due_date": due_date})


class ParseResult(BaseModel):
    """Complete, immutable outcome of parsing one invoice."""

    model_config = ConfigDict(frozen=True)

    transactions: tuple[ParsedTransaction, ...] = Field(
        default_factory=tuple,
        description="Transactions in document order",
    )
    due_date: date | None = Field(None, description="Resolved due date (None when not found)")
    total_amount: Decimal | None = Field(None, description="Total printed on the invoice, if found")
    bank_name: str | None = Field(None, description="Institution label")
    card_last_digits: str | None = Field(None, description="Last digits of the card, when unique")
    quality_score: int = Field(default=0, ge=0, le=100, description="Quality score (0-100)")
    source: str = Field(default="text", description="'text' or 'extractor'")
    parser_name: str | None = Field(None, description="Strategy that produced the result")
    reconciliation_difference: Decimal | None = Field(
        None, description="|net sum - printed total| when a printed total was found"
    )

    @property
    def expense_total(self) -> Decimal:
        return sum(
            (tx.amount for tx in self.transactions if tx.transaction_type == TransactionType.EXPENSE),
            Decimal("0"),
        )

    @property
    def income_total(self) -> Decimal:
        return sum(
            (tx.amount for tx in self.transactions if tx.transaction_type == TransactionType.INCOME),
            Decimal("0"),
        )

    @property
    def net_total(self) -> Decimal:
        """Expenses minus incomes."""
        return self.expense_total - self.income_total

    def reject_reason(self, min_score: int = 50, min_transactions: int = 3) -> str | None:
        """Explain why this result would fail the quality gate, or None if it passes."""
        if self.quality_score < min_score:
            return f"Score too low: {self.quality_score} < {min_score}"
        if not self.transactions:
            return "No transactions found"
        if len(self.transactions) < min_transactions:
            return f"Too few transactions: {len(self.transactions)} < {min_transactions}"
        if self.due_date is None:
            return "No due date found"
        if self.total_amount is not None and self.total_amount <= 0:
            return "Total amount is zero or negative"
        return None

    def is_valid(self, min_score: int = 50, min_transactions: int = 3) -> bool:
        """Validity predicate used by the caller's acceptance gate."""
        return self.reject_reason(min_score, min_transactions) is None

    def is_high_quality(self, threshold: int = 75) -> bool:
        return self.quality_score >= threshold
