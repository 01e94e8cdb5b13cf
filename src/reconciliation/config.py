"""Trade Billing Reconciliation — Configuration & enums."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.settings import Settings


class DataSource(str, Enum):
    EQUITY = "equity"
    FX = "fx"


class ReconciliationStatus(str, Enum):
    RECONCILED = "reconciled"
    MATCHED = "matched"
    MISMATCH = "mismatch"


class DisputeType(str, Enum):
    """Simulated billing errors.

    Member order is part of the classification contract: the classifier
    indexes into this list by position.
    """

    OVERCHARGING = "Overcharging"
    DUPLICATE_CHARGES = "Duplicate Charges"
    MISSING_TRADES = "Missing Trades"
    WRONG_COUNTERPARTY = "Wrong Counterparty or Account"
    INCORRECT_TAX = "Incorrect Tax Application"
    SERVICE_NOT_RENDERED = "Service Not Rendered"
    FAIL_CHARGES_DISPUTED = "Fail Charges Disputed"
    CURRENCY_CONVERSION_ERROR = "Currency Conversion Error"
    WRONG_RATE_CARD = "Wrong Rate Card Applied"
    INCORRECT_BILLING_PERIOD = "Incorrect Billing Period"


DISPUTE_TYPES: tuple[DisputeType, ...] = tuple(DisputeType)


class DisputePriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class ResolutionStatus(str, Enum):
    OPEN = "Open"
    UNDER_REVIEW = "Under Review"
    ESCALATED = "Escalated"
    RESOLVED = "Resolved"


@dataclass
class ToleranceConfig:
    """Tolerance thresholds for fee comparison."""

    amount_tolerance: float = 0.01  # absolute, in currency units

    def __post_init__(self) -> None:
        if self.amount_tolerance < 0:
            raise ValueError("Tolerance must be non-negative")


@dataclass
class ReconciliationConfig:
    """Configuration for the reconciliation engine and batch runner."""

    tolerances: ToleranceConfig = field(default_factory=ToleranceConfig)
    chunk_size: int = 50
    chunk_delay_seconds: float = 0.0  # only honoured by the async runner
    invoice_due_days: int = 30

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError("Chunk size must be positive")
        if self.chunk_delay_seconds < 0:
            raise ValueError("Chunk delay must be non-negative")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ReconciliationConfig":
        return cls(
            tolerances=ToleranceConfig(amount_tolerance=settings.reconciliation_tolerance),
            chunk_size=settings.batch_chunk_size,
            chunk_delay_seconds=settings.batch_chunk_delay_seconds,
            invoice_due_days=settings.invoice_due_days,
        )
