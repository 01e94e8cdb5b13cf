"""Trade Billing Reconciliation — Reconciliation comparator."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Union

from .classifier import classify_dispute
from .config import DisputeType, ReconciliationConfig, ReconciliationStatus
from .fees import FeeBreakdown, derive_expected_costs
from .mutations import apply_dispute_mutations, invoice_counterparty
from .trades import TradeRecord

logger = logging.getLogger(__name__)

TRADE_NOT_FOUND = "Trade ID not found in uploaded dataset"
TOTAL_CHECKS = 8

# (fee field, label used in mismatch messages, label used in dispute notes)
_FEE_CHECKS: tuple[tuple[str, str, str], ...] = (
    ("commission", "Commission", "Commission"),
    ("taxes", "Tax", "Tax"),
    ("custody_fee", "Custody Fee", "Custody fee"),
    ("settlement_cost", "Settlement Cost", "Settlement cost"),
    ("brokerage_fee", "Brokerage Fee", "Brokerage fee"),
)


@dataclass(frozen=True)
class InvoiceReference:
    """The invoice side of a reconciliation; only ``trade_id`` is required."""

    trade_id: str
    invoice_id: str = ""
    invoice_number: str = ""
    agent_name: str = ""
    counterparty: str = ""
    amount: float = 0.0
    currency: str = "USD"
    service_type: str = ""


@dataclass(frozen=True)
class ValueSnapshot:
    """Counterparty, fee components and total on one side of a comparison."""

    counterparty: str
    fees: FeeBreakdown
    total: float

    def to_dict(self, total_key: str) -> dict:
        return {
            "counterparty": self.counterparty,
            "commission": self.fees.commission,
            "taxes": self.fees.taxes,
            "custodyFee": self.fees.custody_fee,
            "settlementCost": self.fees.settlement_cost,
            "brokerageFee": self.fees.brokerage_fee,
            total_key: self.total,
        }


@dataclass(frozen=True)
class ReconciliationResult:
    """Outcome of reconciling one invoice against its trade."""

    trade_id: str
    trade_id_match: bool
    counterparty_match: bool
    amount_match: bool
    commission_match: bool
    tax_match: bool
    custody_fee_match: bool
    settlement_cost_match: bool
    brokerage_fee_match: bool
    overall_status: ReconciliationStatus
    discrepancies: tuple[str, ...] = field(default_factory=tuple)
    has_dispute: bool = False
    dispute_types: tuple[DisputeType, ...] = field(default_factory=tuple)
    expected_values: Optional[ValueSnapshot] = None
    actual_values: Optional[ValueSnapshot] = None
    date_match: bool = True  # dates are not compared yet

    @property
    def is_found(self) -> bool:
        return self.expected_values is not None

    @property
    def variance(self) -> float:
        """Billed minus expected total; zero when the trade was not found."""
        if self.expected_values is None or self.actual_values is None:
            return 0.0
        return self.actual_values.total - self.expected_values.total

    def to_dict(self) -> dict:
        return {
            "tradeIdMatch": self.trade_id_match,
            "counterpartyMatch": self.counterparty_match,
            "amountMatch": self.amount_match,
            "dateMatch": self.date_match,
            "commissionMatch": self.commission_match,
            "taxMatch": self.tax_match,
            "custodyFeeMatch": self.custody_fee_match,
            "settlementCostMatch": self.settlement_cost_match,
            "brokerageFeeMatch": self.brokerage_fee_match,
            "overallStatus": self.overall_status.value,
            "discrepancies": list(self.discrepancies),
            "hasDispute": self.has_dispute,
            "disputeTypes": [t.value for t in self.dispute_types],
            "expectedValues": (
                self.expected_values.to_dict("totalExpected") if self.expected_values else {}
            ),
            "actualValues": (
                self.actual_values.to_dict("totalActual") if self.actual_values else {}
            ),
        }


TradeLookup = Union[Mapping[str, TradeRecord], Iterable[TradeRecord]]


class ReconciliationEngine:
    """Compares invoiced fees against the fees expected from trade data."""

    def __init__(self, config: Optional[ReconciliationConfig] = None) -> None:
        self.config = config or ReconciliationConfig()

    @property
    def tolerance(self) -> float:
        return self.config.tolerances.amount_tolerance

    def values_match(self, expected: float, actual: float) -> bool:
        return abs(expected - actual) <= self.tolerance

    def reconcile(self, invoice: InvoiceReference, trades: TradeLookup) -> ReconciliationResult:
        """Find the invoice's trade in ``trades`` and compare the two."""
        trade = self.find_trade(invoice.trade_id, trades)
        if trade is None:
            logger.warning("No trade found for invoice trade id %r", invoice.trade_id)
            return self.not_found(invoice.trade_id)
        return self.compare(trade, invoice)

    @staticmethod
    def find_trade(trade_id: str, trades: TradeLookup) -> Optional[TradeRecord]:
        if isinstance(trades, Mapping):
            return trades.get(trade_id)
        for trade in trades:
            if trade.trade_id == trade_id:
                return trade
        return None

    @staticmethod
    def not_found(trade_id: str) -> ReconciliationResult:
        return ReconciliationResult(
            trade_id=trade_id,
            trade_id_match=False,
            counterparty_match=False,
            amount_match=False,
            commission_match=False,
            tax_match=False,
            custody_fee_match=False,
            settlement_cost_match=False,
            brokerage_fee_match=False,
            overall_status=ReconciliationStatus.MISMATCH,
            discrepancies=(TRADE_NOT_FOUND,),
        )

    def compare(self, trade: TradeRecord, invoice: InvoiceReference) -> ReconciliationResult:
        """Field-by-field comparison of a trade against its invoice."""
        classification = classify_dispute(trade.trade_id)
        expected = derive_expected_costs(trade)
        actual = apply_dispute_mutations(trade, expected, classification)
        dispute_note = ", ".join(t.value for t in classification.dispute_types)
        flag_disputes = classification.has_dispute and bool(classification.dispute_types)

        discrepancies: list[str] = []
        match_count = 0

        trade_id_match = trade.trade_id == invoice.trade_id
        if trade_id_match:
            match_count += 1
        else:
            discrepancies.append("Trade ID mismatch")

        expected_counterparty = trade.counterparty or ""
        actual_counterparty = invoice_counterparty(
            trade, classification.has_dispute, classification.dispute_types
        )
        counterparty_match = expected_counterparty.lower() == actual_counterparty.lower()
        if counterparty_match:
            match_count += 1
        else:
            discrepancies.append(
                f'Counterparty mismatch: Expected "{expected_counterparty}", '
                f'Got "{actual_counterparty}"'
            )

        fee_matches: dict[str, bool] = {}
        for name, label, affected in _FEE_CHECKS:
            expected_value = getattr(expected, name)
            actual_value = getattr(actual, name)
            matched = self.values_match(expected_value, actual_value)
            fee_matches[name] = matched
            if matched:
                match_count += 1
                continue
            discrepancies.append(
                f"{label} mismatch: Expected ${expected_value:.2f}, Got ${actual_value:.2f}"
            )
            if name == "taxes":
                if classification.includes(DisputeType.INCORRECT_TAX):
                    discrepancies.append(
                        "Dispute detected: Incorrect Tax Application - Excessive tax charges"
                    )
            elif flag_disputes:
                discrepancies.append(f"Dispute detected: {dispute_note} - {affected} affected")

        expected_total = expected.total
        actual_total = actual.total
        amount_match = self.values_match(expected_total, actual_total)
        if amount_match:
            match_count += 1
        else:
            discrepancies.append(
                f"Total Amount mismatch: Expected ${expected_total:.2f}, Got ${actual_total:.2f}"
            )
            if flag_disputes:
                discrepancies.append(f"Dispute detected: {dispute_note} - Total amount affected")

        commission_match = fee_matches["commission"]
        if classification.has_dispute:
            status = ReconciliationStatus.MISMATCH
        elif match_count == TOTAL_CHECKS:
            status = ReconciliationStatus.RECONCILED
        elif counterparty_match and amount_match and commission_match:
            status = ReconciliationStatus.MATCHED
        else:
            status = ReconciliationStatus.MISMATCH

        logger.debug(
            "Reconciled trade %s: %s (%d/%d checks)",
            trade.trade_id,
            status.value,
            match_count,
            TOTAL_CHECKS,
            extra={"trade_id": trade.trade_id},
        )

        return ReconciliationResult(
            trade_id=trade.trade_id,
            trade_id_match=trade_id_match,
            counterparty_match=counterparty_match,
            amount_match=amount_match,
            commission_match=commission_match,
            tax_match=fee_matches["taxes"],
            custody_fee_match=fee_matches["custody_fee"],
            settlement_cost_match=fee_matches["settlement_cost"],
            brokerage_fee_match=fee_matches["brokerage_fee"],
            overall_status=status,
            discrepancies=tuple(discrepancies),
            has_dispute=classification.has_dispute,
            dispute_types=classification.dispute_types,
            expected_values=ValueSnapshot(expected_counterparty, expected, expected_total),
            actual_values=ValueSnapshot(actual_counterparty, actual, actual_total),
        )
