"""Trade Billing Reconciliation — Agent invoice synthesis & generation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

from .classifier import DisputeClassification, classify_dispute, safe_trade_id, simple_additive_hash
from .config import DataSource, DisputeType, ReconciliationConfig
from .fees import derive_expected_costs
from .matcher import InvoiceReference
from .mutations import apply_dispute_mutations, invoice_counterparty
from .trades import EquityTrade, TradeRecord, calculate_total_amount, trade_currency

AGENT_POOLS: dict[DataSource, tuple[str, ...]] = {
    DataSource.EQUITY: (
        "Barclays Capital",
        "Goldman Sachs Securities",
        "Morgan Stanley Capital",
        "JPMorgan Securities",
        "UBS Investment Bank",
    ),
    DataSource.FX: (
        "Deutsche Bank AG",
        "Citibank N.A.",
        "HSBC Bank PLC",
        "BNP Paribas",
        "Credit Suisse AG",
    ),
}

_LINE_ITEMS: dict[DataSource, tuple[tuple[str, str], ...]] = {
    DataSource.EQUITY: (
        ("commission", "Commission"),
        ("taxes", "Taxes"),
    ),
    DataSource.FX: (
        ("commission", "Commission"),
        ("custody_fee", "Custody Fee"),
        ("settlement_cost", "Settlement Cost"),
        ("brokerage_fee", "Brokerage Fee"),
    ),
}


def service_type_for(trade: TradeRecord) -> str:
    return "Equity Services" if isinstance(trade, EquityTrade) else "FX Services"


def synthesize_invoice(trade: TradeRecord) -> InvoiceReference:
    """Minimal invoice standing in for the agent's bill during auto-reconciliation."""
    return InvoiceReference(
        trade_id=trade.trade_id,
        invoice_id=f"AUTO-{trade.trade_id}",
        invoice_number=f"INV-{trade.trade_id}-AUTO",
        agent_name=trade.counterparty or "Unknown Agent",
        counterparty=trade.counterparty,
        amount=calculate_total_amount(trade),
        currency=trade_currency(trade),
        service_type=service_type_for(trade),
    )


def agent_name_for(trade: TradeRecord) -> str:
    pool = AGENT_POOLS[trade.data_source]
    return pool[simple_additive_hash(safe_trade_id(trade.trade_id)) % len(pool)]


@dataclass(frozen=True)
class InvoiceLineItem:
    description: str
    amount: float


@dataclass(frozen=True)
class GeneratedInvoice:
    """An agent invoice as it would be issued for a single trade."""

    invoice_number: str
    trade_id: str
    agent_name: str
    counterparty: str
    currency: str
    service_type: str
    issued_on: date
    due_on: date
    classification: DisputeClassification
    line_items: tuple[InvoiceLineItem, ...] = field(default_factory=tuple)

    @property
    def total(self) -> float:
        return sum(item.amount for item in self.line_items)

    @property
    def dispute_types(self) -> tuple[DisputeType, ...]:
        return self.classification.dispute_types

    def as_reference(self) -> InvoiceReference:
        return InvoiceReference(
            trade_id=self.trade_id,
            invoice_id=self.invoice_number,
            invoice_number=self.invoice_number,
            agent_name=self.agent_name,
            counterparty=self.counterparty,
            amount=self.total,
            currency=self.currency,
            service_type=self.service_type,
        )


class InvoiceGenerator:
    """Builds agent invoices, including any simulated billing errors."""

    def __init__(self, config: Optional[ReconciliationConfig] = None) -> None:
        self.config = config or ReconciliationConfig()

    def generate(self, trade: TradeRecord, issued_on: Optional[date] = None) -> GeneratedInvoice:
        issued_on = issued_on or date.today()
        classification = classify_dispute(trade.trade_id)
        expected = derive_expected_costs(trade)
        billed = apply_dispute_mutations(trade, expected, classification)

        items = [
            InvoiceLineItem(description=label, amount=getattr(billed, name))
            for name, label in _LINE_ITEMS[trade.data_source]
        ]
        # Tax on an FX invoice only appears when a dispute put it there.
        if trade.data_source == DataSource.FX and billed.taxes:
            items.append(InvoiceLineItem(description="Taxes", amount=billed.taxes))

        counterparty = invoice_counterparty(
            trade, classification.has_dispute, classification.dispute_types
        )
        trade_id = safe_trade_id(trade.trade_id)
        return GeneratedInvoice(
            invoice_number=f"INV-{trade_id}-{issued_on.year}",
            trade_id=trade_id,
            agent_name=agent_name_for(trade),
            counterparty=counterparty or "N/A",
            currency=trade_currency(trade),
            service_type=service_type_for(trade),
            issued_on=issued_on,
            due_on=issued_on + timedelta(days=self.config.invoice_due_days),
            classification=classification,
            line_items=tuple(items),
        )

    def generate_all(
        self, trades: list[TradeRecord], issued_on: Optional[date] = None
    ) -> list[GeneratedInvoice]:
        return [self.generate(trade, issued_on) for trade in trades]
