"""Trade Billing Reconciliation — Dispute fee mutations.

Each dispute type maps to a pure rule ``(fees, data_source) -> fees``.
The invoiced breakdown is the left fold of a trade's dispute types, in
classification order, over its expected breakdown. Multiplicative
adjustments only touch non-zero fields; additive ones always apply.
"""

from __future__ import annotations

from dataclasses import replace
from functools import reduce
from typing import Callable, Optional

from .classifier import DisputeClassification, classify_dispute, safe_trade_id, simple_additive_hash
from .config import DataSource, DisputeType
from .fees import FEE_FIELDS, FeeBreakdown
from .trades import TradeRecord

DisputeRule = Callable[[FeeBreakdown, DataSource], FeeBreakdown]

WRONG_COUNTERPARTIES: tuple[str, ...] = (
    "WRONG BANK LTD",
    "INCORRECT ENTITY",
    "MISMATCHED CORP",
    "WRONG ACCOUNT",
)


def _scale(fees: FeeBreakdown, **factors: float) -> FeeBreakdown:
    changes = {
        name: getattr(fees, name) * factor
        for name, factor in factors.items()
        if getattr(fees, name)
    }
    return replace(fees, **changes) if changes else fees


def _add(fees: FeeBreakdown, name: str, amount: float) -> FeeBreakdown:
    return replace(fees, **{name: getattr(fees, name) + amount})


def _is_equity(source: DataSource) -> bool:
    return source == DataSource.EQUITY


# ── Rules ──────────────────────────────────────────────────────────


def overcharging(fees: FeeBreakdown, source: DataSource) -> FeeBreakdown:
    return _scale(
        fees,
        commission=1.35,
        taxes=1.25,
        custody_fee=1.45,
        settlement_cost=1.3,
        brokerage_fee=1.4,
    )


def duplicate_charges(fees: FeeBreakdown, source: DataSource) -> FeeBreakdown:
    if fees.commission:
        return _scale(fees, commission=2)
    return _scale(fees, brokerage_fee=2)


def missing_trades(fees: FeeBreakdown, source: DataSource) -> FeeBreakdown:
    if _is_equity(source):
        return _add(fees, "commission", 450)
    return _add(fees, "brokerage_fee", 350)


def wrong_counterparty(fees: FeeBreakdown, source: DataSource) -> FeeBreakdown:
    # The counterparty swap itself happens in invoice_counterparty().
    if fees.commission:
        return _add(fees, "commission", 25)
    return fees


def incorrect_tax(fees: FeeBreakdown, source: DataSource) -> FeeBreakdown:
    if _is_equity(source):
        return _add(fees, "taxes", 500)
    return replace(fees, taxes=275)


def service_not_rendered(fees: FeeBreakdown, source: DataSource) -> FeeBreakdown:
    if source == DataSource.FX:
        return _add(fees, "custody_fee", 750)
    return _add(fees, "commission", 300)


def fail_charges_disputed(fees: FeeBreakdown, source: DataSource) -> FeeBreakdown:
    if _is_equity(source):
        return _add(fees, "commission", 200)
    return _add(fees, "settlement_cost", 150)


def currency_conversion_error(fees: FeeBreakdown, source: DataSource) -> FeeBreakdown:
    return _scale(fees, **{name: 1.2 for name in FEE_FIELDS})


def wrong_rate_card(fees: FeeBreakdown, source: DataSource) -> FeeBreakdown:
    return _scale(fees, commission=1.75, brokerage_fee=1.65, custody_fee=1.55)


def incorrect_billing_period(fees: FeeBreakdown, source: DataSource) -> FeeBreakdown:
    fees = _scale(fees, commission=1.3, settlement_cost=1.4)
    if _is_equity(source):
        return _add(fees, "commission", 125)
    return _add(fees, "brokerage_fee", 85)


def general_overcharge(fees: FeeBreakdown, source: DataSource) -> FeeBreakdown:
    return _scale(fees, commission=1.25)


DISPUTE_RULES: dict[DisputeType, DisputeRule] = {
    DisputeType.OVERCHARGING: overcharging,
    DisputeType.DUPLICATE_CHARGES: duplicate_charges,
    DisputeType.MISSING_TRADES: missing_trades,
    DisputeType.WRONG_COUNTERPARTY: wrong_counterparty,
    DisputeType.INCORRECT_TAX: incorrect_tax,
    DisputeType.SERVICE_NOT_RENDERED: service_not_rendered,
    DisputeType.FAIL_CHARGES_DISPUTED: fail_charges_disputed,
    DisputeType.CURRENCY_CONVERSION_ERROR: currency_conversion_error,
    DisputeType.WRONG_RATE_CARD: wrong_rate_card,
    DisputeType.INCORRECT_BILLING_PERIOD: incorrect_billing_period,
}


def rule_for(dispute_type: object) -> DisputeRule:
    """Look up a dispute type's rule; unknown types get a general overcharge."""
    try:
        return DISPUTE_RULES[DisputeType(dispute_type)]
    except ValueError:
        return general_overcharge


def mutate_fees(
    expected: FeeBreakdown,
    dispute_types: tuple[DisputeType, ...] | list,
    source: DataSource,
) -> FeeBreakdown:
    """Fold the dispute rules, in order, over an expected breakdown."""
    return reduce(
        lambda fees, dispute_type: rule_for(dispute_type)(fees, source),
        dispute_types,
        replace(expected),
    )


def apply_dispute_mutations(
    trade: TradeRecord,
    expected: FeeBreakdown,
    classification: Optional[DisputeClassification] = None,
) -> FeeBreakdown:
    """Fees the (possibly erroneous) invoice actually charges for a trade."""
    classification = classification or classify_dispute(trade.trade_id)
    if not classification.has_dispute or not classification.dispute_types:
        return replace(expected)
    return mutate_fees(expected, classification.dispute_types, trade.data_source)


def wrong_counterparty_name(trade_id: str | None) -> str:
    digest = simple_additive_hash(safe_trade_id(trade_id))
    return WRONG_COUNTERPARTIES[digest % len(WRONG_COUNTERPARTIES)]


def invoice_counterparty(
    trade: TradeRecord,
    has_dispute: bool,
    dispute_types: tuple[DisputeType, ...] | list,
) -> str:
    """Counterparty as printed on the invoice."""
    if has_dispute and DisputeType.WRONG_COUNTERPARTY in dispute_types:
        return wrong_counterparty_name(trade.trade_id)
    return trade.counterparty or ""
