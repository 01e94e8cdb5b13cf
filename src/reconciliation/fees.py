"""Trade Billing Reconciliation — Fee breakdowns."""

from __future__ import annotations

from dataclasses import asdict, dataclass

from .trades import EquityTrade, TradeRecord

FEE_FIELDS: tuple[str, ...] = (
    "commission",
    "taxes",
    "custody_fee",
    "settlement_cost",
    "brokerage_fee",
)


@dataclass(frozen=True)
class FeeBreakdown:
    """The five billable fee components of a trade."""

    commission: float = 0.0
    taxes: float = 0.0
    custody_fee: float = 0.0
    settlement_cost: float = 0.0
    brokerage_fee: float = 0.0

    @property
    def total(self) -> float:
        return sum(getattr(self, name) for name in FEE_FIELDS)

    def as_dict(self) -> dict[str, float]:
        return asdict(self)


def derive_expected_costs(trade: TradeRecord) -> FeeBreakdown:
    """Fees the trade should have been billed, straight from the trade data.

    Fields that do not exist for the trade's asset class are always zero.
    """
    if isinstance(trade, EquityTrade):
        return FeeBreakdown(commission=trade.commission, taxes=trade.taxes)
    return FeeBreakdown(
        commission=trade.commission_amount,
        custody_fee=trade.custody_fee,
        settlement_cost=trade.settlement_cost,
        brokerage_fee=trade.brokerage_fee,
    )
