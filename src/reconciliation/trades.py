"""Trade Billing Reconciliation — Trade records & ingestion coalescing.

Trades arrive as loosely-shaped rows (spreadsheet uploads, document
store reads) whose field names differ between the equity and FX
datasets. They are coalesced once, here, into one of two typed records
so the rest of the engine never deals with fallback chains.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Union

import pandas as pd

from .config import DataSource

TRADE_ID_COLUMNS = ("tradeId", "tradeID", "TradeID", "Trade Id", "Trade ID", "trade_id")
_STRIP_CHARS = (",", "$", "€", "£", " ")


@dataclass(frozen=True)
class EquityTrade:
    """An equity trade as captured from the equity dataset."""

    trade_id: str
    counterparty: str = ""
    commission: float = 0.0
    taxes: float = 0.0
    total_cost: Optional[float] = None
    currency: Optional[str] = None
    data_source: DataSource = field(default=DataSource.EQUITY, init=False)


@dataclass(frozen=True)
class FxTrade:
    """An FX trade as captured from the FX dataset."""

    trade_id: str
    counterparty: str = ""
    commission_amount: float = 0.0
    custody_fee: float = 0.0
    settlement_cost: float = 0.0
    brokerage_fee: float = 0.0
    base_currency: Optional[str] = None
    currency: Optional[str] = None
    data_source: DataSource = field(default=DataSource.FX, init=False)


TradeRecord = Union[EquityTrade, FxTrade]


def to_amount(value: Any) -> float:
    """Coerce a raw cell value to a float; anything unusable becomes 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        text = value.strip()
        negative = text.startswith("(") and text.endswith(")")
        if negative:
            text = text[1:-1]
        for ch in _STRIP_CHARS:
            text = text.replace(ch, "")
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
        number = -number if negative else number
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float):
        return math.isnan(value)
    return False


def _text(value: Any) -> str:
    return "" if _is_missing(value) else str(value).strip()


def _first_present(row: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        if key in row and not _is_missing(row[key]):
            return row[key]
    return None


def trade_from_mapping(
    row: Mapping[str, Any], data_source: Optional[DataSource] = None
) -> TradeRecord:
    """Build a typed trade from an ingested row.

    ``data_source`` overrides the row's ``dataSource`` column; any value
    other than ``equity`` is treated as FX.
    """
    source = data_source or (
        DataSource.EQUITY
        if _text(row.get("dataSource")).lower() == DataSource.EQUITY.value
        else DataSource.FX
    )
    trade_id = _text(_first_present(row, TRADE_ID_COLUMNS))
    counterparty = _text(row.get("counterparty"))

    if source == DataSource.EQUITY:
        total_cost = row.get("totalCost")
        return EquityTrade(
            trade_id=trade_id,
            counterparty=counterparty,
            commission=to_amount(row.get("commission")),
            taxes=to_amount(row.get("taxes")),
            total_cost=None if _is_missing(total_cost) else to_amount(total_cost),
            currency=_text(row.get("currency")) or None,
        )

    commission_amount = _first_present(row, ("commissionAmount", "commission"))
    return FxTrade(
        trade_id=trade_id,
        counterparty=counterparty,
        commission_amount=to_amount(commission_amount),
        custody_fee=to_amount(row.get("custodyFee")),
        settlement_cost=to_amount(row.get("settlementCost")),
        brokerage_fee=to_amount(row.get("brokerageFee")),
        base_currency=_text(row.get("baseCurrency")) or None,
        currency=_text(row.get("currency")) or None,
    )


def trades_from_dataframe(
    df: pd.DataFrame, data_source: Optional[DataSource] = None
) -> list[TradeRecord]:
    """Coalesce every row of an uploaded dataset into typed trades."""
    if df.empty:
        return []
    records = df.to_dict(orient="records")
    return [trade_from_mapping(row, data_source=data_source) for row in records]


def trade_currency(trade: TradeRecord) -> str:
    if isinstance(trade, FxTrade):
        return trade.currency or trade.base_currency or "USD"
    return trade.currency or "USD"


def calculate_total_amount(trade: TradeRecord) -> float:
    """Invoice amount a trade would be billed at, before any dispute."""
    if isinstance(trade, EquityTrade):
        return trade.total_cost or (trade.commission + trade.taxes)
    # commission_amount is already coalesced with the row's "commission" column at
    # ingestion, so a row carrying only "commission" is billed with it here too.
    return (
        trade.commission_amount
        + trade.brokerage_fee
        + trade.custody_fee
        + trade.settlement_cost
    )
