"""Trade Billing Reconciliation — Deterministic dispute classifier.

Whether a trade's invoice carries a simulated billing error is a pure
function of its trade id. The arithmetic below is part of the observable
contract: changing any constant reshuffles which historical trades are
disputed, so results produced under different versions are not comparable.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .config import DISPUTE_TYPES, DisputeType

DEFAULT_TRADE_ID = "DEFAULT"
BATCH_MODULUS = 15
DISPUTE_POSITIONS = frozenset({3, 11})


def simple_additive_hash(value: str) -> int:
    """Sum of the character codes of ``value``. Not a cryptographic hash."""
    return sum(ord(ch) for ch in value)


def safe_trade_id(trade_id: str | None) -> str:
    return trade_id or DEFAULT_TRADE_ID


@dataclass(frozen=True)
class DisputeClassification:
    has_dispute: bool
    dispute_types: tuple[DisputeType, ...] = field(default_factory=tuple)

    def includes(self, dispute_type: DisputeType) -> bool:
        return self.has_dispute and dispute_type in self.dispute_types


NO_DISPUTE = DisputeClassification(has_dispute=False)


def classify_dispute(trade_id: str | None) -> DisputeClassification:
    """Decide whether a trade is disputed and which dispute types apply."""
    trade_id = safe_trade_id(trade_id)
    digest = simple_additive_hash(trade_id)

    if digest % BATCH_MODULUS not in DISPUTE_POSITIONS:
        return NO_DISPUTE

    num_types = 2 if digest % 3 == 0 else 1
    count = len(DISPUTE_TYPES)

    first = DISPUTE_TYPES[abs(digest * 7 + len(trade_id) * 13) % count]
    selected = [first]

    if num_types == 2:
        second = DISPUTE_TYPES[abs(digest * 11 + len(trade_id) * 17) % count]
        # A colliding second pick is dropped, not re-drawn.
        if second != first:
            selected.append(second)

    return DisputeClassification(has_dispute=True, dispute_types=tuple(selected))
