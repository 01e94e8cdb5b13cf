"""Trade Billing Reconciliation — Dispute triage.

Department routing, priority, narrative and synthetic workflow state for
disputed trades. Everything here is derived from already-computed
reconciliation output and the additive trade-id hash; there is no other
source of randomness.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .classifier import simple_additive_hash
from .config import DisputePriority, DisputeType, ResolutionStatus

DEPARTMENTS: tuple[str, ...] = (
    "Fixed Income Trading",
    "Equity Trading",
    "FX Trading",
    "Prime Brokerage",
    "Securities Lending",
    "Custody Services",
    "Operations",
    "Risk Management",
)

# First matching keyword group wins.
_DEPARTMENT_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("fx", "currency"), "FX Trading"),
    (("equity", "stock"), "Equity Trading"),
    (("custody", "safekeeping"), "Custody Services"),
)

HIGH_PRIORITY_TYPES = frozenset({
    DisputeType.DUPLICATE_CHARGES,
    DisputeType.SERVICE_NOT_RENDERED,
    DisputeType.WRONG_RATE_CARD,
})
MEDIUM_PRIORITY_TYPES = frozenset({
    DisputeType.OVERCHARGING,
    DisputeType.INCORRECT_TAX,
    DisputeType.CURRENCY_CONVERSION_ERROR,
})
HIGH_VARIANCE = 10000
MEDIUM_VARIANCE = 1000
CREDIT_NOTE_VARIANCE = 5000
PARTIAL_CREDIT_RATE = 0.7

_DESCRIPTIONS: dict[DisputeType, str] = {
    DisputeType.OVERCHARGING: (
        "Agent {agent} has applied rates exceeding the agreed fee schedule, "
        "resulting in overcharges of ${amount}."
    ),
    DisputeType.DUPLICATE_CHARGES: (
        "Duplicate billing detected for the same service or trade execution, "
        "leading to double charges of ${amount}."
    ),
    DisputeType.MISSING_TRADES: (
        "Invoice includes charges for trades not found in our trade capture system, "
        "representing phantom charges of ${amount}."
    ),
    DisputeType.WRONG_COUNTERPARTY: (
        "Invoice shows incorrect counterparty information that doesn't match our "
        "trade records, affecting reconciliation accuracy."
    ),
    DisputeType.INCORRECT_TAX: (
        "Tax calculations appear incorrect or inappropriate for this trade type, "
        "resulting in excess tax charges of ${amount}."
    ),
    DisputeType.SERVICE_NOT_RENDERED: (
        "Charges applied for services that were not actually provided or required "
        "for this trade type."
    ),
    DisputeType.FAIL_CHARGES_DISPUTED: (
        "Settlement fail charges have been applied incorrectly or without proper "
        "justification."
    ),
    DisputeType.CURRENCY_CONVERSION_ERROR: (
        "Foreign exchange conversion rates used in billing don't match agreed rates "
        "or market rates at trade time."
    ),
    DisputeType.WRONG_RATE_CARD: (
        "Incorrect fee schedule or rate card has been used, resulting in significantly "
        "higher charges than contracted rates."
    ),
    DisputeType.INCORRECT_BILLING_PERIOD: (
        "Charges appear to be from wrong billing period or include adjustments from "
        "previous periods without proper documentation."
    ),
}

_RESOLUTION_COMMENTS: dict[ResolutionStatus, str] = {
    ResolutionStatus.OPEN: (
        "Dispute raised and pending initial review. Awaiting agent response and "
        "supporting documentation."
    ),
    ResolutionStatus.UNDER_REVIEW: (
        "Dispute under active review. Agent has provided initial response and supporting "
        "documentation. Internal validation in progress with trade operations team."
    ),
    ResolutionStatus.ESCALATED: (
        "Dispute escalated to senior management due to significant variance or repeated "
        "issues with this agent. Legal and compliance teams engaged for resolution."
    ),
}


@dataclass(frozen=True)
class Resolution:
    status: ResolutionStatus
    comments: str


def _type_names(dispute_types: Iterable) -> list[str]:
    return [t.value if isinstance(t, DisputeType) else str(t) for t in dispute_types]


def department_for(trade_id: str, agent_name: str = "") -> str:
    """Route a dispute to a department, by agent keyword or trade-id hash."""
    agent = (agent_name or "").lower()
    for keywords, department in _DEPARTMENT_KEYWORDS:
        if any(word in agent for word in keywords):
            return department
    return DEPARTMENTS[simple_additive_hash(trade_id) % len(DEPARTMENTS)]


def priority_for(variance: float, dispute_types: Sequence) -> DisputePriority:
    magnitude = abs(variance)
    if magnitude > HIGH_VARIANCE or any(t in HIGH_PRIORITY_TYPES for t in dispute_types):
        return DisputePriority.HIGH
    if magnitude > MEDIUM_VARIANCE or any(t in MEDIUM_PRIORITY_TYPES for t in dispute_types):
        return DisputePriority.MEDIUM
    return DisputePriority.LOW


def describe_dispute(dispute_types: Sequence, variance: float, agent_name: str) -> str:
    """Narrative for a dispute, as shown to the billing team."""
    if not dispute_types:
        return "No specific dispute identified."
    amount = f"{abs(variance):.2f}"
    names = _type_names(dispute_types)
    if len(names) > 1:
        return (
            f"Multiple issues identified: {', '.join(names)}. "
            f"Combined impact of ${amount} variance from expected amounts."
        )
    try:
        template = _DESCRIPTIONS[DisputeType(names[0])]
    except ValueError:
        return f"Dispute identified: {names[0]}"
    return template.format(agent=agent_name, amount=amount)


def resolution_status_for(dispute_types: Sequence) -> ResolutionStatus:
    """Synthetic workflow state, bucketed from the concatenated type names."""
    bucket = simple_additive_hash("".join(_type_names(dispute_types))) % 10
    if bucket < 2:
        return ResolutionStatus.RESOLVED
    if bucket < 5:
        return ResolutionStatus.UNDER_REVIEW
    if bucket < 7:
        return ResolutionStatus.ESCALATED
    return ResolutionStatus.OPEN


def resolution_for(dispute_types: Sequence, variance: float) -> Resolution:
    status = resolution_status_for(dispute_types)
    magnitude = abs(variance)
    if status != ResolutionStatus.RESOLVED:
        return Resolution(status=status, comments=_RESOLUTION_COMMENTS[status])
    if magnitude > CREDIT_NOTE_VARIANCE:
        comments = (
            "Dispute resolved in favor of client. Agent acknowledged billing error and "
            f"issued credit note for ${magnitude:.2f}. Rate card corrections implemented "
            "to prevent recurrence."
        )
    else:
        comments = (
            "Dispute resolved through negotiation. Partial credit of "
            f"${magnitude * PARTIAL_CREDIT_RATE:.2f} agreed upon. Documentation updated "
            "for future reference."
        )
    return Resolution(status=status, comments=comments)


def dispute_id_for(position: int, prefix: Optional[str] = "DSP") -> str:
    """Sequential dispute id, 1-based: DSP-0001, DSP-0002, ..."""
    return f"{prefix}-{position:04d}"
