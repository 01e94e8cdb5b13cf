"""Trade Billing Reconciliation — Dispute aggregation & reporting."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping, Sequence

import pandas as pd

from .config import DisputePriority, DisputeType, ReconciliationStatus, ResolutionStatus
from .disputes import (
    Resolution,
    department_for,
    describe_dispute,
    dispute_id_for,
    priority_for,
    resolution_for,
)
from .matcher import ReconciliationResult


@dataclass(frozen=True)
class DisputeRecord:
    """One disputed trade, ready for the dispute-management workflow."""

    dispute_id: str
    trade_id: str
    invoice_number: str
    agent: str
    dispute_types: tuple[DisputeType, ...]
    status: ResolutionStatus
    expected_amount: float
    billed_amount: float
    department: str
    priority: DisputePriority
    description: str
    resolution: Resolution
    result: ReconciliationResult = field(repr=False, compare=False)

    @property
    def variance(self) -> float:
        return self.billed_amount - self.expected_amount


@dataclass
class ReconciliationSummary:
    """Headline figures for a batch of reconciliation results."""

    total: int
    reconciled: int
    matched: int
    mismatched: int
    not_found: int
    disputed: int
    match_rate: float
    total_variance: float
    by_dispute_type: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)
    by_resolution: dict[str, int] = field(default_factory=dict)
    report_id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def build_dispute_record(
    position: int, trade_id: str, result: ReconciliationResult
) -> DisputeRecord:
    agent = (result.actual_values.counterparty if result.actual_values else "") or "Unknown Agent"
    expected = result.expected_values.total if result.expected_values else 0.0
    billed = result.actual_values.total if result.actual_values else 0.0
    variance = billed - expected
    return DisputeRecord(
        dispute_id=dispute_id_for(position),
        trade_id=trade_id,
        invoice_number=f"INV-{trade_id}-AUTO",
        agent=agent,
        dispute_types=result.dispute_types,
        status=(
            ResolutionStatus.OPEN
            if result.overall_status == ReconciliationStatus.MISMATCH
            else ResolutionStatus.RESOLVED
        ),
        expected_amount=expected,
        billed_amount=billed,
        department=department_for(trade_id, agent),
        priority=priority_for(variance, result.dispute_types),
        description=describe_dispute(result.dispute_types, variance, agent),
        resolution=resolution_for(result.dispute_types, variance),
        result=result,
    )


def build_dispute_records(results: Mapping[str, ReconciliationResult]) -> list[DisputeRecord]:
    """Disputed entries of a result map, numbered in iteration order."""
    disputed = [(tid, r) for tid, r in results.items() if r.has_dispute]
    return [
        build_dispute_record(position, trade_id, result)
        for position, (trade_id, result) in enumerate(disputed, start=1)
    ]


def summarize(results: Mapping[str, ReconciliationResult]) -> ReconciliationSummary:
    """Counts by status, dispute type, priority and workflow state."""
    values = list(results.values())
    by_status: dict[ReconciliationStatus, int] = {status: 0 for status in ReconciliationStatus}
    for r in values:
        by_status[r.overall_status] += 1

    records = build_dispute_records(results)
    by_type: dict[str, int] = {}
    by_priority: dict[str, int] = {}
    by_resolution: dict[str, int] = {}
    for rec in records:
        for dispute_type in rec.dispute_types:
            by_type[dispute_type.value] = by_type.get(dispute_type.value, 0) + 1
        by_priority[rec.priority.value] = by_priority.get(rec.priority.value, 0) + 1
        status = rec.resolution.status.value
        by_resolution[status] = by_resolution.get(status, 0) + 1

    reconciled = by_status[ReconciliationStatus.RECONCILED]
    matched = by_status[ReconciliationStatus.MATCHED]
    return ReconciliationSummary(
        total=len(values),
        reconciled=reconciled,
        matched=matched,
        mismatched=by_status[ReconciliationStatus.MISMATCH],
        not_found=len([r for r in values if not r.is_found]),
        disputed=len(records),
        match_rate=(reconciled + matched) / max(len(values), 1),
        total_variance=sum(r.variance for r in values if r.variance > 0),
        by_dispute_type=by_type,
        by_priority=by_priority,
        by_resolution=by_resolution,
    )


def results_to_dataframe(results: Mapping[str, ReconciliationResult]) -> pd.DataFrame:
    """One row per reconciled trade."""
    rows = []
    for trade_id, r in results.items():
        expected = r.expected_values
        actual = r.actual_values
        rows.append(
            {
                "trade_id": trade_id,
                "status": r.overall_status.value,
                "has_dispute": r.has_dispute,
                "dispute_types": ", ".join(t.value for t in r.dispute_types),
                "expected_counterparty": expected.counterparty if expected else None,
                "invoiced_counterparty": actual.counterparty if actual else None,
                "expected_total": expected.total if expected else None,
                "invoiced_total": actual.total if actual else None,
                "variance": r.variance,
                "discrepancies": "; ".join(r.discrepancies),
            }
        )
    columns = [
        "trade_id", "status", "has_dispute", "dispute_types", "expected_counterparty",
        "invoiced_counterparty", "expected_total", "invoiced_total", "variance", "discrepancies",
    ]
    return pd.DataFrame(rows, columns=columns)


def disputes_to_dataframe(records: Sequence[DisputeRecord]) -> pd.DataFrame:
    """One row per dispute, in the dispute-management table layout."""
    columns = [
        "dispute_id", "trade_id", "invoice_number", "agent", "dispute_types", "status",
        "department", "priority", "expected_amount", "billed_amount", "variance",
        "description", "resolution_status", "resolution_comments",
    ]
    return pd.DataFrame(
        [
            {
                "dispute_id": rec.dispute_id,
                "trade_id": rec.trade_id,
                "invoice_number": rec.invoice_number,
                "agent": rec.agent,
                "dispute_types": ", ".join(t.value for t in rec.dispute_types),
                "status": rec.status.value,
                "department": rec.department,
                "priority": rec.priority.value,
                "expected_amount": round(rec.expected_amount, 2),
                "billed_amount": round(rec.billed_amount, 2),
                "variance": round(rec.variance, 2),
                "description": rec.description,
                "resolution_status": rec.resolution.status.value,
                "resolution_comments": rec.resolution.comments,
            }
            for rec in records
        ],
        columns=columns,
    )
