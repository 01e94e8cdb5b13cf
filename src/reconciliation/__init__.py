"""Trade Billing Reconciliation & Dispute Simulation Engine."""

from .config import (
    DISPUTE_TYPES,
    DataSource,
    DisputePriority,
    DisputeType,
    ReconciliationConfig,
    ReconciliationStatus,
    ResolutionStatus,
    ToleranceConfig,
)
from .trades import (
    EquityTrade,
    FxTrade,
    TradeRecord,
    calculate_total_amount,
    trade_from_mapping,
    trades_from_dataframe,
)
from .fees import FeeBreakdown, derive_expected_costs
from .classifier import DisputeClassification, classify_dispute, simple_additive_hash
from .mutations import apply_dispute_mutations, invoice_counterparty, mutate_fees
from .matcher import InvoiceReference, ReconciliationEngine, ReconciliationResult, ValueSnapshot
from .invoices import GeneratedInvoice, InvoiceGenerator, synthesize_invoice
from .batch import BatchReconciliationRunner, BatchRunResult
from .disputes import Resolution
from .reporter import (
    DisputeRecord,
    ReconciliationSummary,
    build_dispute_records,
    disputes_to_dataframe,
    results_to_dataframe,
    summarize,
)

__all__ = [
    "DISPUTE_TYPES",
    "BatchReconciliationRunner",
    "BatchRunResult",
    "DataSource",
    "DisputeClassification",
    "DisputePriority",
    "DisputeRecord",
    "DisputeType",
    "EquityTrade",
    "FeeBreakdown",
    "FxTrade",
    "GeneratedInvoice",
    "InvoiceGenerator",
    "InvoiceReference",
    "ReconciliationConfig",
    "ReconciliationEngine",
    "ReconciliationResult",
    "ReconciliationStatus",
    "ReconciliationSummary",
    "Resolution",
    "ResolutionStatus",
    "ToleranceConfig",
    "TradeRecord",
    "ValueSnapshot",
    "apply_dispute_mutations",
    "build_dispute_records",
    "calculate_total_amount",
    "classify_dispute",
    "derive_expected_costs",
    "disputes_to_dataframe",
    "invoice_counterparty",
    "mutate_fees",
    "results_to_dataframe",
    "simple_additive_hash",
    "summarize",
    "synthesize_invoice",
    "trade_from_mapping",
    "trades_from_dataframe",
]
