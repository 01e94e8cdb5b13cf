"""Trade Billing Reconciliation — Batch auto-reconciliation runner."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Iterable, Iterator, Mapping, Optional, Sequence

from src.logging_config import RunContext, log_performance

from .config import ReconciliationConfig
from .invoices import synthesize_invoice
from .matcher import ReconciliationEngine, ReconciliationResult
from .trades import TradeRecord

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]
CancelCheck = Callable[[], bool]


@dataclass(frozen=True)
class BatchRunResult:
    """Everything one batch run produced; results are keyed by trade id."""

    run_id: str
    results: Mapping[str, ReconciliationResult]
    total: int
    processed: int
    cancelled: bool = False

    @property
    def progress(self) -> float:
        return progress_percent(self.processed, self.total)

    def __len__(self) -> int:
        return len(self.results)


def progress_percent(processed: int, total: int) -> float:
    if total <= 0:
        return 100.0
    return min(100.0, 100.0 * processed / total)


class BatchReconciliationRunner:
    """Reconciles a whole trade dataset in fixed-size chunks.

    Each trade is reconciled against a synthesized invoice. Progress is
    reported after every chunk and ``should_cancel`` is polled between
    chunks; a cancelled run returns whatever was finished.
    """

    def __init__(
        self,
        engine: Optional[ReconciliationEngine] = None,
        config: Optional[ReconciliationConfig] = None,
    ) -> None:
        self.config = config or (engine.config if engine else ReconciliationConfig())
        self.engine = engine or ReconciliationEngine(self.config)

    def chunks(self, trades: Sequence[TradeRecord]) -> Iterator[Sequence[TradeRecord]]:
        size = self.config.chunk_size
        for start in range(0, len(trades), size):
            yield trades[start:start + size]

    @log_performance()
    def run(
        self,
        trades: Iterable[TradeRecord],
        on_progress: Optional[ProgressCallback] = None,
        should_cancel: Optional[CancelCheck] = None,
    ) -> BatchRunResult:
        trades = list(trades)
        results: dict[str, ReconciliationResult] = {}
        with RunContext(extra={"trades": len(trades)}) as ctx:
            processed, cancelled = 0, False
            for processed in self._execute(trades, results, on_progress):
                if processed < len(trades) and should_cancel is not None and should_cancel():
                    cancelled = True
                    break
            return self._finish(ctx, trades, results, processed, cancelled, on_progress)

    @log_performance()
    async def run_async(
        self,
        trades: Iterable[TradeRecord],
        on_progress: Optional[ProgressCallback] = None,
        should_cancel: Optional[CancelCheck] = None,
    ) -> BatchRunResult:
        """Same as :meth:`run`, yielding to the event loop between chunks."""
        trades = list(trades)
        results: dict[str, ReconciliationResult] = {}
        with RunContext(extra={"trades": len(trades)}) as ctx:
            processed, cancelled = 0, False
            for processed in self._execute(trades, results, on_progress):
                if processed >= len(trades):
                    break
                await asyncio.sleep(self.config.chunk_delay_seconds)
                if should_cancel is not None and should_cancel():
                    cancelled = True
                    break
            return self._finish(ctx, trades, results, processed, cancelled, on_progress)

    def _execute(
        self,
        trades: list[TradeRecord],
        results: dict[str, ReconciliationResult],
        on_progress: Optional[ProgressCallback],
    ) -> Iterator[int]:
        """Reconcile chunk by chunk, yielding the processed count after each."""
        total = len(trades)
        logger.info("Starting batch reconciliation of %d trades", total)

        # A duplicated trade id always resolves to its first trade.
        lookup: dict[str, TradeRecord] = {}
        for trade in trades:
            lookup.setdefault(trade.trade_id, trade)

        processed = 0
        for chunk_no, chunk in enumerate(self.chunks(trades), start=1):
            for trade in chunk:
                invoice = synthesize_invoice(trade)
                results[trade.trade_id] = self.engine.reconcile(invoice, lookup)
            processed += len(chunk)
            progress = progress_percent(processed, total)
            logger.info(
                "Chunk %d done: %d/%d trades (%.1f%%)",
                chunk_no,
                processed,
                total,
                progress,
                extra={"chunk": chunk_no, "progress": progress},
            )
            if on_progress is not None:
                on_progress(progress)
            yield processed

    def _finish(
        self,
        ctx: RunContext,
        trades: list[TradeRecord],
        results: dict[str, ReconciliationResult],
        processed: int,
        cancelled: bool,
        on_progress: Optional[ProgressCallback],
    ) -> BatchRunResult:
        if not trades and on_progress is not None:
            on_progress(100.0)
        if cancelled:
            logger.info("Batch reconciliation cancelled after %d/%d trades", processed, len(trades))
        else:
            logger.info(
                "Batch reconciliation finished: %d results in %.1fms",
                len(results),
                ctx.elapsed_ms,
            )
        return BatchRunResult(
            run_id=ctx.run_id,
            results=MappingProxyType(results),
            total=len(trades),
            processed=processed,
            cancelled=cancelled,
        )
