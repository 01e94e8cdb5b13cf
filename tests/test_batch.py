"""Trade Billing Reconciliation — Batch runner tests."""

import asyncio

import pytest

from src.reconciliation.batch import BatchReconciliationRunner, progress_percent
from src.reconciliation.config import ReconciliationConfig, ReconciliationStatus
from src.reconciliation.matcher import ReconciliationEngine
from src.reconciliation.trades import EquityTrade, FxTrade


def _make_trades(n: int, prefix: str = "T") -> list:
    trades = []
    for i in range(n):
        if i % 2:
            trades.append(
                FxTrade(
                    trade_id=f"{prefix}{i:04d}",
                    counterparty="Citibank N.A.",
                    commission_amount=100.0 + i,
                    custody_fee=10.0,
                )
            )
        else:
            trades.append(
                EquityTrade(
                    trade_id=f"{prefix}{i:04d}",
                    counterparty="Barclays Capital",
                    commission=50.0 + i,
                    taxes=5.0,
                )
            )
    return trades


class TestProgress:
    def test_percent(self):
        assert progress_percent(0, 10) == 0.0
        assert progress_percent(5, 10) == 50.0
        assert progress_percent(10, 10) == 100.0
        assert progress_percent(12, 10) == 100.0

    def test_empty_total(self):
        assert progress_percent(0, 0) == 100.0


class TestBatchRunner:
    def setup_method(self):
        self.runner = BatchReconciliationRunner()
        self.progress = []

    def test_completeness(self):
        trades = _make_trades(120)
        run = self.runner.run(trades, on_progress=self.progress.append)
        assert len(run) == 120
        assert set(run.results) == {t.trade_id for t in trades}
        assert run.processed == 120
        assert run.cancelled is False
        assert run.progress == 100.0
        assert self.progress[-1] == 100.0

    def test_progress_per_chunk(self):
        self.runner.run(_make_trades(120), on_progress=self.progress.append)
        assert self.progress == [pytest.approx(50 / 120 * 100), pytest.approx(100 / 120 * 100), 100.0]

    def test_chunks(self):
        chunks = list(self.runner.chunks(_make_trades(101)))
        assert [len(c) for c in chunks] == [50, 50, 1]

    def test_custom_chunk_size(self):
        runner = BatchReconciliationRunner(config=ReconciliationConfig(chunk_size=10))
        runner.run(_make_trades(25), on_progress=self.progress.append)
        assert self.progress == [40.0, 80.0, 100.0]

    def test_empty(self):
        run = self.runner.run([], on_progress=self.progress.append)
        assert len(run) == 0
        assert run.progress == 100.0
        assert self.progress == [100.0]

    def test_results_match_single_reconcile(self):
        trades = _make_trades(60)
        run = self.runner.run(trades)
        engine = ReconciliationEngine()
        for trade in trades:
            single = engine.compare(trade, _invoice_for(trade))
            assert run.results[trade.trade_id] == single

    def test_every_trade_is_found(self):
        run = self.runner.run(_make_trades(80))
        assert all(r.is_found for r in run.results.values())
        assert all(r.trade_id_match for r in run.results.values())

    def test_disputed_trades_mismatch(self):
        run = self.runner.run(_make_trades(200))
        disputed = [r for r in run.results.values() if r.has_dispute]
        assert disputed
        assert all(r.overall_status == ReconciliationStatus.MISMATCH for r in disputed)

    def test_duplicate_ids_keep_one_entry(self):
        trades = [
            EquityTrade(trade_id="TRD001", counterparty="A", commission=1.0),
            EquityTrade(trade_id="TRD001", counterparty="A", commission=2.0),
        ]
        produced = []

        class RecordingEngine(ReconciliationEngine):
            def reconcile(self, invoice, trades):
                result = super().reconcile(invoice, trades)
                produced.append(result)
                return result

        run = BatchReconciliationRunner(engine=RecordingEngine()).run(trades)
        assert len(run) == 1
        assert run.processed == 2
        assert len(produced) == 2
        assert run.results["TRD001"] is produced[-1]
        assert run.results["TRD001"] is not produced[0]
        # both rows resolve to the first trade in the lookup
        assert run.results["TRD001"].expected_values.fees.commission == 1.0

    def test_results_are_read_only(self):
        run = self.runner.run(_make_trades(3))
        with pytest.raises(TypeError):
            run.results["X"] = None

    def test_cancel_between_chunks(self):
        runner = BatchReconciliationRunner(config=ReconciliationConfig(chunk_size=10))
        run = runner.run(
            _make_trades(35),
            on_progress=self.progress.append,
            should_cancel=lambda: len(self.progress) >= 2,
        )
        assert run.cancelled is True
        assert run.processed == 20
        assert len(run) == 20
        assert run.progress == pytest.approx(20 / 35 * 100)

    def test_cancel_flag_after_last_chunk_is_ignored(self):
        run = self.runner.run(_make_trades(10), should_cancel=lambda: True)
        assert run.cancelled is False
        assert len(run) == 10

    def test_progress_callback_errors_propagate(self):
        def boom(pct):
            raise RuntimeError("ui gone")

        with pytest.raises(RuntimeError):
            self.runner.run(_make_trades(5), on_progress=boom)

    def test_run_ids_differ(self):
        first = self.runner.run(_make_trades(2))
        second = self.runner.run(_make_trades(2))
        assert first.run_id != second.run_id


class TestBatchRunnerAsync:
    def setup_method(self):
        self.runner = BatchReconciliationRunner(config=ReconciliationConfig(chunk_size=10))
        self.progress = []

    def test_run_async(self):
        run = asyncio.run(self.runner.run_async(_make_trades(25), on_progress=self.progress.append))
        assert len(run) == 25
        assert self.progress == [40.0, 80.0, 100.0]

    def test_run_async_matches_sync(self):
        trades = _make_trades(30)
        sync_run = self.runner.run(trades)
        async_run = asyncio.run(self.runner.run_async(trades))
        assert dict(sync_run.results) == dict(async_run.results)

    def test_run_async_cancel(self):
        run = asyncio.run(
            self.runner.run_async(
                _make_trades(35),
                on_progress=self.progress.append,
                should_cancel=lambda: True,
            )
        )
        assert run.cancelled is True
        assert len(run) == 10
        assert self.progress == [pytest.approx(10 / 35 * 100)]

    def test_run_async_empty(self):
        run = asyncio.run(self.runner.run_async([], on_progress=self.progress.append))
        assert len(run) == 0
        assert self.progress == [100.0]


def _invoice_for(trade):
    from src.reconciliation.invoices import synthesize_invoice

    return synthesize_invoice(trade)
