from __future__ import annotations

from datetime import datetime, timedelta, timezone

from stockcli.core.executions.models import CommissionReport, ExecutionFill
from stockcli.core.executions.reconciler import (
    ExecutionTable,
    format_execution_line,
    format_execution_report,
)


def _fill(exec_id: str, *, time: datetime, cum_qty: float, shares: float = 100.0) -> ExecutionFill:
    return ExecutionFill(
        exec_id=exec_id,
        order_id=31,
        symbol="NVDA",
        time=time,
        side="SLD",
        shares=shares,
        price=480.25,
        cum_qty=cum_qty,
        avg_price=480.25,
        exchange="ARCA",
    )


def _commission(exec_id: str, amount: float) -> CommissionReport:
    return CommissionReport(exec_id=exec_id, commission=amount, currency="USD")


def test_fill_and_commission_join_regardless_of_arrival_order() -> None:
    first = ExecutionTable()
    first.upsert_fill(_fill("e1", time=datetime(2024, 1, 2, 9, 31), cum_qty=100))
    first.upsert_commission(_commission("e1", 1.0))

    second = ExecutionTable()
    second.upsert_commission(_commission("e1", 1.0))
    second.upsert_fill(_fill("e1", time=datetime(2024, 1, 2, 9, 31), cum_qty=100))

    assert len(first) == len(second) == 1
    assert first.get("e1") == second.get("e1")
    assert first.get("e1").complete


def test_repeated_upserts_replace_the_same_half() -> None:
    table = ExecutionTable()
    table.upsert_commission(_commission("e1", 1.0))
    table.upsert_commission(_commission("e1", 2.5))

    assert len(table) == 1
    assert table.get("e1").commission.commission == 2.5
    assert not table.get("e1").complete


def test_reconcile_orders_by_time_then_cumulative_quantity() -> None:
    table = ExecutionTable()
    same_second = datetime(2024, 1, 2, 9, 31, 5)
    table.upsert_fill(_fill("late", time=same_second + timedelta(seconds=1), cum_qty=50))
    table.upsert_fill(_fill("b", time=same_second, cum_qty=300))
    table.upsert_fill(_fill("a", time=same_second, cum_qty=100))
    table.upsert_commission(_commission("orphan", 0.35))

    ordered = [record.exec_id for record in table.reconcile()]

    assert ordered == ["orphan", "a", "b", "late"]


def test_reconcile_handles_mixed_naive_and_aware_times() -> None:
    table = ExecutionTable()
    table.upsert_fill(_fill("aware", time=datetime(2024, 1, 2, 12, 0, tzinfo=timezone.utc), cum_qty=10))
    table.upsert_fill(_fill("naive", time=datetime(2024, 1, 1, 12, 0), cum_qty=10))

    assert [record.exec_id for record in table.reconcile()] == ["naive", "aware"]


def test_clear_empties_the_table() -> None:
    table = ExecutionTable()
    table.upsert_fill(_fill("e1", time=datetime(2024, 1, 2, 9, 31), cum_qty=100))

    table.clear()

    assert len(table) == 0
    assert table.reconcile() == []
    assert format_execution_report("Acct1", table) == []


def test_line_without_commission_reports_zero() -> None:
    table = ExecutionTable()
    record = table.upsert_fill(_fill("e1", time=datetime(2024, 1, 2, 9, 31, 7), cum_qty=100))

    line = format_execution_line("Acct1", record)

    assert line == "Acct1: 09:31:07   31 NVDA    SLD  100  480.25  100  480.25   0.00 ARCA"


def test_line_without_fill_still_prints_commission() -> None:
    table = ExecutionTable()
    record = table.upsert_commission(_commission("e9", 0.7))

    line = format_execution_line("Acct1", record)

    assert line.startswith("Acct1: --:--:--")
    assert "  0.70 e9" in line


def test_line_prints_aware_fill_time_in_local_wall_clock() -> None:
    table = ExecutionTable()
    fill_time = datetime(2024, 1, 2, 15, 0, 0, tzinfo=timezone.utc)
    record = table.upsert_fill(_fill("e1", time=fill_time, cum_qty=100))

    line = format_execution_line("Acct1", record)

    assert line.startswith(f"Acct1: {fill_time.astimezone().strftime('%H:%M:%S')}   31 NVDA")
