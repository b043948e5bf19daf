from __future__ import annotations

from datetime import datetime
from typing import Optional

from stockcli.core.executions.models import (
    CommissionReport,
    ExecutionFill,
    ExecutionRecord,
)

# Records still waiting for their fill half sort ahead of everything else.
_NO_FILL_TIME = datetime.min


class ExecutionTable:
    """Per-account join of fill and commission halves keyed by execution id."""

    def __init__(self) -> None:
        self._records: dict[str, ExecutionRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def get(self, exec_id: str) -> Optional[ExecutionRecord]:
        return self._records.get(exec_id)

    def upsert_fill(self, fill: ExecutionFill) -> ExecutionRecord:
        record = self._get_or_create(fill.exec_id)
        record.fill = fill
        return record

    def upsert_commission(self, report: CommissionReport) -> ExecutionRecord:
        record = self._get_or_create(report.exec_id)
        record.commission = report
        return record

    def clear(self) -> None:
        self._records.clear()

    def reconcile(self) -> list[ExecutionRecord]:
        """Return every known record ordered by fill time, then cumulative quantity.

        Several partial fills can share a second-resolution timestamp; the
        cumulative quantity restores their fill sequence.
        """
        return sorted(self._records.values(), key=_sort_key)

    def _get_or_create(self, exec_id: str) -> ExecutionRecord:
        record = self._records.get(exec_id)
        if record is None:
            record = ExecutionRecord(exec_id=exec_id)
            self._records[exec_id] = record
        return record


def _sort_key(record: ExecutionRecord) -> tuple[datetime, float]:
    fill = record.fill
    if fill is None:
        return _NO_FILL_TIME, 0.0
    return _naive(fill.time), fill.cum_qty


def _naive(value: datetime) -> datetime:
    # Aware times are compared and printed in local wall-clock time.
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def format_execution_line(label: str, record: ExecutionRecord) -> str:
    fill = record.fill
    commission = record.commission.commission if record.commission else 0.0
    if fill is None:
        return (
            f"{label}: --:--:-- {'':>4} {'':<7} {'':<3} {0:4d} {0.0:7.2f} "
            f"{0:4d} {0.0:7.2f} {commission:6.2f} {record.exec_id}"
        )
    return (
        f"{label}: {_naive(fill.time).strftime('%H:%M:%S')} {fill.order_id:4d} "
        f"{fill.symbol:<7} {fill.side} {int(fill.shares):4d} {fill.price:7.2f} "
        f"{int(fill.cum_qty):4d} {fill.avg_price:7.2f} {commission:6.2f} {fill.exchange}"
    )


def format_execution_report(label: str, table: ExecutionTable) -> list[str]:
    return [format_execution_line(label, record) for record in table.reconcile()]
