from stockcli.core.executions.models import (
    CommissionReport,
    ExecutionFill,
    ExecutionRecord,
)
from stockcli.core.executions.reconciler import (
    ExecutionTable,
    format_execution_line,
    format_execution_report,
)

__all__ = [
    "CommissionReport",
    "ExecutionFill",
    "ExecutionRecord",
    "ExecutionTable",
    "format_execution_line",
    "format_execution_report",
]
