from stockcli.core.orders.models import (
    ContractSpec,
    OrderAction,
    OrderKind,
    OrderTicket,
)

__all__ = [
    "ContractSpec",
    "OrderAction",
    "OrderKind",
    "OrderTicket",
]
