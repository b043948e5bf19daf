from stockcli.core.accounts.models import AccountConfig
from stockcli.core.accounts.session import AccountSession

__all__ = ["AccountConfig", "AccountSession"]
