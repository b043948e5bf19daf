from __future__ import annotations

from dataclasses import dataclass, fields


@dataclass
class ModeFlags:
    """Operator-togglable switches shared by the command layer and every worker.

    auto_cancel: cancel account-summary / account-update subscriptions once
        the engine reports the end of the snapshot.
    update_override: show every USD account-value key instead of the short list.
    outside_rth: new orders may fill outside regular trading hours.
    gtc: new orders default to good-till-cancelled instead of day orders.
    dedupe_last_command: ignore an order command repeated verbatim.
    """

    auto_cancel: bool = True
    update_override: bool = False
    outside_rth: bool = True
    gtc: bool = True
    dedupe_last_command: bool = True

    @property
    def tif(self) -> str:
        return "GTC" if self.gtc else "DAY"

    def as_dict(self) -> dict[str, bool]:
        return {field.name: getattr(self, field.name) for field in fields(self)}
