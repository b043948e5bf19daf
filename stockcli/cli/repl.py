from __future__ import annotations

import asyncio
import shlex
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence

try:
    import readline
except ImportError:
    readline = None

from stockcli.cli.accounts import AccountHandle
from stockcli.core.modes import ModeFlags

CommandHandler = Callable[[list[str]], Awaitable[None]]
AccountAction = Callable[[AccountHandle], None]

# Fixed bracket presets: (take-profit offset, stop offset) from the buy price.
_BRACKET_PRESETS = {
    "brkp1": (0.20, 0.05),
    "brkp2": (0.11, 0.05),
}


@dataclass(frozen=True)
class CommandSpec:
    name: str
    handler: CommandHandler
    help: str
    usage: str
    aliases: tuple[str, ...] = ()
    # Order-style commands repeated verbatim are dropped while dedupe is on.
    dedupe: bool = False


class REPL:
    def __init__(
        self,
        accounts: Sequence[AccountHandle],
        modes: Optional[ModeFlags] = None,
        *,
        input_func: Callable[[str], str] = input,
    ) -> None:
        self._accounts = list(accounts)
        self._modes = modes or ModeFlags()
        self._input = input_func
        self._selected: Optional[str] = None
        self._last_line = ""
        self._commands: dict[str, CommandSpec] = {}
        self._aliases: dict[str, str] = {}
        self._should_exit = False
        self._completion_matches: list[str] = []
        self._register_commands()
        self._setup_readline()

    @property
    def prompt(self) -> str:
        if self._selected:
            return f"{self._selected} > "
        return "> "

    @property
    def selected(self) -> Optional[str]:
        return self._selected

    @property
    def modes(self) -> ModeFlags:
        return self._modes

    async def run(self) -> None:
        print("stockcli (type 'help' to list commands).")
        while not self._should_exit:
            try:
                line = await asyncio.to_thread(self._input, self.prompt)
            except EOFError:
                print()
                break
            await self.execute(line)

    async def execute(self, line: str) -> None:
        line = line.strip()
        if not line:
            return
        cmd_name, args = self._parse_line(line)
        if cmd_name is None:
            return
        spec = self._resolve_command(cmd_name)
        if not spec:
            print(f"Unknown command: {cmd_name}. Type 'help' to list commands.")
            return
        if spec.dedupe:
            if self._modes.dedupe_last_command and line == self._last_line:
                return
            self._last_line = line
        else:
            self._last_line = ""
        try:
            await spec.handler(args)
        except Exception as exc:
            print(f"Error: {exc}")

    def _register_commands(self) -> None:
        self._register(
            CommandSpec(
                name="help",
                handler=self._cmd_help,
                help="Show available commands or help for a command.",
                usage="help [command]",
                aliases=("?",),
            )
        )
        self._register(
            CommandSpec(
                name="accounts",
                handler=self._cmd_accounts,
                help="List configured accounts.",
                usage="accounts",
            )
        )
        self._register(
            CommandSpec(
                name="select",
                handler=self._cmd_select,
                help="Select the account commands apply to.",
                usage="select <label|all>",
            )
        )
        self._register(
            CommandSpec(
                name="summary",
                handler=self._cmd_summary,
                help="Request the account summary.",
                usage="summary",
            )
        )
        self._register(
            CommandSpec(
                name="open",
                handler=self._cmd_open,
                help="Request open orders.",
                usage="open",
            )
        )
        self._register(
            CommandSpec(
                name="positions",
                handler=self._cmd_positions,
                help="Request positions.",
                usage="positions",
            )
        )
        self._register(
            CommandSpec(
                name="updates",
                handler=self._cmd_updates,
                help="Subscribe to account value and portfolio updates.",
                usage="updates",
            )
        )
        self._register(
            CommandSpec(
                name="noupdates",
                handler=self._cmd_noupdates,
                help="Stop account updates.",
                usage="noupdates",
            )
        )
        self._register(
            CommandSpec(
                name="elog",
                handler=self._cmd_elog,
                help="Request today's executions and print them with commissions.",
                usage="elog",
            )
        )
        self._register_order("buy-m", self._cmd_buy_market, "Market buy.", "buy-m <symbol> <quantity>")
        self._register_order("buy-l", self._cmd_buy_limit, "Limit buy.", "buy-l <symbol> <quantity> <limitprice>")
        self._register_order("buy-t", self._cmd_buy_trail, "Trailing stop buy.", "buy-t <symbol> <quantity> <trailamount>")
        self._register_order(
            "buy-tl",
            self._cmd_buy_trail_limit,
            "Trailing stop-limit buy.",
            "buy-tl <symbol> <quantity> <stopprice> <trailamount> <limitoffset>",
        )
        self._register_order(
            "buy-if",
            self._cmd_buy_trail_if_touched,
            "Trailing market-if-touched buy.",
            "buy-if <symbol> <quantity> <trailamount>",
        )
        self._register_order("sell-m", self._cmd_sell_market, "Market sell.", "sell-m <symbol> <quantity>")
        self._register_order("sell-l", self._cmd_sell_limit, "Limit sell.", "sell-l <symbol> <quantity> <limitprice>")
        self._register_order("sell-t", self._cmd_sell_trail, "Trailing stop sell.", "sell-t <symbol> <quantity> <trailamount>")
        self._register_order(
            "sell-tl",
            self._cmd_sell_trail_limit,
            "Trailing stop-limit sell.",
            "sell-tl <symbol> <quantity> <stopprice> <trailamount> <limitoffset>",
        )
        self._register_order("stop-m", self._cmd_stop_market, "Stop market sell.", "stop-m <symbol> <quantity> <stopprice>")
        self._register_order(
            "bracket",
            self._cmd_bracket,
            "Limit buy with take-profit and stop-loss children.",
            "bracket <symbol> <quantity> <buyprice> <sellprice> <stopprice>",
        )
        self._register_order(
            "brka",
            self._cmd_bracket_offsets,
            "Bracket with take-profit and stop given as offsets from the buy price.",
            "brka <symbol> <quantity> <buyprice> <selloff> <stopoff>",
        )
        self._register_order(
            "brkp1",
            self._cmd_bracket_preset,
            "Bracket preset: sell = buy + 0.20, stop = buy - 0.05.",
            "brkp1 <symbol> <quantity> <buyprice>",
        )
        self._register_order(
            "brkp2",
            self._cmd_bracket_preset,
            "Bracket preset: sell = buy + 0.11, stop = buy - 0.05.",
            "brkp2 <symbol> <quantity> <buyprice>",
        )
        self._register_order(
            "realtimebar",
            self._cmd_realtimebar,
            "Subscribe to 5-second realtime bars.",
            "realtimebar <symbol>",
        )
        self._register(
            CommandSpec(
                name="cancel",
                handler=self._cmd_cancel,
                help="Cancel one order by id, or every order.",
                usage="cancel <orderid|all>",
            )
        )
        self._register(
            CommandSpec(
                name="cancelall",
                handler=self._cmd_cancel_all,
                help="Cancel every open order.",
                usage="cancelall",
            )
        )
        self._register_toggle("override", "update_override", "Show every account-value key.")
        self._register_toggle("rth", "outside_rth", "Let new orders fill outside regular trading hours.")
        self._register_toggle("gtc", "gtc", "New orders are good-till-cancelled instead of day orders.")
        self._register_toggle(
            "acct-cancel",
            "auto_cancel",
            "Cancel summary/update subscriptions once their snapshot ends.",
        )
        self._register_toggle("dedupe", "dedupe_last_command", "Ignore an order command repeated verbatim.")
        self._register(
            CommandSpec(
                name="quit",
                handler=self._cmd_quit,
                help="Exit the CLI.",
                usage="quit",
                aliases=("exit", "q"),
            )
        )

    def _register(self, spec: CommandSpec) -> None:
        self._commands[spec.name] = spec
        for alias in spec.aliases:
            self._aliases[alias] = spec.name

    def _register_order(self, name: str, handler: Callable[[str, list[str]], Awaitable[None]], help_text: str, usage: str) -> None:
        async def _handler(args: list[str]) -> None:
            await handler(name, args)

        self._register(CommandSpec(name=name, handler=_handler, help=help_text, usage=usage, dedupe=True))

    def _register_toggle(self, name: str, attr: str, help_text: str) -> None:
        async def _handler(args: list[str]) -> None:
            if len(args) != 1:
                print(f"{name} status {getattr(self._modes, attr)}")
                return
            setattr(self._modes, attr, args[0].lower() == "on")
            print(f"{name} status {getattr(self._modes, attr)}")

        self._register(CommandSpec(name=name, handler=_handler, help=help_text, usage=f"{name} [on|off]"))

    def _setup_readline(self) -> None:
        if readline is None:
            return
        readline.set_completer(self._complete)
        readline.parse_and_bind("tab: complete")

    def _complete(self, text: str, state: int) -> Optional[str]:
        if readline is None:
            return None
        if state == 0:
            self._completion_matches = self._completion_matches_for(readline.get_line_buffer(), text)
        if state < len(self._completion_matches):
            return self._completion_matches[state]
        return None

    def _completion_matches_for(self, line: str, text: str) -> list[str]:
        parts = line.split()
        if not parts or (len(parts) == 1 and not line.endswith(" ")):
            return _match_prefix(text, self._command_names())
        spec = self._resolve_command(parts[0].lower())
        if spec is None:
            return []
        if spec.name == "help":
            return _match_prefix(text, self._command_names())
        if spec.name == "select":
            return _match_prefix(text, [handle.label for handle in self._accounts] + ["all"])
        if spec.usage.endswith("[on|off]"):
            return _match_prefix(text, ["on", "off"])
        return []

    def _command_names(self) -> list[str]:
        return sorted(set(self._commands) | set(self._aliases))

    def _resolve_command(self, name: str) -> Optional[CommandSpec]:
        if name in self._commands:
            return self._commands[name]
        target = self._aliases.get(name)
        if target:
            return self._commands.get(target)
        return None

    def _parse_line(self, line: str) -> tuple[Optional[str], list[str]]:
        try:
            tokens = shlex.split(line)
        except ValueError as exc:
            print(f"Parse error: {exc}")
            return None, []
        if not tokens:
            return None, []
        return tokens[0].lower(), tokens[1:]

    def _apply(self, action: AccountAction, *, broadcast: bool) -> int:
        """Run ``action`` on the selected account, or on all of them when broadcasting."""
        if not broadcast and self._selected is None:
            print("Must select an account to buy/sell")
            return 0
        applied = 0
        for handle in self._accounts:
            if self._selected is None or handle.label == self._selected:
                action(handle)
                applied += 1
        return applied

    def _usage(self, name: str) -> None:
        print(f"Usage: {self._commands[name].usage}")

    async def _cmd_help(self, args: list[str]) -> None:
        if args:
            name = args[0].lower()
            spec = self._resolve_command(name)
            if not spec:
                print(f"No such command: {name}")
                return
            print(f"{spec.name}: {spec.help}")
            print(f"Usage: {spec.usage}")
            return

        specs = sorted(self._commands.values(), key=lambda s: s.name)
        for spec in specs:
            print(f"{spec.name:<12} {spec.help}")

    async def _cmd_accounts(self, _args: list[str]) -> None:
        if not self._accounts:
            print("No accounts configured.")
            return
        for handle in self._accounts:
            marker = "*" if handle.label == self._selected else " "
            mode = "paper" if handle.session.paper else "live"
            print(f"{marker} {handle.label:<12} {mode:<5} next_id={handle.session.peek_request_id}")

    async def _cmd_select(self, args: list[str]) -> None:
        if len(args) != 1:
            self._usage("select")
            return
        target = args[0]
        if target == "all":
            self._selected = None
            return
        for handle in self._accounts:
            if handle.label == target:
                self._selected = handle.label
                return
        print(f"No such account: {target}")

    async def _cmd_summary(self, _args: list[str]) -> None:
        self._apply(lambda handle: handle.reports.account_summary(), broadcast=True)

    async def _cmd_open(self, _args: list[str]) -> None:
        self._apply(lambda handle: handle.reports.open_orders(), broadcast=True)

    async def _cmd_positions(self, _args: list[str]) -> None:
        self._apply(lambda handle: handle.reports.positions(), broadcast=True)

    async def _cmd_updates(self, _args: list[str]) -> None:
        self._apply(lambda handle: handle.reports.account_updates(True), broadcast=True)

    async def _cmd_noupdates(self, _args: list[str]) -> None:
        self._apply(lambda handle: handle.reports.account_updates(False), broadcast=True)

    async def _cmd_elog(self, _args: list[str]) -> None:
        self._apply(lambda handle: handle.reports.executions(), broadcast=True)

    async def _cmd_buy_market(self, name: str, args: list[str]) -> None:
        if len(args) != 2:
            self._usage(name)
            return
        symbol, qty = args[0], parse_quantity(args[1])
        self._apply(lambda h: h.orders.buy(symbol, qty, market=True), broadcast=False)

    async def _cmd_buy_limit(self, name: str, args: list[str]) -> None:
        if len(args) != 3:
            self._usage(name)
            return
        symbol, qty, price = args[0], parse_quantity(args[1]), parse_price(args[2])
        self._apply(lambda h: h.orders.buy(symbol, qty, market=False, price=price), broadcast=False)

    async def _cmd_buy_trail(self, name: str, args: list[str]) -> None:
        if len(args) != 3:
            self._usage(name)
            return
        symbol, qty, trail = args[0], parse_quantity(args[1]), parse_price(args[2])
        self._apply(lambda h: h.orders.buy_trail(symbol, qty, trail), broadcast=False)

    async def _cmd_buy_trail_limit(self, name: str, args: list[str]) -> None:
        if len(args) != 5:
            self._usage(name)
            return
        symbol, qty = args[0], parse_quantity(args[1])
        stop, trail, offset = (parse_price(value) for value in args[2:5])
        self._apply(lambda h: h.orders.buy_trail_limit(symbol, qty, trail, stop, offset), broadcast=False)

    async def _cmd_buy_trail_if_touched(self, name: str, args: list[str]) -> None:
        if len(args) != 3:
            self._usage(name)
            return
        symbol, qty, trail = args[0], parse_quantity(args[1]), parse_price(args[2])
        self._apply(lambda h: h.orders.buy_trail_if_touched(symbol, qty, trail), broadcast=False)

    async def _cmd_sell_market(self, name: str, args: list[str]) -> None:
        if len(args) != 2:
            self._usage(name)
            return
        symbol, qty = args[0], parse_quantity(args[1])
        self._apply(lambda h: h.orders.sell(symbol, qty, market=True), broadcast=False)

    async def _cmd_sell_limit(self, name: str, args: list[str]) -> None:
        if len(args) != 3:
            self._usage(name)
            return
        symbol, qty, price = args[0], parse_quantity(args[1]), parse_price(args[2])
        self._apply(lambda h: h.orders.sell(symbol, qty, market=False, price=price), broadcast=False)

    async def _cmd_sell_trail(self, name: str, args: list[str]) -> None:
        if len(args) != 3:
            self._usage(name)
            return
        symbol, qty, trail = args[0], parse_quantity(args[1]), parse_price(args[2])
        self._apply(lambda h: h.orders.sell_trail(symbol, qty, trail), broadcast=False)

    async def _cmd_sell_trail_limit(self, name: str, args: list[str]) -> None:
        if len(args) != 5:
            self._usage(name)
            return
        symbol, qty = args[0], parse_quantity(args[1])
        stop, trail, offset = (parse_price(value) for value in args[2:5])
        self._apply(lambda h: h.orders.sell_trail_limit(symbol, qty, trail, stop, offset), broadcast=False)

    async def _cmd_stop_market(self, name: str, args: list[str]) -> None:
        if len(args) != 3:
            self._usage(name)
            return
        symbol, qty, stop = args[0], parse_quantity(args[1]), parse_price(args[2])
        self._apply(lambda h: h.orders.stop_market(symbol, qty, stop), broadcast=False)

    async def _cmd_bracket(self, name: str, args: list[str]) -> None:
        if len(args) != 5:
            self._usage(name)
            return
        symbol, qty = args[0], parse_quantity(args[1])
        buy, sell, stop = (parse_price(value) for value in args[2:5])
        self._apply(lambda h: h.orders.bracket(symbol, qty, buy, sell, stop), broadcast=False)

    async def _cmd_bracket_offsets(self, name: str, args: list[str]) -> None:
        if len(args) != 5:
            self._usage(name)
            return
        symbol, qty = args[0], parse_quantity(args[1])
        buy, sell_offset, stop_offset = (parse_price(value) for value in args[2:5])
        self._apply(
            lambda h: h.orders.bracket(symbol, qty, buy, buy + sell_offset, buy - stop_offset),
            broadcast=False,
        )

    async def _cmd_bracket_preset(self, name: str, args: list[str]) -> None:
        if len(args) != 3:
            self._usage(name)
            return
        sell_offset, stop_offset = _BRACKET_PRESETS[name]
        symbol, qty, buy = args[0], parse_quantity(args[1]), parse_price(args[2])
        self._apply(
            lambda h: h.orders.bracket(symbol, qty, buy, buy + sell_offset, buy - stop_offset),
            broadcast=False,
        )

    async def _cmd_realtimebar(self, name: str, args: list[str]) -> None:
        if len(args) != 1:
            self._usage(name)
            return
        symbol = args[0]
        self._apply(lambda h: h.orders.request_realtime_bars(symbol), broadcast=False)

    async def _cmd_cancel(self, args: list[str]) -> None:
        if len(args) != 1:
            self._usage("cancel")
            return
        if args[0] == "all":
            self._apply(lambda h: h.orders.cancel_all(), broadcast=True)
            return
        order_id = parse_quantity(args[0])
        self._apply(lambda h: h.orders.cancel(order_id), broadcast=True)

    async def _cmd_cancel_all(self, _args: list[str]) -> None:
        self._apply(lambda h: h.orders.cancel_all(), broadcast=True)

    async def _cmd_quit(self, _args: list[str]) -> None:
        self._should_exit = True


def parse_quantity(value: str) -> int:
    """Parse a non-negative integer argument; anything unparsable becomes 0."""
    try:
        parsed = int(value)
    except ValueError:
        return 0
    return parsed if parsed >= 0 else 0


def parse_price(value: str) -> float:
    """Parse a float argument; anything unparsable becomes 0.0."""
    try:
        return float(value)
    except ValueError:
        return 0.0


def _match_prefix(text: str, options: list[str]) -> list[str]:
    if not options:
        return []
    if not text:
        return sorted(set(options))
    return sorted({option for option in options if option.startswith(text)})
