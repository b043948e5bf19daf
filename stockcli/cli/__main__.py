from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import Optional

from dotenv import load_dotenv
from loguru import logger

from stockcli.adapters.config.accounts_file import AppConfig, ConfigError
from stockcli.adapters.logging.jsonl_logger import JsonlEventJournal
from stockcli.adapters.logging.setup import configure_logging
from stockcli.cli.accounts import AccountHandle
from stockcli.cli.repl import REPL
from stockcli.core.accounts.session import AccountSession
from stockcli.core.dispatch.classifier import EventClassifier
from stockcli.core.dispatch.worker import AccountEventStream, AccountWorker, FatalSessionError
from stockcli.core.modes import ModeFlags


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="stockcli", description="Interactive IB trading console.")
    parser.add_argument("--config", help="JSON account list (default: $STOCKCLI_CONFIG or config.json)")
    parser.add_argument("--log-file", help="Also write log lines to this file")
    return parser.parse_args(argv)


async def _async_main(config: AppConfig) -> int:
    # Imported here so the rest of the CLI loads without the IB client installed.
    from stockcli.adapters.broker.ibkr_engine import IBKREngine, IBKREngineOptions

    modes = ModeFlags()
    options = IBKREngineOptions.from_env()
    journal = JsonlEventJournal(config.event_log_path) if config.event_log_path else None

    engines: list[IBKREngine] = []
    handles: list[AccountHandle] = []
    workers: list[AccountWorker] = []
    for account in config.accounts:
        logger.info("SETUP: {} paper={}", account.label, account.paper)
        session = AccountSession.from_config(account)
        stream = AccountEventStream()
        engine = IBKREngine(account, stream, options=options)
        engines.append(engine)
        handles.append(AccountHandle.build(session, engine, modes))
        workers.append(
            AccountWorker(
                EventClassifier(session, engine, modes),
                stream,
                event_tap=journal.tap(account.label) if journal else None,
            )
        )

    for engine in engines:
        await engine.connect()

    repl = REPL(handles, modes)
    configure_logging(prompt=lambda: repl.prompt, log_path=config.log_path)

    worker_tasks = [asyncio.create_task(worker.run(), name=f"worker:{worker.label}") for worker in workers]
    repl_task = asyncio.create_task(repl.run(), name="repl")
    done, _pending = await asyncio.wait(
        {repl_task, *worker_tasks},
        return_when=asyncio.FIRST_COMPLETED,
    )
    for engine in engines:
        engine.stop()
    results = await asyncio.gather(*worker_tasks, return_exceptions=True)
    for result in results:
        if isinstance(result, FatalSessionError):
            # The input thread is still blocked in input(); leave without joining it.
            _abort(str(result))
    if repl_task not in done:
        _abort("session ended")
    return 0


def _abort(message: str) -> None:
    logger.critical(message)
    logger.complete()
    sys.stdout.flush()
    os._exit(1)


def main(argv: Optional[list[str]] = None) -> None:
    load_dotenv()
    args = _parse_args(argv)
    try:
        config = AppConfig.from_env(args.config)
    except ConfigError as exc:
        configure_logging()
        logger.critical("ERROR loading initial config {}", exc)
        sys.exit(1)
    if args.log_file:
        config = AppConfig(
            accounts=config.accounts,
            log_path=args.log_file,
            event_log_path=config.event_log_path,
        )
    configure_logging(log_path=config.log_path)

    try:
        code = asyncio.run(_async_main(config))
    except (ConnectionError, OSError, TimeoutError, asyncio.TimeoutError) as exc:
        logger.critical("error creating engine: {}: {}", type(exc).__name__, exc)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
