"""
Command line entry point.

Usage:
    python -m jewel_ledger quote invoice.json
    python -m jewel_ledger init-schema
    python -m jewel_ledger recalculate LEDGER_ID
"""
from __future__ import annotations
import argparse
import json
import sys
from pathlib import Path
from typing import Optional
from loguru import logger

from .billing import BillingService
from .config import JewelLedgerConfig
from .exceptions import JewelLedgerError, VoucherValidationError
from .stores import InMemoryLedgerStore, PostgresLedgerStore
from .types import to_record


def configure_logging(config: JewelLedgerConfig, verbose: bool = False):
    """Replace loguru's default sink with the configured level and optional file."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else config.log_level)
    if config.log_file:
        logger.add(config.log_file, level="DEBUG", rotation="10 MB")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jewel_ledger",
        description="Jewel Ledger - jewellery billing and metal balance engine",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    quote = sub.add_parser("quote", help="Price a billing form saved as JSON")
    quote.add_argument("file", type=Path, help="Path to the billing form JSON")

    sub.add_parser("init-schema", help="Create the ledger tables in PostgreSQL")

    recalc = sub.add_parser("recalculate", help="Rebuild a ledger's balances from its vouchers")
    recalc.add_argument("ledger_id", help="Ledger to recalculate")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = JewelLedgerConfig.from_env()
    configure_logging(config, args.verbose)

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Config error: {error}")
        return 1

    try:
        if args.command == "quote":
            form = json.loads(args.file.read_text(encoding="utf-8"))
            service = BillingService(InMemoryLedgerStore(), config)
            print(json.dumps(to_record(service.quote(form)), indent=2, ensure_ascii=False))
            return 0

        with PostgresLedgerStore(config) as store:
            if args.command == "init-schema":
                store.initialize_schema()
                print("Schema initialized successfully")
                return 0

            result = BillingService(store, config).recalculate_balance(args.ledger_id)
            print(f"Ledger {result.ledger_id}: {len(result.rows)} vouchers replayed")
            print(f"  before: {json.dumps(to_record(result.previous))}")
            print(f"  after:  {json.dumps(to_record(result.balances))}")
            for stale in result.stale_snapshots:
                print(f"  stale snapshot on voucher {stale.voucher_id} ({stale.voucher_date})")
            return 0

    except VoucherValidationError as e:
        for field_name, message in e.errors.items():
            logger.error(f"{field_name}: {message}")
        return 1
    except JewelLedgerError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    except (OSError, ValueError) as e:
        logger.error(f"Could not read input: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
