#! /usr/bin/env python3

import argparse
import datetime
import logging
import sys

from plainledger.amount import Amount, no_symbol_style
from plainledger.errors import LedgerError
from plainledger.ledger import Account, apply_journal
from plainledger.printing import amount2str
from plainledger.util import parse_file

logger = logging.getLogger(__name__)

def parse_args(argv=None):
    argparser = argparse.ArgumentParser(
        description="Check that a journal parses and balances.")
    argparser.add_argument("database", type=str,
                           nargs="?",
                           default="database.ledger",
                           help="database file, '-' for standard input")
    argparser.add_argument("--now", type=datetime.datetime.fromisoformat,
                           default=None,
                           help="reference time closing open clock-ins")
    argparser.add_argument("--real", action="store_true",
                           default=False,
                           help="Show real transactions only")
    argparser.add_argument("--log-file", type=str,
                           default="",
                           help="log file")
    return argparser.parse_args(argv)

def summarize(journal, real: bool = False) -> list[str]:
    root = Account("root")
    apply_journal(journal, root, real)
    lines = []
    for child in root.sorted_children():
        account = root[child]
        for commodity in account.sorted_commodities():
            style = journal.commodity_style(commodity)
            if style is None:
                style = no_symbol_style()
            a = Amount(account.balance[commodity], style)
            lines.append(amount2str(a, journal.commodity_style).rjust(20) +
                         "  " + child)
    lines.append(f"{len(journal.transactions)} transactions, "
                 f"{len(journal.historical_prices)} prices, "
                 f"{len(journal.files)} files")
    return lines

def main(argv=None):
    args = parse_args(argv)
    if args.log_file:
        logging.basicConfig(filename=args.log_file,
                            filemode="w",
                            format='[%(name)s:%(levelname)s] %(message)s',
                            datefmt='%m/%d/%Y %I:%M:%S %p',
                            level=logging.INFO)
    try:
        journal = parse_file(args.database, args.now)
    except LedgerError as e:
        logger.info(f"Rejected {args.database!r}.")
        print(e.render(), file=sys.stderr)
        return 1
    except (OSError, UnicodeDecodeError) as e:
        print(f"Unable to read {args.database!r}: {e}", file=sys.stderr)
        return 1
    for line in summarize(journal, args.real):
        print(line)
    return 0

if __name__ == "__main__":
    sys.exit(main())
