"""Conversion of timeclock entries into transactions.

A clock-in (``i``) and the following clock-out (``o`` or ``O``) make
one cleared transaction on the clock-in day. It has a single posting
to the account named in the clock-in comment, for the hours worked. A
session running past midnight is cut into one transaction per day. A
session still open at the end of the log is closed at the reference
time.
"""

from datetime import datetime, timedelta, time
from decimal import Decimal
import logging

from plainledger.amount import Amount, MixedAmount, CommodityStyle
from plainledger.errors import TimeLogError
from plainledger.journal import Journal, Transaction, Posting, \
    TimeLogEntry, CLOCK_IN, CLOCK_OUT, CLOCK_FINAL_OUT

logger = logging.getLogger(__name__)

HOURS = CommodityStyle("h", "right", False, 1, False)

def hours(quantity: Decimal) -> Amount:
    return Amount(quantity, HOURS)

def _error(message: str, entry: TimeLogEntry) -> TimeLogError:
    position = entry.span.start if entry.span else None
    return TimeLogError(message, position)

def transaction_from_in_out(i: TimeLogEntry, o: TimeLogEntry) -> Transaction:
    if o.datetime < i.datetime:
        raise _error("Clock-out time earlier than clock-in time.", o)
    delta = o.datetime - i.datetime
    seconds = Decimal(delta.days * 86400 + delta.seconds)
    quantity = (seconds / 3600).quantize(Decimal("0.01"))
    description = f"{i.datetime:%H:%M}-{o.datetime:%H:%M}"
    account = i.comment or "unknown"
    t = Transaction(i.datetime.date(),
                    [Posting(account, MixedAmount((hours(quantity),)))],
                    description, status="*")
    t.span = i.span
    return t

def _split_at_midnight(i: TimeLogEntry, o: TimeLogEntry) \
    -> tuple[TimeLogEntry, TimeLogEntry]:
    """Clock out at the end of the clock-in day and back in the next day."""
    day = i.datetime.date()
    o2 = TimeLogEntry(o.code, datetime.combine(day, time(23, 59, 59)))
    o2.span = o.span
    i2 = TimeLogEntry(i.code,
                      datetime.combine(day + timedelta(days=1), time(0, 0)),
                      i.comment)
    i2.span = i.span
    return (o2, i2)

def transactions_from_time_log(entries: list[TimeLogEntry],
                               now: datetime) -> list[Transaction]:
    clock = [e for e in entries
             if e.code in (CLOCK_IN, CLOCK_OUT, CLOCK_FINAL_OUT)]
    result = []
    k = 0
    while k < len(clock):
        i = clock[k]
        if i.code != CLOCK_IN:
            raise _error("Clock-out without a clock-in.", i)
        if k + 1 < len(clock):
            o = clock[k + 1]
            if o.code == CLOCK_IN:
                raise _error("Clock-in while already clocked in.", o)
        else:
            o = TimeLogEntry(CLOCK_OUT, max(now, i.datetime))
            o.span = i.span
            clock.append(o)
        if o.datetime.date() > i.datetime.date():
            o2, i2 = _split_at_midnight(i, o)
            result.append(transaction_from_in_out(i, o2))
            clock[k] = i2
            continue
        result.append(transaction_from_in_out(i, o))
        k += 2
    return result

def convert_time_log(journal: Journal, now: datetime) -> Journal:
    """Turn the journal's clock-in/out entries into transactions."""
    entries = list(journal.time_log_entries)
    clock_codes = (CLOCK_IN, CLOCK_OUT, CLOCK_FINAL_OUT)
    if not any(e.code in clock_codes for e in entries):
        return journal
    txns = transactions_from_time_log(entries, now)
    logger.info(f"Converted {len(entries)} timelog entries into "
                f"{len(txns)} transactions.")
    return journal._replace(
        transactions=journal.transactions + tuple(txns),
        time_log_entries=tuple(e for e in entries
                               if e.code not in clock_codes))
