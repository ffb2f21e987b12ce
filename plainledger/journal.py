"""Journal records and the fold that assembles them.

Parsing a file does not build a Journal directly. Every line yields a
journal update, a small tagged record saying what the line contributes
(a transaction, a price, a nested block of updates from an included
file...). ``apply_updates`` then folds the updates, in file order, into
a Journal. Updates that only change the parse context (default year,
``!account`` blocks) took effect while parsing and leave the journal
untouched here.
"""

from typing import NamedTuple, Iterable, Iterator, Mapping
from types import MappingProxyType
from datetime import date, datetime
import logging

from plainledger.amount import Amount, MixedAmount, CommodityStyle, \
    Entity, merge_style

logger = logging.getLogger(__name__)

REGULAR = "regular"
VIRTUAL = "virtual"
BALANCED_VIRTUAL = "balanced virtual"

class Posting(Entity):
    def __init__(self, account: str, amount: MixedAmount,
                 status: str | None = None, comment: str = "",
                 type: str = REGULAR, price: Amount | None = None):
        super().__init__()
        self.status = status
        self.account = account
        self.amount = amount
        self.comment = comment
        self.type = type
        # Historical price reference, filled in by downstream tooling.
        self.price = price
    def with_amount(self, amount: MixedAmount) -> "Posting":
        p = Posting(self.account, amount, self.status, self.comment,
                    self.type, self.price)
        p.span = self.span
        return p
    def is_real(self) -> bool:
        return self.type == REGULAR
    def __eq__(self, other):
        if not isinstance(other, Posting):
            return NotImplemented
        return (self.status == other.status and
                self.account == other.account and
                self.amount == other.amount and
                self.comment == other.comment and
                self.type == other.type and
                self.price == other.price)
    def __hash__(self):
        return hash((self.account, self.amount, self.type))
    def __repr__(self):
        return f"Posting({self.account!r}, {self.amount!r}, {self.type!r})"

class TiedPosting(NamedTuple):
    transaction: "Transaction"
    index: int
    posting: Posting

class Transaction(Entity):
    def __init__(self, date: date, postings: Iterable[Posting] = (),
                 description: str = "", status: str | None = None,
                 code: str = "", comment: str = "",
                 effective_date: date | None = None,
                 preceding_comments: tuple[str, ...] = ()):
        super().__init__()
        self.date = date
        self.effective_date = effective_date
        self.status = status
        self.code = code
        self.description = description
        self.comment = comment
        self.postings: tuple[Posting, ...] = tuple(postings)
        self.preceding_comments = preceding_comments
    def with_postings(self, postings: Iterable[Posting]) -> "Transaction":
        t = Transaction(self.date, postings, self.description, self.status,
                        self.code, self.comment, self.effective_date,
                        self.preceding_comments)
        t.span = self.span
        return t
    def tied_postings(self) -> list[TiedPosting]:
        return [TiedPosting(self, i, self.postings[i])
                for i in range(len(self.postings))]
    def __eq__(self, other):
        if not isinstance(other, Transaction):
            return NotImplemented
        return (self.date == other.date and
                self.effective_date == other.effective_date and
                self.status == other.status and
                self.code == other.code and
                self.description == other.description and
                self.comment == other.comment and
                self.postings == other.postings)
    def __hash__(self):
        return hash((self.date, self.description, self.postings))
    def __repr__(self):
        return (f"Transaction({self.date}, {self.description!r}, "
                f"{list(self.postings)})")

class ModifierTransaction(Entity):
    def __init__(self, value_expr: str, postings: Iterable[Posting]):
        super().__init__()
        self.value_expr = value_expr
        self.postings: tuple[Posting, ...] = tuple(postings)

class PeriodicTransaction(Entity):
    def __init__(self, period_expr: str, postings: Iterable[Posting]):
        super().__init__()
        self.period_expr = period_expr
        self.postings: tuple[Posting, ...] = tuple(postings)

class HistoricalPrice(Entity):
    def __init__(self, date: date, commodity: str, price: Amount):
        super().__init__()
        self.date = date
        self.commodity = commodity
        self.price = price
    def __eq__(self, other):
        if not isinstance(other, HistoricalPrice):
            return NotImplemented
        return (self.date == other.date and
                self.commodity == other.commodity and
                self.price == other.price)
    def __hash__(self):
        return hash((self.date, self.commodity, self.price))
    def __repr__(self):
        return f"HistoricalPrice({self.date}, {self.commodity!r}, {self.price})"

# Time log codes.
CLOCK_BALANCE = "b"
CLOCK_HOURS = "h"
CLOCK_IN = "i"
CLOCK_OUT = "o"
CLOCK_FINAL_OUT = "O"

class TimeLogEntry(Entity):
    def __init__(self, code: str, datetime: datetime, comment: str = ""):
        super().__init__()
        self.code = code
        self.datetime = datetime
        self.comment = comment
    def __repr__(self):
        return f"TimeLogEntry({self.code!r}, {self.datetime}, {self.comment!r})"

class CommodityConversion(NamedTuple):
    source: Amount
    target: Amount

# Journal updates.

class AddTransaction(NamedTuple):
    transaction: Transaction

class AddModifierTransaction(NamedTuple):
    transaction: ModifierTransaction

class AddPeriodicTransaction(NamedTuple):
    transaction: PeriodicTransaction

class AddHistoricalPrice(NamedTuple):
    price: HistoricalPrice

class AddTimeLogEntry(NamedTuple):
    entry: TimeLogEntry

class IgnorePriceCommodity(NamedTuple):
    commodity: str

class SetDefaultCommodity(NamedTuple):
    style: CommodityStyle

class AddCommodityConversion(NamedTuple):
    conversion: CommodityConversion

class ObserveStyles(NamedTuple):
    styles: tuple[CommodityStyle, ...]

class SetDefaultYear(NamedTuple):
    year: int

class PushAccount(NamedTuple):
    account: str

class PopAccount(NamedTuple):
    pass

class IncludeBlock(NamedTuple):
    path: str
    updates: tuple

class Journal(NamedTuple):
    source: str = ""
    files: tuple[str, ...] = ()
    transactions: tuple[Transaction, ...] = ()
    modifier_transactions: tuple[ModifierTransaction, ...] = ()
    periodic_transactions: tuple[PeriodicTransaction, ...] = ()
    historical_prices: Mapping[tuple[str, date], HistoricalPrice] = \
        MappingProxyType({})
    time_log_entries: tuple[TimeLogEntry, ...] = ()
    commodity_styles: Mapping[str, CommodityStyle] = MappingProxyType({})
    ignored_price_commodities: frozenset[str] = frozenset()
    default_commodity: CommodityStyle | None = None
    commodity_conversions: tuple[CommodityConversion, ...] = ()

    def commodity_style(self, commodity: str) -> CommodityStyle | None:
        return self.commodity_styles.get(commodity)

    def postings(self) -> Iterator[TiedPosting]:
        for txn in self.transactions:
            yield from txn.tied_postings()

    def accounts(self) -> list[str]:
        return sorted(set(p.posting.account for p in self.postings()))

def empty_journal(source: str = "") -> Journal:
    return Journal(source=source, files=(source,) if source else ())

class _Accumulator():
    """Mutable scratch copy of a Journal used while folding updates."""

    def __init__(self, journal: Journal):
        self.journal = journal
        self.files = list(journal.files)
        self.transactions = list(journal.transactions)
        self.modifier_transactions = list(journal.modifier_transactions)
        self.periodic_transactions = list(journal.periodic_transactions)
        self.historical_prices = dict(journal.historical_prices)
        self.time_log_entries = list(journal.time_log_entries)
        self.commodity_styles = dict(journal.commodity_styles)
        self.ignored = set(journal.ignored_price_commodities)
        self.default_commodity = journal.default_commodity
        self.conversions = list(journal.commodity_conversions)

    def apply(self, update) -> None:
        if isinstance(update, AddTransaction):
            self.transactions.append(update.transaction)
        elif isinstance(update, AddModifierTransaction):
            self.modifier_transactions.append(update.transaction)
        elif isinstance(update, AddPeriodicTransaction):
            self.periodic_transactions.append(update.transaction)
        elif isinstance(update, AddHistoricalPrice):
            p = update.price
            self.historical_prices[(p.commodity, p.date)] = p
        elif isinstance(update, AddTimeLogEntry):
            self.time_log_entries.append(update.entry)
        elif isinstance(update, IgnorePriceCommodity):
            self.ignored.add(update.commodity)
        elif isinstance(update, SetDefaultCommodity):
            self.default_commodity = update.style
        elif isinstance(update, AddCommodityConversion):
            self.conversions.append(update.conversion)
        elif isinstance(update, ObserveStyles):
            for style in update.styles:
                merge_style(self.commodity_styles, style)
        elif isinstance(update, IncludeBlock):
            self.files.append(update.path)
            for u in update.updates:
                self.apply(u)
        elif isinstance(update, (SetDefaultYear, PushAccount, PopAccount)):
            pass
        else:
            raise TypeError(f"Unsupported journal update {type(update)}.")

    def freeze(self) -> Journal:
        return self.journal._replace(
            files=tuple(self.files),
            transactions=tuple(self.transactions),
            modifier_transactions=tuple(self.modifier_transactions),
            periodic_transactions=tuple(self.periodic_transactions),
            historical_prices=MappingProxyType(self.historical_prices),
            time_log_entries=tuple(self.time_log_entries),
            commodity_styles=MappingProxyType(self.commodity_styles),
            ignored_price_commodities=frozenset(self.ignored),
            default_commodity=self.default_commodity,
            commodity_conversions=tuple(self.conversions))

def apply_updates(journal: Journal, updates: Iterable) -> Journal:
    """Fold ``updates`` into ``journal`` in order, returning a new Journal."""
    acc = _Accumulator(journal)
    for u in updates:
        acc.apply(u)
    result = acc.freeze()
    logger.info(f"Assembled journal {result.source!r}: "
                f"{len(result.transactions)} transactions, "
                f"{len(result.historical_prices)} prices, "
                f"{len(result.files)} files.")
    return result
