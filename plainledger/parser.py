"""Parser for ledger journals and timelog files.

The parser reads one line at a time. Lines are told apart by their
first character: a digit starts a transaction, ``=`` a modifier
transaction, ``~`` a periodic transaction, ``P``, ``N``, ``D``, ``C``,
``Y`` and ``!`` start directives, ``;`` a comment, and the timeclock
codes ``b h i o O`` a timelog entry. Indented lines belong to the
transaction above them. A ``*`` or ``!`` leading a posting is always
its status, with or without whitespace before the account name.

Each line produces journal updates (see ``plainledger.journal``). The
parse context (default year, default commodity, open ``!account``
blocks) is an immutable value replaced by the directives that change
it. An included file is parsed by a fresh Parser starting from a copy
of the includer's context; whatever it does to that context stays in
the included file.

The low level ``parse_*`` functions share one calling convention: they
take the line and an index to start at, and return ``(value, end)``. On
no match the value is None and ``end`` is the start index.
"""

from typing import NamedTuple, Iterable, Callable
from datetime import date, datetime, time
from decimal import Decimal
import os
import re
import logging

from plainledger.amount import Amount, MixedAmount, CommodityStyle, \
    no_symbol_style, amount_styles
from plainledger.errors import Position, Span, LedgerError, ParseError, \
    LedgerSyntaxError, MalformedNumber, IllFormedAccountName, \
    InvalidYear, NoDefaultYear, UnbalancedAccountBlock, NoPostings, \
    IncludeCycle, IncludeReadError, IncludeParseError
from plainledger.journal import Posting, Transaction, \
    ModifierTransaction, PeriodicTransaction, HistoricalPrice, \
    TimeLogEntry, CommodityConversion, REGULAR, VIRTUAL, BALANCED_VIRTUAL, \
    CLOCK_IN, AddTransaction, AddModifierTransaction, \
    AddPeriodicTransaction, AddHistoricalPrice, AddTimeLogEntry, \
    IgnorePriceCommodity, SetDefaultCommodity, AddCommodityConversion, \
    ObserveStyles, SetDefaultYear, PushAccount, PopAccount, IncludeBlock
from plainledger import ledger

logger = logging.getLogger(__name__)

ACCOUNT_SEPARATOR = ":"
TIMELOG_CODES = "bhioO"

class ParseContext(NamedTuple):
    year: int | None = None
    # Set by "D", kept for downstream tools. Amounts are not affected.
    commodity: CommodityStyle | None = None
    # Open "!account" prefixes, outermost first, each ending with ":".
    accounts: tuple[str, ...] = ()

    def parent_account(self) -> str:
        return "".join(self.accounts)

def _lexical_error(cls, message: str, column: int) -> ParseError:
    # The caller knows the file and line; Parser.parse_line fills them in.
    e = cls(message)
    e.column = column
    return e

def parse_date(line: str, begin: int = 0) -> tuple[date | None, int]:
    if len(line) <= begin:
        return (None, len(line))
    m = re.compile(r"(\d+)[/.-](\d{1,2})[/.-](\d{1,2})").match(line, begin)
    if not m:
        return (None, begin)
    try:
        x = date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        raise _lexical_error(LedgerSyntaxError,
                             f"Invalid date '{m.group(0)}'.", begin)
    return (x, m.end())

def parse_partial_date(line: str, begin: int = 0) \
    -> tuple[tuple[int, int] | None, int]:
    if len(line) <= begin:
        return (None, len(line))
    m = re.compile(r"(\d{1,2})[/.-](\d{1,2})").match(line, begin)
    if not m:
        return (None, begin)
    return ((int(m.group(1)), int(m.group(2))), m.end())

def parse_time(line: str, begin: int = 0) -> tuple[time | None, int]:
    if len(line) <= begin:
        return (None, len(line))
    m = re.compile(r"(\d{1,2}):(\d{1,2})(?::(\d{1,2}))?").match(line, begin)
    if not m:
        return (None, begin)
    try:
        x = time(int(m.group(1)), int(m.group(2)), int(m.group(3) or 0))
    except ValueError:
        raise _lexical_error(LedgerSyntaxError,
                             f"Invalid time '{m.group(0)}'.", begin)
    return (x, m.end())

def parse_quantity(line: str, begin: int = 0) \
    -> tuple[tuple[Decimal, int, bool] | None, int]:
    """Parse a number such as ``-1,234.50``, ``1.`` or ``.5``.

    Returns ``((value, precision, comma), end)`` where ``precision`` is
    the number of digits after the point and ``comma`` tells whether
    the integer part used thousands separators.
    """
    if len(line) <= begin:
        return (None, len(line))
    if line[begin] not in "-.0123456789":
        return (None, begin)
    m = re.compile(r"(-?)([0-9][0-9,]*)?(?:\.([0-9]*))?").match(line, begin)
    integer = m.group(2) or ""
    frac = m.group(3)
    if not integer and not frac:
        raise _lexical_error(MalformedNumber,
                             "Expected digits in number.", begin)
    comma = "," in integer
    precision = len(frac) if frac else 0
    value = Decimal(m.group(1) + (integer.replace(",", "") or "0") +
                    "." + (frac or "0"))
    if not frac:
        value = value.quantize(Decimal(1))
    return ((value, precision, comma), m.end())

def parse_commodity(line: str, begin: int = 0) -> tuple[str | None, int]:
    if len(line) <= begin:
        return (None, len(line))
    quoted = re.compile(r'"([^"@;\s]+)"')
    unquoted = re.compile(r'[^0-9\-.@;\s"]+')
    m = quoted.match(line, begin)
    if m:
        return (m.group(1), m.end())
    m = unquoted.match(line, begin)
    if m:
        return (m.group(0), m.end())
    return (None, begin)

def parse_hard_space(line: str, begin: int = 0) \
    -> tuple[str | None, int]:
    if len(line) <= begin:
        return (None, len(line))
    m = re.compile(r'[ \t]{2,}|\t').match(line, begin)
    if m:
        return (m.group(0), m.end())
    return (None, begin)

def parse_space(line: str, begin: int = 0) \
    -> tuple[str | None, int]:
    if len(line) <= begin:
        return (None, len(line))
    m = re.compile(r'[ \t]+').match(line, begin)
    if m:
        return (m.group(0), m.end())
    return (None, begin)

def parse_keyword(keyword: str, line: str, begin: int = 0) \
    -> tuple[str | None, int]:
    if len(line) <= begin:
        return (None, len(line))
    m = re.compile(keyword).match(line, begin)
    if m:
        return (m.group(0), m.end())
    return (None, begin)

def parse_comment(line: str, begin: int = 0) \
    -> tuple[str | None, int]:
    if len(line) <= begin:
        return (None, len(line))
    m = re.compile(r";+[ \t]*").match(line, begin)
    if m:
        return (line[m.end():].rstrip(), len(line))
    return (None, begin)

def account_name_components(account: str) -> list[str]:
    return account.split(ACCOUNT_SEPARATOR)

def account_name_from_components(components: list[str]) -> str:
    return ACCOUNT_SEPARATOR.join(c for c in components if c)

def is_virtual_account(account: str) -> bool:
    if len(account) > 1 and ((account[0] == "(" and account[-1] == ")") or
                             (account[0] == "[" and account[-1] == "]")):
        return True
    else:
        return False

def strip_virtual_account(account: str) -> str:
    if is_virtual_account(account):
        return account[1:-1]
    else:
        return account

def posting_type_from_account_name(account: str) -> str:
    if not is_virtual_account(account):
        return REGULAR
    elif account[0] == "[":
        return BALANCED_VIRTUAL
    else:
        return VIRTUAL

def parse_account_name(line: str, begin: int = 0) \
    -> tuple[str | None, int]:
    """Parse an account name, brackets included.

    Names may hold single spaces; two spaces or a tab end them. A name
    whose colon separated components do not join back into the same
    text (an empty component) is rejected.
    """
    if len(line) <= begin:
        return (None, len(line))
    m = re.compile(r'[^\s]([^\s]| (?=[^\s]))*').match(line, begin)
    if not m:
        return (None, begin)
    x = m.group(0)
    if x[0] in "([" and not is_virtual_account(x):
        return (None, begin)
    bare = strip_virtual_account(x)
    if account_name_from_components(account_name_components(bare)) != bare:
        raise _lexical_error(IllFormedAccountName,
                             f"Account name seems ill-formed: {bare}", begin)
    return (x, m.end())

def parse_simple_amount(line: str, begin: int = 0) \
    -> tuple[Amount | None, int]:
    """Parse an amount without a price.

    The symbol may come before the number (``$ 1.00``, ``$-1``) or
    after it (``1,000 EUR``), or be absent. The literal's look becomes
    the amount's CommodityStyle.
    """
    if len(line) <= begin:
        return (None, len(line))

    commodity, consumed = parse_commodity(line, begin)
    if commodity:
        # [commodity] [quantity]
        space, consumed = parse_space(line, consumed)
        quantity, consumed = parse_quantity(line, consumed)
        if not quantity:
            return (None, begin)
        quantity, precision, comma = quantity
        style = CommodityStyle(commodity, "left", bool(space),
                               precision, comma)
        return (Amount(quantity, style), consumed)
    else:
        # [quantity] [commodity]
        quantity, consumed = parse_quantity(line, begin)
        if not quantity:
            return (None, begin)
        quantity, precision, comma = quantity
        space, consumed_x = parse_space(line, consumed)
        commodity, consumed_x = parse_commodity(line, consumed_x)
        if not commodity:
            return (Amount(quantity, no_symbol_style(precision, comma)),
                    consumed)
        style = CommodityStyle(commodity, "right", bool(space),
                               precision, comma)
        return (Amount(quantity, style), consumed_x)

def parse_amount(line: str, begin: int = 0) -> tuple[Amount | None, int]:
    """Parse an amount optionally followed by ``@ PRICE`` or ``@@ TOTAL``."""
    if len(line) <= begin:
        return (None, len(line))
    amount, consumed = parse_simple_amount(line, begin)
    if not amount:
        return (None, begin)
    space, consumed_x = parse_space(line, consumed)
    if consumed_x >= len(line) or line[consumed_x] != "@":
        return (amount, consumed)
    total = line.startswith("@@", consumed_x)
    consumed_x += 2 if total else 1
    space, consumed_x = parse_space(line, consumed_x)
    price, consumed_x = parse_simple_amount(line, consumed_x)
    if not price:
        raise _lexical_error(LedgerSyntaxError, "Expected price.",
                             consumed_x)
    return (Amount(amount.quantity, amount.style, price, total),
            consumed_x)

def read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()

def home_directory() -> str:
    return os.path.expanduser("~")

def expand_path(source: str, filename: str,
                home: Callable[[], str] = home_directory) -> str:
    """Resolve an included ``filename`` against the including ``source``."""
    if filename.startswith("~/"):
        filename = home() + filename[1:]
    return os.path.join(os.path.dirname(source), filename)

class _Block(NamedTuple):
    kind: str
    header: object
    line_number: int
    lines: list

class Parser():
    """Turns the lines of one file into journal updates.

    ``reader`` reads an included file given its path and ``home``
    returns the home directory used to expand ``~/``. Both default to
    the local file system.
    """
    def __init__(self, source: str,
                 context: ParseContext | None = None,
                 reader: Callable[[str], str] = read_text,
                 home: Callable[[], str] = home_directory,
                 including: tuple[str, ...] = ()):
        self.source = source
        self.context = context if context is not None else ParseContext()
        self.updates: list = []
        self._reader = reader
        self._home = home
        self._including = including + (os.path.abspath(source),)
        self._lines: list[str] = []
        self._current_line_number = 0
        self._block: _Block | None = None
        self._comments: list[str] = []

    def _position(self, column: int, line_number: int | None = None) \
        -> Position:
        if line_number is None:
            line_number = self._current_line_number
        return Position(self.source, line_number, column)

    def _create_span(self, begin: int, end: int) -> Span:
        return Span(self._position(begin), self._position(end))

    def _error(self, cls, message: str, line: str,
               column: int) -> ParseError:
        return cls(message, self._position(column), line)

    def _parse_space_or_error(self, message: str,
                              line: str, begin: int) -> tuple[str, int]:
        space, consumed = parse_space(line, begin)
        if not space:
            raise self._error(LedgerSyntaxError, message, line, consumed)
        return (space, consumed)

    def _parse_end_of_line(self, message: str,
                           line: str, begin: int) -> str | None:
        """Allow only blanks and a comment from ``begin`` on."""
        space, consumed = parse_space(line, begin)
        comment, consumed = parse_comment(line, consumed)
        if consumed < len(line):
            raise self._error(LedgerSyntaxError, message, line, consumed)
        return comment

    def _parse_date(self, line: str, begin: int,
                    year: int | None = None) -> tuple[date, int]:
        """Parse a full or partial date, or fail."""
        d, consumed = parse_date(line, begin)
        if d:
            return (d, consumed)
        md, consumed = parse_partial_date(line, begin)
        if not md:
            raise self._error(LedgerSyntaxError,
                              "Expected full or partial date.", line, begin)
        if year is None:
            year = self.context.year
        if year is None:
            raise self._error(
                NoDefaultYear,
                "Partial date found, but no default year specified.",
                line, begin)
        try:
            return (date(year, md[0], md[1]), consumed)
        except ValueError:
            raise self._error(LedgerSyntaxError, "Invalid date.",
                              line, begin)

    def _parse_datetime(self, line: str, begin: int) \
        -> tuple[datetime, int]:
        d, consumed = self._parse_date(line, begin)
        space, consumed = self._parse_space_or_error(
            "Expected time after date.", line, consumed)
        t, consumed = parse_time(line, consumed)
        if not t:
            raise self._error(LedgerSyntaxError, "Expected time.",
                              line, consumed)
        return (datetime.combine(d, t), consumed)

    def _parse_amount_or_error(self, message: str,
                               line: str, begin: int) -> tuple[Amount, int]:
        amount, consumed = parse_amount(line, begin)
        if not amount:
            raise self._error(LedgerSyntaxError, message, line, begin)
        return (amount, consumed)

    def _observe(self, *amounts) -> None:
        styles = []
        for a in amounts:
            styles.extend(amount_styles(a))
        if styles:
            self.updates.append(ObserveStyles(tuple(styles)))

    # Directives.

    def _finish_parse_price(self, line: str) -> None:
        P, consumed = parse_keyword("P", line)
        assert P
        space, consumed = parse_space(line, consumed)
        d, consumed = self._parse_date(line, consumed)
        # A time of day may follow the date; it is ignored.
        space, consumed_x = parse_space(line, consumed)
        t, consumed_x = parse_time(line, consumed_x)
        if t:
            consumed = consumed_x
        space, consumed = self._parse_space_or_error(
            "Price declaration not well formed.", line, consumed)
        commodity, consumed = parse_commodity(line, consumed)
        if not commodity:
            raise self._error(LedgerSyntaxError, "Expected commodity symbol.",
                              line, consumed)
        space, consumed = parse_space(line, consumed)
        price, consumed = self._parse_amount_or_error(
            "Expected price amount.", line, consumed)
        self._parse_end_of_line("Price declaration not well formed.",
                                line, consumed)
        p = HistoricalPrice(d, commodity, price)
        p.span = self._create_span(0, len(line) - 1)
        self._observe(price)
        self.updates.append(AddHistoricalPrice(p))

    def _finish_parse_ignored_price_commodity(self, line: str) -> None:
        N, consumed = parse_keyword("N", line)
        assert N
        space, consumed = self._parse_space_or_error(
            "Expected space after N.", line, consumed)
        commodity, consumed = parse_commodity(line, consumed)
        if not commodity:
            raise self._error(LedgerSyntaxError, "Expected commodity symbol.",
                              line, consumed)
        self._parse_end_of_line("Ignored price commodity not well formed.",
                                line, consumed)
        self.updates.append(IgnorePriceCommodity(commodity))

    def _finish_parse_default_commodity(self, line: str) -> None:
        D, consumed = parse_keyword("D", line)
        assert D
        space, consumed = self._parse_space_or_error(
            "Expected space after D.", line, consumed)
        amount, consumed = self._parse_amount_or_error(
            "Expected amount.", line, consumed)
        self._parse_end_of_line("Default commodity not well formed.",
                                line, consumed)
        self.context = self.context._replace(commodity=amount.style)
        self._observe(amount)
        self.updates.append(SetDefaultCommodity(amount.style))

    def _finish_parse_commodity_conversion(self, line: str) -> None:
        C, consumed = parse_keyword("C", line)
        assert C
        space, consumed = self._parse_space_or_error(
            "Expected space after C.", line, consumed)
        source, consumed = self._parse_amount_or_error(
            "Expected amount.", line, consumed)
        space, consumed = parse_space(line, consumed)
        equal, consumed = parse_keyword("=", line, consumed)
        if not equal:
            raise self._error(LedgerSyntaxError, "Expected '='.",
                              line, consumed)
        space, consumed = parse_space(line, consumed)
        target, consumed = self._parse_amount_or_error(
            "Expected amount.", line, consumed)
        self._parse_end_of_line("Commodity conversion not well formed.",
                                line, consumed)
        self._observe(source, target)
        self.updates.append(
            AddCommodityConversion(CommodityConversion(source, target)))

    def _finish_parse_default_year(self, line: str) -> None:
        Y, consumed = parse_keyword("Y", line)
        assert Y
        space, consumed = parse_space(line, consumed)
        year, consumed_x = parse_keyword(r"\d+", line, consumed)
        if not year:
            raise self._error(LedgerSyntaxError, "Expected year.",
                              line, consumed)
        if int(year) < 1000:
            raise self._error(InvalidYear, f"Invalid year {year}.",
                              line, consumed)
        self._parse_end_of_line("Default year not well formed.",
                                line, consumed_x)
        self.context = self.context._replace(year=int(year))
        self.updates.append(SetDefaultYear(int(year)))

    def _finish_parse_tag(self, line: str) -> None:
        if line.startswith("end tag"):
            return None
        tag, consumed = parse_keyword("tag", line)
        assert tag
        space, consumed = self._parse_space_or_error(
            "Tag directive not well formed.", line, consumed)
        if consumed >= len(line):
            raise self._error(LedgerSyntaxError, "Expected tag name.",
                              line, consumed)

    def _finish_parse_exclamation_directive(self, line: str) -> None:
        directive, consumed = parse_keyword(r"![^\s]*", line)
        assert directive
        if directive == "!include":
            self._finish_parse_include(line, consumed)
        elif directive == "!account":
            space, consumed = self._parse_space_or_error(
                "Expected account name.", line, consumed)
            account, consumed_x = parse_account_name(line, consumed)
            if not account:
                raise self._error(LedgerSyntaxError, "Expected account name.",
                                  line, consumed)
            self._parse_end_of_line("Account directive not well formed.",
                                    line, consumed_x)
            self.context = self.context._replace(
                accounts=self.context.accounts + (account + ACCOUNT_SEPARATOR,))
            self.updates.append(PushAccount(account))
        elif directive == "!end":
            self._parse_end_of_line("End directive not well formed.",
                                    line, consumed)
            if not self.context.accounts:
                raise self._error(
                    UnbalancedAccountBlock,
                    "End of account block with no beginning.", line, 0)
            self.context = self.context._replace(
                accounts=self.context.accounts[:-1])
            self.updates.append(PopAccount())
        else:
            raise self._error(LedgerSyntaxError,
                              f"Unknown directive '{directive}'.", line, 0)

    def _finish_parse_include(self, line: str, begin: int) -> None:
        space, consumed = self._parse_space_or_error(
            "Expected file name.", line, begin)
        filename = line[consumed:].strip()
        if not filename:
            raise self._error(LedgerSyntaxError, "Expected file name.",
                              line, consumed)
        position = self._position(0)
        path = expand_path(self.source, filename, self._home)
        if os.path.abspath(path) in self._including:
            raise self._error(IncludeCycle,
                              f"File {filename!r} includes itself.", line, 0)
        logger.debug(f"Including {path!r} from {position}.")
        try:
            text = self._reader(path)
        except (OSError, UnicodeDecodeError) as e:
            raise IncludeReadError(filename, position, line, e) from e
        p = Parser(path, self.context, self._reader, self._home,
                   self._including)
        try:
            p.parse_text(text)
            p.finish()
        except LedgerError as e:
            raise IncludeParseError(filename, position, line, e) from e
        self.updates.append(IncludeBlock(path, tuple(p.updates)))

    def _finish_parse_timelog_entry(self, line: str) -> None:
        code = line[0]
        space, consumed = self._parse_space_or_error(
            "Timelog entry not well formed.", line, 1)
        dt, consumed = self._parse_datetime(line, consumed)
        comment = ""
        space, consumed = parse_space(line, consumed)
        if consumed < len(line):
            if not space:
                raise self._error(LedgerSyntaxError,
                                  "Timelog entry not well formed.",
                                  line, consumed)
            bare = line[consumed:]
            if code == CLOCK_IN and account_name_from_components(
                    account_name_components(bare)) != bare:
                raise self._error(IllFormedAccountName,
                                  f"Account name seems ill-formed: {bare}",
                                  line, consumed)
            comment = self.context.parent_account() + bare
        e = TimeLogEntry(code, dt, comment)
        e.span = self._create_span(0, len(line) - 1)
        self.updates.append(AddTimeLogEntry(e))

    # Transactions.

    def _parse_status(self, line: str, begin: int) \
        -> tuple[str | None, int]:
        space, consumed = parse_space(line, begin)
        if space and consumed < len(line) and line[consumed] in "*!":
            return (line[consumed], consumed + 1)
        return (None, begin)

    def _parse_code(self, line: str, begin: int) -> tuple[str | None, int]:
        space, consumed = parse_space(line, begin)
        if not space or consumed >= len(line) or line[consumed] != "(":
            return (None, begin)
        end = line.find(")", consumed)
        if end == -1:
            return (None, begin)
        return (line[consumed + 1:end], end + 1)

    def _finish_parse_transaction_start(self, line: str) -> Transaction:
        d, consumed = self._parse_date(line, 0)
        edate = None
        if consumed < len(line) and line[consumed] == "=":
            # A partial effective date takes its year from the date.
            edate, consumed = self._parse_date(line, consumed + 1, d.year)
        status, consumed = self._parse_status(line, consumed)
        code, consumed = self._parse_code(line, consumed)
        space, consumed = parse_space(line, consumed)
        description = ""
        if space:
            end = line.find(";", consumed)
            if end == -1:
                end = len(line)
            description = line[consumed:end].rstrip()
            consumed = end
        comment, consumed = parse_comment(line, consumed)
        if consumed < len(line):
            raise self._error(LedgerSyntaxError,
                              "Transaction header not well formed.",
                              line, consumed)
        t = Transaction(d, (), description, status, code or "",
                        comment or "", edate, tuple(self._comments))
        t.span = self._create_span(0, len(line) - 1)
        return t

    def _parse_posting(self, line: str, line_number: int) -> Posting:
        def error(cls, message, column):
            return cls(message, self._position(column, line_number), line)

        space, consumed = parse_space(line, 0)
        assert space
        status = None
        if consumed < len(line) and line[consumed] in "*!":
            status = line[consumed]
            space, consumed = parse_space(line, consumed + 1)
        account, consumed_x = parse_account_name(line, consumed)
        if not account:
            raise error(LedgerSyntaxError,
                        "Posting (account) not well formed.", consumed)
        posting_type = posting_type_from_account_name(account)
        account = (self.context.parent_account() +
                   strip_virtual_account(account))
        amount = MixedAmount.missing()
        space, consumed = parse_space(line, consumed_x)
        comment, consumed = parse_comment(line, consumed)
        if consumed < len(line):
            space, consumed = parse_hard_space(line, consumed_x)
            if not space:
                raise error(LedgerSyntaxError,
                            "Posting not well formed.", consumed)
            x, consumed = parse_amount(line, consumed)
            if not x:
                raise error(LedgerSyntaxError,
                            "Posting amount not well formed.", consumed)
            amount = MixedAmount((x,))
            space, consumed = parse_space(line, consumed)
            comment, consumed = parse_comment(line, consumed)
            if consumed < len(line):
                raise error(LedgerSyntaxError,
                            "Posting not well formed.", consumed)
        p = Posting(account, amount, status, comment or "", posting_type)
        p.span = Span(self._position(0, line_number),
                      self._position(len(line) - 1, line_number))
        return p

    def _parse_postings(self, block: _Block) -> list[Posting]:
        postings = []
        for line_number, line in block.lines:
            space, consumed = parse_space(line, 0)
            comment, consumed = parse_comment(line, consumed)
            if comment is not None:
                continue
            try:
                postings.append(self._parse_posting(line, line_number))
            except ParseError as e:
                if e.position is not None:
                    raise
                raise e.__class__(
                    e.message,
                    self._position(getattr(e, "column", 0), line_number),
                    line) from None
        if not postings:
            raise NoPostings(
                "Transaction has no postings.",
                self._position(0, block.line_number),
                self._lines[block.line_number - 1])
        return postings

    def _finish_block(self) -> None:
        block = self._block
        if block is None:
            return None
        self._block = None
        postings = self._parse_postings(block)
        self._observe(*[p.amount for p in postings])
        if block.kind == "transaction":
            t = block.header.with_postings(postings)
            t = ledger.balance_transaction(t, self._lines)
            self.updates.append(AddTransaction(t))
        elif block.kind == "modifier":
            t = ModifierTransaction(block.header, postings)
            t.span = Span(self._position(0, block.line_number),
                          self._position(0, block.line_number))
            self.updates.append(AddModifierTransaction(t))
        else:
            t = PeriodicTransaction(block.header, postings)
            t.span = Span(self._position(0, block.line_number),
                          self._position(0, block.line_number))
            self.updates.append(AddPeriodicTransaction(t))

    def _dispatch(self, line: str) -> None:
        first = line[0]
        if first.isdigit():
            t = self._finish_parse_transaction_start(line)
            self._comments = []
            self._block = _Block("transaction", t,
                                 self._current_line_number, [])
            return None
        if first == ";":
            comment, _ = parse_comment(line, 0)
            self._comments.append(comment)
            return None
        self._comments = []
        if first in "=~":
            expr = line[1:].strip()
            kind = "modifier" if first == "=" else "periodic"
            self._block = _Block(kind, expr, self._current_line_number, [])
        elif first == "P":
            self._finish_parse_price(line)
        elif first == "N":
            self._finish_parse_ignored_price_commodity(line)
        elif first == "D":
            self._finish_parse_default_commodity(line)
        elif first == "C":
            self._finish_parse_commodity_conversion(line)
        elif first == "Y":
            self._finish_parse_default_year(line)
        elif first == "!":
            self._finish_parse_exclamation_directive(line)
        elif re.match(r"tag\s|end tag\b", line):
            self._finish_parse_tag(line)
        elif first in TIMELOG_CODES and len(line) > 1 and line[1] in " \t":
            self._finish_parse_timelog_entry(line)
        else:
            raise self._error(LedgerSyntaxError, "Unable to parse line.",
                              line, 0)

    def parse_line(self, line: str) -> None:
        self._current_line_number += 1
        line = line.rstrip()
        self._lines.append(line)

        try:
            if not line:
                self._finish_block()
                self._comments = []
            elif line[0] in " \t":
                if self._block is not None:
                    self._block.lines.append((self._current_line_number, line))
                    return None
                space, consumed = parse_space(line, 0)
                comment, consumed = parse_comment(line, consumed)
                if comment is None:
                    raise self._error(LedgerSyntaxError, "Unexpected indent.",
                                      line, 0)
            else:
                self._finish_block()
                self._dispatch(line)
        except ParseError as e:
            if e.position is not None:
                raise
            raise e.__class__(
                e.message, self._position(getattr(e, "column", 0)),
                line) from None

    def parse_lines(self, lines: Iterable[str]) -> None:
        for i in lines:
            self.parse_line(i)

    def parse_text(self, text: str) -> None:
        self.parse_lines(text.splitlines())

    def finish(self) -> list:
        """Close the last open block and return the updates."""
        self._finish_block()
        return self.updates
