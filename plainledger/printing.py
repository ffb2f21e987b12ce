from decimal import Decimal
from datetime import date
from typing import Callable

from plainledger.amount import Amount, MixedAmount, CommodityStyle
from plainledger.journal import VIRTUAL, BALANCED_VIRTUAL

StyleFunction = Callable[[str], CommodityStyle | None]

# https://docs.python.org/3/library/decimal.html#decimal.getcontext
def moneyfmt(value, places=2, sep=',', dp='.', neg='-'):
    """Convert Decimal to a money formatted string.

    places:  required number of places after the decimal point
    sep:     optional grouping separator (comma, period, space, or blank)
    dp:      decimal point indicator (comma or period)
             only specify as blank when places is zero
    neg:     sign for negative numbers

    >>> d = Decimal('-1234567.8901')
    >>> moneyfmt(d)
    '-1,234,567.89'
    >>> moneyfmt(d, places=0, sep='')
    '-1234568'
    >>> moneyfmt(Decimal(123456789), sep=' ')
    '123 456 789.00'

    """
    q = Decimal(10) ** -places      # 2 places --> '0.01'
    sign, digits, exp = value.quantize(q).as_tuple()
    result = []
    digits = list(map(str, digits))
    build, next = result.append, digits.pop
    for i in range(places):
        build(next() if digits else '0')
    if places:
        build(dp)
    if not digits:
        build('0')
    i = 0
    while digits:
        build(next())
        i += 1
        if i == 3 and digits:
            i = 0
            build(sep)
    build(neg if sign else '')
    return ''.join(reversed(result))

def commodity2str(commodity: str) -> str:
    # Local import, the parser itself formats amounts in its errors.
    from plainledger import parser
    if not commodity:
        return commodity
    p, consumed = parser.parse_commodity(commodity)
    if p == commodity and consumed == len(commodity):
        return commodity
    return f'"{commodity}"'

def date2str(d: date) -> str:
    return d.strftime('%Y/%m/%d')

def _precision_for(amount: Amount, style: CommodityStyle) -> int:
    x = amount.quantity.quantize(Decimal(10) ** -style.precision)
    if amount.quantity == x:
        return style.precision
    return -amount.quantity.as_tuple().exponent

def amount2str(amount: Amount,
               style_function: StyleFunction | None = None) -> str:
    """Render ``amount`` in its commodity's display style.

    ``style_function`` maps a symbol to the canonical style of the
    journal; when it has nothing for the symbol the amount's own style
    is used. Digits are never dropped: a quantity more precise than the
    style is shown with all its digits.
    """
    style = None
    if style_function is not None:
        style = style_function(amount.commodity)
    if style is None:
        style = amount.style
    precision = _precision_for(amount, style)
    sep = "," if style.comma else ""
    number = moneyfmt(amount.quantity, places=precision, sep=sep)
    symbol = commodity2str(amount.commodity)
    space = " " if style.spaced and symbol else ""
    if style.side == "left":
        s = symbol + space + number
    else:
        s = number + space + symbol
    if amount.price is not None:
        op = " @@ " if amount.price_is_total else " @ "
        s += op + amount2str(amount.price, style_function)
    return s

def mixed2str(amount: MixedAmount,
              style_function: StyleFunction | None = None) -> str:
    if amount.is_missing:
        return ""
    if len(amount) == 0:
        return "0"
    return ", ".join(amount2str(a, style_function) for a in amount)

def account2str(posting) -> str:
    if posting.type == VIRTUAL:
        return "(" + posting.account + ")"
    if posting.type == BALANCED_VIRTUAL:
        return "[" + posting.account + "]"
    return posting.account

def transaction2str(txn, style_function: StyleFunction | None = None,
                    elide: bool = False) -> str:
    """Serialise ``txn`` back into journal syntax.

    Postings built by the parser hold one commodity at most, so the
    output parses back to an equal transaction. A posting holding more
    than one commodity is written as one line per commodity. With
    ``elide`` the amount of the last posting is left out when the
    transaction has exactly two postings.
    """
    alignment_column = 50
    indent = "    "
    hard_space = "  "
    lines = []
    line = date2str(txn.date)
    if txn.effective_date:
        line += "=" + date2str(txn.effective_date)
    if txn.status:
        line += " " + txn.status
    if txn.code:
        line += " (" + txn.code + ")"
    if txn.description:
        line += " " + txn.description
    if txn.comment:
        line += ("  ; " if txn.description else " ; ") + txn.comment
    lines.append(line)
    postings = txn.postings
    for i in range(len(postings)):
        p = postings[i]
        head = indent
        if p.status:
            head += p.status + " "
        head += account2str(p)
        amounts = list(p.amount)
        if elide and len(postings) == 2 and i == 1:
            amounts = []
        if not amounts:
            line = head
            if p.comment:
                line += hard_space + "; " + p.comment
            lines.append(line)
            continue
        for j in range(len(amounts)):
            a = amount2str(amounts[j], style_function)
            line = head + hard_space
            line += a.rjust(max(alignment_column - len(line), len(a)))
            if p.comment and j == len(amounts) - 1:
                line += "  ; " + p.comment
            lines.append(line)
    return "\n".join(lines) + "\n"
