from typing import NamedTuple, Union, Iterator
from decimal import Decimal

from plainledger.errors import Span

class CommodityStyle(NamedTuple):
    symbol: str
    side: str
    spaced: bool
    precision: int
    comma: bool

def no_symbol_style(precision: int = 0, comma: bool = False) \
    -> CommodityStyle:
    # Always left and unspaced, whatever the literal looked like.
    return CommodityStyle("", "left", False, precision, comma)

class Entity():
    def __init__(self, span: Span | None = None):
        self.span: Span | None = span

class Amount(Entity):
    def __init__(self, quantity: Decimal, style: CommodityStyle,
                 price: Union["Amount", None] = None,
                 price_is_total: bool = False):
        super().__init__()
        if not isinstance(quantity, Decimal):
            raise TypeError(f"Incorrect type: {type(quantity)}.")
        if price is not None and price.price is not None:
            raise ValueError("A price may not carry a price of its own.")
        self._quantity = quantity
        self._style = style
        # Conversion cost given with "@" (per unit) or "@@" (total).
        self._price = price
        self._price_is_total = price_is_total and price is not None
    @property
    def quantity(self):
        return self._quantity
    @property
    def style(self):
        return self._style
    @property
    def commodity(self):
        return self._style.symbol
    @property
    def price(self):
        return self._price
    @property
    def price_is_total(self):
        return self._price_is_total
    def without_price(self) -> "Amount":
        return Amount(self._quantity, self._style)
    def __neg__(self):
        return Amount(-self._quantity, self._style,
                      self._price, self._price_is_total)
    def __hash__(self):
        return hash((self._quantity, self.commodity, self._price))
    def __eq__(self, other):
        if not isinstance(other, Amount):
            return NotImplemented
        return (self.quantity == other.quantity and
                self.commodity == other.commodity and
                self.price == other.price and
                self.price_is_total == other.price_is_total)
    def __repr__(self):
        return f"Amount({self.quantity}, {self.commodity!r}, {self.price})"

class MixedAmount():
    """A multi-commodity quantity holding at most one Amount per symbol.

    Adding two mixed amounts adds them commodity by commodity, a
    commodity missing on one side counting as zero. Prices do not
    survive a sum: a priced amount contributes its own commodity only.

    ``MixedAmount.missing()`` stands for an amount the user left out
    and that the balancer has to infer.
    """
    def __init__(self, amounts: tuple[Amount, ...] = (),
                 missing: bool = False):
        seen = set()
        for a in amounts:
            if a.commodity in seen:
                raise ValueError(
                    f"Commodity '{a.commodity}' appears twice.")
            seen.add(a.commodity)
        if missing and amounts:
            raise ValueError("A missing amount cannot hold amounts.")
        self._amounts = tuple(amounts)
        self._missing = missing

    @classmethod
    def missing(cls) -> "MixedAmount":
        return cls(missing=True)

    @classmethod
    def of(cls, *amounts: Amount) -> "MixedAmount":
        """Sum ``amounts`` into a new MixedAmount."""
        total = cls()
        for a in amounts:
            total = total + cls((a,))
        return total

    @property
    def is_missing(self) -> bool:
        return self._missing

    @property
    def amounts(self) -> tuple[Amount, ...]:
        return self._amounts

    def commodities(self) -> list[str]:
        return [a.commodity for a in self._amounts]

    def is_zero(self) -> bool:
        return all(a.quantity == 0 for a in self._amounts)

    def nonzero(self) -> "MixedAmount":
        return MixedAmount(tuple(a for a in self._amounts
                                 if a.quantity != 0))

    def __getitem__(self, commodity: str) -> Amount:
        for a in self._amounts:
            if a.commodity == commodity:
                return a
        raise KeyError(commodity)

    def __contains__(self, commodity: str) -> bool:
        return any(a.commodity == commodity for a in self._amounts)

    def __iter__(self) -> Iterator[Amount]:
        return iter(self._amounts)

    def __len__(self):
        return len(self._amounts)

    def __add__(self, other: "MixedAmount") -> "MixedAmount":
        if not isinstance(other, MixedAmount):
            return NotImplemented
        if self._missing or other._missing:
            raise ValueError("Cannot add a missing amount.")
        result = [a.without_price() for a in self._amounts]
        for b in other._amounts:
            for i in range(len(result)):
                if result[i].commodity == b.commodity:
                    result[i] = Amount(result[i].quantity + b.quantity,
                                       result[i].style)
                    break
            else:
                result.append(b.without_price())
        return MixedAmount(tuple(result))

    def __neg__(self) -> "MixedAmount":
        return MixedAmount(tuple(-a for a in self._amounts), self._missing)

    def __eq__(self, other):
        if not isinstance(other, MixedAmount):
            return NotImplemented
        return (self._amounts == other._amounts and
                self._missing == other._missing)

    def __hash__(self):
        return hash((self._amounts, self._missing))

    def __repr__(self):
        if self._missing:
            return "MixedAmount.missing()"
        return f"MixedAmount({list(self._amounts)})"

def merge_style(styles: dict[str, CommodityStyle],
                new: CommodityStyle) -> CommodityStyle:
    """Record ``new`` as the display style of its symbol.

    The last style seen for a symbol wins; the first sighting simply
    registers it. Returns the style now in effect.
    """
    styles[new.symbol] = new
    return new

def amount_styles(amount: Amount | MixedAmount | None) \
    -> list[CommodityStyle]:
    """Styles of every literal in ``amount``, in reading order."""
    if amount is None:
        return []
    if isinstance(amount, MixedAmount):
        styles = []
        for a in amount:
            styles.extend(amount_styles(a))
        return styles
    styles = [amount.style]
    if amount.price is not None:
        styles.append(amount.price.style)
    return styles
