from collections import deque
from datetime import date
from decimal import Decimal
import logging

from plainledger.journal import Journal

logger = logging.getLogger(__name__)

PriceEntry_t = tuple[date, Decimal]

def _search_date(pricelist: list[PriceEntry_t], when: date) \
    -> PriceEntry_t | None:
    """Latest entry of the date sorted ``pricelist`` not after ``when``."""
    if not len(pricelist):
        return None

    low = 0
    high = len(pricelist) - 1

    while (high > low):
        mid = (low + high) // 2
        mid_date = pricelist[mid][0]
        if mid_date > when:
            high = mid
        elif mid == low:
            high_date = pricelist[high][0]
            if high_date <= when:
                low = high
            else:
                high -= 1
        else:
            low = mid

    found = pricelist[low]
    if when >= found[0]:
        return found
    else:
        return None

class CommodityNode():

    def __init__(self, commodity: str):
        self._commodity = commodity
        self._adjacent: dict[str, list[PriceEntry_t]] = dict()
        self._sorted: dict[str, bool] = dict()

    def adjacent(self):
        return self._adjacent.keys()

    def add_price(self, when: date, commodity: str, quantity: Decimal):
        if commodity in self._adjacent:
            self._adjacent[commodity].append((when, quantity))
            self._sorted[commodity] = False
        else:
            self._adjacent[commodity] = [(when, quantity)]
            self._sorted[commodity] = True

    def _sort(self, commodity: str):
        if self._sorted[commodity]: return
        # Sort in ascending order of dates.
        self._adjacent[commodity].sort(key=lambda x: x[0])
        self._sorted[commodity] = True

    def get_price(self, when: date, commodity: str) -> PriceEntry_t | None:
        if commodity not in self._adjacent:
            return None
        self._sort(commodity)
        return _search_date(self._adjacent[commodity], when)

class Exchange():
    """Conversion rates between commodities, from historical prices.

    Every price is stored in both directions, so a rate can be found
    through a chain of prices (``EUR -> $ -> JPY``). The shortest chain
    wins, each hop using the latest price on or before the date.
    """

    def __init__(self):
        self._commodities: dict[str, CommodityNode] = dict()

    @classmethod
    def from_journal(cls, journal: Journal) -> "Exchange":
        exchange = cls()
        for price in journal.historical_prices.values():
            if (price.commodity in journal.ignored_price_commodities or
                    price.price.commodity in
                    journal.ignored_price_commodities):
                continue
            exchange.add_price(price.date, price.commodity,
                               price.price.commodity, price.price.quantity)
            logger.debug(f"Adding: P {price.date} {price.commodity} "
                         f"{price.price.commodity} {price.price.quantity}")
        return exchange

    def add_price(self, when: date, src_cmdty: str,
                  dst_cmdty: str, quantity: Decimal):
        if quantity == 0:
            raise ValueError(f"Zero price for {src_cmdty} in {dst_cmdty}.")
        self._add_price(when, src_cmdty, dst_cmdty, quantity)
        self._add_price(when, dst_cmdty, src_cmdty, 1 / quantity)

    def _add_price(self, when: date, src_cmdty: str,
                   dst_cmdty: str, quantity: Decimal):
        if src_cmdty not in self._commodities:
            self._commodities[src_cmdty] = CommodityNode(src_cmdty)
        self._commodities[src_cmdty].add_price(when, dst_cmdty, quantity)

    def get_price(self, when: date, src_cmdty: str, dst_cmdty: str) \
        -> Decimal | None:
        if src_cmdty == dst_cmdty:
            return Decimal(1)
        if src_cmdty not in self._commodities:
            return None
        visited = set()
        # A path looks like [(commodity, factor), (commodity, factor), ...]
        queue = deque([[(src_cmdty, Decimal(1))]])
        while queue:
            path = queue.popleft()
            cmdty = path[-1][0]
            if cmdty == dst_cmdty:
                x = Decimal(1)
                for i in path:
                    x *= i[1]
                return x
            if cmdty in visited:
                continue
            visited.add(cmdty)
            node = self._commodities[cmdty]
            for i in node.adjacent():
                if i in visited: continue
                p = node.get_price(when, i)
                if not p: continue
                queue.append(path + [(i, p[1])])
        return None
