import unittest
from decimal import Decimal

from plainledger.amount import Amount, MixedAmount, CommodityStyle, \
    merge_style, amount_styles, no_symbol_style

USD = CommodityStyle("$", "left", False, 2, False)
EUR = CommodityStyle("EUR", "right", True, 2, False)

def usd(quantity):
    return Amount(Decimal(quantity), USD)

def eur(quantity):
    return Amount(Decimal(quantity), EUR)

class TestAmount(unittest.TestCase):

    def test_amount(self):
        a = usd("1.50")
        self.assertEqual(a.commodity, "$")
        self.assertEqual(a, Amount(Decimal("1.5"),
                                   CommodityStyle("$", "right", True, 1,
                                                  False)))
        self.assertNotEqual(a, eur("1.50"))
        self.assertEqual(-a, usd("-1.5"))
        with self.assertRaises(TypeError):
            Amount(1, USD)
        with self.assertRaises(ValueError):
            Amount(Decimal(1), USD, Amount(Decimal(1), EUR, usd("1")))
        priced = Amount(Decimal(1), EUR, usd("1.1"))
        self.assertNotEqual(priced, eur("1"))
        self.assertEqual(priced.without_price(), eur("1"))
        self.assertFalse(Amount(Decimal(1), EUR, None, True).price_is_total)

    def test_mixed_amount(self):
        x = MixedAmount((usd("1"), eur("2")))
        y = MixedAmount((eur("-2"), usd("3")))
        s = x + y
        self.assertEqual(s["$"].quantity, Decimal("4"))
        self.assertEqual(s["EUR"].quantity, Decimal("0"))
        self.assertEqual(s.commodities(), ["$", "EUR"])
        self.assertFalse(s.is_zero())
        self.assertEqual(s.nonzero(), MixedAmount((usd("4"),)))
        self.assertIn("$", s)
        self.assertNotIn("XAU", s)
        with self.assertRaises(KeyError):
            s["XAU"]
        self.assertEqual(-x, MixedAmount((usd("-1"), eur("-2"))))
        self.assertTrue(MixedAmount().is_zero())
        self.assertEqual(len(MixedAmount()), 0)

    def test_mixed_amount_prices(self):
        priced = Amount(Decimal(10), EUR, usd("1.30"))
        s = MixedAmount((priced,)) + MixedAmount((usd("1"),))
        self.assertEqual(s, MixedAmount((eur("10"), usd("1"))))
        self.assertIsNone(s["EUR"].price)
        self.assertEqual(MixedAmount.of(usd("1"), usd("2"), eur("1")),
                         MixedAmount((usd("3"), eur("1"))))

    def test_missing(self):
        m = MixedAmount.missing()
        self.assertTrue(m.is_missing)
        self.assertNotEqual(m, MixedAmount())
        with self.assertRaises(ValueError):
            m + MixedAmount()
        with self.assertRaises(ValueError):
            MixedAmount((usd("1"),), missing=True)
        with self.assertRaises(ValueError):
            MixedAmount((usd("1"), usd("2")))

    def test_styles(self):
        styles = {}
        merge_style(styles, USD)
        wide = CommodityStyle("$", "left", True, 3, True)
        self.assertEqual(merge_style(styles, wide), wide)
        self.assertEqual(styles, {"$": wide})
        priced = Amount(Decimal(10), EUR, usd("1.30"))
        self.assertEqual(amount_styles(priced), [EUR, USD])
        self.assertEqual(amount_styles(MixedAmount((usd("1"), priced))),
                         [USD, EUR, USD])
        self.assertEqual(amount_styles(MixedAmount.missing()), [])
        self.assertEqual(amount_styles(None), [])
        self.assertEqual(no_symbol_style(2),
                         CommodityStyle("", "left", False, 2, False))
