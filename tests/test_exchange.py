import unittest
from datetime import date
from decimal import Decimal

import plainledger.exchange as exchange
from plainledger.util import parse

class TestExchange(unittest.TestCase):

    def test_search_date(self):
        x = [
            (date(2001, 2, 3), Decimal("0.1")),

            (date(2002, 2, 3), Decimal("0.1")),
            (date(2002, 2, 3), Decimal("0.4")),
            (date(2002, 2, 3), Decimal("0.5")),

            (date(2003, 2, 3), Decimal("0.5")),

            (date(2009, 2, 3), Decimal("0.7")),
            (date(2009, 2, 3), Decimal("9.5")),

            (date(2009, 2, 4), Decimal("8.5")),

            (date(2019, 2, 4), Decimal("9.6")),
        ]
        self.assertEqual(exchange._search_date(x, date(2001, 2, 3)),
                         (date(2001, 2, 3), Decimal("0.1")))
        self.assertEqual(exchange._search_date(x, date(2001, 3, 3)),
                         (date(2001, 2, 3), Decimal("0.1")))
        self.assertEqual(exchange._search_date(x, date(2002, 3, 3)),
                         (date(2002, 2, 3), Decimal("0.5")))
        self.assertEqual(exchange._search_date(x, date(2004, 3, 3)),
                         (date(2003, 2, 3), Decimal("0.5")))
        self.assertEqual(exchange._search_date(x, date(2009, 2, 3)),
                         (date(2009, 2, 3), Decimal("9.5")))
        self.assertEqual(exchange._search_date(x, date(2029, 2, 3)),
                         (date(2019, 2, 4), Decimal("9.6")))
        self.assertEqual(exchange._search_date(x, date(2000, 2, 3)),
                         None)
        self.assertEqual(exchange._search_date([], date(2000, 2, 3)),
                         None)

    def test_get_price(self):
        x = exchange.Exchange()
        x.add_price(date(2001, 2,  1), "EUR", "JPY", Decimal("3.9"))
        x.add_price(date(2001, 2,  1), "JPY", "XAU", Decimal("4.9"))
        x.add_price(date(2001, 2,  3), "USD", "EUR", Decimal("1.5"))
        x.add_price(date(2001, 2,  4), "USD", "CHF", Decimal("1.7"))
        x.add_price(date(2001, 2,  5), "CHF", "EUR", Decimal("1.3"))
        x.add_price(date(2001, 2,  6), "CHF", "XAU", Decimal("0.1"))
        x.add_price(date(2001, 2,  7), "XAU", "ABC", Decimal("0.9"))
        x.add_price(date(2001, 2,  8), "ABC", "DEF", Decimal("0.8"))
        x.add_price(date(2001, 2,  9), "DEF", "USD", Decimal("0.5"))
        x.add_price(date(2001, 2, 10), "DEF", "CHF", Decimal("0.5"))
        p = x.get_price(date(2001, 2, 6), "CHF", "XAU")
        self.assertEqual(p, Decimal("0.1"))
        p = x.get_price(date(2001, 2, 7), "CHF", "EUR")
        self.assertEqual(p, Decimal("1.3"))
        p = x.get_price(date(2001, 2, 4), "CHF", "EUR")
        self.assertEqual(p, 1/Decimal("1.7") * Decimal("1.5"))
        p = x.get_price(date(2001, 2, 4), "CHF", "DEF")
        self.assertEqual(p, None)
        p = x.get_price(date(2001, 2, 7), "CHF", "DEF")
        self.assertEqual(p, None)
        p = x.get_price(date(2001, 2, 8), "CHF", "DEF")
        t = Decimal("0.1") * Decimal("0.9") * Decimal("0.8")
        self.assertEqual(p, t)
        p = x.get_price(date(2001, 2, 10), "DEF", "CHF")
        self.assertEqual(p, Decimal("0.5"))
        p = x.get_price(date(2001, 2, 10), "USD", "XAU")
        self.assertEqual(p, Decimal("1.7") * Decimal("0.1"))
        p = x.get_price(date(2001, 2, 3), "USD", "XAU")
        self.assertEqual(p, Decimal("1.5") * Decimal("3.9") * Decimal("4.9"))
        p = x.get_price(date(2001, 2, 3), "USD", "USD")
        self.assertEqual(p, Decimal(1))
        p = x.get_price(date(2001, 2, 3), "GBP", "USD")
        self.assertEqual(p, None)

    def test_zero_price(self):
        x = exchange.Exchange()
        with self.assertRaises(ValueError):
            x.add_price(date(2001, 2, 1), "EUR", "JPY", Decimal("0"))

    def test_from_journal(self):
        journal = parse("P 2004/05/01 XYZ $55.00\n"
                        "P 2004/06/01 XYZ $60.00\n"
                        "P 2004/05/01 ABC EUR 2\n"
                        "N ABC\n", "test")
        x = exchange.Exchange.from_journal(journal)
        self.assertEqual(x.get_price(date(2004, 5, 15), "XYZ", "$"),
                         Decimal("55.00"))
        self.assertEqual(x.get_price(date(2004, 6, 15), "XYZ", "$"),
                         Decimal("60.00"))
        self.assertEqual(x.get_price(date(2004, 4, 15), "XYZ", "$"), None)
        # Prices of ignored commodities stay out of the exchange.
        self.assertEqual(x.get_price(date(2004, 5, 15), "ABC", "EUR"), None)
