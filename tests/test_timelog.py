import unittest
from datetime import date, datetime
from decimal import Decimal

from plainledger.errors import TimeLogError, IllFormedAccountName
from plainledger.journal import TimeLogEntry, CLOCK_IN, CLOCK_OUT, \
    CLOCK_FINAL_OUT, CLOCK_HOURS
import plainledger.timelog as timelog
from plainledger.util import parse

NOW = datetime(2010, 1, 1)

def clock(code, *args, comment=""):
    return TimeLogEntry(code, datetime(*args), comment)

class TestTimeLog(unittest.TestCase):

    def test_in_out(self):
        t = timelog.transaction_from_in_out(
            clock(CLOCK_IN, 2007, 3, 10, 12, 26, comment="hledger"),
            clock(CLOCK_OUT, 2007, 3, 10, 17, 26, 2))
        self.assertEqual(t.date, date(2007, 3, 10))
        self.assertEqual(t.description, "12:26-17:26")
        self.assertEqual(t.postings[0].account, "hledger")
        self.assertEqual(t.postings[0].amount["h"], timelog.hours(Decimal(5)))
        t = timelog.transaction_from_in_out(
            clock(CLOCK_IN, 2007, 3, 10, 12, 0),
            clock(CLOCK_OUT, 2007, 3, 10, 12, 20))
        self.assertEqual(t.postings[0].account, "unknown")
        self.assertEqual(t.postings[0].amount["h"].quantity,
                         Decimal("0.33"))
        with self.assertRaises(TimeLogError):
            timelog.transaction_from_in_out(
                clock(CLOCK_IN, 2007, 3, 10, 12, 0),
                clock(CLOCK_OUT, 2007, 3, 10, 11, 0))

    def test_midnight(self):
        txns = timelog.transactions_from_time_log([
            clock(CLOCK_IN, 2007, 3, 10, 22, 0, comment="p"),
            clock(CLOCK_FINAL_OUT, 2007, 3, 12, 2, 0),
        ], NOW)
        self.assertEqual([t.date for t in txns],
                         [date(2007, 3, 10), date(2007, 3, 11),
                          date(2007, 3, 12)])
        self.assertEqual([t.description for t in txns],
                         ["22:00-23:59", "00:00-23:59", "00:00-02:00"])
        self.assertEqual([t.postings[0].amount["h"].quantity for t in txns],
                         [Decimal("2.00"), Decimal("24.00"), Decimal("2.00")])
        self.assertEqual({t.postings[0].account for t in txns}, {"p"})

    def test_sequence(self):
        txns = timelog.transactions_from_time_log([
            clock(CLOCK_IN, 2007, 3, 10, 9, 0, comment="a"),
            clock(CLOCK_OUT, 2007, 3, 10, 10, 0),
            clock(CLOCK_HOURS, 2007, 3, 10, 10, 30),
            clock(CLOCK_IN, 2007, 3, 10, 11, 0, comment="b"),
            clock(CLOCK_OUT, 2007, 3, 10, 11, 30),
        ], NOW)
        self.assertEqual([t.postings[0].account for t in txns], ["a", "b"])

    def test_open_session(self):
        txns = timelog.transactions_from_time_log([
            clock(CLOCK_IN, 2007, 3, 10, 9, 0, comment="a"),
        ], datetime(2007, 3, 10, 9, 45))
        self.assertEqual(txns[0].postings[0].amount["h"].quantity,
                         Decimal("0.75"))
        # A reference time before the clock-in closes it immediately.
        txns = timelog.transactions_from_time_log([
            clock(CLOCK_IN, 2007, 3, 10, 9, 0, comment="a"),
        ], datetime(2007, 3, 9))
        self.assertEqual(txns[0].postings[0].amount["h"].quantity,
                         Decimal("0"))

    def test_errors(self):
        with self.assertRaises(TimeLogError):
            timelog.transactions_from_time_log([
                clock(CLOCK_OUT, 2007, 3, 10, 9, 0),
            ], NOW)
        with self.assertRaises(TimeLogError):
            timelog.transactions_from_time_log([
                clock(CLOCK_IN, 2007, 3, 10, 9, 0),
                clock(CLOCK_IN, 2007, 3, 10, 10, 0),
            ], NOW)

    def test_ill_formed_account(self):
        with self.assertRaises(IllFormedAccountName) as cm:
            parse("i 2007/03/10 09:00:00 a::b\n"
                  "o 2007/03/10 10:00:00\n", "test.timelog", NOW)
        self.assertEqual(cm.exception.position.line, 1)
        self.assertEqual(cm.exception.position.column, 22)
