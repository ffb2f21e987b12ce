from datetime import datetime
from typing import Callable
import sys
import logging

from plainledger.parser import Parser, read_text, home_directory
from plainledger.journal import Journal, empty_journal, apply_updates
from plainledger.timelog import convert_time_log

logger = logging.getLogger(__name__)

STDIN = "-"

def parse(text: str, source: str = STDIN,
          reference_time: datetime | None = None,
          reader: Callable[[str], str] = read_text,
          home: Callable[[], str] = home_directory) -> Journal:
    """Parse journal ``text`` read from ``source``.

    ``source`` names the text in error messages and is the directory
    against which relative includes are resolved. ``reference_time``
    closes a clock-in still open at the end of a timelog; it defaults
    to the current time. Raises a LedgerError on the first problem.
    """
    p = Parser(source, reader=reader, home=home)
    p.parse_text(text)
    updates = p.finish()
    journal = apply_updates(empty_journal(source), updates)
    if reference_time is None:
        reference_time = datetime.now()
    return convert_time_log(journal, reference_time)

def parse_file(path: str, reference_time: datetime | None = None,
               reader: Callable[[str], str] = read_text,
               home: Callable[[], str] = home_directory) -> Journal:
    if path == STDIN:
        text = sys.stdin.read()
    else:
        text = reader(path)
    logger.info(f"Parsing {path!r}.")
    return parse(text, path, reference_time, reader, home)
