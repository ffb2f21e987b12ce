from typing import NamedTuple

class Position(NamedTuple):
    source: str
    line: int
    column: int

    def __str__(self):
        return f"file: {self.source}, line: {self.line}, column: {self.column}"

class Span(NamedTuple):
    start: Position
    end: Position

class LedgerError(Exception):
    """Base of every error raised while reading a journal.

    The error keeps the offending position, the text of the source line
    and, for errors raised on behalf of another one, the ``cause``.
    Rendering walks the causes so that an error raised deep inside
    nested include files still reads top to bottom.
    """
    def __init__(self, message: str,
                 position: Position | None = None,
                 context: str = "",
                 cause: Exception | None = None):
        self.message = message
        self.position = position
        self.context = context
        self.cause = cause
        super().__init__(self.render())

    def _render_self(self) -> str:
        if not self.position:
            return self.message
        elif self.context:
            return (
                f"{self.message}\n"
                f"{self.position}\n"
                f"{self.context}\n" + (self.position.column * " ") + "^"
            )
        else:
            return f"{self.message}\n{self.position}"

    def render(self) -> str:
        if self.cause is None:
            return self._render_self()
        return self._render_self() + "\n" + str(self.cause)

    def chain(self) -> list[Exception]:
        """This error followed by its causes, outermost first."""
        errors = [self]
        x = self.cause
        while x is not None:
            errors.append(x)
            x = getattr(x, "cause", None)
        return errors

class ParseError(LedgerError):
    pass

class LedgerSyntaxError(ParseError):
    pass

class MalformedNumber(ParseError):
    pass

class IllFormedAccountName(ParseError):
    pass

class InvalidYear(ParseError):
    pass

class NoDefaultYear(ParseError):
    pass

class UnbalancedAccountBlock(ParseError):
    pass

class NoPostings(ParseError):
    pass

class IncludeCycle(ParseError):
    pass

class IncludeReadError(ParseError):
    def __init__(self, filename: str, position: Position,
                 context: str, cause: Exception):
        self.filename = filename
        super().__init__(f"{position} reading {filename!r}:",
                         position, context, cause)

    def _render_self(self) -> str:
        return self.message

class IncludeParseError(ParseError):
    def __init__(self, filename: str, position: Position,
                 context: str, cause: LedgerError):
        self.filename = filename
        super().__init__(
            f"in included file {filename!r}, included from {position}:",
            position, context, cause)

    def _render_self(self) -> str:
        return self.message

    @property
    def include_chain(self) -> list[Position]:
        """Positions of the include directives, outermost first."""
        return [e.position for e in self.chain()
                if isinstance(e, IncludeParseError)]

class BalanceError(LedgerError):
    pass

class AmbiguousInference(BalanceError):
    pass

class UnbalancedTransaction(BalanceError):
    def __init__(self, message: str, residuals: dict,
                 position: Position | None = None, context: str = ""):
        # Maps posting group ("real", "balanced virtual") to the
        # MixedAmount it is off by.
        self.residuals = residuals
        super().__init__(message, position, context)

class TimeLogError(LedgerError):
    pass
