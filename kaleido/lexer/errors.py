"""
Error handling for the Kaleido lexer.

Also home of the Diagnostic record and the KaleidoError base class shared by
every later stage (parser, code generator, JIT), since the lexer is the
lowest layer of the pipeline.

Author: xwest
"""

from typing import Optional
from dataclasses import dataclass

from .tokens import SourceLocation


@dataclass
class Diagnostic:
    """A single user-visible message (error, warning, info)."""
    message: str
    location: Optional[SourceLocation]
    severity: str  # "error", "warning", "info"
    code: Optional[str] = None
    help_text: Optional[str] = None

    def __str__(self) -> str:
        severity_prefix = self.severity.upper()
        code = f"[{self.code}]" if self.code else ""
        result = f"{severity_prefix}{code}: {self.message}\n"
        if self.location is not None:
            result += f"  --> {self.location}\n"
        if self.help_text:
            result += f"  help: {self.help_text}\n"
        return result


class KaleidoError(Exception):
    """
    Base class for every error the compiler reports to the user.

    Subclasses set ``severity``-free diagnostics; the session prints
    ``str(error)`` to its diagnostic stream.
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        code: Optional[str] = None,
        help_text: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.diagnostic = Diagnostic(
            message=message,
            location=location,
            severity="error",
            code=code,
            help_text=help_text,
        )

    @property
    def location(self) -> Optional[SourceLocation]:
        return self.diagnostic.location

    def __str__(self) -> str:
        return str(self.diagnostic)


class LexerError(KaleidoError):
    """Raised when the lexer rejects its input (strict number mode only)."""


# Common error codes for categorization
ERROR_CODES = {
    "L001": "Invalid numeric literal",
}


def create_invalid_number_error(lexeme: str, location: SourceLocation) -> LexerError:
    """Create an error for a malformed numeric literal."""
    return LexerError(
        message=f"invalid numeric literal: '{lexeme}'",
        location=location,
        code="L001",
        help_text="A number is digits with at most one decimal point.",
    )
