"""
Token definitions for the Kaleido lexer.

The language has a deliberately tiny token set: a handful of keywords,
identifiers, numbers, and single characters. Every character the lexer does
not recognize is handed to the parser as a CHAR token whose lexeme is the
character itself, which is how operator punctuation (including user-defined
operators) travels through the front end.

Author: xwest
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any


class TokenType(Enum):
    """Enumeration of all token types in Kaleido."""

    EOF = auto()                    # End of input

    # Commands
    DEF = auto()                    # def
    EXTERN = auto()                 # extern

    # Primary
    IDENTIFIER = auto()             # foo, x1
    NUMBER = auto()                 # 1.0, 42, .5

    # Control flow
    IF = auto()                     # if
    THEN = auto()                   # then
    ELSE = auto()                   # else
    FOR = auto()                    # for
    IN = auto()                     # in

    # Operator declarations
    UNARY = auto()                  # unary
    BINARY = auto()                 # binary

    # Mutable locals
    VAR = auto()                    # var

    # Any other single character: operators, parentheses, commas, ';'
    CHAR = auto()


@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in the source code.

    Used for error reporting and debugging information.
    """
    filename: str
    line: int
    column: int
    offset: int  # Character offset from start of input

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"

    def __repr__(self) -> str:
        return f"SourceLocation({self.filename!r}, {self.line}, {self.column}, {self.offset})"


@dataclass(frozen=True)
class Token:
    """
    Represents a lexical token.

    Contains the token type, lexeme (raw text), semantic value (float for
    numbers, str for identifiers) and source location.
    """
    type: TokenType
    lexeme: str
    value: Any
    location: SourceLocation

    def __str__(self) -> str:
        if self.value is not None and self.value != self.lexeme:
            return f"{self.type.name}({self.lexeme!r} -> {self.value!r})"
        return f"{self.type.name}({self.lexeme!r})"

    def __repr__(self) -> str:
        return (f"Token({self.type.name}, {self.lexeme!r}, "
                f"{self.value!r}, {self.location!r})")

    @property
    def is_keyword(self) -> bool:
        """Check if this token is a keyword."""
        return self.lexeme in KEYWORDS and self.type is not TokenType.IDENTIFIER

    @property
    def is_identifier(self) -> bool:
        """Check if this token is an identifier."""
        return self.type == TokenType.IDENTIFIER

    def is_char(self, char: str) -> bool:
        """Check if this token is the single character ``char``."""
        return self.type == TokenType.CHAR and self.lexeme == char

    @property
    def is_ascii_char(self) -> bool:
        """True for single-character tokens that may name an operator."""
        return self.type == TokenType.CHAR and self.lexeme.isascii()


KEYWORDS = {
    "def": TokenType.DEF,
    "extern": TokenType.EXTERN,
    "if": TokenType.IF,
    "then": TokenType.THEN,
    "else": TokenType.ELSE,
    "for": TokenType.FOR,
    "in": TokenType.IN,
    "unary": TokenType.UNARY,
    "binary": TokenType.BINARY,
    "var": TokenType.VAR,
}
