"""
Error handling for the Kaleido parser.

A ParseError is the parser's failure value: the statement being parsed is
abandoned, and the session discards one token before resuming.

Author: xwest
"""

from typing import Optional

from ..lexer.tokens import Token, TokenType
from ..lexer.errors import KaleidoError


class ParseError(KaleidoError):
    """
    Exception raised when the parser encounters a syntax error.

    Contains diagnostic information and the offending token.
    """

    def __init__(
        self,
        message: str,
        token: Optional[Token] = None,
        code: Optional[str] = None,
        help_text: Optional[str] = None,
    ):
        super().__init__(
            message,
            location=token.location if token is not None else None,
            code=code,
            help_text=help_text,
        )
        self.token = token


# Common parser error codes for categorization
PARSER_ERROR_CODES = {
    "P001": "Unexpected token",
    "P002": "Missing delimiter",
    "P003": "Malformed prototype",
    "P004": "Invalid operator precedence",
    "P005": "Wrong number of operator operands",
}


def describe_token(token: Token) -> str:
    """Human readable form of a token for messages."""
    if token.type == TokenType.EOF:
        return "end of input"
    if token.type == TokenType.CHAR:
        return f"'{token.lexeme}'"
    return f"{token.type.name.lower()} '{token.lexeme}'"


def create_unexpected_token_error(message: str, found: Token) -> ParseError:
    """Create an error for a token that cannot start or continue the current construct."""
    return ParseError(
        message=message,
        token=found,
        code="P001",
        help_text=f"found {describe_token(found)}",
    )


def create_missing_token_error(message: str, found: Token) -> ParseError:
    """Create an error for a missing keyword or delimiter."""
    return ParseError(
        message=message,
        token=found,
        code="P002",
        help_text=f"found {describe_token(found)}",
    )


def create_prototype_error(message: str, found: Token) -> ParseError:
    """Create an error for a malformed function or operator signature."""
    return ParseError(message=message, token=found, code="P003")


def create_invalid_precedence_error(value: float, found: Token) -> ParseError:
    """Create an error for a binary operator precedence outside 1..100."""
    return ParseError(
        message="invalid precedence: must be 1..100",
        token=found,
        code="P004",
        help_text=f"got {value:g}",
    )


def create_operand_count_error(expected: int, found_count: int, token: Token) -> ParseError:
    """Create an error for an operator prototype with the wrong number of parameters."""
    return ParseError(
        message="invalid number of operands for operator",
        token=token,
        code="P005",
        help_text=f"expected {expected} parameter(s), found {found_count}",
    )
