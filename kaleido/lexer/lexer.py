"""
Kaleido Lexer - turns a character stream into tokens, one at a time.

The parser pulls tokens on demand, so the lexer never buffers more than a
single lookahead character. That makes it usable directly on an interactive
stdin where reading ahead would block the REPL.

Author: xwest
"""

import io
import logging
import re
from typing import List, TextIO, Union

from .tokens import Token, TokenType, SourceLocation, KEYWORDS
from .errors import create_invalid_number_error

logger = logging.getLogger(__name__)

# Longest prefix C's strtod would accept from a run of digits and dots
_NUMBER_PREFIX = re.compile(r'\d*(?:\.\d*)?')
_STRICT_NUMBER = re.compile(r'(?:\d+\.?\d*|\.\d+)')


def parse_number_prefix(text: str) -> float:
    """Convert a run of digits and dots the way strtod does: longest valid prefix, else 0."""
    prefix = _NUMBER_PREFIX.match(text).group(0)
    if prefix in ("", "."):
        return 0.0
    return float(prefix)


class Lexer:
    """
    Kaleido lexical analyzer.

    ``next_token()`` is the whole contract: it skips whitespace and ``#``
    comments and returns the next token, or EOF forever once input runs out.
    """

    def __init__(self, source: Union[str, TextIO], filename: str = "<stdin>",
                 strict_numbers: bool = False):
        """
        Initialize the lexer.

        Args:
            source: Source text, or a text stream read one character at a time
            filename: Name used in source locations
            strict_numbers: Reject numbers such as ``1.2.3`` instead of
                truncating them to their longest valid prefix
        """
        if isinstance(source, str):
            source = io.StringIO(source)
        self.stream = source
        self.filename = filename
        self.strict_numbers = strict_numbers

        # Position of the lookahead character
        self.offset = -1
        self.line = 1
        self.column = 0
        self._last_char = ' '

    def _read(self) -> str:
        """Advance the lookahead character; '' means end of input."""
        if self._last_char == '\n':
            self.line += 1
            self.column = 0
        char = self.stream.read(1)
        if char:
            self.offset += 1
            self.column += 1
        self._last_char = char
        return char

    def _location(self) -> SourceLocation:
        return SourceLocation(self.filename, self.line, max(self.column, 1), max(self.offset, 0))

    def next_token(self) -> Token:
        """Return the next token from the stream."""
        while True:
            while self._last_char and self._last_char.isspace():
                self._read()

            if self._last_char != '#':
                break
            # Comment until end of line
            while self._last_char and self._last_char not in '\n\r':
                self._read()

        location = self._location()
        char = self._last_char

        if not char:
            return Token(TokenType.EOF, "", None, location)

        if char.isascii() and char.isalpha():
            return self._tokenize_identifier_or_keyword(location)

        if (char.isascii() and char.isdigit()) or char == '.':
            return self._tokenize_number(location)

        self._read()
        return Token(TokenType.CHAR, char, None, location)

    def _tokenize_identifier_or_keyword(self, location: SourceLocation) -> Token:
        chars = [self._last_char]
        while True:
            char = self._read()
            if not (char.isascii() and char.isalnum()):
                break
            chars.append(char)

        lexeme = ''.join(chars)
        token_type = KEYWORDS.get(lexeme, TokenType.IDENTIFIER)
        value = lexeme if token_type == TokenType.IDENTIFIER else None
        return Token(token_type, lexeme, value, location)

    def _tokenize_number(self, location: SourceLocation) -> Token:
        chars = []
        char = self._last_char
        while (char.isascii() and char.isdigit()) or char == '.':
            chars.append(char)
            char = self._read()

        lexeme = ''.join(chars)
        if self.strict_numbers and not _STRICT_NUMBER.fullmatch(lexeme):
            raise create_invalid_number_error(lexeme, location)

        value = parse_number_prefix(lexeme)
        if _NUMBER_PREFIX.match(lexeme).group(0) != lexeme:
            logger.debug("numeric literal %r at %s truncated to %r", lexeme, location, value)
        return Token(TokenType.NUMBER, lexeme, value, location)

    def tokenize(self) -> List[Token]:
        """
        Tokenize the rest of the input.

        Returns:
            List of tokens including the EOF token
        """
        tokens = []
        while True:
            token = self.next_token()
            tokens.append(token)
            if token.type == TokenType.EOF:
                return tokens


def tokenize_string(source: str, filename: str = "<string>",
                    strict_numbers: bool = False) -> List[Token]:
    """
    Convenience function to tokenize a source string.

    Raises:
        LexerError: If a number is malformed and strict_numbers is set
    """
    return Lexer(source, filename, strict_numbers=strict_numbers).tokenize()


def tokenize_file(filepath: str) -> List[Token]:
    """Convenience function to tokenize a source file."""
    with open(filepath, 'r', encoding='utf-8') as f:
        return Lexer(f, filepath).tokenize()
