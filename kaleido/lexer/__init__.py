"""
Kaleido Lexer Package

Implements the on-demand tokenizer for the Kaleido language.

Key Features:
- One token per call, one character of lookahead
- Keywords for definitions, control flow and operator declarations
- Single-character tokens for all punctuation, so new operators need no lexer change
- Optional strict numeric literals

Author: xwest
"""

from .tokens import Token, TokenType, SourceLocation, KEYWORDS
from .lexer import Lexer, tokenize_string, tokenize_file, parse_number_prefix
from .errors import Diagnostic, KaleidoError, LexerError

__all__ = [
    "Lexer",
    "Token",
    "TokenType",
    "SourceLocation",
    "KEYWORDS",
    "tokenize_string",
    "tokenize_file",
    "parse_number_prefix",
    "Diagnostic",
    "KaleidoError",
    "LexerError",
]
