"""
Lexer tests for Kaleido.

Author: xwest
"""

import io
import os
import sys
import unittest

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from kaleido.lexer import (
    Lexer, LexerError, TokenType, tokenize_string, parse_number_prefix,
)


class TestLexer(unittest.TestCase):
    """Token recognition and position tracking."""

    def _types(self, source: str):
        return [token.type for token in tokenize_string(source)]

    def test_keywords(self):
        """Every keyword has its own token type."""
        source = "def extern if then else for in unary binary var"
        self.assertEqual(self._types(source), [
            TokenType.DEF, TokenType.EXTERN, TokenType.IF, TokenType.THEN,
            TokenType.ELSE, TokenType.FOR, TokenType.IN, TokenType.UNARY,
            TokenType.BINARY, TokenType.VAR, TokenType.EOF,
        ])

    def test_identifiers(self):
        tokens = tokenize_string("foo x1y2 define")
        self.assertEqual([t.value for t in tokens[:3]], ["foo", "x1y2", "define"])
        self.assertTrue(all(t.type == TokenType.IDENTIFIER for t in tokens[:3]))

    def test_underscore_is_not_part_of_identifier(self):
        tokens = tokenize_string("foo_bar")
        self.assertEqual(tokens[0].value, "foo")
        self.assertTrue(tokens[1].is_char('_'))
        self.assertEqual(tokens[2].value, "bar")

    def test_numbers(self):
        tokens = tokenize_string("42 3.5 .25 7.")
        self.assertEqual([t.value for t in tokens[:4]], [42.0, 3.5, 0.25, 7.0])
        self.assertTrue(all(t.type == TokenType.NUMBER for t in tokens[:4]))

    def test_malformed_number_keeps_longest_prefix(self):
        """'1.2.3' is one token with the value of its valid prefix."""
        tokens = tokenize_string("1.2.3")
        self.assertEqual(tokens[0].type, TokenType.NUMBER)
        self.assertEqual(tokens[0].lexeme, "1.2.3")
        self.assertEqual(tokens[0].value, 1.2)
        self.assertEqual(tokens[1].type, TokenType.EOF)

    def test_lone_dot_is_zero(self):
        self.assertEqual(tokenize_string(".")[0].value, 0.0)

    def test_parse_number_prefix(self):
        self.assertEqual(parse_number_prefix("12"), 12.0)
        self.assertEqual(parse_number_prefix("1..5"), 1.0)
        self.assertEqual(parse_number_prefix(".."), 0.0)

    def test_strict_numbers(self):
        lexer = Lexer("1.2.3", strict_numbers=True)
        with self.assertRaises(LexerError) as ctx:
            lexer.next_token()
        self.assertEqual(ctx.exception.diagnostic.code, "L001")
        self.assertIn("1.2.3", ctx.exception.message)

    def test_strict_numbers_accepts_valid_literals(self):
        tokens = tokenize_string("1 1.5 .5 2.", strict_numbers=True)
        self.assertEqual([t.value for t in tokens[:4]], [1.0, 1.5, 0.5, 2.0])

    def test_comments_are_skipped(self):
        tokens = tokenize_string("# a comment\nx # trailing\n# last")
        self.assertEqual(len(tokens), 2)
        self.assertEqual(tokens[0].value, "x")
        self.assertEqual(tokens[1].type, TokenType.EOF)

    def test_single_characters(self):
        tokens = tokenize_string("+(,);<")
        self.assertEqual([t.lexeme for t in tokens[:-1]], ['+', '(', ',', ')', ';', '<'])
        self.assertTrue(all(t.type == TokenType.CHAR for t in tokens[:-1]))

    def test_eof_repeats(self):
        lexer = Lexer("")
        self.assertEqual(lexer.next_token().type, TokenType.EOF)
        self.assertEqual(lexer.next_token().type, TokenType.EOF)

    def test_locations(self):
        tokens = tokenize_string("def\n  foo", filename="test.kal")
        self.assertEqual((tokens[0].location.line, tokens[0].location.column), (1, 1))
        self.assertEqual((tokens[1].location.line, tokens[1].location.column), (2, 3))
        self.assertEqual(str(tokens[1].location), "test.kal:2:3")

    def test_reads_from_stream(self):
        lexer = Lexer(io.StringIO("extern sin(x);"))
        self.assertEqual(lexer.next_token().type, TokenType.EXTERN)
        self.assertEqual(lexer.next_token().value, "sin")


if __name__ == '__main__':
    unittest.main()
