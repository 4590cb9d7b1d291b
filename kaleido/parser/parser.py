"""
Kaleido Parser Implementation

Recursive descent for primaries and prototypes, precedence climbing for
binary operators. The precedence table is not owned by the parser: the
session passes it in, and the code generator adds entries when a
``def binary`` succeeds, so new operators become parseable in the very next
statement.

Author: xwest
"""

import logging
from typing import Dict, Iterator, List, Optional, Tuple

from ..lexer.lexer import Lexer
from ..lexer.tokens import Token, TokenType
from .ast_nodes import *
from .errors import (
    ParseError, create_unexpected_token_error, create_missing_token_error,
    create_prototype_error, create_invalid_precedence_error,
    create_operand_count_error,
)

logger = logging.getLogger(__name__)


ANON_EXPR_NAME = "__anon_expr"

# 1 is the lowest precedence
BUILTIN_PRECEDENCE = {
    '=': 2,
    '<': 10,
    '+': 20,
    '-': 20,
    '*': 40,
    '/': 40,
}

MIN_USER_PRECEDENCE = 1
MAX_USER_PRECEDENCE = 100


class OperatorPrecedence:
    """
    Mutable binary operator precedence table.

    Keys are single operator characters, values are positive integers where
    higher binds tighter. Shared by reference between parser and code
    generator.
    """

    def __init__(self, initial: Optional[Dict[str, int]] = None):
        self._table: Dict[str, int] = dict(BUILTIN_PRECEDENCE if initial is None else initial)

    def get(self, op: str) -> int:
        """Precedence of ``op``, or -1 if it is not a binary operator."""
        precedence = self._table.get(op, -1)
        return precedence if precedence > 0 else -1

    def __getitem__(self, op: str) -> int:
        return self._table[op]

    def __setitem__(self, op: str, precedence: int):
        self._table[op] = precedence

    def __delitem__(self, op: str):
        del self._table[op]

    def __contains__(self, op: str) -> bool:
        return op in self._table

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def __repr__(self) -> str:
        return f"OperatorPrecedence({self._table!r})"


class Parser:
    """
    Kaleido parser.

    Pulls tokens from the lexer on demand and keeps exactly one token of
    lookahead in ``current``. Every parse method raises ParseError on
    failure and leaves ``current`` at the offending token.
    """

    def __init__(self, lexer: Lexer, precedence: Optional[OperatorPrecedence] = None):
        """
        Initialize parser.

        Args:
            lexer: Token source
            precedence: Binary operator table, shared with the code generator
        """
        self.lexer = lexer
        self.precedence = precedence if precedence is not None else OperatorPrecedence()
        self.current: Token = lexer.next_token()

    # Token handling

    def advance(self) -> Token:
        """Consume the current token and return it."""
        token = self.current
        self.current = self.lexer.next_token()
        return token

    def _check(self, token_type: TokenType) -> bool:
        return self.current.type == token_type

    def _check_char(self, char: str) -> bool:
        return self.current.is_char(char)

    def _current_precedence(self) -> int:
        if not self.current.is_ascii_char:
            return -1
        return self.precedence.get(self.current.lexeme)

    # Top-level entry points

    def parse_definition(self) -> FunctionDef:
        """definition ::= 'def' prototype expression"""
        start = self.advance()  # eat def
        prototype = self.parse_prototype()
        body = self.parse_expression()
        logger.debug("parsed definition %s", prototype.name)
        return FunctionDef(prototype, body, start.location)

    def parse_extern(self) -> Prototype:
        """external ::= 'extern' prototype"""
        self.advance()  # eat extern
        return self.parse_prototype()

    def parse_top_level_expression(self, name: str = ANON_EXPR_NAME) -> FunctionDef:
        """toplevelexpr ::= expression, wrapped in a nullary function called ``name``."""
        location = self.current.location
        body = self.parse_expression()
        prototype = Prototype(name, (), location=location)
        return FunctionDef(prototype, body, location)

    # Prototypes

    def parse_prototype(self) -> Prototype:
        """
        prototype
          ::= id '(' id* ')'
          ::= 'unary' OP '(' id ')'
          ::= 'binary' OP number? '(' id id ')'
        """
        start = self.current
        kind = PrototypeKind.FUNCTION
        precedence = DEFAULT_BINARY_PRECEDENCE

        if self._check(TokenType.IDENTIFIER):
            name = self.advance().value
        elif self._check(TokenType.UNARY):
            self.advance()
            if not self.current.is_ascii_char:
                raise create_prototype_error("expected unary operator", self.current)
            name = "unary" + self.advance().lexeme
            kind = PrototypeKind.UNARY
        elif self._check(TokenType.BINARY):
            self.advance()
            if not self.current.is_ascii_char:
                raise create_prototype_error("expected binary operator", self.current)
            name = "binary" + self.advance().lexeme
            kind = PrototypeKind.BINARY

            if self._check(TokenType.NUMBER):
                value = self.current.value
                if value < MIN_USER_PRECEDENCE or value > MAX_USER_PRECEDENCE:
                    raise create_invalid_precedence_error(value, self.current)
                precedence = int(value)
                self.advance()
        else:
            raise create_prototype_error("expected function name in prototype", self.current)

        if not self._check_char('('):
            raise create_missing_token_error("expected '(' in prototype", self.current)
        self.advance()

        params: List[str] = []
        while self._check(TokenType.IDENTIFIER):
            params.append(self.advance().value)

        if not self._check_char(')'):
            raise create_missing_token_error("expected ')' in prototype", self.current)
        self.advance()

        if kind != PrototypeKind.FUNCTION and len(params) != kind.value:
            raise create_operand_count_error(kind.value, len(params), start)

        logger.debug("parsed prototype %s(%d args)", name, len(params))
        return Prototype(name, tuple(params), kind, precedence, start.location)

    # Expressions

    def parse_expression(self) -> Expression:
        """expression ::= unary binoprhs"""
        left = self._parse_unary()
        return self._parse_binary_rhs(0, left)

    def _parse_binary_rhs(self, min_precedence: int, left: Expression) -> Expression:
        """binoprhs ::= (OP unary)*, consuming only operators that bind at least ``min_precedence``."""
        while True:
            token_precedence = self._current_precedence()
            if token_precedence < min_precedence:
                return left

            operator_token = self.advance()
            right = self._parse_unary()

            # A tighter operator after the right operand takes it as its own left operand
            if token_precedence < self._current_precedence():
                right = self._parse_binary_rhs(token_precedence + 1, right)

            left = BinaryOp(operator_token.lexeme, left, right, operator_token.location)

    def _parse_unary(self) -> Expression:
        """unary ::= primary | OP unary"""
        if (not self.current.is_ascii_char
                or self._check_char('(') or self._check_char(',')):
            return self._parse_primary()

        operator_token = self.advance()
        operand = self._parse_unary()
        return UnaryOp(operator_token.lexeme, operand, operator_token.location)

    def _parse_primary(self) -> Expression:
        token_type = self.current.type
        if token_type == TokenType.IDENTIFIER:
            return self._parse_identifier()
        if token_type == TokenType.NUMBER:
            return self._parse_number()
        if self._check_char('('):
            return self._parse_grouping()
        if token_type == TokenType.IF:
            return self._parse_if()
        if token_type == TokenType.FOR:
            return self._parse_for()
        if token_type == TokenType.VAR:
            return self._parse_var()
        raise create_unexpected_token_error(
            "unknown token when expecting an expression", self.current
        )

    def _parse_number(self) -> NumberLiteral:
        token = self.advance()
        return NumberLiteral(token.value, token.location)

    def _parse_grouping(self) -> Expression:
        """parenexpr ::= '(' expression ')'"""
        self.advance()  # eat (
        expr = self.parse_expression()
        if not self._check_char(')'):
            raise create_missing_token_error("expected ')'", self.current)
        self.advance()
        return expr

    def _parse_identifier(self) -> Expression:
        """
        identifierexpr
          ::= identifier
          ::= identifier '(' (expression (',' expression)*)? ')'
        """
        token = self.advance()
        if not self._check_char('('):
            return Variable(token.value, token.location)

        self.advance()  # eat (
        args: List[Expression] = []
        if not self._check_char(')'):
            while True:
                args.append(self.parse_expression())
                if self._check_char(')'):
                    break
                if not self._check_char(','):
                    raise create_missing_token_error(
                        "expected ')' or ',' in argument list", self.current
                    )
                self.advance()
        self.advance()  # eat )

        logger.debug("parsed call %s(%d args)", token.value, len(args))
        return FunctionCall(token.value, tuple(args), token.location)

    def _parse_if(self) -> IfExpr:
        """ifexpr ::= 'if' expression 'then' expression 'else' expression"""
        start = self.advance()  # eat if
        condition = self.parse_expression()

        if not self._check(TokenType.THEN):
            raise create_missing_token_error("expected then", self.current)
        self.advance()
        then_branch = self.parse_expression()

        if not self._check(TokenType.ELSE):
            raise create_missing_token_error("expected else", self.current)
        self.advance()
        else_branch = self.parse_expression()

        return IfExpr(condition, then_branch, else_branch, start.location)

    def _parse_for(self) -> ForLoop:
        """forexpr ::= 'for' identifier '=' expr ',' expr (',' expr)? 'in' expression"""
        start = self.advance()  # eat for

        if not self._check(TokenType.IDENTIFIER):
            raise create_unexpected_token_error("expected identifier after for", self.current)
        var_name = self.advance().value

        if not self._check_char('='):
            raise create_missing_token_error("expected '=' after for", self.current)
        self.advance()

        start_value = self.parse_expression()
        if not self._check_char(','):
            raise create_missing_token_error("expected ',' after for start value", self.current)
        self.advance()

        end_value = self.parse_expression()

        step = None
        if self._check_char(','):
            self.advance()
            step = self.parse_expression()

        if not self._check(TokenType.IN):
            raise create_missing_token_error("expected 'in' after for", self.current)
        self.advance()

        body = self.parse_expression()
        return ForLoop(var_name, start_value, end_value, step, body, start.location)

    def _parse_var(self) -> VarBinding:
        """varexpr ::= 'var' identifier ('=' expression)? (',' identifier ('=' expression)?)* 'in' expression"""
        start = self.advance()  # eat var

        if not self._check(TokenType.IDENTIFIER):
            raise create_unexpected_token_error("expected identifier after var", self.current)

        bindings: List[Tuple[str, Optional[Expression]]] = []
        while True:
            name = self.advance().value

            init = None
            if self._check_char('='):
                self.advance()
                init = self.parse_expression()
            bindings.append((name, init))

            if not self._check_char(','):
                break
            self.advance()

            if not self._check(TokenType.IDENTIFIER):
                raise create_unexpected_token_error("expected identifier list after var", self.current)

        if not self._check(TokenType.IN):
            raise create_missing_token_error("expected 'in' keyword after 'var'", self.current)
        self.advance()

        body = self.parse_expression()
        return VarBinding(tuple(bindings), body, start.location)


def parse_string(source: str, precedence: Optional[OperatorPrecedence] = None,
                 filename: str = "<string>") -> Expression:
    """
    Convenience function to parse a single expression from a string.

    Raises:
        ParseError: If parsing fails
    """
    parser = Parser(Lexer(source, filename), precedence)
    return parser.parse_expression()
