"""
Kaleido Parser Package

Recursive descent parser with precedence climbing for binary operators.

Key Features:
- Runtime-extensible binary operator precedence table
- User-defined unary and binary operator prototypes
- if/then/else, for/in and var/in expressions
- Immutable AST with source locations

Author: xwest
"""

from .ast_nodes import *
from .parser import (
    Parser, OperatorPrecedence, parse_string,
    ANON_EXPR_NAME, BUILTIN_PRECEDENCE,
)
from .errors import ParseError

__all__ = [
    # Core parser
    "Parser",
    "OperatorPrecedence",
    "parse_string",
    "ANON_EXPR_NAME",
    "BUILTIN_PRECEDENCE",

    # AST nodes
    "ASTNode", "ASTNodeType", "Expression",
    "NumberLiteral", "Variable", "UnaryOp", "BinaryOp", "FunctionCall",
    "IfExpr", "ForLoop", "VarBinding",
    "Prototype", "PrototypeKind", "FunctionDef",
    "DEFAULT_BINARY_PRECEDENCE",

    # Error handling
    "ParseError",
]
