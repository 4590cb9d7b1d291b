"""
Abstract Syntax Tree node definitions for Kaleido.

Every expression evaluates to a double, so nodes carry no type information.
Nodes are frozen dataclasses: the tree is immutable once the parser has built
it, and equality ignores source locations so tests can compare shapes.

Author: xwest
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from ..lexer.tokens import SourceLocation


DEFAULT_BINARY_PRECEDENCE = 30


class ASTNodeType(Enum):
    """Enumeration of all AST node types."""

    # Expressions
    NUMBER_LITERAL = "NumberLiteral"
    VARIABLE = "Variable"
    UNARY_OP = "UnaryOp"
    BINARY_OP = "BinaryOp"
    FUNCTION_CALL = "FunctionCall"
    IF_EXPR = "IfExpr"
    FOR_LOOP = "ForLoop"
    VAR_BINDING = "VarBinding"

    # Top-level
    PROTOTYPE = "Prototype"
    FUNCTION_DEF = "FunctionDef"


class PrototypeKind(Enum):
    """Role of a prototype: plain function or operator definition."""
    FUNCTION = 0
    UNARY = 1
    BINARY = 2


class ASTNode:
    """Base class for all AST nodes."""

    node_type: ASTNodeType

    def children(self) -> List['ASTNode']:
        """Get all child nodes."""
        return []

    def __str__(self) -> str:
        location = getattr(self, "location", None)
        if location is None:
            return self.node_type.value
        return f"{self.node_type.value}@{location}"


class Expression(ASTNode):
    """Base class for everything that produces a value."""


# ============================================================================
# Expressions
# ============================================================================

@dataclass(frozen=True)
class NumberLiteral(Expression):
    """Numeric literal such as ``1.0``."""
    value: float
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    node_type = ASTNodeType.NUMBER_LITERAL


@dataclass(frozen=True)
class Variable(Expression):
    """Reference to a parameter or local, e.g. ``x``."""
    name: str
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    node_type = ASTNodeType.VARIABLE


@dataclass(frozen=True)
class UnaryOp(Expression):
    """Prefix operator application; always a call to a user-defined ``unaryOP``."""
    op: str
    operand: Expression
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    node_type = ASTNodeType.UNARY_OP

    def children(self) -> List[ASTNode]:
        return [self.operand]


@dataclass(frozen=True)
class BinaryOp(Expression):
    """Binary operator application; ``=`` is assignment and needs a Variable on the left."""
    op: str
    left: Expression
    right: Expression
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    node_type = ASTNodeType.BINARY_OP

    def children(self) -> List[ASTNode]:
        return [self.left, self.right]


@dataclass(frozen=True)
class FunctionCall(Expression):
    """Call by name: ``callee(arg, ...)``."""
    callee: str
    args: Tuple[Expression, ...]
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    node_type = ASTNodeType.FUNCTION_CALL

    def children(self) -> List[ASTNode]:
        return list(self.args)


@dataclass(frozen=True)
class IfExpr(Expression):
    """``if cond then a else b``."""
    condition: Expression
    then_branch: Expression
    else_branch: Expression
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    node_type = ASTNodeType.IF_EXPR

    def children(self) -> List[ASTNode]:
        return [self.condition, self.then_branch, self.else_branch]


@dataclass(frozen=True)
class ForLoop(Expression):
    """``for var = start, end[, step] in body``; evaluates to 0.0."""
    var_name: str
    start: Expression
    end: Expression
    step: Optional[Expression]
    body: Expression
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    node_type = ASTNodeType.FOR_LOOP

    def children(self) -> List[ASTNode]:
        nodes = [self.start, self.end]
        if self.step is not None:
            nodes.append(self.step)
        nodes.append(self.body)
        return nodes


@dataclass(frozen=True)
class VarBinding(Expression):
    """``var a = 1, b in body``: mutable locals scoped to ``body``."""
    bindings: Tuple[Tuple[str, Optional[Expression]], ...]
    body: Expression
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    node_type = ASTNodeType.VAR_BINDING

    def children(self) -> List[ASTNode]:
        nodes = [init for _, init in self.bindings if init is not None]
        nodes.append(self.body)
        return nodes


# ============================================================================
# Top-level items
# ============================================================================

@dataclass(frozen=True)
class Prototype(ASTNode):
    """
    A function's signature: name, parameter names and operator role.

    Operator prototypes are named ``unary`` or ``binary`` followed by the
    operator character, e.g. ``binary|``.
    """
    name: str
    params: Tuple[str, ...]
    kind: PrototypeKind = PrototypeKind.FUNCTION
    precedence: int = DEFAULT_BINARY_PRECEDENCE
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    node_type = ASTNodeType.PROTOTYPE

    @property
    def arity(self) -> int:
        return len(self.params)

    @property
    def is_unary_op(self) -> bool:
        return self.kind == PrototypeKind.UNARY

    @property
    def is_binary_op(self) -> bool:
        return self.kind == PrototypeKind.BINARY

    @property
    def operator_name(self) -> str:
        """The operator character of an operator prototype."""
        assert self.is_unary_op or self.is_binary_op
        return self.name[-1]


@dataclass(frozen=True)
class FunctionDef(ASTNode):
    """A prototype plus the single expression that is its body."""
    prototype: Prototype
    body: Expression
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    node_type = ASTNodeType.FUNCTION_DEF

    @property
    def name(self) -> str:
        return self.prototype.name

    def children(self) -> List[ASTNode]:
        return [self.prototype, self.body]
