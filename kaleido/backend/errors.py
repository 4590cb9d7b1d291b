"""
Error handling for Kaleido code generation.

Author: xwest
"""

from typing import List, Optional

from ..lexer.tokens import SourceLocation
from ..lexer.errors import KaleidoError


class CodegenError(KaleidoError):
    """Raised when an AST cannot be lowered to IR; the function being generated is discarded."""


# Code generation error codes for categorization
CODEGEN_ERROR_CODES = {
    "G001": "Unknown variable",
    "G002": "Unknown function",
    "G003": "Wrong number of arguments",
    "G004": "Invalid operator",
    "G005": "Function redefinition",
    "G006": "Invalid assignment target",
    "G007": "Conflicting declaration",
    "G008": "Verification failed",
}


def create_unknown_variable_error(name: str, location: Optional[SourceLocation],
                                  suggestions: Optional[List[str]] = None) -> CodegenError:
    help_text = None
    if suggestions:
        help_text = f"did you mean {', '.join(repr(s) for s in suggestions)}?"
    return CodegenError(
        "unknown variable name",
        location=location,
        code="G001",
        help_text=help_text or f"'{name}' is not a parameter or an enclosing var/for binding",
    )


def create_unknown_function_error(name: str, location: Optional[SourceLocation]) -> CodegenError:
    return CodegenError(
        "unknown function referenced",
        location=location,
        code="G002",
        help_text=f"'{name}' has not been defined or declared with extern",
    )


def create_argument_count_error(name: str, expected: int, found: int,
                                location: Optional[SourceLocation]) -> CodegenError:
    return CodegenError(
        "incorrect number of arguments passed",
        location=location,
        code="G003",
        help_text=f"'{name}' takes {expected} argument(s), {found} given",
    )


def create_invalid_operator_error(kind: str, op: str,
                                  location: Optional[SourceLocation]) -> CodegenError:
    """``kind`` is 'binary' or 'unary'."""
    message = "invalid binary operator" if kind == "binary" else "unknown unary operator"
    return CodegenError(
        message,
        location=location,
        code="G004",
        help_text=f"define it first with 'def {kind} {op}'",
    )


def create_redefinition_error(name: str, location: Optional[SourceLocation]) -> CodegenError:
    return CodegenError(
        "function cannot be redefined",
        location=location,
        code="G005",
        help_text=f"'{name}' already has a body",
    )


def create_assignment_target_error(location: Optional[SourceLocation]) -> CodegenError:
    return CodegenError(
        "destination of '=' must be a variable",
        location=location,
        code="G006",
    )


def create_conflicting_declaration_error(name: str, expected: int, found: int,
                                         location: Optional[SourceLocation]) -> CodegenError:
    return CodegenError(
        "conflicting declaration",
        location=location,
        code="G007",
        help_text=f"'{name}' is already declared with {expected} parameter(s), not {found}",
    )


def create_verification_error(name: str, detail: str,
                              location: Optional[SourceLocation]) -> CodegenError:
    return CodegenError(
        "generated function failed verification",
        location=location,
        code="G008",
        help_text=f"{name}: {detail.strip()}",
    )
