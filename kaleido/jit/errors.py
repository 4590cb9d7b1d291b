"""
Error handling for the Kaleido JIT.

Author: xwest
"""

from typing import List

from ..lexer.errors import KaleidoError


class JITError(KaleidoError):
    """Raised when a compilation unit cannot be linked into or run by the execution engine."""


# JIT error codes for categorization
JIT_ERROR_CODES = {
    "J001": "Unresolved external symbol",
    "J002": "Module rejected by LLVM",
    "J003": "Function not found in execution engine",
}


def create_unresolved_symbol_error(unit_name: str, symbols: List[str]) -> JITError:
    return JITError(
        "unresolved external symbol",
        code="J001",
        help_text=f"{unit_name} calls {', '.join(repr(s) for s in symbols)}, "
                  f"which no definition or loaded library provides yet",
    )


def create_module_rejected_error(unit_name: str, detail: str) -> JITError:
    return JITError(
        "module rejected by LLVM",
        code="J002",
        help_text=f"{unit_name}: {detail.strip()}",
    )


def create_missing_function_error(name: str) -> JITError:
    return JITError(
        "function not found in execution engine",
        code="J003",
        help_text=f"'{name}' has no finalized code",
    )
