"""
Kaleido Compiler Package

A compiler and JIT for Kaleido, a small expression language in the
Kaleidoscope family: every value is a double, functions and operators are
user-definable, and each top-level statement is compiled to native code with
LLVM as soon as it is read.

Architecture:
    kaleido/
    ├── lexer/           # Tokenization
    ├── parser/          # Precedence-climbing parser and AST
    ├── backend/         # LLVM IR generation into compilation units
    ├── jit/             # MCJIT execution engine and runtime builtins
    ├── session.py       # Statement-by-statement driver
    ├── config.py        # Session options
    └── cli.py           # Command line entry point

Author: xwest
License: MIT
"""

__version__ = "0.1.0"
__author__ = "xwest"
__license__ = "MIT"

from .lexer import Lexer, KaleidoError, LexerError
from .parser import Parser, ParseError
from .backend import CodeGenerator, CodegenError
from .jit import JITEngine, JITError
from .config import ErrorPolicy, SessionConfig
from .session import CompilationSession, run_source

__all__ = [
    # Core classes
    "Lexer",
    "Parser",
    "CodeGenerator",
    "JITEngine",
    "CompilationSession",
    "run_source",

    # Configuration
    "ErrorPolicy",
    "SessionConfig",

    # Errors
    "KaleidoError",
    "LexerError",
    "ParseError",
    "CodegenError",
    "JITError",

    # Version info
    "__version__",
    "__author__",
    "__license__",
]
