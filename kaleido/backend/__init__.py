"""
Kaleido Backend Package.

Lowers the AST to LLVM IR, one compilation unit at a time.

Author: xwest
"""

from .llvm_backend import CodeGenerator
from .unit import CompilationUnit, DOUBLE
from .scope import ScopeTable
from .errors import CodegenError

__all__ = ['CodeGenerator', 'CompilationUnit', 'DOUBLE', 'ScopeTable', 'CodegenError']
