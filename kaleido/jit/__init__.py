"""
Kaleido JIT Package.

MCJIT execution engine and the native builtins generated code can call.

Author: xwest
"""

from .jit_compiler import JITEngine, UnitHandle, UnitState, initialize_llvm
from .runtime import RuntimeLibrary
from .errors import JITError

__all__ = ['JITEngine', 'UnitHandle', 'UnitState', 'initialize_llvm', 'RuntimeLibrary', 'JITError']
