"""
Compilation units.

A compilation unit is one ``llvmlite.ir.Module`` that is filled by the code
generator and then handed to the JIT as a whole. Each top-level statement
that produces code ends its unit; later units reach earlier functions through
declarations regenerated from the prototype cache.

Author: xwest
"""

from typing import List, Optional, Sequence, Set

import llvmlite.binding as llvm
from llvmlite import ir
from llvmlite.ir.instructions import CallInstr


DOUBLE = ir.DoubleType()


def _remove_global(module: ir.Module, name: str):
    """
    Drop the global ``name`` from ``module`` and release the name.

    llvmlite has no public API for this. Written against llvmlite 0.45:
    ``Module.globals`` maps names to values and ``Module.scope._useset``
    holds the names already taken. Recheck both on a new llvmlite release.
    """
    del module.globals[name]
    module.scope._useset.discard(name)


class CompilationUnit:
    """Wrapper around an IR module with the handful of operations codegen needs."""

    def __init__(self, name: str, triple: Optional[str] = None,
                 data_layout: Optional[str] = None):
        self.name = name
        self.module = ir.Module(name=name)
        if triple:
            self.module.triple = triple
        if data_layout:
            self.module.data_layout = data_layout

    def get_function(self, name: str) -> Optional[ir.Function]:
        """Function named ``name`` in this unit, declared or defined."""
        value = self.module.globals.get(name)
        return value if isinstance(value, ir.Function) else None

    def declare(self, name: str, params: Sequence[str]) -> ir.Function:
        """Add ``double name(double, ...)`` with one argument per parameter name."""
        function_type = ir.FunctionType(DOUBLE, [DOUBLE] * len(params))
        function = ir.Function(self.module, function_type, name=name)
        for arg, param in zip(function.args, params):
            arg.name = param
        return function

    def erase_function(self, function: ir.Function):
        """Remove ``function`` so the unit never carries half-built IR."""
        _remove_global(self.module, function.name)

    @property
    def functions(self) -> List[ir.Function]:
        return list(self.module.functions)

    @property
    def declarations(self) -> List[ir.Function]:
        """Functions this unit calls but does not define."""
        return [f for f in self.module.functions if f.is_declaration]

    @property
    def definitions(self) -> List[ir.Function]:
        return [f for f in self.module.functions if not f.is_declaration]

    def called_names(self) -> Set[str]:
        """Names of every function called from a body in this unit."""
        names = set()
        for function in self.definitions:
            for block in function.blocks:
                for instruction in block.instructions:
                    if isinstance(instruction, CallInstr):
                        names.add(instruction.callee.name)
        return names

    def is_empty(self) -> bool:
        return not self.module.globals

    def verify(self) -> llvm.ModuleRef:
        """
        Parse the textual IR with LLVM and run its verifier.

        Returns:
            The parsed module, ready to be added to an execution engine

        Raises:
            RuntimeError: If LLVM rejects the module
        """
        module_ref = llvm.parse_assembly(str(self.module))
        module_ref.name = self.name
        module_ref.verify()
        return module_ref

    def __str__(self) -> str:
        return str(self.module)

    def __repr__(self) -> str:
        return f"CompilationUnit({self.name!r}, {len(self.module.globals)} globals)"
