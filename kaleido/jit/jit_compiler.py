"""
Kaleido JIT Compiler
====================

Wraps llvmlite's MCJIT execution engine. Compilation units are added whole,
finalized to machine code, and may later be removed again; functions are
looked up by name and called through ctypes.

Features:
- One native target machine shared by every unit
- Units whose callees are not defined yet wait, then link as a group
- Registry of symbols defined by units currently in the engine
- libm loaded into the process so 'extern sin(x)' resolves

Author: xwest
"""

import ctypes
import ctypes.util
import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, List, Optional, Set

import llvmlite.binding as llvm

from ..backend.unit import CompilationUnit
from .errors import (
    create_unresolved_symbol_error, create_module_rejected_error,
    create_missing_function_error,
)

logger = logging.getLogger(__name__)

_llvm_initialized = False


def initialize_llvm():
    """Initialize the native target once per process."""
    global _llvm_initialized
    if _llvm_initialized:
        return

    llvm.initialize_native_target()
    llvm.initialize_native_asmprinter()
    llvm.initialize_native_asmparser()

    libm = ctypes.util.find_library("m")
    if libm:
        llvm.load_library_permanently(libm)
        logger.debug("loaded %s", libm)

    _llvm_initialized = True


class UnitState(Enum):
    """States of a compilation unit inside the engine"""
    PENDING = auto()    # Verified, waiting for a callee to be defined
    LOADED = auto()     # Finalized, its functions are callable
    REMOVED = auto()    # Taken out of the engine again


@dataclass
class UnitHandle:
    """Result of adding a unit; pass it back to remove the unit."""
    name: str
    module: llvm.ModuleRef
    definitions: List[str] = field(default_factory=list)
    calls: Set[str] = field(default_factory=set)
    state: UnitState = UnitState.PENDING


class JITEngine:
    """
    MCJIT execution engine for Kaleido compilation units.

    The engine starts from an empty backing module. ``add_unit`` verifies a
    unit and links it as soon as every function it calls can be found: in a
    loaded unit, in the process, or in other waiting units that link along
    with it. Until then the unit stays pending, which lets a function call
    another one that is only declared so far.
    """

    def __init__(self):
        initialize_llvm()

        target = llvm.Target.from_default_triple()
        self.target_machine = target.create_target_machine()

        backing_module = llvm.parse_assembly("")
        self.engine = llvm.create_mcjit_compiler(backing_module, self.target_machine)

        # Every name with a body in the engine, pending or loaded
        self.defined_symbols: Set[str] = set()
        self.loaded_symbols: Set[str] = set()
        self.units: Dict[str, UnitHandle] = {}

        # Statistics
        self.stats = {
            'units_added': 0,
            'units_deferred': 0,
            'units_removed': 0,
            'units_rejected': 0,
            'functions_run': 0,
        }

    @property
    def triple(self) -> str:
        return self.target_machine.triple

    @property
    def data_layout(self) -> str:
        return str(self.target_machine.target_data)

    @property
    def pending_units(self) -> List[UnitHandle]:
        return [h for h in self.units.values() if h.state is UnitState.PENDING]

    def create_unit(self, name: str) -> CompilationUnit:
        """New empty unit configured for this engine's target."""
        return CompilationUnit(name, triple=self.triple, data_layout=self.data_layout)

    def _owner(self, symbol: str) -> Optional[UnitHandle]:
        for handle in self.units.values():
            if symbol in handle.definitions:
                return handle
        return None

    def _missing_symbols(self, handle: UnitHandle, provided: Set[str]) -> List[str]:
        """Calls of ``handle`` that neither loaded units, ``provided`` nor the process satisfy."""
        missing = []
        for name in handle.calls:
            if name in self.loaded_symbols or name in provided:
                continue
            # A pending definition shadows a process symbol of the same name
            if name in self.defined_symbols or not llvm.address_of_symbol(name):
                missing.append(name)
        return sorted(missing)

    def unresolved_symbols(self, handle: UnitHandle) -> List[str]:
        """
        Names that keep ``handle`` from linking: called directly or through
        other pending units, and defined nowhere.
        """
        missing: Set[str] = set()
        seen: Set[str] = set()
        todo = [handle]
        while todo:
            current = todo.pop()
            if current.name in seen:
                continue
            seen.add(current.name)
            for name in self._missing_symbols(current, set()):
                owner = self._owner(name)
                if owner is None:
                    missing.add(name)
                elif owner.state is UnitState.PENDING:
                    todo.append(owner)
        return sorted(missing)

    def add_unit(self, unit: CompilationUnit) -> UnitHandle:
        """
        Verify ``unit`` and link it, together with any pending units it
        completes, as soon as all of their calls resolve.

        Raises:
            JITError: If LLVM rejects the module
        """
        try:
            module = unit.verify()
        except RuntimeError as e:
            self.stats['units_rejected'] += 1
            raise create_module_rejected_error(unit.name, str(e)) from e

        declared = {function.name for function in unit.declarations}
        handle = UnitHandle(
            name=unit.name,
            module=module,
            definitions=[function.name for function in unit.definitions],
            calls=unit.called_names() & declared,
        )
        self.units[unit.name] = handle
        self.defined_symbols.update(handle.definitions)

        self._link_pending()
        if handle.state is UnitState.PENDING:
            self.stats['units_deferred'] += 1
            logger.debug("%s waits for %s", unit.name,
                         ", ".join(self._missing_symbols(handle, set())))
        return handle

    def _link_pending(self) -> List[UnitHandle]:
        """Finalize the largest group of pending units whose calls all resolve."""
        ready = self.pending_units
        while ready:
            provided = {name for h in ready for name in h.definitions}
            blocked = {h.name for h in ready if self._missing_symbols(h, provided)}
            if not blocked:
                break
            ready = [h for h in ready if h.name not in blocked]

        if not ready:
            return []

        for handle in ready:
            self.engine.add_module(handle.module)
        self.engine.finalize_object()

        for handle in ready:
            handle.state = UnitState.LOADED
            self.loaded_symbols.update(handle.definitions)
            self.stats['units_added'] += 1
            logger.debug("finalized %s defining %s", handle.name,
                         ", ".join(handle.definitions) or "nothing")
        return ready

    def remove_unit(self, handle: UnitHandle):
        """Take a unit out of the engine; its functions are no longer callable."""
        if handle.state is UnitState.REMOVED:
            return

        if handle.state is UnitState.LOADED:
            self.engine.remove_module(handle.module)
            self.loaded_symbols.difference_update(handle.definitions)
        self.defined_symbols.difference_update(handle.definitions)
        self.units.pop(handle.name, None)
        handle.state = UnitState.REMOVED
        self.stats['units_removed'] += 1

        logger.debug("removed %s", handle.name)

    def get_function_address(self, name: str) -> int:
        """
        Address of the finalized function ``name``.

        Raises:
            JITError: If no unit defines it, or its unit cannot be linked yet
        """
        owner = self._owner(name)
        if owner is None:
            raise create_missing_function_error(name)
        if owner.state is UnitState.PENDING:
            raise create_unresolved_symbol_error(owner.name, self.unresolved_symbols(owner))

        address = self.engine.get_function_address(name)
        if not address:
            raise create_missing_function_error(name)
        return address

    def run_function(self, name: str, *args: float) -> float:
        """Call ``double name(double, ...)`` natively and return its result."""
        address = self.get_function_address(name)
        function_type = ctypes.CFUNCTYPE(ctypes.c_double, *([ctypes.c_double] * len(args)))
        native = function_type(address)

        self.stats['functions_run'] += 1
        return float(native(*args))

    def get_stats(self) -> Dict[str, int]:
        stats = dict(self.stats)
        stats['units_loaded'] = len(self.units) - len(self.pending_units)
        stats['units_pending'] = len(self.pending_units)
        stats['defined_symbols'] = len(self.defined_symbols)
        return stats
