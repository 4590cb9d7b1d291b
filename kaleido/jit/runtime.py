"""
Native builtins callable from Kaleido code.

``putchard`` and ``printd`` are Python functions wrapped as C callbacks and
published to LLVM's process symbol table, so ``extern printd(x)`` links to
them like any libc function.

Author: xwest
"""

import ctypes
import logging
import sys
from typing import Any, Callable, Dict, Optional, TextIO

import llvmlite.binding as llvm

logger = logging.getLogger(__name__)

# double (*)(double)
DOUBLE_CALLBACK = ctypes.CFUNCTYPE(ctypes.c_double, ctypes.c_double)


class RuntimeLibrary:
    """
    The builtins of one session, writing to that session's output stream.

    LLVM's symbol table is process-wide: ``install`` points the builtin
    names at this instance's callbacks, and whichever library installed last
    is the one newly finalized code links against.
    """

    def __init__(self, output: Optional[TextIO] = None):
        self.output = output if output is not None else sys.stdout
        self._callbacks: Dict[str, Any] = {}

        self.register("putchard", self.putchard)
        self.register("printd", self.printd)

    def putchard(self, x: float) -> float:
        """Write the character with code ``x``; returns 0."""
        self.output.write(chr(int(x)))
        return 0.0

    def printd(self, x: float) -> float:
        """Write ``x`` in %f format on its own line; returns 0."""
        self.output.write("%f\n" % x)
        return 0.0

    def register(self, name: str, function: Callable[[float], float]):
        """Wrap ``function`` as a native callback and publish it under ``name``."""
        # The callback object must outlive every piece of code that calls it
        callback = DOUBLE_CALLBACK(function)
        self._callbacks[name] = callback
        self._publish(name, callback)

    def install(self):
        """(Re)publish every builtin of this library."""
        for name, callback in self._callbacks.items():
            self._publish(name, callback)

    def _publish(self, name: str, callback):
        address = ctypes.cast(callback, ctypes.c_void_p).value
        llvm.add_symbol(name, address)
        logger.debug("builtin %s at 0x%x", name, address)

    @property
    def names(self):
        return list(self._callbacks)

    def __contains__(self, name: str) -> bool:
        return name in self._callbacks
