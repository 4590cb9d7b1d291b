"""
Kaleido Compilation Session
===========================

Drives the pipeline one top-level statement at a time. Each definition or
expression is generated into the current compilation unit, which is then
handed to the JIT and replaced by a fresh one. Later units reach earlier
functions through the prototype cache, which outlives every unit.

Statements:
- ``def``     generate, finalize once its callees exist, keep in the JIT
- ``extern``  declare in the current unit and cache the prototype
- expression  wrap in an anonymous function, finalize, run, unload
- ``;``       ignored

Author: xwest
"""

import logging
import sys
from typing import Dict, List, Optional, Set, TextIO, Union

from llvmlite import ir

from .config import SessionConfig
from .lexer import Lexer, LexerError, TokenType, KaleidoError
from .parser import Parser, ParseError, OperatorPrecedence, Prototype, ANON_EXPR_NAME
from .backend import CodeGenerator, CodegenError
from .jit import JITEngine, JITError, RuntimeLibrary, UnitHandle

logger = logging.getLogger(__name__)


class CompilationSession:
    """
    Incremental compiler and evaluator for Kaleido source.

    Owns the state that lives across statements: the operator precedence
    table, the prototype cache, the JIT engine and the runtime builtins.
    Results go to ``output``; error reports, prompts and IR dumps go to
    ``diagnostics``.
    """

    def __init__(self, config: Optional[SessionConfig] = None,
                 output: Optional[TextIO] = None,
                 diagnostics: Optional[TextIO] = None):
        self.config = config if config is not None else SessionConfig()
        self.output = output if output is not None else sys.stdout
        self.diagnostics = diagnostics if diagnostics is not None else sys.stderr

        self.precedence = OperatorPrecedence()
        self.prototypes: Dict[str, Prototype] = {}

        self.jit = JITEngine()
        self.runtime = RuntimeLibrary(self.output)
        self.codegen = CodeGenerator(self.prototypes, self.precedence, self.jit.defined_symbols)

        self.errors: List[KaleidoError] = []
        self.results: List[float] = []

        self._unit_count = 0
        self._anon_count = 0
        self._open_unit()

    @property
    def unit(self):
        """The compilation unit currently being filled."""
        return self.codegen.unit

    def _open_unit(self):
        self.codegen.unit = self.jit.create_unit(f"kaleido_unit_{self._unit_count}")
        self._unit_count += 1
        logger.debug("opened %s", self.codegen.unit.name)

    def _finalize_unit(self) -> UnitHandle:
        """Hand the current unit to the JIT and start a new one, whether or not linking succeeds."""
        unit = self.codegen.unit
        try:
            return self.jit.add_unit(unit)
        except JITError:
            # Nothing from a rejected unit exists in the JIT
            for function in unit.definitions:
                self.prototypes.pop(function.name, None)
            raise
        finally:
            self._open_unit()

    # Driver

    def run(self, source: Union[str, TextIO]) -> List[float]:
        """
        Compile and evaluate every statement in ``source``.

        Returns:
            The values of the top-level expressions, in order

        Raises:
            KaleidoError: Only under ErrorPolicy.ABORT, the first error reported
        """
        self.runtime.install()

        lexer = Lexer(source, filename=self.config.filename,
                      strict_numbers=self.config.strict_numbers)
        parser = None
        results = []

        while True:
            self._show_prompt()
            try:
                if parser is None:
                    parser = Parser(lexer, self.precedence)

                token = parser.current
                if token.type == TokenType.EOF:
                    break
                elif token.is_char(';'):
                    parser.advance()  # ignore top-level semicolons
                elif token.type == TokenType.DEF:
                    self.handle_definition(parser)
                elif token.type == TokenType.EXTERN:
                    self.handle_extern(parser)
                else:
                    results.append(self.handle_top_level_expression(parser))

            except (LexerError, ParseError) as e:
                self._report(e)
                if parser is not None:
                    self._skip_token(parser)
            except (CodegenError, JITError) as e:
                self._report(e)

        return results

    def _skip_token(self, parser: Parser):
        """Skip one token for error recovery."""
        while True:
            try:
                parser.advance()
                return
            except LexerError as e:
                self._report(e)

    # Top-level statements

    def handle_definition(self, parser: Parser) -> ir.Function:
        function_def = parser.parse_definition()
        prototype = function_def.prototype
        operator = prototype.operator_name if prototype.is_binary_op else None
        previous = self.precedence[operator] if operator in self.precedence else None

        function = self.codegen.generate_function(function_def)
        self._dump_ir("Read function definition:", function)
        try:
            self._finalize_unit()
        except JITError:
            if operator is not None:
                self._restore_precedence(operator, previous)
            raise
        return function

    def _restore_precedence(self, operator: str, previous: Optional[int]):
        if previous is None:
            del self.precedence[operator]
        else:
            self.precedence[operator] = previous

    def handle_extern(self, parser: Parser) -> ir.Function:
        prototype = parser.parse_extern()
        function = self.codegen.generate_prototype(prototype)
        self._dump_ir("Read extern:", function)
        return function

    def handle_top_level_expression(self, parser: Parser) -> float:
        """Evaluate one expression in its own unit, then unload that unit."""
        name = f"{ANON_EXPR_NAME}_{self._anon_count}"
        self._anon_count += 1

        function_def = parser.parse_top_level_expression(name)
        try:
            function = self.codegen.generate_function(function_def)
            self._dump_ir("Read top-level expression:", function)

            handle = self._finalize_unit()
            try:
                value = self.jit.run_function(name)
            finally:
                self.jit.remove_unit(handle)
        finally:
            self.prototypes.pop(name, None)

        print("Evaluated to %f" % value, file=self.output)
        self.results.append(value)
        return value

    # Reporting

    def _report(self, error: KaleidoError):
        self.errors.append(error)
        print(str(error), end="", file=self.diagnostics)
        logger.debug("reported %s: %s", type(error).__name__, error.message)

        if self.config.aborts_on_error:
            raise error

    def _dump_ir(self, label: str, function: ir.Function):
        if self.config.dump_ir:
            print(label, file=self.diagnostics)
            print(str(function), file=self.diagnostics)

    def _show_prompt(self):
        if self.config.prompt:
            self.diagnostics.write(self.config.prompt)
            self.diagnostics.flush()

    @property
    def defined_functions(self) -> Set[str]:
        """Names of the functions currently finalized in the JIT."""
        return set(self.jit.loaded_symbols)

    @property
    def pending_functions(self) -> Set[str]:
        """Names defined in units that wait for a callee to be defined."""
        return self.jit.defined_symbols - self.jit.loaded_symbols


def run_source(source: Union[str, TextIO], config: Optional[SessionConfig] = None,
               output: Optional[TextIO] = None,
               diagnostics: Optional[TextIO] = None) -> List[float]:
    """Convenience function: evaluate ``source`` in a fresh session."""
    session = CompilationSession(config, output, diagnostics)
    return session.run(source)
