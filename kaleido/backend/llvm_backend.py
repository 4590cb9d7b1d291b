"""
LLVM Backend for Kaleido.

Lowers the AST to LLVM IR with llvmlite. Every value is a double; every named
local is an alloca in the entry block so that assignment and loop variables
need no hand-built phi nodes (LLVM's mem2reg can promote them later).

Author: xwest
"""

import logging
from typing import Dict, List, Optional, Set

from llvmlite import ir

from ..parser.ast_nodes import *
from ..parser.parser import OperatorPrecedence
from .scope import ScopeTable
from .unit import CompilationUnit, DOUBLE
from .errors import (
    create_unknown_variable_error, create_unknown_function_error,
    create_argument_count_error, create_invalid_operator_error,
    create_redefinition_error, create_assignment_target_error,
    create_conflicting_declaration_error, create_verification_error,
)

logger = logging.getLogger(__name__)

ZERO = ir.Constant(DOUBLE, 0.0)
ONE = ir.Constant(DOUBLE, 1.0)


class CodeGenerator:
    """
    AST to LLVM IR code generator.

    Handles:
    - Constants, variables and assignment through stack slots
    - Built-in arithmetic and comparison, calls to user-defined operators
    - if/then/else and for loops as explicit basic blocks
    - Function declarations resolved across compilation units

    The generator writes into ``self.unit``; the session swaps in a fresh
    unit each time it hands the previous one to the JIT.
    """

    def __init__(self, prototypes: Optional[Dict[str, Prototype]] = None,
                 precedence: Optional[OperatorPrecedence] = None,
                 definitions: Optional[Set[str]] = None):
        """
        Initialize the code generator.

        Args:
            prototypes: Prototype cache shared with the session; survives units
            precedence: Operator table shared with the parser
            definitions: Names whose bodies are already finalized in the JIT
        """
        self.prototypes = prototypes if prototypes is not None else {}
        self.precedence = precedence if precedence is not None else OperatorPrecedence()
        self.definitions = definitions if definitions is not None else set()

        self.unit: Optional[CompilationUnit] = None
        self.builder: Optional[ir.IRBuilder] = None
        self.scope = ScopeTable()

    # Function lookup

    def get_function(self, name: str) -> Optional[ir.Function]:
        """
        Resolve ``name`` in the current unit, declaring it from the
        prototype cache if it was defined or declared in an earlier unit.
        """
        function = self.unit.get_function(name)
        if function is not None:
            return function

        prototype = self.prototypes.get(name)
        if prototype is not None:
            logger.debug("declaring %s in %s from prototype cache", name, self.unit.name)
            return self.unit.declare(prototype.name, prototype.params)

        return None

    def _check_declaration(self, prototype: Prototype):
        """Reject a prototype whose arity disagrees with what is already known under its name."""
        known: List[int] = []
        existing = self.unit.get_function(prototype.name)
        if existing is not None:
            known.append(len(existing.args))
        cached = self.prototypes.get(prototype.name)
        if cached is not None and prototype.name in self.definitions:
            known.append(cached.arity)

        for arity in known:
            if arity != prototype.arity:
                raise create_conflicting_declaration_error(
                    prototype.name, arity, prototype.arity, prototype.location
                )

    # Top-level generation

    def generate_prototype(self, prototype: Prototype) -> ir.Function:
        """Emit a declaration for an ``extern`` and remember its prototype."""
        self._check_declaration(prototype)
        self.prototypes[prototype.name] = prototype

        function = self.unit.get_function(prototype.name)
        if function is None:
            function = self.unit.declare(prototype.name, prototype.params)
        return function

    def generate_function(self, function_def: FunctionDef) -> ir.Function:
        """
        Generate a complete function into the current unit.

        On failure the function is erased from the unit and the error is
        re-raised. On success a binary operator's precedence is installed.

        Raises:
            CodegenError: If the body cannot be generated
        """
        prototype = function_def.prototype

        if prototype.name in self.definitions:
            raise create_redefinition_error(prototype.name, prototype.location)
        self._check_declaration(prototype)

        self.prototypes[prototype.name] = prototype
        function = self.get_function(prototype.name)
        if not function.is_declaration:
            raise create_redefinition_error(prototype.name, prototype.location)

        entry = function.append_basic_block("entry")
        self.builder = ir.IRBuilder(entry)
        self.scope.reset()

        try:
            for arg, name in zip(function.args, prototype.params):
                slot = self._create_entry_block_alloca(function, name)
                self.builder.store(arg, slot)
                self.scope.bind(name, slot)

            return_value = self._generate_expression(function_def.body)
            self.builder.ret(return_value)
            self._verify(function, prototype)
        except Exception:
            logger.debug("discarding %s from %s", prototype.name, self.unit.name)
            self.unit.erase_function(function)
            raise
        finally:
            self.builder = None

        if prototype.is_binary_op:
            self.precedence[prototype.operator_name] = prototype.precedence
            logger.debug("installed precedence %d for %r",
                         prototype.precedence, prototype.operator_name)

        return function

    def _verify(self, function: ir.Function, prototype: Prototype):
        try:
            self.unit.verify()
        except RuntimeError as e:
            raise create_verification_error(function.name, str(e), prototype.location) from e

    def _create_entry_block_alloca(self, function: ir.Function, name: str) -> ir.AllocaInstr:
        """Allocate a stack slot at the top of the entry block, where mem2reg looks for them."""
        entry = function.entry_basic_block
        builder = ir.IRBuilder(entry)
        builder.position_at_start(entry)
        slot = builder.alloca(DOUBLE, name=name)

        # Inserting at the top shifts the main builder's insertion index
        if self.builder.block is entry:
            self.builder.position_at_end(entry)
        return slot

    # Expressions

    def _generate_expression(self, node: Expression) -> ir.Value:
        """Dispatch on the node type."""
        if isinstance(node, NumberLiteral):
            return ir.Constant(DOUBLE, node.value)
        elif isinstance(node, Variable):
            return self._generate_variable(node)
        elif isinstance(node, UnaryOp):
            return self._generate_unary_op(node)
        elif isinstance(node, BinaryOp):
            return self._generate_binary_op(node)
        elif isinstance(node, FunctionCall):
            return self._generate_call(node)
        elif isinstance(node, IfExpr):
            return self._generate_if(node)
        elif isinstance(node, ForLoop):
            return self._generate_for(node)
        elif isinstance(node, VarBinding):
            return self._generate_var_binding(node)
        raise TypeError(f"cannot generate code for {type(node).__name__}")

    def _generate_variable(self, node: Variable) -> ir.Value:
        slot = self.scope.lookup(node.name)
        if slot is None:
            raise create_unknown_variable_error(
                node.name, node.location, self.scope.get_similar_names(node.name)
            )
        return self.builder.load(slot, node.name)

    def _generate_unary_op(self, node: UnaryOp) -> ir.Value:
        operand = self._generate_expression(node.operand)

        function = self.get_function("unary" + node.op)
        if function is None:
            raise create_invalid_operator_error("unary", node.op, node.location)
        return self.builder.call(function, [operand], "unop")

    def _generate_binary_op(self, node: BinaryOp) -> ir.Value:
        if node.op == '=':
            return self._generate_assignment(node)

        left = self._generate_expression(node.left)
        right = self._generate_expression(node.right)

        op = node.op
        if op == '+':
            return self.builder.fadd(left, right, "addtmp")
        elif op == '-':
            return self.builder.fsub(left, right, "subtmp")
        elif op == '*':
            return self.builder.fmul(left, right, "multmp")
        elif op == '/':
            return self.builder.fdiv(left, right, "divtmp")
        elif op == '<':
            result = self.builder.fcmp_unordered('<', left, right, "cmptmp")
            # i1 -> 0.0 / 1.0
            return self.builder.uitofp(result, DOUBLE, "booltmp")

        function = self.get_function("binary" + op)
        if function is None:
            raise create_invalid_operator_error("binary", op, node.location)
        return self.builder.call(function, [left, right], "binop")

    def _generate_assignment(self, node: BinaryOp) -> ir.Value:
        if not isinstance(node.left, Variable):
            raise create_assignment_target_error(node.location)

        value = self._generate_expression(node.right)

        slot = self.scope.lookup(node.left.name)
        if slot is None:
            raise create_unknown_variable_error(
                node.left.name, node.left.location,
                self.scope.get_similar_names(node.left.name)
            )
        self.builder.store(value, slot)
        return value

    def _generate_call(self, node: FunctionCall) -> ir.Value:
        function = self.get_function(node.callee)
        if function is None:
            raise create_unknown_function_error(node.callee, node.location)

        if len(function.args) != len(node.args):
            raise create_argument_count_error(
                node.callee, len(function.args), len(node.args), node.location
            )

        args = [self._generate_expression(arg) for arg in node.args]
        return self.builder.call(function, args, "calltmp")

    def _generate_if(self, node: IfExpr) -> ir.Value:
        condition = self._generate_expression(node.condition)
        condition = self.builder.fcmp_ordered('!=', condition, ZERO, "ifcond")

        function = self.builder.function
        then_block = function.append_basic_block("then")
        else_block = function.append_basic_block("else")
        merge_block = function.append_basic_block("ifcont")

        self.builder.cbranch(condition, then_block, else_block)

        self.builder.position_at_end(then_block)
        then_value = self._generate_expression(node.then_branch)
        self.builder.branch(merge_block)
        # Nested control flow may have moved us; the phi needs the block we leave from
        then_exit = self.builder.block

        self.builder.position_at_end(else_block)
        else_value = self._generate_expression(node.else_branch)
        self.builder.branch(merge_block)
        else_exit = self.builder.block

        self.builder.position_at_end(merge_block)
        phi = self.builder.phi(DOUBLE, "iftmp")
        phi.add_incoming(then_value, then_exit)
        phi.add_incoming(else_value, else_exit)
        return phi

    def _generate_for(self, node: ForLoop) -> ir.Value:
        function = self.builder.function

        start = self._generate_expression(node.start)
        slot = self._create_entry_block_alloca(function, node.var_name)
        self.builder.store(start, slot)

        loop_block = function.append_basic_block("loop")
        self.builder.branch(loop_block)
        self.builder.position_at_end(loop_block)

        saved = [self.scope.bind(node.var_name, slot)]
        try:
            self._generate_expression(node.body)

            if node.step is not None:
                step = self._generate_expression(node.step)
            else:
                step = ONE

            current = self.builder.load(slot, node.var_name)
            next_value = self.builder.fadd(current, step, "nextvar")
            self.builder.store(next_value, slot)

            end = self._generate_expression(node.end)
            end_condition = self.builder.fcmp_ordered('!=', end, ZERO, "loopcond")
        finally:
            self.scope.restore(saved)

        after_block = function.append_basic_block("afterloop")
        self.builder.cbranch(end_condition, loop_block, after_block)
        self.builder.position_at_end(after_block)

        return ZERO

    def _generate_var_binding(self, node: VarBinding) -> ir.Value:
        function = self.builder.function

        saved = []
        try:
            for name, init in node.bindings:
                # Evaluated before the new binding exists, so 'var x = x' sees the outer x
                value = self._generate_expression(init) if init is not None else ZERO
                slot = self._create_entry_block_alloca(function, name)
                self.builder.store(value, slot)
                saved.append(self.scope.bind(name, slot))

            return self._generate_expression(node.body)
        finally:
            self.scope.restore(saved)
