"""
End-to-end tests for Kaleido.

Each test runs source through a CompilationSession, so everything here is
compiled and executed by the JIT.

Author: xwest
"""

import io
import os
import sys
import unittest
from unittest import mock

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from kaleido import (
    CompilationSession, SessionConfig, ErrorPolicy,
    LexerError, ParseError, CodegenError, JITError,
)
from kaleido.jit.errors import create_module_rejected_error


class SessionTestCase(unittest.TestCase):
    """Fresh session with captured streams per test."""

    config = None

    def setUp(self):
        self.output = io.StringIO()
        self.diagnostics = io.StringIO()
        self.session = CompilationSession(self.config, self.output, self.diagnostics)

    def run_source(self, source: str):
        return self.session.run(source)

    def error_messages(self):
        return [error.message for error in self.session.errors]


class TestEvaluation(SessionTestCase):

    def test_arithmetic(self):
        self.assertEqual(self.run_source("4 + 5;"), [9.0])
        self.assertIn("Evaluated to 9.000000", self.output.getvalue())

    def test_division_and_comparison(self):
        self.assertEqual(self.run_source("7 / 2; 1 < 2; 2 < 1;"), [3.5, 1.0, 0.0])

    def test_definition_and_call(self):
        self.assertEqual(self.run_source("def square(x) x * x; square(4);"), [16.0])
        self.assertEqual(self.session.errors, [])

    def test_calls_across_units(self):
        source = """
        def twice(x) x * 2;
        def quad(x) twice(twice(x));
        quad(3);
        """
        self.assertEqual(self.run_source(source), [12.0])

    def test_state_survives_between_runs(self):
        self.run_source("def inc(x) x + 1;")
        self.assertEqual(self.run_source("inc(inc(1));"), [3.0])

    def test_recursion(self):
        source = """
        def fib(x)
          if x < 3 then
            1
          else
            fib(x-1) + fib(x-2);
        fib(10);
        """
        self.assertEqual(self.run_source(source), [55.0])

    def test_user_binary_operator(self):
        source = """
        def binary ^ 50 (a b) a * b;
        2 ^ 3 + 1;
        1 + 2 ^ 3;
        """
        self.assertEqual(self.run_source(source), [7.0, 7.0])

    def test_low_precedence_operator(self):
        source = """
        def binary : 1 (x y) y;
        1 + 1 : 5 * 2;
        """
        self.assertEqual(self.run_source(source), [10.0])

    def test_user_unary_operator(self):
        source = """
        def unary ! (v) if v then 0 else 1;
        !0;
        !5;
        """
        self.assertEqual(self.run_source(source), [1.0, 0.0])

    def test_nested_var_shadowing(self):
        self.assertEqual(self.run_source("var x = 1 in var x = x + 1 in x;"), [2.0])

    def test_assignment(self):
        self.assertEqual(self.run_source("var a = 1 in (a = a + 4) * 0 + a;"), [5.0])

    def test_for_loop_with_printd(self):
        source = """
        extern printd(x);
        for i = 1, i < 4 in printd(i);
        """
        self.assertEqual(self.run_source(source), [0.0])
        self.assertEqual(self.output.getvalue(),
                         "1.000000\n2.000000\n3.000000\nEvaluated to 0.000000\n")

    def test_for_loop_restores_outer_binding(self):
        source = """
        def f(i) (for i = 0, i < 3 in 0) + i;
        f(10);
        """
        self.assertEqual(self.run_source(source), [10.0])

    def test_for_loop_with_step(self):
        source = """
        def stepsum(n) var total = 0 in (for i = 0, i < n, 2 in total = total + i) + total;
        stepsum(7);
        """
        # i = 0, 2, 4, 6: the end test sees the incremented value
        self.assertEqual(self.run_source(source), [12.0])

    def test_putchard(self):
        self.run_source("extern putchard(c); putchard(65); putchard(10);")
        self.assertTrue(self.output.getvalue().startswith("AEvaluated to 0.000000\n\n"))

    def test_semicolons_are_ignored(self):
        self.assertEqual(self.run_source(";;; 1;;"), [1.0])

    def test_lenient_numbers(self):
        self.assertEqual(self.run_source("1.2.3;"), [1.2])


class TestUnitLifecycle(SessionTestCase):

    def test_anonymous_unit_is_unloaded(self):
        self.run_source("1 + 1;")
        self.assertEqual(self.session.jit.units, {})
        self.assertEqual(self.session.defined_functions, set())
        self.assertEqual(self.session.prototypes, {})

    def test_definitions_stay_loaded(self):
        self.run_source("def f(x) x; f(1);")
        self.assertEqual(self.session.defined_functions, {"f"})
        self.assertEqual(len(self.session.jit.units), 1)

    def test_bindings_do_not_outlive_their_expression(self):
        self.assertEqual(self.run_source("var y = 1 in y; y;"), [1.0])
        self.assertEqual(self.error_messages(), ["unknown variable name"])

    def test_redefinition_keeps_first_version(self):
        source = """
        def foo(x) x;
        def foo(x) x + 1;
        foo(5);
        """
        self.assertEqual(self.run_source(source), [5.0])
        self.assertEqual(self.error_messages(), ["function cannot be redefined"])
        self.assertIsInstance(self.session.errors[0], CodegenError)

    def test_extern_conflicting_with_definition(self):
        self.run_source("def f(x) x; extern f(a b); f(2);")
        self.assertEqual(self.error_messages(), ["conflicting declaration"])

    def test_unresolved_extern_is_reported(self):
        source = """
        extern kaleidoMissing(x);
        kaleidoMissing(1);
        2;
        """
        self.assertEqual(self.run_source(source), [2.0])
        self.assertEqual(self.error_messages(), ["unresolved external symbol"])
        self.assertIsInstance(self.session.errors[0], JITError)

    def test_call_into_waiting_definition_is_reported(self):
        source = """
        extern kaleidoMissing(x);
        def g(x) kaleidoMissing(x);
        g(1);
        """
        self.assertEqual(self.run_source(source), [])
        self.assertEqual(self.error_messages(), ["unresolved external symbol"])
        self.assertIn("kaleidoMissing", self.session.errors[0].diagnostic.help_text)
        self.assertEqual(self.session.pending_functions, {"g"})
        self.assertNotIn("g", self.session.defined_functions)

    def test_forward_reference_through_extern(self):
        source = """
        extern g(x);
        def f(x) g(x) + 1;
        def g(x) x * 2;
        f(3);
        """
        self.assertEqual(self.run_source(source), [7.0])
        self.assertEqual(self.session.errors, [])
        self.assertEqual(self.session.pending_functions, set())

    def test_mutual_recursion(self):
        source = """
        extern iseven(n);
        def isodd(n) if n < 1 then 0 else iseven(n - 1);
        def iseven(n) if n < 1 then 1 else isodd(n - 1);
        isodd(5);
        iseven(5);
        """
        self.assertEqual(self.run_source(source), [1.0, 0.0])
        self.assertEqual(self.session.errors, [])

    def test_waiting_definition_links_in_a_later_run(self):
        self.run_source("extern later(x); def early(x) later(x) + 1;")
        self.assertEqual(self.session.pending_functions, {"early"})

        self.assertEqual(self.run_source("def later(x) x * 10; early(2);"), [21.0])
        self.assertEqual(self.session.defined_functions, {"early", "later"})

    def test_waiting_definition_cannot_be_redefined(self):
        self.run_source("extern later(x); def early(x) later(x);")
        self.run_source("def early(x) x;")
        self.assertEqual(self.error_messages(), ["function cannot be redefined"])

    def test_unused_unresolved_extern_does_not_block_unit(self):
        self.assertEqual(self.run_source("extern kaleidoMissing(x); def h(x) x; h(3);"), [3.0])
        self.assertEqual(self.session.errors, [])

    def test_failed_operator_definition_leaves_no_precedence(self):
        self.run_source("def binary | 5 (a b) c;")
        self.assertNotIn('|', self.session.precedence)

    def test_operator_waiting_for_callee_keeps_precedence(self):
        """The operator is defined; only calling it needs the missing extern."""
        source = """
        extern kaleidoMissing(x);
        def binary % 50 (a b) kaleidoMissing(a);
        1 % 2;
        """
        self.assertEqual(self.run_source(source), [])
        self.assertEqual(self.error_messages(), ["unresolved external symbol"])
        self.assertEqual(self.session.precedence.get('%'), 50)
        self.assertEqual(self.session.pending_functions, {"binary%"})

    def test_operator_rejected_by_jit_leaves_no_precedence(self):
        rejected = create_module_rejected_error("kaleido_unit_0", "invalid module")
        with mock.patch.object(self.session.jit, "add_unit", side_effect=rejected):
            self.run_source("def binary % 50 (a b) a - b;")

        self.assertEqual(self.error_messages(), ["module rejected by LLVM"])
        self.assertNotIn('%', self.session.precedence)
        self.assertNotIn("binary%", self.session.prototypes)

    def test_operator_rejected_by_jit_restores_previous_precedence(self):
        rejected = create_module_rejected_error("kaleido_unit_0", "invalid module")
        with mock.patch.object(self.session.jit, "add_unit", side_effect=rejected):
            self.run_source("def binary + 5 (a b) a;")

        self.assertEqual(self.session.precedence.get('+'), 20)
        self.assertEqual(self.run_source("1 + 2 * 3;"), [7.0])


class TestErrorRecovery(SessionTestCase):

    def test_parse_error_recovery(self):
        self.assertEqual(self.run_source("def foo(x y;\n1 + 2;"), [3.0])
        self.assertEqual(len(self.session.errors), 1)
        self.assertIsInstance(self.session.errors[0], ParseError)
        self.assertIn("expected ')' in prototype", self.diagnostics.getvalue())

    def test_codegen_error_recovery(self):
        self.assertEqual(self.run_source("nothere(1); 3;"), [3.0])
        self.assertEqual(self.error_messages(), ["unknown function referenced"])

    def test_error_report_format(self):
        self.run_source("def f(x) y;")
        report = self.diagnostics.getvalue()
        self.assertIn("ERROR[G001]: unknown variable name", report)
        self.assertIn("--> <stdin>:1:10", report)


class TestStrictNumbers(SessionTestCase):

    config = SessionConfig(strict_numbers=True)

    def test_malformed_number_is_reported(self):
        self.assertEqual(self.run_source("1.2.3; 4;"), [4.0])
        self.assertEqual(len(self.session.errors), 1)
        self.assertIsInstance(self.session.errors[0], LexerError)


class TestAbortPolicy(SessionTestCase):

    config = SessionConfig(error_policy=ErrorPolicy.ABORT)

    def test_first_error_is_raised(self):
        with self.assertRaises(ParseError):
            self.run_source("def foo(x y; 1 + 2;")
        self.assertNotIn("Evaluated", self.output.getvalue())
        self.assertEqual(len(self.session.errors), 1)

    def test_codegen_error_is_raised(self):
        with self.assertRaises(CodegenError):
            self.run_source("1; nothere(); 2;")
        self.assertEqual(self.session.results, [1.0])


class TestDumpIR(SessionTestCase):

    config = SessionConfig(dump_ir=True)

    def test_ir_is_printed(self):
        self.run_source("extern printd(x); def sq(x) x * x; sq(2);")
        dump = self.diagnostics.getvalue()
        self.assertIn("Read extern:", dump)
        self.assertIn("Read function definition:", dump)
        self.assertIn("Read top-level expression:", dump)
        self.assertIn("define double", dump)
        self.assertIn("fmul double", dump)


class TestPrompt(SessionTestCase):

    config = SessionConfig(prompt="kal> ")

    def test_prompt_is_written_to_diagnostics(self):
        self.run_source("1;")
        self.assertTrue(self.diagnostics.getvalue().startswith("kal> "))
        self.assertNotIn("kal> ", self.output.getvalue())


if __name__ == '__main__':
    unittest.main()
