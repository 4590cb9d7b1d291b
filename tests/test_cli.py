"""
Command line tests for Kaleido.

Author: xwest
"""

import io
import os
import sys
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest import mock

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from kaleido.cli import main


class TestCLI(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmpdir.cleanup()

    def _write(self, source: str) -> str:
        path = os.path.join(self.tmpdir.name, "program.kal")
        with open(path, "w", encoding="utf-8") as f:
            f.write(source)
        return path

    def _main(self, argv):
        stdout, stderr = io.StringIO(), io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            status = main(argv)
        return status, stdout.getvalue(), stderr.getvalue()

    def test_runs_file(self):
        path = self._write("def f(x) x * 3;\nf(2);\n")
        status, out, err = self._main([path])
        self.assertEqual(status, 0)
        self.assertEqual(out, "Evaluated to 6.000000\n")
        self.assertEqual(err, "")

    def test_reads_stdin(self):
        with mock.patch("sys.stdin", io.StringIO("1 + 1;")):
            status, out, err = self._main([])
        self.assertEqual(status, 0)
        self.assertIn("Evaluated to 2.000000", out)
        self.assertNotIn("kal> ", err)

    def test_errors_recovered_by_default(self):
        path = self._write("nothere(1);\n2;\n")
        status, out, err = self._main([path])
        self.assertEqual(status, 0)
        self.assertIn("unknown function referenced", err)
        self.assertIn("Evaluated to 2.000000", out)

    def test_strict_exits_nonzero(self):
        path = self._write("nothere(1);\n2;\n")
        status, out, err = self._main(["--strict", path])
        self.assertEqual(status, 1)
        self.assertEqual(out, "")
        self.assertIn("unknown function referenced", err)

    def test_strict_numbers(self):
        path = self._write("1.2.3;\n")
        status, out, err = self._main(["--strict-numbers", "--strict", path])
        self.assertEqual(status, 1)
        self.assertIn("invalid numeric literal", err)

    def test_dump_ir(self):
        path = self._write("def f(x) x + 1;\n")
        status, out, err = self._main(["--dump-ir", path])
        self.assertEqual(status, 0)
        self.assertIn("Read function definition:", err)
        self.assertIn("fadd double", err)

    def test_file_that_is_not_utf8(self):
        path = os.path.join(self.tmpdir.name, "latin1.kal")
        with open(path, "wb") as f:
            f.write(b"1 + 1;\n# caf\xe9\n")

        status, out, err = self._main([path])
        self.assertEqual(status, 1)
        self.assertIn("not valid UTF-8", err)
        self.assertNotIn("Traceback", err)

    def test_missing_file(self):
        status, out, err = self._main([os.path.join(self.tmpdir.name, "missing.kal")])
        self.assertEqual(status, 1)
        self.assertIn("kaleido:", err)


if __name__ == '__main__':
    unittest.main()
