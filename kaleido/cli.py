"""
Command line driver for Kaleido.

Reads a source file (or stdin), runs it through a compilation session and
prints each top-level result. With a terminal on stdin it prompts before
every statement.

Author: xwest
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .config import DEFAULT_PROMPT, ErrorPolicy, SessionConfig
from .lexer import KaleidoError
from .session import CompilationSession


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kaleido",
        description="Kaleido: JIT-compile and evaluate Kaleidoscope-style source",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  kaleido program.kal              # Evaluate a file
  echo 'def f(x) x*x; f(4);' | kaleido
  kaleido --dump-ir program.kal    # Also print the generated IR
  kaleido --strict program.kal     # Stop at the first error, exit status 1
        """
    )

    parser.add_argument('file', nargs='?',
                        help='Source file to evaluate (default: stdin)')
    parser.add_argument('--strict', action='store_true',
                        help='Abort on the first error instead of skipping the statement')
    parser.add_argument('--strict-numbers', action='store_true',
                        help='Reject malformed numeric literals such as 1.2.3')
    parser.add_argument('--dump-ir', action='store_true',
                        help='Print the LLVM IR of every definition and expression')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')
    parser.add_argument('--version', action='version',
                        version=f'%(prog)s {__version__}')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point; returns the process exit status."""
    args = build_arg_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(levelname)s %(name)s: %(message)s')

    interactive = args.file is None and sys.stdin.isatty()
    config = SessionConfig(
        error_policy=ErrorPolicy.ABORT if args.strict else ErrorPolicy.RECOVER,
        strict_numbers=args.strict_numbers,
        dump_ir=args.dump_ir,
        prompt=DEFAULT_PROMPT if interactive else None,
        filename=args.file or "<stdin>",
    )

    session = CompilationSession(config)

    try:
        if args.file:
            with open(args.file, "r", encoding="utf-8") as f:
                session.run(f)
        else:
            session.run(sys.stdin)
    except KaleidoError:
        # Already reported by the session
        return 1
    except OSError as e:
        print(f"kaleido: {e}", file=sys.stderr)
        return 1
    except UnicodeDecodeError as e:
        print(f"kaleido: {args.file or '<stdin>'}: not valid UTF-8: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130

    if interactive:
        print(file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
