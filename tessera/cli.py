#!/usr/bin/env python3
"""
Command line front end for TESSERA.

    tessera                              prompt (plain input() loop)
    tessera session.tess                 run a script, one statement per line
    tessera -e "det([[a, 2], [3, a]])"   evaluate one line
    echo "6/5 * 3" | tessera             evaluate lines read from a pipe

Lines starting with # are comments. At the prompt, ? lists the built-in
functions, ?name describes one, and :help lists the colon commands.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

from . import __version__
from .config import DEFAULT_MAX_DEPTH, DEFAULT_PRECISION, MIN_PRECISION
from .context import UserFunction
from .engine import Engine
from .simplifier import Simplifier

PROMPT = "in: "
CONTINUATION = "...... "

HELP = """Commands:
  ?                  list the built-in functions
  ?name              describe one function
  :vars              show bindings and user functions
  :rules             show the simplification rules
  :clear             forget bindings and previous results
  :quit              leave (also :q, :exit)

Input:
  expr                       evaluate; the result is kept as out[n]
  name = expr                bind a name
  name(x, y) = expr          define a function
  [1, 2], [[1, 2], [3, 4]]   vector, matrix
  v[i], m[i, j]              index from 0
"""


def count_brackets(text: str) -> int:
    """Open ( and [ minus closed ) and ]; positive while a line is unfinished."""
    return sum(text.count(c) for c in "([") - sum(text.count(c) for c in ")]")


def is_error(result: Optional[str]) -> bool:
    return bool(result) and result.startswith("Error")


class TesseraREPL:
    """Line handling shared by the prompt, scripts and pipes."""

    def __init__(self, engine: Optional[Engine] = None):
        self.engine = engine if engine is not None else Engine()
        self.running = True
        self.pending = ""
        self.commands: Dict[str, Callable[[], Optional[str]]] = {
            "help": self.help_text,
            "vars": self.list_bindings,
            "rules": self.list_rules,
            "clear": self.clear,
            "quit": self.stop,
            "exit": self.stop,
            "q": self.stop,
        }

    # ============================================================
    # Colon commands
    # ============================================================

    def handle_command(self, line: str) -> Optional[str]:
        """Run a :command and return its output (None when there is nothing to show)."""
        words = line[1:].split()
        command = self.commands.get(words[0].lower()) if words else None
        if command is None:
            name = words[0] if words else ""
            return f"Unknown command :{name}, try :help"
        return command()

    def help_text(self) -> str:
        return HELP

    def list_bindings(self) -> str:
        shown = []
        for name, binding in self.engine.context.items():
            if isinstance(binding, UserFunction):
                shown.append(f"{name}({', '.join(binding.parameters)}) = {binding.body}")
            elif name != "out":
                shown.append(f"{name} = {binding}")
        return "\n".join(shown) if shown else "No bindings"

    def list_rules(self) -> str:
        return "\n".join(Simplifier().list_rules())

    def clear(self) -> str:
        self.engine.clear()
        return "Cleared bindings and out"

    def stop(self) -> None:
        self.running = False
        return None

    # ============================================================
    # Lines
    # ============================================================

    def process_line(self, line: str) -> Optional[str]:
        """Evaluate one line; comments and blank lines give None."""
        line = line.strip()
        if not line or line.startswith("#"):
            return None
        if line.startswith(":"):
            return self.handle_command(line)
        return self.engine.execute(line)

    def feed(self, line: str) -> Optional[str]:
        """
        Collect a line at the prompt, joining lines until brackets balance.

        Returns the output of the completed statement, if any.
        """
        self.pending = f"{self.pending} {line}" if self.pending else line
        if count_brackets(self.pending) > 0:
            return None
        text, self.pending = self.pending, ""
        return self.process_line(text)

    def run(self):
        """Read from the terminal until :quit or end of input."""
        print(f"TESSERA {__version__} (? for functions, :help for commands)")
        while self.running:
            try:
                result = self.feed(input(CONTINUATION if self.pending else PROMPT))
            except EOFError:
                print()
                return
            except KeyboardInterrupt:
                print("\n(cancelled)" if self.pending else "")
                self.pending = ""
                continue
            if result:
                print(result)


class ScriptRunner:
    """Non-interactive modes: script files, -e and pipes."""

    def __init__(self, engine: Optional[Engine] = None):
        self.repl = TesseraREPL(engine)

    def _run_lines(self, lines: Iterable[str], where: Optional[str] = None,
                   quiet: bool = False) -> int:
        """
        Run lines in order, stopping at the first error or :quit.

        Errors go to stderr prefixed with where:lineno when where is given,
        otherwise to stdout with the other results. Returns the exit code.
        """
        for lineno, line in enumerate(lines, 1):
            result = self.repl.process_line(line)
            if not self.repl.running:
                break
            if is_error(result):
                if where is not None:
                    print(f"{where}:{lineno}: {result}", file=sys.stderr)
                else:
                    print(result)
                return 1
            if result and not quiet:
                print(result)
        return 0

    def run_script(self, path: Path, quiet: bool = False) -> int:
        """Run a script file; quiet suppresses results but not errors."""
        try:
            text = path.read_text()
        except OSError as e:
            print(f"Error reading {path}: {e}", file=sys.stderr)
            return 1
        return self._run_lines(text.splitlines(), where=str(path), quiet=quiet)

    def run_expression(self, text: str) -> int:
        return self._run_lines([text])

    def run_stdin(self) -> int:
        return self._run_lines(sys.stdin)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tessera",
        description="TESSERA - exact and symbolic expression evaluator",
        epilog=__doc__.split("\n\n")[1],
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("script", nargs="?", type=Path,
                        help="file with one statement per line")
    parser.add_argument("-e", "--expr", metavar="LINE",
                        help="evaluate LINE and exit")
    parser.add_argument("--precision", type=int, default=DEFAULT_PRECISION,
                        help=f"digits for inexact results (default {DEFAULT_PRECISION}, "
                             f"at least {MIN_PRECISION})")
    parser.add_argument("--max-depth", type=int, default=DEFAULT_MAX_DEPTH,
                        help=f"nesting budget for evaluation (default {DEFAULT_MAX_DEPTH})")
    parser.add_argument("-q", "--quiet", action="store_true",
                        help="print only errors when running a script")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="log rule firings and function dispatch to stderr")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.precision < MIN_PRECISION:
        parser.error(f"--precision must be at least {MIN_PRECISION}")
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    runner = ScriptRunner(Engine(precision=args.precision, max_depth=args.max_depth))
    if args.script is not None:
        return runner.run_script(args.script, quiet=args.quiet)
    if args.expr is not None:
        return runner.run_expression(args.expr)
    if not sys.stdin.isatty():
        return runner.run_stdin()
    runner.repl.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
