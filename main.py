"""
Hinton Programming Language - Main Entry Point
A small dynamically typed scripting language with closures, arrays,
dictionaries, ranges and iterators
"""

import sys
import argparse
from pathlib import Path
from typing import Optional, List
import os

# Readline support for history and auto-completion
try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

from parsing import create_parser, create_debug_parser, pretty_print_ast, HintonParser
from interpreter import create_interpreter, create_debug_interpreter, HintonInterpreter
from error_handling import (
  HintonScanError,
  HintonParseError,
  HintonRuntimeError,
  format_error_report,
)
from lexer import KEYWORDS
from ast_nodes import Expression
from utilities import stringify, user_visible_bindings
from stdlib import list_native_functions


VERSION = "Hinton v0.1.0 (Tree-walking Interpreter)"
HISTORY_FILE = "~/.hinton_history"


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      description='Hinton Programming Language - dynamically typed scripting with closures',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s script.hn              # Run a Hinton script
  %(prog)s -i                     # Interactive mode
  %(prog)s --parse script.hn      # Parse and show the AST
  %(prog)s --tokens script.hn     # Show the token stream
  %(prog)s --debug script.hn      # Run with debug output
  %(prog)s -i --debug             # Interactive mode with debug
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='Hinton script file to execute'
  )

  parser.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='Start interactive mode'
  )

  parser.add_argument(
      '--parse',
      action='store_true',
      help='Parse file and show the AST (for debugging)'
  )

  parser.add_argument(
      '--tokens',
      action='store_true',
      help='Tokenize file and show the tokens (for debugging)'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Enable debug output for all stages'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=VERSION
  )

  return parser


def read_source(script_path: str) -> str:
  """Read a script, exiting with a hint when the file cannot be read"""
  try:
    with open(script_path, 'r', encoding='utf-8') as f:
      return f.read()
  except FileNotFoundError:
    print(f"Error: Script file '{script_path}' not found")
    print(f"  Hint: Check the file path and make sure the file exists")
    sys.exit(1)
  except PermissionError:
    print(f"Error: Permission denied reading '{script_path}'")
    print(f"  Hint: Make sure you have read permissions for this file")
    sys.exit(1)
  except UnicodeDecodeError as e:
    print(f"Error: Cannot decode file '{script_path}': {e}")
    print(f"  Hint: Make sure the file is a text file with UTF-8 encoding")
    sys.exit(1)


def run_source(source: str, filename: str, parser: HintonParser, interpreter: HintonInterpreter) -> None:
  """Scan, parse and run source text; front-end and runtime errors propagate"""
  declarations = parser.parse_string(source, filename)
  interpreter.interpret(declarations)


def print_runtime_error(error: HintonRuntimeError, source: str, script_path: str) -> None:
  print(f"\n{'='*70}")
  print(f"Runtime Error in '{script_path}'")
  print(f"{'='*70}")
  print(format_error_report(error.report(source)))
  if error.span:
    print(f"Location: {error.span}")
  print(f"{'='*70}\n")


def show_tokens(script_path: str, debug: bool = False) -> None:
  """Tokenize a Hinton script file and show the token stream"""
  source = read_source(script_path)
  parser = create_debug_parser() if debug else create_parser()
  try:
    tokens = parser.tokenize(source, script_path)
  except HintonScanError as e:
    print(f"Scan error in '{script_path}':\n{e}")
    sys.exit(1)

  for token in tokens:
    print(f"{token.span.start_line:4d}:{token.span.start_col:<4d} {token.type:<10} {token.lexeme}")


def parse_file(script_path: str, debug: bool = False) -> None:
  """Parse a Hinton script file and show the AST"""
  source = read_source(script_path)
  parser = create_debug_parser() if debug else create_parser()

  try:
    print(f"Parsing {script_path}...")
    declarations = parser.parse_string(source, script_path)

    print(f"\nParsed {len(declarations)} top-level declarations:")
    print("=" * 50)

    for i, node in enumerate(declarations, 1):
      print(f"\nDeclaration {i}:")
      print(pretty_print_ast(node), end='')

  except HintonScanError as e:
    print(f"Scan error in '{script_path}':\n{e}")
    sys.exit(1)
  except HintonParseError as e:
    print(f"Parse error in '{script_path}':\n{e.format(source)}")
    sys.exit(1)


def run_script_file(script_path: str, debug: bool = False) -> None:
  """Run a Hinton script file"""
  source = read_source(script_path)
  parser = create_debug_parser() if debug else create_parser()
  interpreter = create_debug_interpreter() if debug else create_interpreter()

  try:
    if debug:
      print(f"Running {script_path}...")
    run_source(source, script_path, parser, interpreter)

    if debug:
      bindings = user_visible_bindings(interpreter.globals['bindings'])
      print(f"\nFinal environment ({len(bindings)} bindings):")
      for name, value in bindings:
        print(f"  {name} = {stringify(value, nested=True)}")

  except HintonScanError as e:
    print(f"Scan error in '{script_path}':\n{e}")
    sys.exit(1)
  except HintonParseError as e:
    print(f"Parse error in '{script_path}':\n{e.format(source)}")
    sys.exit(1)
  except HintonRuntimeError as e:
    print_runtime_error(e, source, script_path)
    sys.exit(1)


def setup_readline():
  """Setup readline with history and auto-completion"""
  if not READLINE_AVAILABLE:
    return

  history_file = os.path.expanduser(HISTORY_FILE)
  try:
    readline.read_history_file(history_file)
  except OSError:
    pass  # First time, no history yet, or permission denied

  readline.set_history_length(1000)

  completions = sorted(KEYWORDS) + [name for name, _ in list_native_functions()] + [
      # REPL commands
      ":parse", ":env", ":help", "exit"
  ]

  def completer(text, state):
    options = [cmd for cmd in completions if cmd.startswith(text)]
    if state < len(options):
      return options[state]
    return None

  readline.set_completer(completer)
  readline.parse_and_bind("tab: complete")

  import atexit
  atexit.register(readline.write_history_file, history_file)


def complete_statement(code: str) -> str:
  """Let the REPL accept a single statement without its trailing ';'"""
  stripped = code.rstrip()
  if stripped.endswith(';') or stripped.endswith('}'):
    return stripped
  return stripped + ';'


def run_repl_line(code: str, parser: HintonParser, interpreter: HintonInterpreter) -> None:
  """Run one REPL entry; a lone expression statement echoes its value"""
  declarations = parser.parse_string(complete_statement(code), "<repl>")
  if len(declarations) == 1 and isinstance(declarations[0], Expression):
    value = interpreter.evaluate(declarations[0].expression)
    print(f"=> {stringify(value, nested=True)}")
  else:
    interpreter.interpret(declarations)


def show_repl_help() -> None:
  print("REPL Commands:")
  print("  :parse <code>     - Show the parsed AST")
  print("  :env              - Show current environment")
  print("  :help             - Show this help")
  print("  exit              - Exit REPL")
  print()
  print("Native functions:")
  for _, signature in list_native_functions():
    print(f"  {signature}")
  print()
  print("Language features:")
  print("  let a, b = 1;                 - Variables (one initializer, many names)")
  print("  const pi = 3.14;              - Constants")
  print("  func f(a, b?, c := 2) { }     - Functions with optional and default parameters")
  print("  fn (x) => x * 2               - Lambdas")
  print("  for (let i in 0..10) { }      - Iteration over arrays, strings, ranges, dicts")
  print("  {name: \"hinton\"}.name         - Dictionaries and member access")


def run_interactive_mode(debug: bool = False) -> None:
  """Run Hinton in interactive mode"""
  print(f"{VERSION} - Interactive Mode")
  print("Type 'exit' to quit, ':help' for commands")
  if READLINE_AVAILABLE:
    print("Readline enabled: Use ↑/↓ for history, Tab for completion")
  if debug:
    print("Debug mode enabled")
  print()

  setup_readline()

  # One interpreter keeps the session's globals between entries
  parser = create_debug_parser() if debug else create_parser()
  interpreter = create_debug_interpreter() if debug else create_interpreter()

  while True:
    try:
      code = input("hinton> ")

      if code.strip() == "exit":
        break

      if not code.strip():
        continue

      if code.startswith(":parse "):
        try:
          for node in parser.parse_string(complete_statement(code[7:]), "<repl>"):
            print(pretty_print_ast(node), end='')
        except HintonScanError as e:
          print(f"Scan error:\n{e}")
        except HintonParseError as e:
          print(f"Parse error:\n{e.format(code[7:])}")
        continue

      if code.strip() == ":env":
        print("Current environment:")
        bindings = user_visible_bindings(interpreter.globals['bindings'])
        if bindings:
          for name, value in bindings:
            val_str = stringify(value, nested=True)
            if len(val_str) > 60:
              val_str = val_str[:57] + "..."
            print(f"  {name} = {val_str}")
        else:
          print("  (no user-defined bindings)")
        continue

      if code.strip() == ":help":
        show_repl_help()
        continue

      try:
        run_repl_line(code, parser, interpreter)
      except HintonScanError as e:
        print(f"Scan error:\n{e}")
      except HintonParseError as e:
        print(f"Parse error:\n{e.format(code)}")
      except HintonRuntimeError as e:
        print(f"\nRuntime Error:")
        print(f"  {e.kind}: {e.message}")
        if e.span:
          print(f"  Location: {e.span}")
        print()

    except KeyboardInterrupt:
      print("\nGoodbye!")
      break
    except EOFError:
      print("\nGoodbye!")
      break


def show_language_info() -> None:
  """Show Hinton language information"""
  print("Hinton Programming Language")
  print("=" * 50)
  print("A dynamically typed scripting language with:")
  print("• Lexically scoped closures and lambdas")
  print("• Arrays, dictionaries, ranges and iterators")
  print("• Optional and default parameters")
  print("• Constants and block scoping")
  print()


def main(argv: Optional[List[str]] = None) -> None:
  """Main entry point for Hinton"""
  if argv is None:
    argv = sys.argv[1:]

  arg_parser = create_arg_parser()
  args = arg_parser.parse_args(argv)

  # No arguments - show info and start interactive mode
  if not argv:
    show_language_info()
    print("Starting interactive mode...")
    print("Use 'hinton --help' for command line options")
    print()
    run_interactive_mode(debug=False)
    return

  if args.script:
    if not Path(args.script).exists():
      print(f"Error: Script file '{args.script}' does not exist")
      sys.exit(1)

    if args.tokens:
      show_tokens(args.script, debug=args.debug)
    elif args.parse:
      parse_file(args.script, debug=args.debug)
    else:
      run_script_file(args.script, debug=args.debug)

  elif args.interactive:
    run_interactive_mode(debug=args.debug)

  else:
    arg_parser.print_help()
    print()
    show_language_info()


if __name__ == "__main__":
  main()
