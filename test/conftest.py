"""
Test configuration for Hinton tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from parsing import create_parser
from interpreter import create_interpreter
from environment import env_find


def run_program(source: str):
  """Parse and run source text, returning the interpreter that ran it"""
  interpreter = create_interpreter()
  interpreter.interpret(create_parser().parse_string(source))
  return interpreter


def global_value(interpreter, name: str):
  """Plain Python value of a global binding"""
  binding = env_find(interpreter.globals, name)
  assert binding is not None, f"'{name}' is not defined"
  return binding['value']['value']


@pytest.fixture
def run():
  return run_program


@pytest.fixture
def value_of():
  return global_value
