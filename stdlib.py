"""
Hinton Standard Library
Native functions installed into the global environment
"""

from typing import Dict, List, Optional, Tuple, Callable

from error_handling import (
  HintonRuntimeError,
  TYPE_MISMATCH,
  ITERATOR_EXHAUSTED,
  ASSERTION_FAILED,
)
from utilities import (
  make_value,
  make_null,
  make_iterator,
  iterator_next,
  is_truthy,
  values_equal,
  stringify,
)
from environment import register_native


# ============================================================================
# I/O FUNCTIONS
# ============================================================================

def hinton_print(args: List[Dict]) -> Dict:
  """Print a value followed by a newline"""
  print(stringify(args[0]))
  return make_null()


def hinton_input(args: List[Dict]) -> Dict:
  """Read one line from stdin, printing the optional prompt first; null at end of input"""
  prompt = stringify(args[0]) if args else ""
  try:
    return make_value(input(prompt), "String")
  except EOFError:
    return make_null()


# ============================================================================
# ITERATORS
# ============================================================================

def hinton_iter(args: List[Dict]) -> Dict:
  """Create an iterator over an Array, String, Range or Dict"""
  return make_iterator(args[0])


def hinton_next(args: List[Dict]) -> Dict:
  iterator = args[0]
  if iterator['type'] != "Iter":
    raise HintonRuntimeError(
      f"'next' expects an Iter, got '{iterator['type']}'", kind=TYPE_MISMATCH
    )
  has_item, item = iterator_next(iterator)
  if not has_item:
    raise HintonRuntimeError("Iterator is exhausted", kind=ITERATOR_EXHAUSTED)
  return item


# ============================================================================
# ASSERTIONS
# ============================================================================

def _assertion_message(args: List[Dict], position: int, default: str) -> str:
  return stringify(args[position]) if len(args) > position else default


def hinton_assert(args: List[Dict]) -> Dict:
  if not is_truthy(args[0]):
    raise HintonRuntimeError(
      _assertion_message(args, 1, "Assertion failed"), kind=ASSERTION_FAILED
    )
  return make_null()


def hinton_assert_eq(args: List[Dict]) -> Dict:
  left, right = args[0], args[1]
  if not values_equal(left, right):
    default = f"Expected {stringify(left, nested=True)} to equal {stringify(right, nested=True)}"
    raise HintonRuntimeError(_assertion_message(args, 2, default), kind=ASSERTION_FAILED)
  return make_null()


def hinton_assert_ne(args: List[Dict]) -> Dict:
  left, right = args[0], args[1]
  if values_equal(left, right):
    default = f"Expected {stringify(left, nested=True)} to differ from {stringify(right, nested=True)}"
    raise HintonRuntimeError(_assertion_message(args, 2, default), kind=ASSERTION_FAILED)
  return make_null()


# ============================================================================
# NATIVE FUNCTION REGISTRY
# ============================================================================

def make_native_entry(name: str, func: Callable, min_arity: int, max_arity: Optional[int] = None,
                      signature: str = "") -> Dict:
  """Describe a native function before it is installed"""
  return {
      'name': name,
      'func': func,
      'min_arity': min_arity,
      'max_arity': min_arity if max_arity is None else max_arity,
      'signature': signature
  }


NATIVE_FUNCTIONS: Dict[str, Dict] = {
    # I/O functions
    "print": make_native_entry("print", hinton_print, 1, signature="print(value)"),
    "input": make_native_entry("input", hinton_input, 0, 1, "input(prompt?)"),

    # Iterators
    "iter": make_native_entry("iter", hinton_iter, 1, signature="iter(iterable)"),
    "next": make_native_entry("next", hinton_next, 1, signature="next(iterator)"),

    # Assertions
    "assert": make_native_entry("assert", hinton_assert, 1, 2, "assert(condition, message?)"),
    "assert_eq": make_native_entry("assert_eq", hinton_assert_eq, 2, 3, "assert_eq(actual, expected, message?)"),
    "assert_ne": make_native_entry("assert_ne", hinton_assert_ne, 2, 3, "assert_ne(actual, unexpected, message?)"),
}


def install_natives(env: Dict) -> None:
  """Register every native function in env"""
  for name, entry in NATIVE_FUNCTIONS.items():
    register_native(env, name, entry['min_arity'], entry['func'], entry['max_arity'])


def list_native_functions() -> List[Tuple[str, str]]:
  """List all native functions with their signatures"""
  return [(name, entry['signature']) for name, entry in NATIVE_FUNCTIONS.items()]
