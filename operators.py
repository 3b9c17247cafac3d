"""
Hinton operator semantics
Every operator checks its operand types and raises a TypeMismatch naming the
operator and the offending types
"""

from typing import Any, Callable, Dict
import math
import operator

from error_handling import HintonRuntimeError, ZERO_DIVISION
from utilities import (
  make_value,
  make_bool,
  make_range,
  is_number,
  is_truthy,
  values_equal,
  stringify,
  type_mismatch_error,
  numeric_overflow_error,
  binary_arithmetic_op,
  binary_comparison_op,
  binary_integer_op,
)


# ============================================================================
# ARITHMETIC
# ============================================================================

def hinton_add(x: Dict, y: Dict, token: Any = None) -> Dict:
  """Numeric addition, string concatenation or array concatenation"""
  if is_number(x) and is_number(y):
    return _add_numbers(x, y, token)
  if x['type'] == "String" or y['type'] == "String":
    return make_value(stringify(x) + stringify(y), "String")
  if x['type'] == "Array" and y['type'] == "Array":
    return make_value(list(x['value']) + list(y['value']), "Array")
  raise type_mismatch_error("+", x, y, token)


_add_numbers = binary_arithmetic_op(operator.add, "+")
hinton_sub = binary_arithmetic_op(operator.sub, "-")
hinton_mul = binary_arithmetic_op(operator.mul, "*")


def hinton_div(x: Dict, y: Dict, token: Any = None) -> Dict:
  """Division always produces a Float"""
  if not (is_number(x) and is_number(y)):
    raise type_mismatch_error("/", x, y, token)
  if y['value'] == 0:
    raise HintonRuntimeError("Division by zero", token, ZERO_DIVISION)
  try:
    return make_value(x['value'] / y['value'], "Float")
  except OverflowError:
    raise numeric_overflow_error("/", token) from None


def hinton_mod(x: Dict, y: Dict, token: Any = None) -> Dict:
  if not (is_number(x) and is_number(y)):
    raise type_mismatch_error("%", x, y, token)
  if y['value'] == 0:
    raise HintonRuntimeError("Modulo by zero", token, ZERO_DIVISION)
  if x['type'] == "Int" and y['type'] == "Int":
    return make_value(x['value'] % y['value'], "Int")
  try:
    return make_value(float(x['value']) % float(y['value']), "Float")
  except OverflowError:
    raise numeric_overflow_error("%", token) from None


def hinton_pow(x: Dict, y: Dict, token: Any = None) -> Dict:
  """Int ** non-negative Int stays an Int; everything else is a Float"""
  if not (is_number(x) and is_number(y)):
    raise type_mismatch_error("**", x, y, token)
  if x['type'] == "Int" and y['type'] == "Int" and y['value'] >= 0:
    return make_value(x['value'] ** y['value'], "Int")
  if x['value'] == 0 and y['value'] < 0:
    raise HintonRuntimeError("Zero raised to a negative power", token, ZERO_DIVISION)
  try:
    return make_value(math.pow(x['value'], y['value']), "Float")
  except OverflowError:
    return make_value(math.inf, "Float")
  except ValueError:
    return make_value(math.nan, "Float")


def hinton_range(x: Dict, y: Dict, token: Any = None) -> Dict:
  if x['type'] != "Int" or y['type'] != "Int":
    raise type_mismatch_error("..", x, y, token)
  return make_range(x['value'], y['value'])


# ============================================================================
# COMPARISON
# ============================================================================

def hinton_eq(x: Dict, y: Dict, token: Any = None) -> Dict:
  return make_bool(values_equal(x, y))


def hinton_ne(x: Dict, y: Dict, token: Any = None) -> Dict:
  return make_bool(not values_equal(x, y))


hinton_lt = binary_comparison_op(operator.lt, "<")
hinton_le = binary_comparison_op(operator.le, "<=")
hinton_gt = binary_comparison_op(operator.gt, ">")
hinton_ge = binary_comparison_op(operator.ge, ">=")


# ============================================================================
# UNARY
# ============================================================================

def hinton_negate(x: Dict, token: Any = None) -> Dict:
  if not is_number(x):
    raise type_mismatch_error("-", x, token=token)
  return make_value(-x['value'], x['type'])


def hinton_not(x: Dict, token: Any = None) -> Dict:
  return make_bool(not is_truthy(x))


def hinton_bit_not(x: Dict, token: Any = None) -> Dict:
  if x['type'] != "Int":
    raise type_mismatch_error("~", x, token=token)
  return make_value(~x['value'], "Int")


# ============================================================================
# OPERATOR TABLES
# ============================================================================

BINARY_OPERATORS: Dict[str, Callable[[Dict, Dict, Any], Dict]] = {
    '+': hinton_add,
    '-': hinton_sub,
    '*': hinton_mul,
    '/': hinton_div,
    '%': hinton_mod,
    '**': hinton_pow,
    '..': hinton_range,
    '==': hinton_eq,
    '!=': hinton_ne,
    '<': hinton_lt,
    '<=': hinton_le,
    '>': hinton_gt,
    '>=': hinton_ge,
    '&': binary_integer_op(operator.and_, "&"),
    '|': binary_integer_op(operator.or_, "|"),
    '^': binary_integer_op(operator.xor, "^"),
    '<<': binary_integer_op(operator.lshift, "<<"),
    '>>': binary_integer_op(operator.rshift, ">>"),
}

UNARY_OPERATORS: Dict[str, Callable[[Dict, Any], Dict]] = {
    '-': hinton_negate,
    '!': hinton_not,
    'not': hinton_not,
    '~': hinton_bit_not,
}

# Compound assignment operator -> binary operator it applies
COMPOUND_ASSIGNMENT = {
    '+=': '+',
    '-=': '-',
    '*=': '*',
    '/=': '/',
    '%=': '%',
    '**=': '**',
    '<<=': '<<',
    '>>=': '>>',
    '&=': '&',
    '|=': '|',
    '^=': '^',
}


def apply_binary(op_token: Any, left: Dict, right: Dict) -> Dict:
  return BINARY_OPERATORS[op_token.lexeme](left, right, op_token)


def apply_unary(op_token: Any, operand: Dict) -> Dict:
  return UNARY_OPERATORS[op_token.lexeme](operand, op_token)


def apply_increment(op_token: Any, operand: Dict) -> Dict:
  """Value after '++' or '--'; only numbers can be incremented"""
  if not is_number(operand):
    raise type_mismatch_error(op_token.lexeme, operand, token=op_token)
  step = 1 if op_token.lexeme == '++' else -1
  return make_value(operand['value'] + step, operand['type'])
