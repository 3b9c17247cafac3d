"""
Utilities module for the Hinton interpreter
Value constructors, truthiness, equality, printing and error message builders
shared by the evaluator, the operators and the native library
"""

from typing import Any, Dict, List, Optional, Callable, Tuple

from error_handling import (
  HintonRuntimeError,
  TYPE_MISMATCH,
  ARITY_MISMATCH,
  INDEX_OUT_OF_RANGE,
  NON_INTEGER_INDEX,
  NUMERIC_OVERFLOW,
  INVALID_OPERAND,
)


# ==================== VALUE CONSTRUCTORS ====================

def make_value(value: Any, type_name: str) -> Dict:
  """Create a runtime value: a tagged dictionary {'type', 'value'}"""
  return {
      'value': value,
      'type': type_name
  }


def make_null() -> Dict:
  return make_value(None, "Null")


def make_bool(value: bool) -> Dict:
  return make_value(bool(value), "Bool")


def make_range(lower: int, upper: int) -> Dict:
  """Ranges are half-open: lower is included, upper is not"""
  return make_value((lower, upper), "Range")


def make_iterator(value: Dict, token: Any = None) -> Dict:
  """
  Create an iterator over a value

  Iterators keep a reference to their source and a cursor, so mutating a
  source Array while iterating is visible to the iterator. Passing an
  iterator returns it unchanged (the cursor is shared).
  """
  value_type = value['type']
  if value_type == "Iter":
    return value
  if value_type in ("Array", "String", "Range"):
    return make_value({'source': value, 'index': 0}, "Iter")
  if value_type == "Dict":
    keys = [make_value(key, "String") for key in value['value']]
    return make_value({'source': make_value(keys, "Array"), 'index': 0}, "Iter")
  raise HintonRuntimeError(
    f"Value of type '{value_type}' is not iterable", token, TYPE_MISMATCH
  )


def iterator_next(iterator: Dict) -> Tuple[bool, Optional[Dict]]:
  """Advance an iterator; returns (False, None) once the source is exhausted"""
  state = iterator['value']
  source = state['source']
  if state['index'] >= sequence_length(source):
    return False, None
  item = sequence_item(source, state['index'])
  state['index'] += 1
  return True, item


def make_function_value(
  kind: str,
  name: str,
  params: Tuple = (),
  body: Tuple = (),
  closure: Optional[Dict] = None,
  impl: Optional[Callable] = None,
  min_arity: Optional[int] = None,
  max_arity: Optional[int] = None
) -> Dict:
  """
  Create a callable value

  Args:
    kind: "user" (func declaration), "lambda" (fn literal) or "native"
    name: Name used in messages and when printing
    params: Parameter nodes (user functions and lambdas)
    body: Statement nodes executed on call
    closure: Environment captured at the definition point
    impl: Host function for natives, called with the argument list
    min_arity: Minimum argument count (computed from params when omitted)
    max_arity: Maximum argument count (computed from params when omitted)

  Returns:
    A Function value
  """
  if min_arity is None:
    min_arity = sum(1 for param in params if param.required)
  if max_arity is None:
    max_arity = len(params) if kind != "native" else min_arity
  return make_value({
      'kind': kind,
      'name': name,
      'params': params,
      'body': body,
      'closure': closure,
      'impl': impl,
      'min_arity': min_arity,
      'max_arity': max_arity
  }, "Function")


# ==================== TYPE CHECKING UTILITIES ====================

def is_number(val: Dict) -> bool:
  return val['type'] in ("Int", "Float")


def is_truthy(val: Dict) -> bool:
  """
  Truthiness rule used by conditions, loops and logical operators

  null is false, numeric zero (0, 0.0, -0.0) is false, booleans are
  themselves, everything else is true (including "" and []).
  """
  value_type = val['type']
  if value_type == "Null":
    return False
  if value_type == "Bool":
    return val['value']
  if value_type in ("Int", "Float"):
    return val['value'] != 0
  return True


def sequence_length(val: Dict) -> int:
  """Length of an Array, String or Range"""
  if val['type'] == "Range":
    lower, upper = val['value']
    return max(0, upper - lower)
  return len(val['value'])


def sequence_item(val: Dict, index: int) -> Dict:
  """Item at an already normalised index of an Array, String or Range"""
  if val['type'] == "Array":
    return val['value'][index]
  if val['type'] == "String":
    return make_value(val['value'][index], "String")
  return make_value(val['value'][0] + index, "Int")


def normalize_index(index: int, length: int, token: Any = None, type_name: str = "Array") -> int:
  """Apply negative indexing (index += length) and check bounds"""
  normalized = index + length if index < 0 else index
  if normalized < 0 or normalized >= length:
    raise HintonRuntimeError(
      f"Index {index} out of range for {type_name} of length {length}",
      token, INDEX_OUT_OF_RANGE
    )
  return normalized


def require_int_index(index: Dict, token: Any = None) -> int:
  if index['type'] != "Int":
    raise HintonRuntimeError(
      f"Index must be an Int, got '{index['type']}'", token, NON_INTEGER_INDEX
    )
  return index['value']


# ==================== EQUALITY ====================

def values_equal(left: Dict, right: Dict) -> bool:
  """
  Equality used by '==', '!=' and assert_eq

  Int and Float compare numerically, a Bool equals 1 or 0, Arrays and Dicts
  compare element-wise, Ranges by their bounds, and callables and iterators
  by identity. Values of unrelated types are simply unequal.
  """
  lt, rt = left['type'], right['type']

  if lt in ("Int", "Float", "Bool") and rt in ("Int", "Float", "Bool"):
    if (lt == "Bool") != (rt == "Bool"):
      # A Bool only equals the numbers 1 and 0
      number = right['value'] if lt == "Bool" else left['value']
      flag = left['value'] if lt == "Bool" else right['value']
      return number == (1 if flag else 0)
    return left['value'] == right['value']

  if lt != rt:
    return False

  if lt == "Null":
    return True
  if lt in ("String", "Range"):
    return left['value'] == right['value']
  if lt == "Array":
    items_l, items_r = left['value'], right['value']
    if items_l is items_r:
      return True
    return len(items_l) == len(items_r) and all(
        values_equal(a, b) for a, b in zip(items_l, items_r)
    )
  if lt == "Dict":
    dict_l, dict_r = left['value'], right['value']
    if dict_l is dict_r:
      return True
    if dict_l.keys() != dict_r.keys():
      return False
    return all(values_equal(dict_l[key], dict_r[key]) for key in dict_l)

  # Function and Iter
  return left['value'] is right['value']


# ==================== PRINTING ====================

def format_float(number: float) -> str:
  text = repr(number)
  if text in ("inf", "-inf", "nan"):
    return text.replace("inf", "Infinity").replace("nan", "NaN")
  return text


def stringify(val: Dict, nested: bool = False, _seen: Optional[set] = None) -> str:
  """
  Convert a value to its printed form

  Strings print raw at the top level and quoted inside containers.
  """
  value_type = val['type']
  inner = val['value']

  if value_type == "Null":
    return "null"
  if value_type == "Bool":
    return "true" if inner else "false"
  if value_type == "Int":
    return str(inner)
  if value_type == "Float":
    return format_float(inner)
  if value_type == "String":
    return repr(inner) if nested else inner
  if value_type == "Range":
    return f"[{inner[0]}..{inner[1]}]"
  if value_type == "Iter":
    return f"<Iter '{inner['source']['type']}'>"
  if value_type == "Function":
    if inner['kind'] == "native":
      return f"<NativeFunc '{inner['name']}'>"
    return f"<Func '{inner['name']}'>"

  # Containers may refer to themselves
  _seen = set() if _seen is None else _seen
  if id(inner) in _seen:
    return "[...]" if value_type == "Array" else "{...}"
  _seen = _seen | {id(inner)}

  if value_type == "Array":
    return "[" + ", ".join(stringify(item, True, _seen) for item in inner) + "]"
  if value_type == "Dict":
    entries = [f"{key!r}: {stringify(item, True, _seen)}" for key, item in inner.items()]
    return "{" + ", ".join(entries) + "}"

  return f"<{value_type}>"


# ==================== ERROR MESSAGE BUILDERS ====================

def type_mismatch_error(
  op: str,
  left: Dict,
  right: Optional[Dict] = None,
  token: Any = None
) -> HintonRuntimeError:
  """
  Generate type mismatch error naming the operator and the operand types

  Args:
    op: Operator lexeme
    left: Left (or only) operand
    right: Right operand, None for unary operators
    token: Token the error is reported at

  Returns:
    HintonRuntimeError with formatted message
  """
  if right is None:
    return HintonRuntimeError(
      f"Operation '{op}' not supported for '{left['type']}'", token, TYPE_MISMATCH
    )
  return HintonRuntimeError(
    f"Operation '{op}' not supported between '{left['type']}' and '{right['type']}'",
    token, TYPE_MISMATCH
  )


def numeric_overflow_error(op: str, token: Any = None) -> HintonRuntimeError:
  return HintonRuntimeError(
    f"Result of '{op}' is too large to represent", token, NUMERIC_OVERFLOW
  )


def arity_error(func_name: str, min_arity: int, max_arity: int, got: int, token: Any = None) -> HintonRuntimeError:
  """
  Generate arity mismatch error

  Args:
    func_name: Function name
    min_arity: Minimum number of arguments
    max_arity: Maximum number of arguments
    got: Actual number of arguments

  Returns:
    HintonRuntimeError with formatted message
  """
  if min_arity == max_arity:
    expected = f"{min_arity} argument{'s' if min_arity != 1 else ''}"
  else:
    expected = f"{min_arity} to {max_arity} arguments"
  return HintonRuntimeError(
    f"'{func_name}' expected {expected} but got {got}", token, ARITY_MISMATCH
  )


# ==================== BINARY OPERATION FACTORIES ====================

def binary_comparison_op(
  op: Callable[[Any, Any], bool],
  op_name: str
) -> Callable[[Dict, Dict, Any], Dict]:
  """
  Factory for binary comparison operations over two numbers or two strings

  Examples:
    hinton_lt = binary_comparison_op(operator.lt, "<")
    result = hinton_lt(make_value(1, "Int"), make_value(2, "Int"), token)
  """
  def comparison(x: Dict, y: Dict, token: Any = None) -> Dict:
    if is_number(x) and is_number(y):
      return make_bool(op(x['value'], y['value']))
    if x['type'] == "String" and y['type'] == "String":
      return make_bool(op(x['value'], y['value']))
    raise type_mismatch_error(op_name, x, y, token)

  return comparison


def binary_arithmetic_op(
  op: Callable[[Any, Any], Any],
  op_name: str
) -> Callable[[Dict, Dict, Any], Dict]:
  """
  Factory for numeric binary operations

  Two Ints give an Int, any Float operand promotes the result to Float.

  Examples:
    hinton_sub = binary_arithmetic_op(operator.sub, "-")
    result = hinton_sub(make_value(3, "Int"), make_value(0.5, "Float"), token)
  """
  def arithmetic(x: Dict, y: Dict, token: Any = None) -> Dict:
    if not (is_number(x) and is_number(y)):
      raise type_mismatch_error(op_name, x, y, token)
    if x['type'] == "Int" and y['type'] == "Int":
      return make_value(op(x['value'], y['value']), "Int")
    try:
      return make_value(float(op(float(x['value']), float(y['value']))), "Float")
    except OverflowError:
      # An Int operand beyond the Float range
      raise numeric_overflow_error(op_name, token) from None

  return arithmetic


def binary_integer_op(
  op: Callable[[int, int], int],
  op_name: str
) -> Callable[[Dict, Dict, Any], Dict]:
  """Factory for bitwise operations, which only accept Ints"""
  def bitwise(x: Dict, y: Dict, token: Any = None) -> Dict:
    if x['type'] != "Int" or y['type'] != "Int":
      raise type_mismatch_error(op_name, x, y, token)
    try:
      return make_value(op(x['value'], y['value']), "Int")
    except ValueError:
      raise HintonRuntimeError(
        f"Shift count for '{op_name}' must not be negative, got {y['value']}",
        token, INVALID_OPERAND
      ) from None
    except OverflowError:
      raise numeric_overflow_error(op_name, token) from None

  return bitwise


def user_visible_bindings(bindings: Dict) -> List[Tuple[str, Dict]]:
  """Bindings that are not natives, for listing in the REPL"""
  return [(name, binding['value']) for name, binding in bindings.items()
          if binding['kind'] != "native"]
