"""
Hinton Interpreter
Tree-walking evaluator over the AST produced by parsing.py

Expressions evaluate to tagged value dictionaries. Statements return an
explicit control-flow signal that every caller checks, so break, continue
and return never travel as exceptions. Runtime errors do.
"""

from typing import Any, Dict, List, Optional, Tuple
import sys

from error_handling import (
  HintonRuntimeError,
  TYPE_MISMATCH,
  NOT_CALLABLE,
  UNSUPPORTED_INDEX_TARGET,
  UNSUPPORTED_MEMBER_TARGET,
  UNDEFINED_KEY,
  MISPLACED_CONTROL_FLOW,
  STACK_OVERFLOW,
)
from utilities import (
  make_value,
  make_null,
  make_iterator,
  iterator_next,
  make_function_value,
  is_truthy,
  sequence_length,
  sequence_item,
  normalize_index,
  require_int_index,
  arity_error,
  user_visible_bindings,
)
from environment import (
  FUNCTION,
  CONSTANT,
  make_environment,
  env_define,
  env_get,
  env_assign,
)
from operators import (
  BINARY_OPERATORS,
  COMPOUND_ASSIGNMENT,
  apply_binary,
  apply_unary,
  apply_increment,
)
from ast_nodes import (
  Literal, Grouping, Unary, Binary, Logical, Ternary, Assign, Variable,
  Call, Lambda, Array, Dictionary, ArrayIndexing, MemberAccess, Update,
  Var, Const, Function, Block, If, While, For, Break, Continue, Return,
  Expression,
)
from stdlib import install_natives


# Several Python frames are spent per Hinton call
RECURSION_LIMIT = 4000


# ============================================================================
# DATA STRUCTURES
# ============================================================================

NORMAL = "normal"
BREAK = "break"
CONTINUE = "continue"
RETURN = "return"


def make_signal(kind: str = NORMAL, value: Optional[Dict] = None, token: Any = None) -> Dict:
  """Create the control-flow signal a statement finishes with"""
  return {
      'signal': kind,
      'value': value,
      'token': token
  }


NORMAL_SIGNAL = make_signal()


def make_execution_context(debug: bool = False) -> Dict:
  """Create execution context shared by one interpreter run"""
  return {
      'debug': debug
  }


def misplaced_control_flow(signal: Dict, boundary: str) -> HintonRuntimeError:
  keyword = signal['token'].lexeme if signal['token'] is not None else signal['signal']
  return HintonRuntimeError(
    f"'{keyword}' used outside of {boundary}", signal['token'], MISPLACED_CONTROL_FLOW
  )


# ============================================================================
# EXPRESSIONS
# ============================================================================

def evaluate(expr: Any, env: Dict, context: Dict) -> Dict:
  """Evaluate an expression node to a value"""
  if context['debug']:
    print(f"Evaluating: {type(expr).__name__}")

  handler = EXPRESSION_HANDLERS.get(type(expr))
  if handler is None:
    raise ValueError(f"Unknown expression node: {type(expr).__name__}")
  return handler(expr, env, context)


def eval_literal(expr: Literal, env: Dict, context: Dict) -> Dict:
  return expr.value


def eval_grouping(expr: Grouping, env: Dict, context: Dict) -> Dict:
  return evaluate(expr.expression, env, context)


def eval_variable(expr: Variable, env: Dict, context: Dict) -> Dict:
  return env_get(env, expr.name)


def eval_unary(expr: Unary, env: Dict, context: Dict) -> Dict:
  operand = evaluate(expr.right, env, context)
  return apply_unary(expr.operator, operand)


def eval_binary(expr: Binary, env: Dict, context: Dict) -> Dict:
  left = evaluate(expr.left, env, context)
  right = evaluate(expr.right, env, context)
  return apply_binary(expr.operator, left, right)


def eval_logical(expr: Logical, env: Dict, context: Dict) -> Dict:
  """Short-circuit operators yield the operand that decided the result"""
  left = evaluate(expr.left, env, context)
  op = expr.operator.lexeme

  if op == '??':
    return left if left['type'] != "Null" else evaluate(expr.right, env, context)
  if op in ('||', 'or'):
    return left if is_truthy(left) else evaluate(expr.right, env, context)
  # '&&' and 'and'
  return evaluate(expr.right, env, context) if is_truthy(left) else left


def eval_ternary(expr: Ternary, env: Dict, context: Dict) -> Dict:
  if is_truthy(evaluate(expr.condition, env, context)):
    return evaluate(expr.then_branch, env, context)
  return evaluate(expr.else_branch, env, context)


def eval_array(expr: Array, env: Dict, context: Dict) -> Dict:
  return make_value([evaluate(element, env, context) for element in expr.elements], "Array")


def eval_dictionary(expr: Dictionary, env: Dict, context: Dict) -> Dict:
  entries = {}
  for key, value_expr in expr.entries:
    entries[key] = evaluate(value_expr, env, context)
  return make_value(entries, "Dict")


def eval_lambda(expr: Lambda, env: Dict, context: Dict) -> Dict:
  return make_function_value("lambda", "lambda", expr.params, expr.body, env)


def eval_array_indexing(expr: ArrayIndexing, env: Dict, context: Dict) -> Dict:
  target = evaluate(expr.target, env, context)
  index = evaluate(expr.index, env, context)
  return index_value(target, index, expr.bracket)


def eval_member_access(expr: MemberAccess, env: Dict, context: Dict) -> Dict:
  target = evaluate(expr.target, env, context)
  return member_value(target, expr.name)


def eval_call(expr: Call, env: Dict, context: Dict) -> Dict:
  callee = evaluate(expr.callee, env, context)
  arguments = [evaluate(argument, env, context) for argument in expr.arguments]
  return call_value(callee, arguments, expr.paren, context)


def eval_assign(expr: Assign, env: Dict, context: Dict) -> Dict:
  """Plain or compound assignment; evaluates to the assigned value"""
  value = evaluate(expr.value, env, context)
  place = resolve_target(expr.target, env, context)

  op = expr.operator.lexeme
  if op != '=':
    current = read_place(place)
    value = BINARY_OPERATORS[COMPOUND_ASSIGNMENT[op]](current, value, expr.operator)

  write_place(place, value)
  return value


def eval_update(expr: Update, env: Dict, context: Dict) -> Dict:
  """'++' / '--': prefix yields the new value, postfix the old one"""
  place = resolve_target(expr.target, env, context)
  old_value = read_place(place)
  new_value = apply_increment(expr.operator, old_value)
  write_place(place, new_value)
  return new_value if expr.prefix else old_value


# ============================================================================
# INDEXING AND MEMBER ACCESS
# ============================================================================

def dict_key(key: Dict, token: Any) -> str:
  if key['type'] != "String":
    raise HintonRuntimeError(
      f"Dict keys must be Strings, got '{key['type']}'", token, TYPE_MISMATCH
    )
  return key['value']


def index_value(target: Dict, index: Dict, token: Any) -> Dict:
  """Read target[index] for Arrays, Strings, Ranges and Dicts"""
  target_type = target['type']

  if target_type in ("Array", "String", "Range"):
    position = require_int_index(index, token)
    length = sequence_length(target)
    return sequence_item(target, normalize_index(position, length, token, target_type))

  if target_type == "Dict":
    key = dict_key(index, token)
    if key not in target['value']:
      raise HintonRuntimeError(f"Undefined key '{key}'", token, UNDEFINED_KEY)
    return target['value'][key]

  raise HintonRuntimeError(
    f"Value of type '{target_type}' cannot be indexed", token, UNSUPPORTED_INDEX_TARGET
  )


def store_index(target: Dict, index: Dict, value: Dict, token: Any) -> None:
  """Write target[index] in place; only Arrays and Dicts are mutable"""
  target_type = target['type']

  if target_type == "Array":
    position = require_int_index(index, token)
    items = target['value']
    items[normalize_index(position, len(items), token, target_type)] = value
    return

  if target_type == "Dict":
    target['value'][dict_key(index, token)] = value
    return

  raise HintonRuntimeError(
    f"Value of type '{target_type}' does not support item assignment", token, UNSUPPORTED_INDEX_TARGET
  )


def member_value(target: Dict, name_token: Any) -> Dict:
  if target['type'] != "Dict":
    raise HintonRuntimeError(
      f"Value of type '{target['type']}' has no members", name_token, UNSUPPORTED_MEMBER_TARGET
    )
  name = name_token.lexeme
  if name not in target['value']:
    raise HintonRuntimeError(f"Undefined key '{name}'", name_token, UNDEFINED_KEY)
  return target['value'][name]


def store_member(target: Dict, name_token: Any, value: Dict) -> None:
  if target['type'] != "Dict":
    raise HintonRuntimeError(
      f"Value of type '{target['type']}' has no members", name_token, UNSUPPORTED_MEMBER_TARGET
    )
  target['value'][name_token.lexeme] = value


# ============================================================================
# ASSIGNMENT TARGETS
# ============================================================================

def resolve_target(target: Any, env: Dict, context: Dict) -> Dict:
  """Evaluate the sub-expressions of an assignment target once"""
  if isinstance(target, Variable):
    return {'kind': 'variable', 'env': env, 'token': target.name}
  if isinstance(target, ArrayIndexing):
    container = evaluate(target.target, env, context)
    index = evaluate(target.index, env, context)
    return {'kind': 'index', 'container': container, 'key': index, 'token': target.bracket}
  # MemberAccess (targets are validated by the parser)
  container = evaluate(target.target, env, context)
  return {'kind': 'member', 'container': container, 'token': target.name}


def read_place(place: Dict) -> Dict:
  if place['kind'] == 'variable':
    return env_get(place['env'], place['token'])
  if place['kind'] == 'index':
    return index_value(place['container'], place['key'], place['token'])
  return member_value(place['container'], place['token'])


def write_place(place: Dict, value: Dict) -> None:
  if place['kind'] == 'variable':
    env_assign(place['env'], place['token'], value)
  elif place['kind'] == 'index':
    store_index(place['container'], place['key'], value, place['token'])
  else:
    store_member(place['container'], place['token'], value)


# ============================================================================
# CALLS
# ============================================================================

def callable_arity(func: Dict) -> Tuple[int, int]:
  """Return the (minimum, maximum) argument count of a Function value"""
  return func['value']['min_arity'], func['value']['max_arity']


def call_value(callee: Dict, arguments: List[Dict], call_token: Any, context: Dict) -> Dict:
  """Check the callee and its arity, then invoke it"""
  if callee['type'] != "Function":
    raise HintonRuntimeError(
      f"Value of type '{callee['type']}' is not callable", call_token, NOT_CALLABLE
    )

  func = callee['value']
  min_arity, max_arity = callable_arity(callee)
  if not min_arity <= len(arguments) <= max_arity:
    raise arity_error(func['name'], min_arity, max_arity, len(arguments), call_token)

  if func['kind'] == "native":
    try:
      result = func['impl'](arguments)
    except HintonRuntimeError as e:
      if e.token is None:
        e.token = call_token
      raise
    return result if result is not None else make_null()

  return call_function(callee, arguments, call_token, context)


def call_function(callee: Dict, arguments: List[Dict], call_token: Any, context: Dict) -> Dict:
  """
  Run a user function or lambda

  Parameters are bound in a fresh environment chained to the closure.
  Omitted optional parameters are null; omitted defaulted parameters get
  their default, evaluated in the defining environment, left to right.
  """
  func = callee['value']
  closure = func['closure']
  call_env = make_environment(closure)

  if context['debug']:
    print(f"Calling {func['name']} with {len(arguments)} argument(s)")

  try:
    for position, param in enumerate(func['params']):
      if position < len(arguments):
        value = arguments[position]
      elif param.default is not None:
        value = evaluate(param.default, closure, context)
      else:
        value = make_null()
      env_define(call_env, param.name.lexeme, value)

    signal = execute_statements(func['body'], call_env, context)
  except RecursionError:
    raise HintonRuntimeError(
      f"Maximum call depth exceeded in '{func['name']}'", call_token, STACK_OVERFLOW
    ) from None

  if signal['signal'] == RETURN:
    return signal['value']
  if signal['signal'] != NORMAL:
    raise misplaced_control_flow(signal, "a loop")
  return make_null()


# ============================================================================
# STATEMENTS
# ============================================================================

def execute(stmt: Any, env: Dict, context: Dict) -> Dict:
  """Execute a statement node and return its control-flow signal"""
  if context['debug']:
    print(f"Executing: {type(stmt).__name__}")

  handler = STATEMENT_HANDLERS.get(type(stmt))
  if handler is None:
    raise ValueError(f"Unknown statement node: {type(stmt).__name__}")
  return handler(stmt, env, context)


def execute_statements(statements: Tuple, env: Dict, context: Dict) -> Dict:
  """Run statements in order until one finishes with a non-normal signal"""
  for stmt in statements:
    signal = execute(stmt, env, context)
    if signal['signal'] != NORMAL:
      return signal
  return NORMAL_SIGNAL


def exec_expression(stmt: Expression, env: Dict, context: Dict) -> Dict:
  evaluate(stmt.expression, env, context)
  return NORMAL_SIGNAL


def exec_var(stmt: Var, env: Dict, context: Dict) -> Dict:
  """One initializer evaluation, bound to every declared name"""
  value = evaluate(stmt.initializer, env, context) if stmt.initializer is not None else make_null()
  for name in stmt.names:
    env_define(env, name.lexeme, value)
  return NORMAL_SIGNAL


def exec_const(stmt: Const, env: Dict, context: Dict) -> Dict:
  env_define(env, stmt.name.lexeme, evaluate(stmt.initializer, env, context), CONSTANT)
  return NORMAL_SIGNAL


def exec_function(stmt: Function, env: Dict, context: Dict) -> Dict:
  func = make_function_value("user", stmt.name.lexeme, stmt.params, stmt.body, env)
  env_define(env, stmt.name.lexeme, func, FUNCTION)
  return NORMAL_SIGNAL


def exec_block(stmt: Block, env: Dict, context: Dict) -> Dict:
  return execute_statements(stmt.statements, make_environment(env), context)


def exec_if(stmt: If, env: Dict, context: Dict) -> Dict:
  if is_truthy(evaluate(stmt.condition, env, context)):
    return execute(stmt.then_branch, env, context)
  if stmt.else_branch is not None:
    return execute(stmt.else_branch, env, context)
  return NORMAL_SIGNAL


def exec_while(stmt: While, env: Dict, context: Dict) -> Dict:
  while is_truthy(evaluate(stmt.condition, env, context)):
    signal = execute(stmt.body, env, context)
    if signal['signal'] == BREAK:
      break
    if signal['signal'] == RETURN:
      return signal
  return NORMAL_SIGNAL


def exec_for(stmt: For, env: Dict, context: Dict) -> Dict:
  """for (let x in iterable): a fresh environment holds x on every iteration"""
  iterator = make_iterator(evaluate(stmt.iterable, env, context), stmt.keyword)

  while True:
    has_item, item = iterator_next(iterator)
    if not has_item:
      break
    loop_env = make_environment(env)
    env_define(loop_env, stmt.variable.lexeme, item)
    signal = execute(stmt.body, loop_env, context)
    if signal['signal'] == BREAK:
      break
    if signal['signal'] == RETURN:
      return signal

  return NORMAL_SIGNAL


def exec_break(stmt: Break, env: Dict, context: Dict) -> Dict:
  return make_signal(BREAK, token=stmt.keyword)


def exec_continue(stmt: Continue, env: Dict, context: Dict) -> Dict:
  return make_signal(CONTINUE, token=stmt.keyword)


def exec_return(stmt: Return, env: Dict, context: Dict) -> Dict:
  value = evaluate(stmt.value, env, context) if stmt.value is not None else make_null()
  return make_signal(RETURN, value, stmt.keyword)


# ============================================================================
# DISPATCH TABLES
# ============================================================================

EXPRESSION_HANDLERS = {
    Literal: eval_literal,
    Grouping: eval_grouping,
    Variable: eval_variable,
    Unary: eval_unary,
    Binary: eval_binary,
    Logical: eval_logical,
    Ternary: eval_ternary,
    Array: eval_array,
    Dictionary: eval_dictionary,
    Lambda: eval_lambda,
    ArrayIndexing: eval_array_indexing,
    MemberAccess: eval_member_access,
    Call: eval_call,
    Assign: eval_assign,
    Update: eval_update,
}

STATEMENT_HANDLERS = {
    Expression: exec_expression,
    Var: exec_var,
    Const: exec_const,
    Function: exec_function,
    Block: exec_block,
    If: exec_if,
    While: exec_while,
    For: exec_for,
    Break: exec_break,
    Continue: exec_continue,
    Return: exec_return,
}


# ============================================================================
# PROGRAM EVALUATION
# ============================================================================

def create_global_env() -> Dict:
  """Create the global environment with the native library installed"""
  env = make_environment()
  install_natives(env)
  return env


def interpret_program(declarations: List[Any], env: Dict, context: Dict) -> None:
  """
  Execute top-level declarations in order

  The first runtime error halts the program; later declarations are not
  executed. A signal reaching the top level is misplaced control flow.
  """
  try:
    for declaration in declarations:
      signal = execute(declaration, env, context)
      if signal['signal'] == RETURN:
        raise misplaced_control_flow(signal, "a function")
      if signal['signal'] != NORMAL:
        raise misplaced_control_flow(signal, "a loop")
  except RecursionError:
    raise HintonRuntimeError("Maximum nesting depth exceeded", None, STACK_OVERFLOW) from None


class HintonInterpreter:
  """Interpreter state: the global environment and the execution context"""

  def __init__(self, debug: bool = False):
    self.debug = debug
    self.context = make_execution_context(debug)
    self.globals = create_global_env()
    if sys.getrecursionlimit() < RECURSION_LIMIT:
      sys.setrecursionlimit(RECURSION_LIMIT)

  def interpret(self, declarations: List[Any]) -> List[Tuple[str, Dict]]:
    """Run a program against the globals and return the user-visible bindings"""
    interpret_program(declarations, self.globals, self.context)
    return user_visible_bindings(self.globals['bindings'])

  def evaluate(self, expr: Any) -> Dict:
    """Evaluate a single expression in the global environment"""
    try:
      return evaluate(expr, self.globals, self.context)
    except RecursionError:
      raise HintonRuntimeError("Maximum nesting depth exceeded", None, STACK_OVERFLOW) from None

  def call(self, callee: Dict, arguments: List[Dict]) -> Dict:
    """Invoke a Function value from host code"""
    return call_value(callee, arguments, None, self.context)


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

def create_interpreter(debug: bool = False) -> HintonInterpreter:
  """Factory function returning an interpreter"""
  return HintonInterpreter(debug=debug)


def create_debug_interpreter() -> HintonInterpreter:
  """Factory function returning a debug interpreter"""
  return create_interpreter(debug=True)
