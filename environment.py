"""
Hinton runtime environments
A scope is a mutable dictionary of bindings plus a link to its enclosing
scope. Environments only ever point outward, so closures sharing them never
form reference cycles.
"""

from typing import Any, Callable, Dict, Optional

from error_handling import (
  HintonRuntimeError,
  UNDEFINED_VARIABLE,
  CONSTANT_REASSIGNMENT,
)
from utilities import make_function_value


# Declaration kinds
VARIABLE = "variable"
CONSTANT = "constant"
FUNCTION = "function"
NATIVE = "native"

DESCRIPTIONS = {
    CONSTANT: "constant",
    FUNCTION: "function",
    NATIVE: "native function",
}


# ============================================================================
# DATA STRUCTURES
# ============================================================================

def make_environment(parent: Optional[Dict] = None) -> Dict:
  """Create an empty scope enclosed by parent (None for the global scope)"""
  return {
      'parent': parent,
      'bindings': {}
  }


def make_binding(value: Dict, kind: str = VARIABLE) -> Dict:
  return {
      'value': value,
      'kind': kind
  }


# ============================================================================
# ENVIRONMENT OPERATIONS
# ============================================================================

def env_define(env: Dict, name: str, value: Dict, kind: str = VARIABLE) -> None:
  """Create a fresh binding in this scope, shadowing any outer one"""
  env['bindings'][name] = make_binding(value, kind)


def env_find(env: Dict, name: str) -> Optional[Dict]:
  """Find the nearest binding for name, walking outward through the chain"""
  scope = env
  while scope is not None:
    binding = scope['bindings'].get(name)
    if binding is not None:
      return binding
    scope = scope['parent']
  return None


def env_get(env: Dict, name_token: Any) -> Dict:
  """Look up the value bound to an identifier token"""
  binding = env_find(env, name_token.lexeme)
  if binding is None:
    raise HintonRuntimeError(
      f"Undefined variable '{name_token.lexeme}'", name_token, UNDEFINED_VARIABLE
    )
  return binding['value']


def env_assign(env: Dict, name_token: Any, value: Dict) -> None:
  """Rebind the nearest existing binding; constants, functions and natives are fixed"""
  binding = env_find(env, name_token.lexeme)
  if binding is None:
    raise HintonRuntimeError(
      f"Undefined variable '{name_token.lexeme}'", name_token, UNDEFINED_VARIABLE
    )
  if binding['kind'] != VARIABLE:
    raise HintonRuntimeError(
      f"Cannot reassign {DESCRIPTIONS[binding['kind']]} '{name_token.lexeme}'",
      name_token, CONSTANT_REASSIGNMENT
    )
  binding['value'] = value


# ============================================================================
# NATIVE REGISTRATION
# ============================================================================

def register_native(
  env: Dict,
  name: str,
  min_arity: int,
  impl: Callable,
  max_arity: Optional[int] = None
) -> Dict:
  """
  Install a host function as a native binding

  Args:
    env: Environment to install into (normally the globals)
    name: Name the function is bound under
    min_arity: Minimum number of arguments
    impl: Host function called with the list of evaluated argument values
    max_arity: Maximum number of arguments (defaults to min_arity)

  Returns:
    The native Function value
  """
  native = make_function_value(
    "native", name, impl=impl, min_arity=min_arity,
    max_arity=min_arity if max_arity is None else max_arity
  )
  env_define(env, name, native, NATIVE)
  return native
