"""
Hinton abstract syntax tree
Frozen node classes produced by the parser and read by the interpreter
"""

from typing import Any, Optional, Tuple
from dataclasses import dataclass

from lexer import Token


class Expr:
    """Base class of every expression node"""
    __slots__ = ()


class Stmt:
    """Base class of every statement node"""
    __slots__ = ()


# ============================================================================
# EXPRESSIONS
# ============================================================================

@dataclass(frozen=True)
class Literal(Expr):
    value: Any
    token: Token


@dataclass(frozen=True)
class Grouping(Expr):
    expression: Expr


@dataclass(frozen=True)
class Unary(Expr):
    operator: Token
    right: Expr


@dataclass(frozen=True)
class Binary(Expr):
    left: Expr
    operator: Token
    right: Expr


@dataclass(frozen=True)
class Logical(Expr):
    """Short-circuiting '&&', '||' and '??'"""
    left: Expr
    operator: Token
    right: Expr


@dataclass(frozen=True)
class Ternary(Expr):
    condition: Expr
    then_branch: Expr
    else_branch: Expr
    token: Token


@dataclass(frozen=True)
class Assign(Expr):
    """Assignment to a variable, an indexed element or a member; operator may be compound"""
    target: Expr
    operator: Token
    value: Expr


@dataclass(frozen=True)
class Variable(Expr):
    name: Token


@dataclass(frozen=True)
class Call(Expr):
    callee: Expr
    paren: Token
    arguments: Tuple[Expr, ...]


@dataclass(frozen=True)
class Parameter:
    name: Token
    optional: bool = False
    default: Optional[Expr] = None

    @property
    def required(self) -> bool:
        return not self.optional and self.default is None


@dataclass(frozen=True)
class Lambda(Expr):
    token: Token
    params: Tuple[Parameter, ...]
    body: Tuple[Stmt, ...]


@dataclass(frozen=True)
class Array(Expr):
    token: Token
    elements: Tuple[Expr, ...]


@dataclass(frozen=True)
class Dictionary(Expr):
    token: Token
    entries: Tuple[Tuple[str, Expr], ...]


@dataclass(frozen=True)
class ArrayIndexing(Expr):
    target: Expr
    index: Expr
    bracket: Token


@dataclass(frozen=True)
class MemberAccess(Expr):
    target: Expr
    name: Token


@dataclass(frozen=True)
class Update(Expr):
    """Prefix or postfix '++' / '--'"""
    target: Expr
    operator: Token
    prefix: bool


# ============================================================================
# STATEMENTS
# ============================================================================

@dataclass(frozen=True)
class Var(Stmt):
    names: Tuple[Token, ...]
    initializer: Optional[Expr]


@dataclass(frozen=True)
class Const(Stmt):
    name: Token
    initializer: Expr


@dataclass(frozen=True)
class Function(Stmt):
    name: Token
    params: Tuple[Parameter, ...]
    body: Tuple[Stmt, ...]


@dataclass(frozen=True)
class Block(Stmt):
    statements: Tuple[Stmt, ...]


@dataclass(frozen=True)
class If(Stmt):
    condition: Expr
    then_branch: Stmt
    else_branch: Optional[Stmt]


@dataclass(frozen=True)
class While(Stmt):
    condition: Expr
    body: Stmt


@dataclass(frozen=True)
class For(Stmt):
    keyword: Token
    variable: Token
    iterable: Expr
    body: Stmt


@dataclass(frozen=True)
class Break(Stmt):
    keyword: Token


@dataclass(frozen=True)
class Continue(Stmt):
    keyword: Token


@dataclass(frozen=True)
class Return(Stmt):
    keyword: Token
    value: Optional[Expr]


@dataclass(frozen=True)
class Expression(Stmt):
    expression: Expr


ASSIGNABLE = (Variable, ArrayIndexing, MemberAccess)
