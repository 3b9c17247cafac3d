"""
Hinton Programming Language Parser
Recursive descent over the token stream with a fixed precedence table and
statement-level error recovery
"""

from typing import List, Any, Optional, Tuple
from dataclasses import fields

from lexer import Token, HintonLexer
from error_handling import HintonSyntaxError, HintonParseError
from utilities import make_value, stringify
from ast_nodes import (
    Expr, Stmt, Parameter, ASSIGNABLE,
    Literal, Grouping, Unary, Binary, Logical, Ternary, Assign, Variable,
    Call, Lambda, Array, Dictionary, ArrayIndexing, MemberAccess, Update,
    Var, Const, Function, Block, If, While, For, Break, Continue, Return,
    Expression,
)


SYMBOL_TYPES = ("KEYWORD", "OPERATOR", "DELIMITER")

ASSIGNMENT_OPERATORS = (
    '=', '+=', '-=', '*=', '/=', '%=', '**=', '<<=', '>>=', '&=', '|=', '^=',
)

# Tokens recovery stops in front of
STATEMENT_STARTS = (
    'let', 'const', 'func', 'if', 'while', 'for', 'return', 'break', 'continue', '}',
)

LITERAL_TYPES = {
    "INTEGER": "Int",
    "FLOAT": "Float",
    "STRING": "String",
}


class RecursiveDescentParser:
    """
    Builds the AST for one token stream

    Precedence, lowest to highest: assignment, ternary, '??', logical or,
    logical and, '|', '^', '&', equality, comparison, shift, range, additive,
    multiplicative, '**' (right associative), unary, postfix, primary.
    """

    def __init__(self, tokens: List[Token], debug: bool = False):
        self.tokens = tokens
        self.current = 0
        self.errors: List[HintonSyntaxError] = []
        self.block_depth = 0
        self.debug = debug

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def parse_program(self) -> List[Stmt]:
        """Parse every declaration; raise HintonParseError if any syntax error was found"""
        declarations = []
        try:
            while not self._is_at_end():
                declaration = self._declaration()
                if declaration is not None:
                    declarations.append(declaration)
        except RecursionError:
            self.errors.append(HintonSyntaxError("Program is nested too deeply", self._peek()))

        if self.errors:
            raise HintonParseError(self.errors)

        if self.debug:
            print(f"Parsed {len(declarations)} top-level declarations")

        return declarations

    # ------------------------------------------------------------------
    # Token helpers
    # ------------------------------------------------------------------

    def _peek(self) -> Token:
        return self.tokens[self.current]

    def _previous(self) -> Token:
        return self.tokens[self.current - 1]

    def _is_at_end(self) -> bool:
        return self._peek().type == "EOF"

    def _advance(self) -> Token:
        if not self._is_at_end():
            self.current += 1
        return self._previous()

    def _check(self, *lexemes: str) -> bool:
        token = self._peek()
        return token.type in SYMBOL_TYPES and token.lexeme in lexemes

    def _check_type(self, token_type: str) -> bool:
        return self._peek().type == token_type

    def _match(self, *lexemes: str) -> bool:
        if self._check(*lexemes):
            self._advance()
            return True
        return False

    def _consume(self, lexeme: str, message: str) -> Token:
        if self._check(lexeme):
            return self._advance()
        raise self._error(self._peek(), message)

    def _consume_identifier(self, message: str) -> Token:
        if self._check_type("IDENTIFIER"):
            return self._advance()
        raise self._error(self._peek(), message)

    def _error(self, token: Token, message: str) -> HintonSyntaxError:
        return HintonSyntaxError(message, token)

    def _report(self, token: Token, message: str) -> None:
        """Record an error the parser can carry on from without resynchronising"""
        self.errors.append(HintonSyntaxError(message, token))

    def _synchronize(self) -> None:
        """Discard tokens until a statement boundary"""
        if self.block_depth > 0 and self._check('}'):
            # Leave the brace for the enclosing block to close
            return
        self._advance()
        while not self._is_at_end():
            previous = self._previous()
            if previous.type == "DELIMITER" and previous.lexeme == ';':
                return
            if self._check(*STATEMENT_STARTS):
                return
            self._advance()

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def _declaration(self) -> Optional[Stmt]:
        try:
            if self._match('let'):
                return self._var_declaration()
            if self._match('const'):
                return self._const_declaration()
            if self._match('func'):
                return self._function_declaration()
            return self._statement()
        except HintonSyntaxError as e:
            self.errors.append(e)
            self._synchronize()
            return None

    def _var_declaration(self) -> Var:
        names = [self._consume_identifier("Expected variable name after 'let'")]
        while self._match(','):
            names.append(self._consume_identifier("Expected variable name after ','"))

        initializer = None
        if self._match('='):
            initializer = self._expression()

        self._consume(';', "Expected ';' after variable declaration")
        return Var(tuple(names), initializer)

    def _const_declaration(self) -> Const:
        name = self._consume_identifier("Expected constant name after 'const'")
        self._consume('=', "Const declarations need an initializer: expected '=' after constant name")
        initializer = self._expression()
        self._consume(';', "Expected ';' after constant declaration")
        return Const(name, initializer)

    def _function_declaration(self) -> Function:
        name = self._consume_identifier("Expected function name after 'func'")
        params = self._parameters("Expected '(' after function name")
        self._consume('{', "Expected '{' before function body")
        body = self._block_statements()
        return Function(name, params, body)

    def _parameters(self, open_message: str) -> Tuple[Parameter, ...]:
        self._consume('(', open_message)
        params: List[Parameter] = []
        seen_names = set()
        seen_optional = False

        if not self._check(')'):
            while True:
                name = self._consume_identifier("Expected parameter name")
                if name.lexeme in seen_names:
                    self._report(name, f"Duplicate parameter '{name.lexeme}'")
                seen_names.add(name.lexeme)

                if self._match('?'):
                    param = Parameter(name, optional=True)
                    if self._check(':='):
                        self._report(self._peek(), "A parameter cannot be both optional ('?') and have a default (':=')")
                        self._advance()
                        self._expression()
                elif self._match(':='):
                    param = Parameter(name, default=self._expression())
                else:
                    param = Parameter(name)

                if param.required and seen_optional:
                    self._report(name, f"Required parameter '{name.lexeme}' cannot follow optional parameters")
                if not param.required:
                    seen_optional = True

                params.append(param)
                if not self._match(','):
                    break

        self._consume(')', "Expected ')' after parameters")
        return tuple(params)

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _statement(self) -> Stmt:
        if self._match('{'):
            return Block(self._block_statements())
        if self._match('if'):
            return self._if_statement()
        if self._match('while'):
            return self._while_statement()
        if self._match('for'):
            return self._for_statement()
        if self._match('break'):
            keyword = self._previous()
            self._consume(';', "Expected ';' after 'break'")
            return Break(keyword)
        if self._match('continue'):
            keyword = self._previous()
            self._consume(';', "Expected ';' after 'continue'")
            return Continue(keyword)
        if self._match('return'):
            return self._return_statement()
        return self._expression_statement()

    def _block_statements(self) -> Tuple[Stmt, ...]:
        statements = []
        self.block_depth += 1
        try:
            while not self._check('}') and not self._is_at_end():
                declaration = self._declaration()
                if declaration is not None:
                    statements.append(declaration)
        finally:
            self.block_depth -= 1
        self._consume('}', "Expected '}' after block")
        return tuple(statements)

    def _if_statement(self) -> If:
        self._consume('(', "Expected '(' after 'if'")
        condition = self._expression()
        self._consume(')', "Expected ')' after if condition")
        then_branch = self._statement()
        else_branch = self._statement() if self._match('else') else None
        return If(condition, then_branch, else_branch)

    def _while_statement(self) -> While:
        self._consume('(', "Expected '(' after 'while'")
        condition = self._expression()
        self._consume(')', "Expected ')' after while condition")
        return While(condition, self._statement())

    def _for_statement(self) -> For:
        keyword = self._previous()
        self._consume('(', "Expected '(' after 'for'")
        self._match('let')
        variable = self._consume_identifier("Expected loop variable name")
        self._consume('in', "Expected 'in' after loop variable")
        iterable = self._expression()
        self._consume(')', "Expected ')' after for clause")
        return For(keyword, variable, iterable, self._statement())

    def _return_statement(self) -> Return:
        keyword = self._previous()
        value = None
        if not self._check(';'):
            value = self._expression()
        self._consume(';', "Expected ';' after return value")
        return Return(keyword, value)

    def _expression_statement(self) -> Expression:
        expr = self._expression()
        self._consume(';', "Expected ';' after expression")
        return Expression(expr)

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def _expression(self) -> Expr:
        return self._assignment()

    def _assignment(self) -> Expr:
        expr = self._ternary()

        if self._match(*ASSIGNMENT_OPERATORS):
            operator = self._previous()
            value = self._assignment()
            if isinstance(expr, ASSIGNABLE):
                return Assign(expr, operator, value)
            self._report(operator, "Invalid assignment target")

        return expr

    def _ternary(self) -> Expr:
        expr = self._nullish()
        if self._match('?'):
            token = self._previous()
            then_branch = self._expression()
            self._consume(':', "Expected ':' in ternary expression")
            else_branch = self._ternary()
            return Ternary(expr, then_branch, else_branch, token)
        return expr

    def _left_associative(self, operand, node_class, *lexemes: str) -> Expr:
        expr = operand()
        while self._match(*lexemes):
            operator = self._previous()
            right = operand()
            expr = node_class(expr, operator, right)
        return expr

    def _nullish(self) -> Expr:
        return self._left_associative(self._logic_or, Logical, '??')

    def _logic_or(self) -> Expr:
        return self._left_associative(self._logic_and, Logical, '||', 'or')

    def _logic_and(self) -> Expr:
        return self._left_associative(self._bit_or, Logical, '&&', 'and')

    def _bit_or(self) -> Expr:
        return self._left_associative(self._bit_xor, Binary, '|')

    def _bit_xor(self) -> Expr:
        return self._left_associative(self._bit_and, Binary, '^')

    def _bit_and(self) -> Expr:
        return self._left_associative(self._equality, Binary, '&')

    def _equality(self) -> Expr:
        return self._left_associative(self._comparison, Binary, '==', '!=')

    def _comparison(self) -> Expr:
        return self._left_associative(self._shift, Binary, '<', '<=', '>', '>=')

    def _shift(self) -> Expr:
        return self._left_associative(self._range, Binary, '<<', '>>')

    def _range(self) -> Expr:
        expr = self._additive()
        if self._match('..'):
            operator = self._previous()
            expr = Binary(expr, operator, self._additive())
            if self._check('..'):
                raise self._error(self._peek(), "Range expressions cannot be chained")
        return expr

    def _additive(self) -> Expr:
        return self._left_associative(self._multiplicative, Binary, '+', '-')

    def _multiplicative(self) -> Expr:
        return self._left_associative(self._exponent, Binary, '*', '/', '%')

    def _exponent(self) -> Expr:
        base = self._unary()
        if self._match('**'):
            operator = self._previous()
            return Binary(base, operator, self._exponent())
        return base

    def _unary(self) -> Expr:
        if self._match('!', 'not', '-', '~'):
            operator = self._previous()
            return Unary(operator, self._unary())
        if self._match('++', '--'):
            operator = self._previous()
            target = self._unary()
            if not isinstance(target, ASSIGNABLE):
                self._report(operator, f"Invalid target for '{operator.lexeme}'")
            return Update(target, operator, True)
        return self._postfix()

    def _postfix(self) -> Expr:
        expr = self._primary()

        while True:
            if self._match('('):
                expr = self._finish_call(expr)
            elif self._match('['):
                bracket = self._previous()
                index = self._expression()
                self._consume(']', "Expected ']' after index")
                expr = ArrayIndexing(expr, index, bracket)
            elif self._match('.'):
                name = self._consume_identifier("Expected property name after '.'")
                expr = MemberAccess(expr, name)
            elif self._match('++', '--'):
                operator = self._previous()
                if not isinstance(expr, ASSIGNABLE):
                    self._report(operator, f"Invalid target for '{operator.lexeme}'")
                expr = Update(expr, operator, False)
            else:
                break

        return expr

    def _finish_call(self, callee: Expr) -> Call:
        arguments = []
        if not self._check(')'):
            while True:
                arguments.append(self._expression())
                if not self._match(','):
                    break
        paren = self._consume(')', "Expected ')' after arguments")
        return Call(callee, paren, tuple(arguments))

    def _primary(self) -> Expr:
        if self._match('true'):
            return Literal(make_value(True, "Bool"), self._previous())
        if self._match('false'):
            return Literal(make_value(False, "Bool"), self._previous())
        if self._match('null'):
            return Literal(make_value(None, "Null"), self._previous())

        token = self._peek()
        if token.type in LITERAL_TYPES:
            self._advance()
            return Literal(make_value(token.literal, LITERAL_TYPES[token.type]), token)

        if token.type == "IDENTIFIER":
            self._advance()
            return Variable(token)

        if self._match('('):
            expr = self._expression()
            self._consume(')', "Expected ')' after expression")
            return Grouping(expr)

        if self._match('['):
            return self._array_literal()

        if self._match('{'):
            return self._dictionary_literal()

        if self._match('fn'):
            return self._lambda()

        raise self._error(token, "Expected expression")

    def _array_literal(self) -> Array:
        token = self._previous()
        elements = []
        while not self._check(']'):
            elements.append(self._expression())
            if not self._match(','):
                break
        self._consume(']', "Expected ']' after array elements")
        return Array(token, tuple(elements))

    def _dictionary_literal(self) -> Dictionary:
        token = self._previous()
        entries = []
        while not self._check('}'):
            key = self._peek()
            if key.type == "IDENTIFIER":
                name = key.lexeme
            elif key.type == "STRING":
                name = key.literal
            else:
                raise self._error(key, "Expected identifier or string as dictionary key")
            self._advance()
            self._consume(':', "Expected ':' after dictionary key")
            entries.append((name, self._expression()))
            if not self._match(','):
                break
        self._consume('}', "Expected '}' after dictionary entries")
        return Dictionary(token, tuple(entries))

    def _lambda(self) -> Lambda:
        token = self._previous()
        params = self._parameters("Expected '(' after 'fn'")
        if self._match('=>'):
            arrow = self._previous()
            body = (Return(arrow, self._expression()),)
        elif self._match('{'):
            body = self._block_statements()
        else:
            raise self._error(self._peek(), "Expected '=>' or '{' after lambda parameters")
        return Lambda(token, params, body)


class HintonParser:
    """Main Hinton parser combining tokenizer and recursive descent"""

    def __init__(self, debug: bool = False):
        self.debug = debug

    def parse_file(self, filepath: str) -> List[Stmt]:
        """Parse a Hinton source file"""
        with open(filepath, 'r', encoding='utf-8') as f:
            content = f.read()
        return self.parse_string(content, filepath)

    def parse_string(self, text: str, filename: str = "<input>") -> List[Stmt]:
        """Parse Hinton source code from string"""
        return self.parse_tokens(self.tokenize(text, filename))

    def parse_tokens(self, tokens: List[Token]) -> List[Stmt]:
        """Parse an already scanned token stream"""
        return RecursiveDescentParser(tokens, self.debug).parse_program()

    def tokenize(self, text: str, filename: str = "<input>") -> List[Token]:
        """Tokenize Hinton source code"""
        return HintonLexer(filename, self.debug).tokenize(text)


# Factory functions for creating parsers
def create_parser(debug: bool = False) -> HintonParser:
    """Create a Hinton parser"""
    return HintonParser(debug=debug)


def create_debug_parser() -> HintonParser:
    """Create a Hinton parser with debug enabled"""
    return HintonParser(debug=True)


# Utility functions for working with the AST
def _child_nodes(node: Any) -> List[Any]:
    children = []
    for field in fields(node):
        value = getattr(node, field.name)
        if isinstance(value, (Expr, Stmt, Parameter)):
            children.append(value)
        elif isinstance(value, tuple):
            for item in value:
                if isinstance(item, (Expr, Stmt, Parameter)):
                    children.append(item)
                elif isinstance(item, tuple):
                    # Dictionary entries are (key, expression) pairs
                    children.extend(part for part in item if isinstance(part, Expr))
    return children


def find_nodes_by_type(nodes: List[Any], node_type: type) -> List[Any]:
    """Find all nodes of a specific class in a list of trees"""
    result = []

    def search(node: Any):
        if isinstance(node, node_type):
            result.append(node)
        for child in _child_nodes(node):
            search(child)

    for node in nodes:
        search(node)
    return result


def _describe_node(node: Any) -> str:
    parts = []
    for field in fields(node):
        value = getattr(node, field.name)
        if isinstance(value, Token):
            parts.append(value.lexeme)
        elif isinstance(value, dict):
            parts.append(stringify(value, nested=True))
        elif isinstance(value, bool) and value:
            parts.append(field.name)
        elif isinstance(value, tuple) and value and all(isinstance(v, Token) for v in value):
            parts.append(", ".join(v.lexeme for v in value))
        elif isinstance(value, tuple) and value and all(isinstance(v, tuple) for v in value):
            parts.append(", ".join(repr(v[0]) for v in value))
    label = type(node).__name__
    if parts:
        label += "(" + " ".join(parts) + ")"
    return label


def pretty_print_ast(node: Any, indent: int = 0) -> str:
    """Pretty print an AST node for debugging"""
    result = "  " * indent + _describe_node(node) + "\n"
    for child in _child_nodes(node):
        result += pretty_print_ast(child, indent + 1)
    return result
