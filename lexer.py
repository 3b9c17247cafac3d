"""
Hinton Tokenizer
Turns source text into the token stream consumed by the parser
"""

from typing import List, Any
from dataclasses import dataclass

from pyparsing import (
    Regex, ZeroOrMore, StringEnd, MatchFirst, ParseException,
    cpp_style_comment, one_of, lineno, col
)

from error_handling import HintonScanError


@dataclass(frozen=True)
class SourceSpan:
    """Source location information for a token"""
    filename: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int
    text: str = ""

    def __str__(self) -> str:
        if self.start_line == self.end_line:
            return f"{self.filename}:{self.start_line}:{self.start_col}-{self.end_col}"
        return f"{self.filename}:{self.start_line}:{self.start_col}-{self.end_line}:{self.end_col}"


@dataclass(frozen=True)
class Token:
    """Hinton token with source information"""
    type: str
    lexeme: str
    span: SourceSpan
    literal: Any = None

    @property
    def line(self) -> int:
        return self.span.start_line

    def __str__(self) -> str:
        return f"{self.type}({self.lexeme})"


KEYWORDS = {
    'let', 'const', 'func', 'fn', 'if', 'else', 'while', 'for', 'in',
    'break', 'continue', 'return', 'true', 'false', 'null', 'and', 'or', 'not',
}

OPERATORS = [
    '**=', '<<=', '>>=', '**', '..', '++', '--', '+=', '-=', '*=', '/=', '%=',
    '&=', '|=', '^=', '==', '!=', '<=', '>=', '<<', '>>', '&&', '||', '??',
    ':=', '=>', '+', '-', '*', '/', '%', '=', '<', '>', '!', '&', '|', '^',
    '~', '?', '.',
]

DELIMITERS = ['(', ')', '[', ']', '{', '}', ',', ';', ':']

STRING_ESCAPES = {
    'n': '\n', 't': '\t', 'r': '\r', '\\': '\\', '"': '"', "'": "'",
    '0': '\0', 'a': '\a', 'b': '\b', 'f': '\f', 'v': '\v'
}


def process_string_escapes(s: str) -> str:
    """Process escape sequences in strings"""
    result = []
    i = 0
    while i < len(s):
        if s[i] == '\\' and i + 1 < len(s):
            next_char = s[i + 1]
            if next_char in STRING_ESCAPES:
                result.append(STRING_ESCAPES[next_char])
                i += 2
            else:
                # Unknown escape, keep as-is
                result.append(s[i])
                i += 1
        else:
            result.append(s[i])
            i += 1

    return ''.join(result)


def convert_number(lexeme: str):
    """Return (token type, literal value) for a numeric lexeme"""
    digits = lexeme.replace('_', '')
    if digits[:2].lower() in ('0x', '0o', '0b'):
        return "INTEGER", int(digits, 0)
    if '.' in digits or 'e' in digits or 'E' in digits:
        return "FLOAT", float(digits)
    return "INTEGER", int(digits, 10)


class HintonLexer:
    """Hinton tokenizer built from pyparsing token elements"""

    def __init__(self, filename: str = "<input>", debug: bool = False):
        self.filename = filename
        self.debug = debug
        self._setup_token_patterns()

    def _make_token(self, token_type: str, lexeme: str, loc: int, text: str, literal: Any = None) -> Token:
        end = loc + len(lexeme)
        span = SourceSpan(
            self.filename, lineno(loc, text), col(loc, text),
            lineno(end, text), col(end, text), lexeme
        )
        return Token(token_type, lexeme, span, literal)

    def _setup_token_patterns(self):
        """Setup all token patterns for Hinton"""

        # Numbers: hex, octal, binary, decimal integers and floats, with '_' separators
        number = Regex(
            r'0[xX][0-9a-fA-F](?:_?[0-9a-fA-F])*'
            r'|0[oO][0-7](?:_?[0-7])*'
            r'|0[bB][01](?:_?[01])*'
            r'|\d(?:_?\d)*(?:\.\d(?:_?\d)*)?(?:[eE][+-]?\d+)?'
        )

        def number_action(s, loc, toks):
            token_type, value = convert_number(toks[0])
            return self._make_token(token_type, toks[0], loc, s, value)

        number.set_parse_action(number_action)

        # String literals with escape sequences, single or double quoted
        string = Regex(r'"(?:[^"\\\n]|\\.)*"|\'(?:[^\'\\\n]|\\.)*\'')
        string.set_parse_action(
            lambda s, loc, toks: self._make_token(
                "STRING", toks[0], loc, s, process_string_escapes(toks[0][1:-1])
            )
        )

        # Identifiers and keywords
        identifier = Regex(r'[A-Za-z_][A-Za-z0-9_]*')

        def identifier_action(s, loc, toks):
            if toks[0] in KEYWORDS:
                return self._make_token("KEYWORD", toks[0], loc, s)
            return self._make_token("IDENTIFIER", toks[0], loc, s)

        identifier.set_parse_action(identifier_action)

        # Operators (one_of matches the longest alternative first)
        operator = one_of(OPERATORS)
        operator.set_parse_action(lambda s, loc, toks: self._make_token("OPERATOR", toks[0], loc, s))

        delimiter = one_of(DELIMITERS)
        delimiter.set_parse_action(lambda s, loc, toks: self._make_token("DELIMITER", toks[0], loc, s))

        self.token = MatchFirst([number, string, identifier, operator, delimiter])
        self.program = ZeroOrMore(self.token) + StringEnd()
        self.program.ignore(cpp_style_comment)

    def tokenize(self, text: str) -> List[Token]:
        """Tokenize Hinton source code, terminated by an EOF token"""
        # Tabs are expanded so token columns match what pyparsing reports
        text = text.expandtabs()
        try:
            result = self.program.parse_string(text)
        except ParseException as e:
            raise HintonScanError.from_parse_exception(e, text) from e

        tokens = list(result)
        tokens.append(self._make_token("EOF", "", len(text), text))

        if self.debug:
            print(f"Scanned {len(tokens)} tokens")

        return tokens


def create_lexer(filename: str = "<input>", debug: bool = False) -> HintonLexer:
    """Factory function for the tokenizer"""
    return HintonLexer(filename, debug)


def tokenize(text: str, filename: str = "<input>") -> List[Token]:
    """Tokenize source text in one call"""
    return HintonLexer(filename).tokenize(text)
