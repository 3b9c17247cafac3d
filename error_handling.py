"""
Error handling for the Hinton front end and evaluator
Report dictionaries, context excerpts and the exception classes raised by
the scanner, parser and interpreter
"""

from typing import List, Optional, Dict, Any
from pyparsing import ParseException


# ============================================================================
# RUNTIME ERROR KINDS
# ============================================================================

TYPE_MISMATCH = "TypeMismatch"
UNDEFINED_VARIABLE = "UndefinedVariable"
CONSTANT_REASSIGNMENT = "ConstantReassignment"
NOT_CALLABLE = "NotCallable"
ARITY_MISMATCH = "ArityMismatch"
INDEX_OUT_OF_RANGE = "IndexOutOfRange"
NON_INTEGER_INDEX = "NonIntegerIndex"
UNSUPPORTED_INDEX_TARGET = "UnsupportedIndexTarget"
UNSUPPORTED_MEMBER_TARGET = "UnsupportedMemberTarget"
UNDEFINED_KEY = "UndefinedKey"
ZERO_DIVISION = "ZeroDivision"
MISPLACED_CONTROL_FLOW = "MisplacedControlFlow"
STACK_OVERFLOW = "StackOverflow"
ITERATOR_EXHAUSTED = "IteratorExhausted"
ASSERTION_FAILED = "AssertionFailed"
NUMERIC_OVERFLOW = "NumericOverflow"
INVALID_OPERAND = "InvalidOperand"


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_error_report(
    kind: str,
    message: str,
    line: int,
    column: int,
    got: Optional[str] = None,
    context: Optional[str] = None,
    suggestions: Optional[List[str]] = None
) -> Dict:
    """Create an immutable error report structure"""
    return {
        'kind': kind,
        'message': message,
        'line': line,
        'column': column,
        'got': got,
        'context': context,
        'suggestions': suggestions or []
    }


def format_error_report(report: Dict) -> str:
    """Format an error report as a string"""
    if report['line']:
        error_msg = f"{report['kind']} at line {report['line']}, column {report['column']}:\n"
    else:
        error_msg = f"{report['kind']}:\n"
    error_msg += f"  {report['message']}\n"

    if report['got']:
        error_msg += f"  Got: {report['got']}\n"

    if report['context']:
        error_msg += f"{report['context']}\n"

    if report['suggestions']:
        error_msg += "  Suggestions:\n"
        for suggestion in report['suggestions']:
            error_msg += f"    - {suggestion}\n"

    return error_msg


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def get_context_lines(source_text: str, line_num: int, col_num: int, context_lines: int = 2) -> str:
    """Get context lines around the error"""
    # Token columns are counted on tab-expanded text
    lines = source_text.expandtabs().split('\n')
    if line_num < 1 or line_num > len(lines):
        return ""

    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)

    context_parts = []
    for i in range(start_line, end_line):
        line_prefix = f"{i+1:4d}: "
        context_parts.append(f"{line_prefix}{lines[i]}")
        if i == line_num - 1:
            context_parts.append(f"{'':6}{' ' * max(col_num - 1, 0)}^ Error here")

    return '\n'.join(context_parts)


def describe_token(token: Any) -> str:
    """Describe what was actually found at the error location"""
    if token is None:
        return "unknown"
    if token.type == "EOF":
        return "end of input"
    return f"'{token.lexeme}'"


def generate_suggestions(message: str, got: str) -> List[str]:
    """Generate helpful suggestions based on the error"""
    suggestions = []

    if "';'" in message:
        suggestions.append("Statements end with ';'")

    if "Invalid assignment target" in message:
        suggestions.append("Only variables, indexing (a[i]) and member access (a.b) can be assigned to")

    if "Expected expression" in message and got == "end of input":
        suggestions.append("The program ends in the middle of an expression")

    if "':='" in message or "Required parameter" in message:
        suggestions.append("Optional (name?) and defaulted (name := value) parameters go last")

    if "Const" in message or "const" in message:
        suggestions.append("Constants need an initializer: const name = value;")

    return suggestions


def enhance_parse_exception_dict(exc: ParseException, source_text: str) -> Dict:
    """Convert a pyparsing exception raised while scanning into an error report"""
    line_num = exc.lineno
    col_num = exc.column

    lines = source_text.split('\n')
    got = "end of input"
    if line_num <= len(lines):
        error_line = lines[line_num - 1]
        if col_num <= len(error_line):
            got = f"'{error_line[col_num - 1]}'"

    return make_error_report(
        kind="ScanError",
        message=f"Unexpected character {got}",
        line=line_num,
        column=col_num,
        got=got,
        context=get_context_lines(source_text, line_num, col_num)
    )


# ============================================================================
# EXCEPTION CLASSES
# ============================================================================

class HintonScanError(Exception):
    """Raised when the source text contains a character no token starts with"""
    def __init__(self, message: str, line: int = 0, column: int = 0, context: Optional[str] = None):
        self.message = message
        self.line = line
        self.column = column
        self.context = context
        super().__init__(message)

    @classmethod
    def from_parse_exception(cls, exc: ParseException, source_text: str) -> 'HintonScanError':
        report = enhance_parse_exception_dict(exc, source_text)
        return cls(report['message'], report['line'], report['column'], report['context'])

    def __str__(self) -> str:
        return format_error_report(make_error_report(
            "ScanError", self.message, self.line, self.column, context=self.context
        ))


class HintonSyntaxError(Exception):
    """A single syntax error tied to the offending token"""
    def __init__(self, message: str, token: Any = None):
        self.message = message
        self.token = token
        super().__init__(message)

    @property
    def line(self) -> int:
        return self.token.span.start_line if self.token is not None else 0

    @property
    def column(self) -> int:
        return self.token.span.start_col if self.token is not None else 0

    def report(self, source_text: str = "") -> Dict:
        got = describe_token(self.token)
        return make_error_report(
            kind="SyntaxError",
            message=self.message,
            line=self.line,
            column=self.column,
            got=got,
            context=get_context_lines(source_text, self.line, self.column) if source_text else None,
            suggestions=generate_suggestions(self.message, got)
        )

    def __str__(self) -> str:
        return format_error_report(self.report())


class HintonParseError(Exception):
    """Every syntax error accumulated while parsing one program"""
    def __init__(self, errors: List[HintonSyntaxError]):
        self.errors = list(errors)
        super().__init__(f"{len(self.errors)} syntax error(s)")

    def format(self, source_text: str = "") -> str:
        return "\n".join(format_error_report(e.report(source_text)) for e in self.errors)

    def __str__(self) -> str:
        return self.format()


class HintonRuntimeError(Exception):
    """Evaluation error tied to the token that triggered it"""
    def __init__(self, message: str, token: Any = None, kind: str = TYPE_MISMATCH):
        self.message = message
        self.token = token
        self.kind = kind
        super().__init__(message)

    @property
    def span(self):
        return self.token.span if self.token is not None else None

    def report(self, source_text: str = "") -> Dict:
        line = self.span.start_line if self.span else 0
        column = self.span.start_col if self.span else 0
        return make_error_report(
            kind=self.kind,
            message=self.message,
            line=line,
            column=column,
            context=get_context_lines(source_text, line, column) if source_text and line else None
        )

    def __str__(self) -> str:
        if self.span:
            return f"{self.kind} at {self.span}: {self.message}"
        return f"{self.kind}: {self.message}"
