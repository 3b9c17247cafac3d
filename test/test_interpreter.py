"""
Evaluator tests for Hinton
Expressions, statements, closures, control-flow signals and runtime errors
"""

import pytest
from error_handling import (
  HintonRuntimeError,
  TYPE_MISMATCH,
  UNDEFINED_VARIABLE,
  CONSTANT_REASSIGNMENT,
  NOT_CALLABLE,
  ARITY_MISMATCH,
  INDEX_OUT_OF_RANGE,
  NON_INTEGER_INDEX,
  UNSUPPORTED_INDEX_TARGET,
  UNSUPPORTED_MEMBER_TARGET,
  UNDEFINED_KEY,
  ZERO_DIVISION,
  MISPLACED_CONTROL_FLOW,
  STACK_OVERFLOW,
  NUMERIC_OVERFLOW,
)
from interpreter import create_interpreter, callable_arity
from parsing import create_parser
from utilities import make_value


def runtime_error(run, source):
  with pytest.raises(HintonRuntimeError) as exc_info:
    run(source)
  return exc_info.value


def plain(value):
  """Convert a runtime value into plain Python data"""
  if value['type'] == "Array":
    return [plain(item) for item in value['value']]
  if value['type'] == "Dict":
    return {key: plain(item) for key, item in value['value'].items()}
  return value['value']


class TestExpressions:
  """Expression evaluation"""

  def test_precedence(self, run, value_of):
    interp = run("let a = 1 + 2 * 3; let b = 2 ** 3 ** 2; let c = (1 + 2) * 3;")
    assert value_of(interp, "a") == 7
    assert value_of(interp, "b") == 512
    assert value_of(interp, "c") == 9

  def test_negative_indexing(self, run, value_of):
    interp = run('let a = ["hello", "hola", "ciao"]; let x = a[-2]; let y = a[-2][1];')
    assert value_of(interp, "x") == "hola"
    assert value_of(interp, "y") == "o"

  def test_range_equality(self, run, value_of):
    interp = run("let same = 14..24 == 14..24; let different = 0..10 == 0..9;")
    assert value_of(interp, "same") is True
    assert value_of(interp, "different") is False

  def test_range_indexing(self, run, value_of):
    interp = run("let r = 10..20; let first = r[0]; let last = r[-1];")
    assert value_of(interp, "first") == 10
    assert value_of(interp, "last") == 19

  def test_logical_operators_yield_operands(self, run, value_of):
    interp = run('let a = 0 || "x"; let b = 1 && 2; let c = null ?? 5; let d = 0 ?? 5; let e = not 0;')
    assert value_of(interp, "a") == "x"
    assert value_of(interp, "b") == 2
    assert value_of(interp, "c") == 5
    assert value_of(interp, "d") == 0
    assert value_of(interp, "e") is True

  def test_short_circuit_skips_right(self, run, value_of):
    interp = run("let hits = 0; func hit() { hits += 1; return true; } false && hit(); true || hit(); 1 ?? hit();")
    assert value_of(interp, "hits") == 0

  def test_ternary_evaluates_one_branch(self, run, value_of):
    interp = run("let n = 0; let r = true ? 1 : n++; ")
    assert value_of(interp, "r") == 1
    assert value_of(interp, "n") == 0

  def test_float_zero_is_falsey(self, run, value_of):
    interp = run("let a = 0.0 ? 1 : 2; let b = -0.0 ? 1 : 2; let c = 1e-300 ? 1 : 2;")
    assert (value_of(interp, "a"), value_of(interp, "b"), value_of(interp, "c")) == (2, 2, 1)

  def test_string_concatenation(self, run, value_of):
    interp = run('let s = "n=" + 1 + ", ok=" + true;')
    assert value_of(interp, "s") == "n=1, ok=true"

  def test_dictionary_access(self, run, value_of):
    interp = run('let d = {name: "hinton", "year": 2021}; let n = d.name; let y = d["year"];')
    assert value_of(interp, "n") == "hinton"
    assert value_of(interp, "y") == 2021

  def test_type_mismatch(self, run):
    error = runtime_error(run, 'let x = "a" - 1;')
    assert error.kind == TYPE_MISMATCH
    assert "'-'" in error.message and "'String'" in error.message and "'Int'" in error.message
    assert error.token.lexeme == "-"

  def test_division_by_zero(self, run):
    assert runtime_error(run, "let x = 1 / 0;").kind == ZERO_DIVISION

  @pytest.mark.parametrize("expression", [
      "10 ** 400 + 0.5",
      "10 ** 400 / 3",
      "10 ** 400 * 1.5",
      "10 ** 400 % 2.0",
      "1 << 10 ** 20",
  ])
  def test_numeric_overflow(self, run, expression):
    error = runtime_error(run, f"let x = {expression};")
    assert error.kind == NUMERIC_OVERFLOW
    assert error.token is not None


class TestAssignment:
  """Assignment, compound assignment and updates"""

  def test_compound_assignment(self, run, value_of):
    interp = run("let x = 10; x += 5; x *= 2; x -= 1; x %= 7; let y = 2; y **= 3;")
    assert value_of(interp, "x") == 1
    assert value_of(interp, "y") == 8

  def test_assignment_is_an_expression(self, run, value_of):
    interp = run("let a, b; a = b = 3;")
    assert value_of(interp, "a") == 3
    assert value_of(interp, "b") == 3

  def test_prefix_and_postfix_updates(self, run, value_of):
    interp = run("let i = 5; let a = i++; let b = ++i; let c = i--; let d = --i;")
    assert (value_of(interp, "a"), value_of(interp, "b")) == (5, 7)
    assert (value_of(interp, "c"), value_of(interp, "d")) == (7, 5)

  def test_element_and_member_writes(self, run, value_of):
    interp = run('let a = [1, 2, 3]; a[-1] = 30; a[0] += 10; let d = {}; d.k = "v"; d["n"] = 1; d.n++;')
    assert plain(make_value(value_of(interp, "a"), "Array")) == [11, 2, 30]
    assert plain(make_value(value_of(interp, "d"), "Dict")) == {"k": "v", "n": 2}

  def test_arrays_are_shared_references(self, run, value_of):
    interp = run("let a = [1]; let b = a; b[0] = 2; let first = a[0];")
    assert value_of(interp, "first") == 2

  def test_let_with_several_names_shares_one_value(self, run, value_of):
    interp = run("let n = 0; func next_id() { n += 1; return n; } let a, b = next_id();")
    assert value_of(interp, "a") == 1
    assert value_of(interp, "b") == 1
    assert value_of(interp, "n") == 1

  def test_constant_reassignment(self, run):
    error = runtime_error(run, "const x = 1; x = 2;")
    assert error.kind == CONSTANT_REASSIGNMENT
    assert error.token.lexeme == "x"

  def test_constant_increment(self, run):
    assert runtime_error(run, "const x = 1; x++;").kind == CONSTANT_REASSIGNMENT

  def test_function_reassignment(self, run):
    assert runtime_error(run, "func f() {} f = 1;").kind == CONSTANT_REASSIGNMENT
    assert runtime_error(run, "print = 1;").kind == CONSTANT_REASSIGNMENT

  def test_undefined_variable(self, run):
    error = runtime_error(run, "let a = 1;\nlet b = missing + a;")
    assert error.kind == UNDEFINED_VARIABLE
    assert error.span.start_line == 2
    assert "missing" in error.message

  def test_assignment_to_undeclared(self, run):
    assert runtime_error(run, "ghost = 1;").kind == UNDEFINED_VARIABLE


class TestIndexingErrors:
  """Index and member access failures"""

  @pytest.mark.parametrize("n", [0, 1, 2, 5])
  def test_index_boundary(self, run, n):
    items = ", ".join(str(i) for i in range(n))
    for index in (n, -n - 1):
      error = runtime_error(run, f"let a = [{items}]; a[{index}];")
      assert error.kind == INDEX_OUT_OF_RANGE

  def test_string_index_boundary(self, run):
    assert runtime_error(run, 'let s = "abc"; s[3];').kind == INDEX_OUT_OF_RANGE

  def test_non_integer_index(self, run):
    assert runtime_error(run, "let a = [1]; a[0.0];").kind == NON_INTEGER_INDEX

  def test_unsupported_index_target(self, run):
    assert runtime_error(run, "let n = 5; n[0];").kind == UNSUPPORTED_INDEX_TARGET
    assert runtime_error(run, 'let s = "abc"; s[0] = "x";').kind == UNSUPPORTED_INDEX_TARGET

  def test_member_errors(self, run):
    assert runtime_error(run, "let a = [1]; a.size;").kind == UNSUPPORTED_MEMBER_TARGET
    assert runtime_error(run, "let d = {a: 1}; d.b;").kind == UNDEFINED_KEY
    assert runtime_error(run, 'let d = {a: 1}; d["b"];').kind == UNDEFINED_KEY
    assert runtime_error(run, "let d = {a: 1}; d[0];").kind == TYPE_MISMATCH


class TestScoping:
  """Blocks, shadowing and closures"""

  def test_shadowing_in_block(self, run, value_of):
    interp = run("let x = 1; { let x = 2; x = 3; } let after = x;")
    assert value_of(interp, "after") == 1

  def test_block_assigns_outer(self, run, value_of):
    interp = run("let x = 1; { x = 2; }")
    assert value_of(interp, "x") == 2

  def test_block_bindings_do_not_leak(self, run):
    assert runtime_error(run, "{ let inner = 1; } inner;").kind == UNDEFINED_VARIABLE

  def test_closure_mutation_by_reference(self, run, value_of):
    source = """
    let seen = [];
    func outer() {
      let x = "outer";
      func middle() {
        func inner() {
          x = "inner";
        }
        inner();
        seen[0] = x;
      }
      middle();
      seen[1] = x;
    }
    seen = [null, null];
    outer();
    """
    interp = run(source)
    assert plain(make_value(value_of(interp, "seen"), "Array")) == ["inner", "inner"]

  def test_counter_closure(self, run, value_of):
    source = """
    func make_counter() {
      let count = 0;
      return fn () { count += 1; return count; };
    }
    let counter = make_counter();
    counter();
    counter();
    let third = counter();
    let other = make_counter()();
    """
    interp = run(source)
    assert value_of(interp, "third") == 3
    assert value_of(interp, "other") == 1

  def test_recursion_through_environment_chain(self, run, value_of):
    source = """
    func fib(n) { if (n < 2) return n; return fib(n - 1) + fib(n - 2); }
    func fact(n) { return n <= 1 ? 1 : n * fact(n - 1); }
    let f = fib(12);
    let g = fact(12);
    """
    interp = run(source)
    assert value_of(interp, "f") == 144
    assert value_of(interp, "g") == 479001600


class TestFunctions:
  """Parameters, arity and calls"""

  def test_default_parameters(self, run, value_of):
    source = """
    func myFunction(a, b, c := "named parameter") {
      return a + " " + b + " " + c;
    }
    let r = myFunction("hello", "world");
    let s = myFunction("hello", "world", "again");
    """
    interp = run(source)
    assert value_of(interp, "r") == "hello world named parameter"
    assert value_of(interp, "s") == "hello world again"

  def test_optional_parameter_is_null(self, run, value_of):
    interp = run("func f(a, b?) { return b; } let r = f(1);")
    assert value_of(interp, "r") is None

  def test_default_evaluated_in_defining_scope(self, run, value_of):
    source = """
    let base = 10;
    func f(x := base * 2) { return x; }
    func g() { let base = 1; return f(); }
    let r = g();
    """
    interp = run(source)
    assert value_of(interp, "r") == 20

  def test_arity_mismatch(self, run):
    error = runtime_error(run, "func f(a, b?) {}\nf();")
    assert error.kind == ARITY_MISMATCH
    assert error.message == "'f' expected 1 to 2 arguments but got 0"
    assert error.span.start_line == 2
    assert runtime_error(run, "let f = fn (x) => x; f(1, 2);").kind == ARITY_MISMATCH

  def test_not_callable(self, run):
    error = runtime_error(run, "let x = 3; x();")
    assert error.kind == NOT_CALLABLE
    assert "'Int'" in error.message

  def test_function_without_return_gives_null(self, run, value_of):
    interp = run("func f() { let a = 1; } let r = f();")
    assert value_of(interp, "r") is None

  def test_lambda_arrow_and_block(self, run, value_of):
    interp = run("let sq = fn (x) => x * x; let add = fn (a, b := 1) { return a + b; }; let r = sq(add(2));")
    assert value_of(interp, "r") == 9

  def test_callable_arity(self, run):
    interp = run("func f(a, b?, c := 1) {}")
    assert callable_arity(interp.globals['bindings']['f']['value']) == (1, 3)
    assert callable_arity(interp.globals['bindings']['assert_eq']['value']) == (2, 3)

  def test_stack_overflow(self, run):
    error = runtime_error(run, "func down(n) { return down(n + 1); } down(0);")
    assert error.kind == STACK_OVERFLOW
    assert "down" in error.message


class TestLoops:
  """Loops and control-flow signals"""

  def test_while_with_break_and_continue(self, run, value_of):
    source = """
    let i = 0;
    let total = 0;
    while (true) {
      i++;
      if (i > 10) break;
      if (i % 2 == 0) continue;
      total += i;
    }
    """
    interp = run(source)
    assert value_of(interp, "total") == 25

  def test_for_over_range(self, run, value_of):
    interp = run("let total = 0; for (let i in 0..5) total += i;")
    assert value_of(interp, "total") == 10

  def test_descending_range_is_empty(self, run, value_of):
    interp = run("let count = 0; for (let i in 5..0) count++;")
    assert value_of(interp, "count") == 0

  def test_for_over_string_and_dict(self, run, value_of):
    interp = run('let out = ""; for (let c in "abc") out = c + out; let keys = ""; for (let k in {x: 1, y: 2}) keys += k;')
    assert value_of(interp, "out") == "cba"
    assert value_of(interp, "keys") == "xy"

  def test_for_sees_element_writes(self, run, value_of):
    interp = run("let a = [1, 2, 3]; let total = 0; for (let x in a) { if (x == 1) a[2] = 30; total += x; }")
    assert value_of(interp, "total") == 33

  def test_for_creates_fresh_binding_per_iteration(self, run, value_of):
    source = """
    let fns = [];
    for (let i in 0..3) fns = fns + [fn () => i];
    let r = fns[0]() + fns[1]() * 10 + fns[2]() * 100;
    """
    interp = run(source)
    assert value_of(interp, "r") == 210

  def test_return_from_inside_loop(self, run, value_of):
    interp = run("func find(a, t) { for (let x in a) { if (x == t) return true; } return false; } let r = find([1, 2, 3], 2);")
    assert value_of(interp, "r") is True

  def test_for_over_number_fails(self, run):
    assert runtime_error(run, "for (let x in 5) {}").kind == TYPE_MISMATCH


class TestMisplacedControlFlow:
  """Signals that escape their frame"""

  @pytest.mark.parametrize("source", [
      "break;",
      "continue;",
      "return 1;",
      "if (true) { break; }",
      "func f() { break; } f();",
      "func f() { continue; } while (true) { f(); }",
  ])
  def test_misplaced(self, run, source):
    assert runtime_error(run, source).kind == MISPLACED_CONTROL_FLOW

  def test_error_halts_program(self, run):
    interpreter = create_interpreter()
    declarations = create_parser().parse_string("let a = 1; a = a / 0; let b = 2;")
    with pytest.raises(HintonRuntimeError):
      interpreter.interpret(declarations)
    assert 'a' in interpreter.globals['bindings']
    assert 'b' not in interpreter.globals['bindings']


class TestInterpreterApi:
  """HintonInterpreter entry points"""

  def test_interpret_returns_user_bindings(self):
    interpreter = create_interpreter()
    bindings = interpreter.interpret(create_parser().parse_string("let a = 1; const b = 2;"))
    assert [name for name, _ in bindings] == ["a", "b"]

  def test_globals_persist_between_runs(self):
    interpreter = create_interpreter()
    parser = create_parser()
    interpreter.interpret(parser.parse_string("let a = 1;"))
    interpreter.interpret(parser.parse_string("a += 1;"))
    expr = parser.parse_string("a * 10;")[0].expression
    assert interpreter.evaluate(expr) == make_value(20, "Int")

  def test_host_call(self):
    interpreter = create_interpreter()
    interpreter.interpret(create_parser().parse_string("func twice(x) { return x * 2; }"))
    twice = interpreter.globals['bindings']['twice']['value']
    assert interpreter.call(twice, [make_value(21, "Int")]) == make_value(42, "Int")

  def test_debug_tracing(self, capsys):
    interpreter = create_interpreter(debug=True)
    interpreter.interpret(create_parser().parse_string("let a = 1;"))
    out = capsys.readouterr().out
    assert "Executing: Var" in out
    assert "Evaluating: Literal" in out
