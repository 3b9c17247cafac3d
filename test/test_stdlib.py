"""
Native library tests for Hinton
"""

import io
import pytest
from stdlib import NATIVE_FUNCTIONS, install_natives, list_native_functions, hinton_next
from environment import make_environment, env_find, NATIVE
from error_handling import (
  HintonRuntimeError,
  TYPE_MISMATCH,
  ITERATOR_EXHAUSTED,
  ASSERTION_FAILED,
  ARITY_MISMATCH,
)
from utilities import make_value, make_iterator


class TestInstallation:
  """Natives are registered in the global environment"""

  def test_install_natives(self):
    env = make_environment()
    install_natives(env)
    for name in NATIVE_FUNCTIONS:
      assert env_find(env, name)['kind'] == NATIVE

  def test_signatures_listed(self):
    names = [name for name, _ in list_native_functions()]
    assert names == ["print", "input", "iter", "next", "assert", "assert_eq", "assert_ne"]


class TestPrintAndInput:
  """Console natives"""

  def test_print(self, run, capsys):
    run('print("hi"); print([1, "two", 3.5]); print(null); print(0..3); print(print);')
    assert capsys.readouterr().out.splitlines() == [
        "hi", "[1, 'two', 3.5]", "null", "[0..3]", "<NativeFunc 'print'>"
    ]

  def test_print_functions(self, run, capsys):
    run("func f() {} print(f); print(fn () => 1); print(iter([1]));")
    assert capsys.readouterr().out.splitlines() == [
        "<Func 'f'>", "<Func 'lambda'>", "<Iter 'Array'>"
    ]

  def test_input(self, run, value_of, monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("Ada\n"))
    interp = run('let name = input("Name: ");')
    assert value_of(interp, "name") == "Ada"
    assert capsys.readouterr().out == "Name: "

  def test_input_at_end_of_file(self, run, value_of, monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO(""))
    interp = run("let line = input();")
    assert value_of(interp, "line") is None

  def test_print_arity(self, run):
    with pytest.raises(HintonRuntimeError) as exc_info:
      run("print(1, 2);")
    assert exc_info.value.kind == ARITY_MISMATCH
    assert exc_info.value.message == "'print' expected 1 argument but got 2"


class TestIterators:
  """iter() and next()"""

  def test_next_walks_source(self, run, value_of):
    interp = run('let it = iter("ab"); let a = next(it); let b = next(it);')
    assert (value_of(interp, "a"), value_of(interp, "b")) == ("a", "b")

  def test_exhausted_iterator_raises(self, run):
    with pytest.raises(HintonRuntimeError) as exc_info:
      run("let it = iter(0..1);\nnext(it);\nnext(it);")
    error = exc_info.value
    assert error.kind == ITERATOR_EXHAUSTED
    assert error.span.start_line == 3

  def test_for_loop_shares_iterator_cursor(self, run, value_of):
    source = """
    let it = iter([1, 2, 3, 4]);
    let first = next(it);
    let rest = 0;
    for (let x in it) rest += x;
    """
    interp = run(source)
    assert value_of(interp, "first") == 1
    assert value_of(interp, "rest") == 9

  def test_iter_of_iter_is_same(self):
    it = make_iterator(make_value([], "Array"))
    assert make_iterator(it) is it

  def test_next_requires_iterator(self):
    with pytest.raises(HintonRuntimeError) as exc_info:
      hinton_next([make_value(1, "Int")])
    assert exc_info.value.kind == TYPE_MISMATCH
    assert exc_info.value.token is None

  def test_iter_rejects_numbers(self, run):
    with pytest.raises(HintonRuntimeError) as exc_info:
      run("iter(5);")
    assert exc_info.value.kind == TYPE_MISMATCH
    assert exc_info.value.token is not None


class TestAssertions:
  """assert, assert_eq and assert_ne"""

  def test_passing_assertions(self, run):
    run('assert(1); assert_eq(1, 1.0); assert_eq([1, {a: 2}], [1, {a: 2}]); assert_ne("1", 1);')

  def test_assert_failure_message(self, run):
    with pytest.raises(HintonRuntimeError) as exc_info:
      run('assert(0, "zero is falsey");')
    assert exc_info.value.kind == ASSERTION_FAILED
    assert exc_info.value.message == "zero is falsey"

  def test_assert_eq_default_message(self, run):
    with pytest.raises(HintonRuntimeError) as exc_info:
      run('assert_eq("a", [1]);')
    assert exc_info.value.message == "Expected 'a' to equal [1]"

  def test_assert_ne_failure(self, run):
    with pytest.raises(HintonRuntimeError) as exc_info:
      run("assert_ne(2, 2, 'same');")
    assert exc_info.value.kind == ASSERTION_FAILED
    assert exc_info.value.message == "same"
