"""End-to-end tests of a session running on the in-process Python engine."""

import sys

import pytest

from replsession.config import SessionSettings
from replsession.repl.interpreter import Interpreter
from replsession.repl.python_engine import PythonEngine
from replsession.repl.responses import APPLICATION_JSON, APPLICATION_TABLE_JSON, Aborted, Error, Incomplete, Success


@pytest.fixture
def py():
    return Interpreter(PythonEngine(), SessionSettings()).start()


def test_expression_values_are_echoed(py):
    assert py.execute("x = 21\nx * 2") == Success.plain("42\n")


def test_print_output_is_merged(py):
    assert py.execute("print('a')\nprint('b')") == Success.plain("a\nb\n")


def test_bindings_survive_submissions(py):
    py.execute("greeting = 'hi'")
    assert py.execute("greeting.upper()") == Success.plain("'HI'\n")


def test_block_closed_by_blank_line(py):
    code = "def double(n):\n    return n * 2\n\ndouble(4)"
    assert py.execute(code) == Success.plain("8\n")


def test_trailing_block_runs(py):
    assert py.execute("for i in range(3):\n    print(i)") == Success.plain("0\n1\n2\n")


def test_runtime_error(py):
    result = py.execute("print('before')\n1 / 0\nprint('after')")
    assert isinstance(result, Error)
    assert result.kind == "Error"
    assert result.name == "ZeroDivisionError: division by zero"
    assert any("<console>" in line for line in result.traceback)


def test_syntax_error(py):
    result = py.execute("x = = 1")
    assert isinstance(result, Error)
    assert result.name.startswith("SyntaxError")


def test_unclosed_bracket_is_incomplete(py):
    assert py.execute("x = 1\nprint(x,") == Incomplete()


def test_system_exit_aborts_session(py):
    assert py.execute("raise SystemExit(3)") == Aborted(message="session exited with status 3")


def test_display_hook_outside_submission_leaves_session_alone(py):
    py.execute("x = 1")
    sys.displayhook(7)
    assert "_" not in py.engine.namespace
    assert py.execute("x") == Success.plain("1\n")
    assert py.engine.namespace["_"] == 1


def test_magics(py):
    py.execute("rows = [{'a': 1, 'b': 'x'}, {'a': 2, 'b': 'y'}]")
    assert py.execute("%json rows").payload[APPLICATION_JSON].to_json() == [
        {"a": 1, "b": "x"},
        {"a": 2, "b": "y"},
    ]
    table = py.execute("%table rows").payload[APPLICATION_TABLE_JSON].to_json()
    assert [h["name"] for h in table["headers"]] == ["a", "b"]
    assert py.execute("%table missing") == Error(kind="NameError", name="Value missing does not exist")


def test_start_bindings_are_visible():
    settings = SessionSettings(startup_statements=["import math"])
    it = Interpreter(PythonEngine(), settings).start(bindings={"answer": 42})
    assert it.execute("answer + int(math.sqrt(4))") == Success.plain("44\n")


def test_completion(py):
    py.execute("alpha_value = 1")
    assert "alpha_value" in py.complete("x = alpha", 9)
    assert py.complete("x = ", 4) == []
