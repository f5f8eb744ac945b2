"""Tests for line accumulation, fail-fast handling and the end-of-input retry."""

import pytest

from replsession.config import SessionSettings
from replsession.repl.engine import InterpretResult, InterpreterAborted, SessionNotStarted
from replsession.repl.interpreter import Interpreter
from replsession.repl.responses import (
    APPLICATION_JSON,
    Aborted,
    Error,
    Incomplete,
    Success,
)

OK = InterpretResult.SUCCESS
INCOMPLETE = InterpretResult.INCOMPLETE
ERROR = InterpretResult.ERROR


def test_single_line_output(session, engine):
    engine.script["1 + 1"] = (OK, "res0: Int = 2\n")
    assert session.execute("1 + 1") == Success.plain("res0: Int = 2\n")


def test_outputs_of_lines_are_concatenated(session, engine):
    engine.script["a"] = (OK, "1\n")
    engine.script["b"] = (OK, "")
    engine.script["c"] = (OK, "3\n")
    assert session.execute("a\nb\nc") == Success.plain("1\n3\n")
    assert engine.calls == ["a", "b", "c"]


def test_submission_is_trimmed_before_splitting(session, engine):
    session.execute("\n\n  a\nb  \n\n")
    assert engine.calls == ["a", "b"]


def test_empty_submission(session, engine):
    assert session.execute("   ") == Success.plain("")
    assert engine.calls == [""]


def test_error_stops_remaining_lines(session, engine):
    engine.script["A"] = (OK, "a\n")
    engine.script["B"] = (ERROR, "<console>:12: error: not found: value x\n       x\n       ^\n")
    result = session.execute("A\nB\nC")
    assert result == Error(
        kind="Error",
        name="<console>:12: error: not found: value x",
        traceback=["       x\n", "       ^\n"],
    )
    assert engine.calls == ["A", "B"]


def test_output_buffer_is_drained_per_line(session, engine):
    engine.script["A"] = (OK, "from a\n")
    engine.script["B"] = (ERROR, "boom\n")
    result = session.execute("A\nB")
    assert result.name == "boom"
    assert result.traceback == []


def test_abort_stops_remaining_lines(session, engine):
    engine.script["B"] = InterpreterAborted("interpreter shut down")
    result = session.execute("A\nB\nC")
    assert result == Aborted(message="interpreter shut down")
    assert engine.calls == ["A", "B"]


def test_unexpected_engine_failure_is_reported_as_abort(session, engine):
    engine.script["A"] = RuntimeError("kaput")
    assert session.execute("A") == Aborted(message="RuntimeError: kaput")


def test_incomplete_line_is_joined_with_next(session, engine):
    engine.script["def f(x: Int) ="] = (INCOMPLETE, "")
    engine.script["def f(x: Int) =\n  x + 1"] = (OK, "f: (x: Int)Int\n")
    engine.script["f(1)"] = (OK, "res1: Int = 2\n")
    result = session.execute("def f(x: Int) =\n  x + 1\nf(1)")
    assert result == Success.plain("f: (x: Int)Int\nres1: Int = 2\n")
    assert engine.calls == ["def f(x: Int) =", "def f(x: Int) =\n  x + 1", "f(1)"]


def test_trailing_comment_returns_accumulated_result(session, engine):
    engine.script["a"] = (OK, "x\n")
    engine.script["// done"] = (INCOMPLETE, "")
    engine.script["{\n// done\n}"] = (OK, "")
    assert session.execute("a\n// done") == Success.plain("x\n")
    assert engine.calls == ["a", "// done", "{\n// done\n}"]


def test_unterminated_statement_stays_incomplete(session, engine):
    engine.script["a"] = (OK, "x\n")
    engine.script["sc."] = (INCOMPLETE, "")
    engine.script["{\nsc.\n}"] = (ERROR, "<console>:2: error: identifier expected\n")
    assert session.execute("a\nsc.") == Incomplete()


def test_retry_still_incomplete_returns_original(session, engine):
    engine.script["foo("] = (INCOMPLETE, "")
    engine.script["{\nfoo(\n}"] = (INCOMPLETE, "")
    assert session.execute("foo(") == Incomplete()


def test_retry_abort_is_returned(session, engine):
    engine.script["foo("] = (INCOMPLETE, "")
    engine.script["{\nfoo(\n}"] = InterpreterAborted("gone")
    assert session.execute("foo(") == Aborted(message="gone")


def test_retry_output_is_kept(session, engine):
    engine.script["a"] = (OK, "1\n")
    engine.script["loop"] = (INCOMPLETE, "")
    engine.script["{\nloop\n}"] = (OK, "2\n")
    assert session.execute("a\nloop") == Success.plain("1\n2\n")


def test_magic_line_bypasses_engine(session, engine):
    engine.bindings["v"] = {"k": 1}
    result = session.execute("a\n%json v")
    assert list(result.payload) == [APPLICATION_JSON]
    assert result.payload[APPLICATION_JSON].to_json() == {"k": 1}
    assert engine.calls == ["a"]


def test_text_after_magic_replaces_it(session, engine):
    engine.bindings["v"] = [1, 2]
    engine.script["a"] = (OK, "x")
    assert session.execute("%json v\na") == Success.plain("x")


def test_magic_error_stops_remaining_lines(session, engine):
    result = session.execute("%foo bar\nb")
    assert result == Error(kind="UnknownMagic", name="Unknown magic command foo")
    assert engine.calls == []


def test_context_is_restored_on_every_exit(session, engine):
    engine.script["B"] = (ERROR, "boom\n")
    session.execute("A\nB\nC")
    session.execute("A")
    assert engine.contexts_entered == engine.contexts_exited == 2


def test_long_submission_does_not_recurse(session, engine):
    code = "\n".join("line%d" % i for i in range(5000))
    session.execute(code)
    assert len(engine.calls) == 5000


def test_execute_requires_started_engine(engine):
    it = Interpreter(engine, SessionSettings())
    with pytest.raises(SessionNotStarted):
        it.execute("1")


def test_start_binds_values_and_runs_startup_statements(engine):
    settings = SessionSettings(startup_statements=["import a", "import b"])
    it = Interpreter(engine, settings).start(bindings={"spark": "session"})
    assert engine.bindings == {"spark": "session"}
    assert engine.calls == ["import a", "import b"]
    assert it.kind == "fake"


def test_close_stops_engine(session, engine):
    session.close()
    assert not engine.is_started()


def test_complete_passes_candidates_through(session):
    assert session.complete("sc.par", 5) == ["sc.pa_candidate"]
