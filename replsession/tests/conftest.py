"""Shared fixtures for session tests."""

import pytest

from replsession.config import SessionSettings
from replsession.repl.interpreter import Interpreter
from replsession.tests.fakes import FakeEngine


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def session(engine):
    return Interpreter(engine, SessionSettings()).start()
