# tests/conftest.py
import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

import wizard
from config_loader import SetupConfig
from probe import InstallationStatus
from wizard import SetupRun


class Scripted:
    """Answers handed out in order; every question asked is recorded."""

    def __init__(self, kind):
        self.kind = kind
        self.questions = []
        self.queue = []

    def feed(self, *items):
        self.queue.extend(items)

    def __call__(self, question=""):
        self.questions.append(question)
        if not self.queue:
            raise AssertionError(f"Unexpected {self.kind}: {question!r}")
        return self.queue.pop(0)


class FakeProbe:
    """Stands in for probe.probe; unknown hosts are not installed."""

    def __init__(self):
        self.statuses = {}
        self.probed = []

    def __setitem__(self, host, status):
        self.statuses[host] = status

    def __call__(self, host, timeout=10.0, verify=False):
        self.probed.append(host)
        return self.statuses.get(host, InstallationStatus())


@pytest.fixture
def run():
    return SetupRun(conf=SetupConfig())


@pytest.fixture
def answers(monkeypatch):
    scripted = Scripted("prompt")
    monkeypatch.setattr("builtins.input", scripted)
    return scripted


@pytest.fixture
def typed_passwords(monkeypatch):
    scripted = Scripted("password prompt")
    monkeypatch.setattr("passwords.getpass", scripted)
    return scripted


@pytest.fixture
def hosts(monkeypatch):
    fake = FakeProbe()
    monkeypatch.setattr(wizard, "probe", fake)
    return fake

