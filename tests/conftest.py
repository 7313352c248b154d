"""Shared fixtures: a scripted stand-in for the command executor."""

import os
import sys
import pytest

sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))
from wgconf.errors import CommandError
from wgconf.executor import CommandResult


class FakeExecutor:
    """Answers commands from a table instead of spawning processes."""

    def __init__(self):
        self.calls = []
        self.responses = {}

    def on(self, args, stdout="", returncode=0, stderr=""):
        self.responses[tuple(args)] = (returncode, stdout, stderr)

    async def run(self, args, input=None, check=True):
        self.calls.append((list(args), input))
        returncode, stdout, stderr = self.responses.get(tuple(args), (0, "", ""))
        if check and returncode != 0:
            raise CommandError(list(args), returncode, stderr)
        return CommandResult(list(args), returncode, stdout, stderr)

    def commands(self):
        return [args for args, _ in self.calls]


@pytest.fixture
def fake_executor():
    return FakeExecutor()
