import functools

import click.testing
import pytest

from platz.cli import main


@pytest.fixture(autouse=True)
def _auto_restored_logging(restored_logging):
    # Every CLI invocation configures the logging globally.
    pass


@pytest.fixture()
def runner():
    runner = click.testing.CliRunner()
    return runner


@pytest.fixture()
def invoke(runner):
    return functools.partial(runner.invoke, main)
