import dataclasses
import inspect
import json
import logging
import os
import re
from collections.abc import Callable
from typing import Any

import aiohttp.test_utils
import aiohttp.web
import pytest
import yarl

from platz._cogs.configs.configuration import ClientSettings
from platz._cogs.structs.credentials import AuthScheme, ConnectionInfo, Vault
from platz._kits.client import PlatzClient


@pytest.fixture(autouse=True)
def isolated_environment(mocker, tmp_path):
    """
    Ensure that no real credentials leak into the tests from the developer's machine.

    All the credentials sources are cleared or redirected to empty temporary dirs.
    The tests that need them, populate them explicitly.
    """
    envs = {key: val for key, val in os.environ.items() if not key.startswith('PLATZ_')}
    envs.update(HOME=str(tmp_path / 'home'), XDG_CONFIG_HOME=str(tmp_path / 'xdg'))
    mocker.patch.dict(os.environ, envs, clear=True)


@pytest.fixture()
def settings(tmp_path):
    settings = ClientSettings()
    settings.credentials.config_dirs = [str(tmp_path / 'config')]
    settings.credentials.secrets_root = str(tmp_path / 'secrets')
    return settings


@pytest.fixture()
def logger():
    return logging.getLogger('platz.tests')


#
# A fake Platz API server. Reasons:
# 1. We do not test aiohttp, we test the layers on top of it,
#    so the real HTTP exchange is fine, but only with a local server.
# 2. No external calls must be made under any circumstances.
#    The unit-tests must be fully isolated from the environment.
#

@dataclasses.dataclass(frozen=True)
class RecordedRequest:
    method: str
    path: str
    query: dict[str, str]
    headers: dict[str, str]
    data: Any


Responder = Callable[[aiohttp.web.Request], Any]


class FakePlatz:
    """
    A local HTTP server with routes that can be added on the go.

    The responses are either JSON-serializable data (served every time as is),
    or callables of the request returning a response (can be coroutines).
    All the requests are recorded for later assertions.
    """

    def __init__(self) -> None:
        super().__init__()
        self.routes: dict[tuple[str, str], Responder | object] = {}
        self.requests: list[RecordedRequest] = []
        app = aiohttp.web.Application()
        app.router.add_route('*', '/{tail:.*}', self._handle)
        self.server = aiohttp.test_utils.TestServer(app)

    @property
    def url(self) -> yarl.URL:
        return self.server.make_url('/')

    def add(self, method: str, path: str, response: Responder | object) -> None:
        self.routes[method.upper(), path] = response

    async def _handle(self, request: aiohttp.web.Request) -> aiohttp.web.StreamResponse:
        text = await request.text()
        try:
            data = json.loads(text) if text else None
        except json.JSONDecodeError:
            data = text
        self.requests.append(RecordedRequest(
            method=request.method,
            path=request.path,
            query=dict(request.query),
            headers=dict(request.headers),
            data=data,
        ))

        responder = self.routes.get((request.method, request.path))
        if responder is None:
            return aiohttp.web.Response(status=599, text=f"Unexpected: {request.method} {request.path}")
        if callable(responder):
            response = responder(request)
            if inspect.isawaitable(response):
                response = await response
            return response
        return aiohttp.web.json_response(responder)


@pytest.fixture()
async def fake_platz():
    fake = FakePlatz()
    await fake.server.start_server()
    try:
        yield fake
    finally:
        await fake.server.close()


@pytest.fixture()
def info(fake_platz):
    return ConnectionInfo(server=str(fake_platz.url), scheme=AuthScheme.BEARER, token='tkn123')


@pytest.fixture()
def fake_vault(info):
    """
    Provide a freshly created and populated credentials vault for every test.

    The vault has no way to log in, so any attempt to re-authenticate fails.
    """
    return Vault(info)


@pytest.fixture()
async def client(fake_vault, settings, logger):
    async with PlatzClient(vault=fake_vault, settings=settings, logger=logger) as client:
        yield client


@pytest.fixture()
def context(client):
    return client.context


#
# Helpers for the logging checks.
#

@pytest.fixture()
def assert_logs(caplog):
    """
    A function to assert the logs are present (by pattern).

    The listed message patterns MUST be present, in the order specified.
    Some other log messages can also be present, but they are ignored.
    """
    caplog.set_level(logging.DEBUG)

    def assert_logs_fn(patterns, prohibited=[]):
        __traceback_hide__ = True
        remaining_patterns = list(patterns)
        for message in caplog.messages:
            if remaining_patterns and re.search(remaining_patterns[0], message):
                remaining_patterns[:1] = []

            # Check that the prohibited patterns do not appear in any message.
            for pattern in prohibited:
                if re.search(pattern, message):
                    raise AssertionError(f"Prohibited log pattern found: {message!r} ~ {pattern!r}")

        # If all patterns have been matched in order, we are done.
        # if some are left, but the messages are over, then we fail.
        if remaining_patterns:
            raise AssertionError(f"Few patterns were missed: {remaining_patterns!r}")

    return assert_logs_fn


@pytest.fixture()
def restored_logging():
    """ Restore the global logging setup after the tests that configure it. """
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    others = {name: (logging.getLogger(name).handlers[:], logging.getLogger(name).propagate)
              for name in ['asyncio', 'aiohttp']}
    try:
        yield
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)
        for name, (handlers, propagate) in others.items():
            logging.getLogger(name).handlers[:] = handlers
            logging.getLogger(name).propagate = propagate
