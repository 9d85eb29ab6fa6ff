import datetime
import os

import pytest

from platz._cogs.clients.errors import CredentialsNotFoundError, EnvVarParseError
from platz._cogs.structs.credentials import AuthScheme, ConnectionInfo, Vault
from platz._kits.client import PlatzClient

UTC = datetime.timezone.utc


async def test_credentials_from_envvars(mocker, fake_platz, settings, logger):
    mocker.patch.dict(os.environ, {'PLATZ_URL': str(fake_platz.url), 'PLATZ_API_TOKEN': 'api-tkn'})
    fake_platz.add('GET', '/api/v2/things/1', {'id': 1})
    async with PlatzClient(settings=settings, logger=logger) as client:
        result = await client.get('/api/v2/things/1')
    assert result == {'id': 1}
    assert fake_platz.requests[0].headers['x-platz-token'] == 'api-tkn'
    assert 'Authorization' not in fake_platz.requests[0].headers


async def test_credentials_are_resolved_lazily(mocker, settings, logger):
    resolve = mocker.patch('platz._core.intents.piggybacking.resolve')
    async with PlatzClient(settings=settings, logger=logger):
        pass
    assert not resolve.called


async def test_no_credentials_at_all(fake_platz, settings, logger):
    async with PlatzClient(settings=settings, logger=logger) as client:
        with pytest.raises(CredentialsNotFoundError):
            await client.get('/api/v2/things')
    assert not fake_platz.requests


async def test_malformed_credentials_send_nothing(mocker, fake_platz, settings, logger):
    mocker.patch.dict(os.environ, {'PLATZ_URL': 'not-a-url', 'PLATZ_API_TOKEN': 'api-tkn'})
    async with PlatzClient(settings=settings, logger=logger) as client:
        with pytest.raises(EnvVarParseError):
            await client.get('/api/v2/things')
    assert not fake_platz.requests


async def test_custom_resolvers(fake_platz, settings, logger):
    calls = []

    def login_with_something(**kwargs):
        calls.append(kwargs)
        return ConnectionInfo(server=str(fake_platz.url), scheme=AuthScheme.BEARER, token='custom')

    fake_platz.add('GET', '/api/v2/things', [])
    async with PlatzClient(settings=settings, logger=logger, resolvers=[login_with_something]) as client:
        await client.get('/api/v2/things')
        await client.get('/api/v2/things')
    assert len(calls) == 1
    assert [rq.headers['Authorization'] for rq in fake_platz.requests] == ['Bearer custom'] * 2


async def test_expired_credentials_are_refreshed(fake_platz, settings, logger):
    past = datetime.datetime(2000, 1, 1, tzinfo=UTC)
    tokens = iter(['fresh1', 'fresh2'])

    def login_with_rotation(**_):
        return ConnectionInfo(server=str(fake_platz.url), scheme=AuthScheme.BEARER, token=next(tokens))

    old = ConnectionInfo(server=str(fake_platz.url), scheme=AuthScheme.BEARER, token='old', expires_at=past)
    fake_platz.add('GET', '/api/v2/things', [])
    async with PlatzClient(settings=settings, logger=logger, resolvers=[login_with_rotation]) as client:
        await client.vault.populate(old)
        await client.get('/api/v2/things')
        await client.get('/api/v2/things')
    assert [rq.headers['Authorization'] for rq in fake_platz.requests] == ['Bearer fresh1'] * 2


async def test_connection_info_and_authorization(fake_vault, info, settings, logger):
    async with PlatzClient(vault=fake_vault, settings=settings, logger=logger) as client:
        assert await client.connection_info() is info
        assert await client.authorization() == ('Authorization', 'Bearer tkn123')


@pytest.mark.parametrize('method', ['post', 'put', 'patch'])
async def test_methods_with_payloads(fake_platz, client, method):
    fake_platz.add(method, '/api/v2/things', {'ok': True})
    fn = getattr(client, method)
    result = await fn('/api/v2/things', {'name': 'x'}, query={'dry': True})
    assert result == {'ok': True}
    assert fake_platz.requests[0].method == method.upper()
    assert fake_platz.requests[0].data == {'name': 'x'}
    assert fake_platz.requests[0].query == {'dry': 'true'}


async def test_delete(fake_platz, client):
    fake_platz.add('DELETE', '/api/v2/things/1', {'deleted': True})
    result = await client.delete('/api/v2/things/1')
    assert result == {'deleted': True}


async def test_execute(fake_platz, client):
    fake_platz.add('POST', '/api/v2/things/1/restart', {'ignored': True})
    result = await client.execute('post', '/api/v2/things/1/restart')
    assert result is None
    assert fake_platz.requests[0].method == 'POST'


async def test_listings(fake_platz, client):
    fake_platz.add('GET', '/api/v2/things', dict(page=1, per_page=10, items=[{'id': 1}], num_total=1))
    assert await client.list_all('/api/v2/things') == [{'id': 1}]
    assert await client.list_one('/api/v2/things') == {'id': 1}
    pages = [page async for page in client.iter_pages('/api/v2/things', query={'a': 'b'})]
    assert len(pages) == 1
    assert fake_platz.requests[-1].query == {'a': 'b', 'page': '1'}


async def test_clients_are_independent(fake_platz, settings, logger):
    info1 = ConnectionInfo(server=str(fake_platz.url), scheme=AuthScheme.BEARER, token='one')
    info2 = ConnectionInfo(server=str(fake_platz.url), scheme=AuthScheme.PLATZ_TOKEN, token='two')
    fake_platz.add('GET', '/api/v2/things', [])
    async with PlatzClient(vault=Vault(info1), settings=settings, logger=logger) as client1, \
               PlatzClient(vault=Vault(info2), settings=settings, logger=logger) as client2:
        await client1.get('/api/v2/things')
        await client2.get('/api/v2/things')
    assert fake_platz.requests[0].headers['Authorization'] == 'Bearer one'
    assert fake_platz.requests[1].headers['x-platz-token'] == 'two'
    assert 'Authorization' not in fake_platz.requests[1].headers


async def test_session_is_closed(client):
    session = client.context.session
    await client.close()
    assert session.closed
