"""
The client: the entry point for the callers of the Platz API.

A client owns its settings, its credentials vault, and its HTTP session.
Nothing is global: multiple clients, differently configured, can co-exist
in the same process and the same event loop, and can be used concurrently
by multiple tasks each.

Usage::

    async with platz.PlatzClient() as client:
        deployments = await client.list_all('/api/v2/deployments', query={'enabled': True})
        deployment = await client.get(f'/api/v2/deployments/{deployment_id}')
"""
import functools
import logging
from collections.abc import AsyncIterator, Iterable, Mapping
from types import TracebackType
from typing import Any

import aiohttp

from platz._cogs.clients import api, auth, fetching
from platz._cogs.configs import configuration
from platz._cogs.helpers import typedefs
from platz._cogs.structs import credentials, pages
from platz._core.engines import loggers
from platz._core.intents import piggybacking


class PlatzClient:
    """
    An authenticated client to the Platz API.

    The credentials are resolved lazily on the first request, via the resolvers
    in the order given (or the default order: environment variables, profile
    file, mounted secret). They are re-resolved when they expire.

    There are no retries of any kind: every call is a single attempt
    (a series of sequential attempts for the paginated listings).
    """

    def __init__(
            self,
            *,
            settings: configuration.ClientSettings | None = None,
            vault: credentials.Vault | None = None,
            resolvers: Iterable[piggybacking.Resolver] | None = None,
            session: aiohttp.ClientSession | None = None,
            logger: typedefs.Logger | None = None,
    ) -> None:
        super().__init__()
        self.settings = settings if settings is not None else configuration.ClientSettings()
        self.logger = logger if logger is not None else loggers.logger
        self.resolvers = list(resolvers if resolvers is not None else piggybacking.DEFAULT_RESOLVERS)
        self.vault = vault if vault is not None else credentials.Vault(login=self._login)
        self.context = auth.APIContext(self.vault, settings=self.settings, session=session)

    async def __aenter__(self) -> "PlatzClient":
        return self

    async def __aexit__(
            self,
            exc_type: type[BaseException] | None,
            exc_val: BaseException | None,
            exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        await self.context.close()

    async def _login(self) -> credentials.ConnectionInfo:
        return await piggybacking.authenticate(self.resolvers, settings=self.settings, logger=self.logger)

    def _logger(self, method: str, path: str) -> typedefs.Logger:
        return loggers.RequestLogger(method=method, path=path, base=self.logger)

    async def connection_info(self) -> credentials.ConnectionInfo:
        """ The current credentials, refreshed if needed. """
        return await self.vault.get()

    async def authorization(self) -> tuple[str, str]:
        """ The current authorization header's name & value, refreshed if needed. """
        return await self.vault.authorization()

    async def _call(
            self,
            fn: Any,
            method: str,
            path: str,
            *,
            query: typedefs.Query | None = None,
            payload: object | None = None,
            headers: Mapping[str, str] | None = None,
            timeout: aiohttp.ClientTimeout | None = None,
    ) -> Any:
        return await fn(
            path,
            query=query,
            payload=payload,
            headers=headers,
            timeout=timeout,
            context=self.context,
            logger=self._logger(method, path),
        )

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self._call(api.get, 'get', path, **kwargs)

    async def post(self, path: str, payload: object | None = None, **kwargs: Any) -> Any:
        return await self._call(api.post, 'post', path, payload=payload, **kwargs)

    async def put(self, path: str, payload: object | None = None, **kwargs: Any) -> Any:
        return await self._call(api.put, 'put', path, payload=payload, **kwargs)

    async def patch(self, path: str, payload: object | None = None, **kwargs: Any) -> Any:
        return await self._call(api.patch, 'patch', path, payload=payload, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self._call(api.delete, 'delete', path, **kwargs)

    async def execute(self, method: str, path: str, **kwargs: Any) -> None:
        """ Send a request for its side effects only, e.g. a DELETE with no content. """
        fn = functools.partial(api.execute, method)
        await self._call(fn, method, path, **kwargs)

    async def iter_pages(
            self,
            path: str,
            *,
            query: typedefs.Query | None = None,
    ) -> AsyncIterator[pages.RawPage[Any]]:
        logger = self._logger('get', path)
        async for page in fetching.iter_pages(path, query=query, context=self.context, logger=logger):
            yield page

    async def list_all(self, path: str, *, query: typedefs.Query | None = None) -> list[Any]:
        logger = self._logger('get', path)
        return await fetching.list_all(path, query=query, context=self.context, logger=logger)

    async def list_one(self, path: str, *, query: typedefs.Query | None = None) -> Any:
        logger = self._logger('get', path)
        return await fetching.list_one(path, query=query, context=self.context, logger=logger)
