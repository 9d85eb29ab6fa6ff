import asyncio
from collections.abc import Mapping
from typing import Any

import aiohttp

from platz._cogs.clients import auth, errors
from platz._cogs.helpers import typedefs


async def request(
        method: str,
        path: str,  # relative to the server's base URL.
        *,
        context: auth.APIContext,
        query: typedefs.Query | None = None,
        payload: object | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: aiohttp.ClientTimeout | None = None,
        logger: typedefs.Logger,
) -> aiohttp.ClientResponse:
    """
    Send one request and classify the response by its status (but not parse it).

    Exactly one attempt is made. The network errors and timeouts are escalated
    as :class:`errors.TransportError`, the non-2xx statuses as :class:`errors.APIError`.
    """
    rq = await context.build(method, path, query=query, payload=payload, headers=headers)
    logger.debug("Sending the request.")  # the query and payload can contain sensitive data.
    try:
        response = await context.session.request(
            method=rq.method,
            url=rq.url,
            params=rq.query,
            json=rq.payload,
            headers=rq.headers,
            **(dict(timeout=timeout) if timeout is not None else {}),
        )
    except aiohttp.ClientError as e:
        logger.debug(f"The request has failed: {e!r}")
        raise errors.TransportError(rq.method, str(rq.url), str(e) or repr(e)) from e
    except asyncio.TimeoutError as e:
        logger.debug("The request has timed out.")
        raise errors.TransportError(rq.method, str(rq.url), "timed out") from e

    try:
        await errors.check_response(response)  # but do not parse it!
    except errors.APIError as e:
        logger.debug(f"The request has failed with HTTP {e.status}.")
        raise
    logger.debug(f"The request has succeeded with HTTP {response.status}.")
    return response


async def _parsed(method: str, path: str, **kwargs: Any) -> Any:
    response = await request(method, path, **kwargs)
    async with response:
        return await errors.parse_response(response)


async def get(path: str, **kwargs: Any) -> Any:
    return await _parsed('get', path, **kwargs)


async def post(path: str, **kwargs: Any) -> Any:
    return await _parsed('post', path, **kwargs)


async def put(path: str, **kwargs: Any) -> Any:
    return await _parsed('put', path, **kwargs)


async def patch(path: str, **kwargs: Any) -> Any:
    return await _parsed('patch', path, **kwargs)


async def delete(path: str, **kwargs: Any) -> Any:
    return await _parsed('delete', path, **kwargs)


async def execute(method: str, path: str, **kwargs: Any) -> None:
    """
    Send a request for its side effects only; the response body is ignored.
    """
    response = await request(method, path, **kwargs)
    response.release()
