"""
Authenticated request building.

Every request is built anew from the current credentials in the vault:
the URL is joined against the credentials' server, the authorization header
is rendered from the same credentials. Nothing is sent here.

The requests are never reused across pages or repeated calls, since the
credentials can be rotated in between, and the server can change with them.
"""
import dataclasses
from collections.abc import Iterable, Mapping
from typing import Any

import aiohttp
import yarl

from platz._cogs.clients import errors
from platz._cogs.configs import configuration
from platz._cogs.helpers import typedefs, versions
from platz._cogs.structs import credentials


@dataclasses.dataclass(frozen=True)
class Request:
    """
    A fully formed outgoing request: what will be sent, and nothing else.
    """
    method: str
    url: yarl.URL
    headers: Mapping[str, str] = dataclasses.field(repr=False)
    query: Mapping[str, str] = dataclasses.field(default_factory=dict)
    payload: object | None = None


def join_url(server: str, path: str) -> yarl.URL:
    """
    Join a path against the server's base URL as per RFC 3986.

    The absolute paths (``/api/v2/...``) replace the base URL's path,
    the relative ones (``api/v2/...``) are appended to it.

    The result must stay on the server's origin (scheme, host, port), since
    the credentials are attached to it: full URLs (``https://other/...``) and
    scheme-relative ones (``//other/...``) pointing elsewhere are rejected.
    """
    try:
        base = yarl.URL(server)
        relative = yarl.URL(path)
        if relative.query_string or relative.fragment:
            raise ValueError("queries & fragments must be passed separately")
        url = base.join(relative)
    except (ValueError, TypeError) as e:
        raise errors.URLJoinError(server, path) from e
    if not base.is_absolute() or not url.is_absolute() or not url.host:
        raise errors.URLJoinError(server, path)
    if url.origin() != base.origin():
        raise errors.URLJoinError(server, path)
    return url


def build_query(query: typedefs.Query | None) -> dict[str, str]:
    """
    Stringify the query parameters; the last value of a repeated key wins.
    """
    items: Iterable[tuple[str, typedefs.QueryValue]]
    items = query.items() if isinstance(query, Mapping) else (query or [])
    result: dict[str, str] = {}
    for key, value in items:
        if value is None:
            result.pop(key, None)  # the explicit None unsets an earlier value too.
        elif isinstance(value, bool):
            result[key] = 'true' if value else 'false'
        else:
            result[key] = str(value)
    return result


class APIContext:
    """
    A container for an aiohttp session and the vault to authenticate with.

    The session is created lazily on the first request (it must be created
    inside of a running event loop), and closed by the owning client.
    The session has no authentication of its own: the credentials are taken
    from the vault for every request, as they can be rotated at any time.
    """

    # The main contained object used by the API methods.
    _session: aiohttp.ClientSession | None

    def __init__(
            self,
            vault: credentials.Vault,
            *,
            settings: configuration.ClientSettings,
            session: aiohttp.ClientSession | None = None,
    ) -> None:
        super().__init__()
        self.vault = vault
        self.settings = settings
        self._session = session
        self._owned = session is None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = self.make_aiohttp_session()
            self._owned = True
        return self._session

    def make_aiohttp_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(
                total=self.settings.networking.request_timeout,
                connect=self.settings.networking.connect_timeout,
            ),
            headers={'User-Agent': versions.user_agent},
        )

    async def build(
            self,
            method: str,
            path: str,
            *,
            query: typedefs.Query | None = None,
            payload: object | None = None,
            headers: Mapping[str, str] | None = None,
    ) -> Request:
        """
        Build a request from the current credentials (refreshed if needed).
        """
        # One snapshot for both the URL & the header: they must come from the same credentials.
        info = await self.vault.get()
        header_name, header_value = info.as_header()
        all_headers: dict[str, Any] = dict(headers or {})
        all_headers.setdefault('User-Agent', versions.user_agent)
        all_headers[header_name] = header_value
        return Request(
            method=method.upper(),
            url=join_url(info.server, path),
            headers=all_headers,
            query=build_query(query),
            payload=payload,
        )

    async def close(self) -> None:
        # A user-provided session is the user's to close.
        if self._session is not None and self._owned:
            await self._session.close()
        self._session = None
