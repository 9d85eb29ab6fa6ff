"""
Authentication-related structures.

The library handles only the rudimentary authentication directly:
the server's base URL and a token in one of two header schemes:

* HTTP ``Authorization: Bearer <token>`` -- for access tokens & user tokens.
* HTTP ``x-platz-token: <token>`` -- for the API tokens.

For that, a minimally sufficient data structure is introduced -- both
to bring all the credentials together in a structured and type-annotated way,
and to receive them from the login routines (see :mod:`piggybacking`).

The credentials are kept in a vault owned by a client. The vault knows when
the credentials expire, and re-runs the login routines when they do.

.. seealso::
    :mod:`piggybacking` and :class:`PlatzClient`.
"""
import asyncio
import dataclasses
import datetime
import enum
import logging
from collections.abc import Awaitable, Callable

from platz._cogs.clients import errors

logger = logging.getLogger('platz.auth')

PLATZ_TOKEN_HEADER = 'x-platz-token'


class AuthScheme(str, enum.Enum):
    BEARER = 'bearer'
    PLATZ_TOKEN = 'x-platz-token'


@dataclasses.dataclass(frozen=True)
class ConnectionInfo:
    """
    A single endpoint with specific credentials to use.

    Constructed by exactly one login routine, never modified afterwards,
    and replaced as a whole when the credentials are refreshed.
    """
    server: str  # e.g. "https://platz.example.com/"
    scheme: AuthScheme
    token: str = dataclasses.field(repr=False)
    expires_at: datetime.datetime | None = None
    source: str | None = None  # where it came from, for diagnostics only.

    def __post_init__(self) -> None:
        if not self.token:
            raise ValueError("The token must not be empty.")
        if self.expires_at is not None and self.expires_at.tzinfo is None:
            raise ValueError("The expiration time must be timezone-aware.")

    def is_expired(self, now: datetime.datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        now = now if now is not None else datetime.datetime.now(datetime.timezone.utc)
        return self.expires_at <= now

    def as_header(self) -> tuple[str, str]:
        """ Render the credentials as an HTTP header name & value. """
        match self.scheme:
            case AuthScheme.BEARER:
                return 'Authorization', f'Bearer {self.token}'
            case AuthScheme.PLATZ_TOKEN:
                return PLATZ_TOKEN_HEADER, self.token
            case _:
                raise TypeError(f"Unsupported auth scheme: {self.scheme!r}")


# A login routine as used by the vault: produces new credentials or raises.
Login = Callable[[], Awaitable[ConnectionInfo]]


class Vault:
    """
    A store for the currently valid credentials.

    *Though we call it a vault to add a sense of security.*

    The vault is created once per client, and is then used by multiple tasks
    running in parallel, i.e. by all API calls made via the same client.

    The credentials are resolved lazily on the first use, and re-resolved
    when they have expired. All of it happens under a lock, so that only one
    login activity runs at a time: all other requesters wait for it to finish
    and then use its result -- there are no redundant concurrent logins.
    The requesters see either the old or the new credentials, never a mix.

    If the login fails, the error is escalated to the requester that triggered
    it, and the vault remains empty or expired; the next requester will try
    to log in again.
    """
    _current: ConnectionInfo | None

    def __init__(
            self,
            info: ConnectionInfo | None = None,
            *,
            login: Login | None = None,
    ) -> None:
        super().__init__()
        self._current = info
        self._login = login
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}: {self._current!r}>'

    def __bool__(self) -> bool:
        return self._current is not None

    async def get(self) -> ConnectionInfo:
        """
        Get the current credentials, refreshing them if absent or expired.
        """
        async with self._lock:
            if self._current is None or self._current.is_expired():
                if self._current is not None:
                    logger.debug(f"Credentials from {self._current.source} have expired "
                                 f"at {self._current.expires_at}; re-authenticating.")
                self._current = None  # never serve the expired ones, even if the login fails.
                self._current = await self._authenticate()
            return self._current

    async def authorization(self) -> tuple[str, str]:
        """
        Get the authorization header's name & value for the current credentials.
        """
        info = await self.get()
        return info.as_header()

    async def populate(self, info: ConnectionInfo) -> None:
        """
        Replace the credentials explicitly, e.g. when obtained elsewhere.
        """
        async with self._lock:
            self._current = info

    async def _authenticate(self) -> ConnectionInfo:
        if self._login is None:
            raise errors.LoginError("No valid credentials are available, and no way to log in.")
        info = await self._login()
        logger.debug(f"Authenticated via {info.source} for {info.server}.")
        return info
