"""
All configuration flags, options, settings to fine-tune a client.

All settings are grouped semantically just for convenience
(instead of a flat mega-object with all the values in it).

In this library, they are called *"settings"* (plural).
Combined, they form a *"configuration"* (singular).

Some of the settings are flags, some are scalars, some are optional,
some are not (but all of them have reasonable defaults).

The settings are owned by a client instance (see :class:`PlatzClient`).
There are no process-wide settings, so multiple clients with different
settings can co-exist in the same process.
"""
import dataclasses
from collections.abc import Sequence

DEFAULT_SECRETS_ROOT = '/var/run/secrets/platz'


@dataclasses.dataclass
class NetworkingSettings:

    request_timeout: float | None = 5 * 60  # == aiohttp.client.DEFAULT_TIMEOUT
    """
    A timeout for the whole request, from the connection to the last byte
    of the response. Measured in seconds. ``None`` disables the timeout.

    There are no retries on timeouts or any other errors: a single attempt
    is made per call. Retrying is the caller's responsibility.
    """

    connect_timeout: float | None = None
    """
    A timeout for establishing a connection (including the queueing time
    for the connection pool, i.e. aiohttp's ``connect``). Measured in seconds.
    ``None`` means no limit other than the whole request's timeout.
    """


@dataclasses.dataclass
class PaginationSettings:

    page_size: int | None = None
    """
    How many items to request per page in paginated listings.

    ``None`` means that no ``page_size`` is sent and the server decides.
    Only positive values are accepted: the pagination would never advance
    with zero-sized pages.
    """

    def __post_init__(self) -> None:
        if self.page_size is not None and self.page_size <= 0:
            raise ValueError(f"The page size must be positive, got {self.page_size!r}.")


@dataclasses.dataclass
class CredentialsSettings:

    profile: str | None = None
    """
    The name of the profile to use from the profile configuration file.

    If not set, ``$PLATZ_PROFILE`` is used; if that is not set either,
    the profile flagged as ``default = true`` in the file is used.
    """

    config_dirs: Sequence[str] | None = None
    """
    The configuration directories to look for ``platz/config.toml`` in,
    in the order of preference. The first existing file wins.

    ``None`` means the well-known locations: ``~/.config``,
    then the platform's default configuration directory.
    """

    secrets_root: str = DEFAULT_SECRETS_ROOT
    """
    The directory where the deployment platform mounts the rotated credentials:
    ``access_token``, ``server_url``, ``expires_at``.
    """


@dataclasses.dataclass
class ClientSettings:
    networking: NetworkingSettings = dataclasses.field(default_factory=NetworkingSettings)
    pagination: PaginationSettings = dataclasses.field(default_factory=PaginationSettings)
    credentials: CredentialsSettings = dataclasses.field(default_factory=CredentialsSettings)
