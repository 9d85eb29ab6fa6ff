"""
The main Platz client module for all the exported functions & classes.
"""
# isort: skip_file

# Unlike all other places, where we import other modules and refer
# the functions via the modules, this is the library's top-level interface,
# as it is seen by the users. So, we export the individual functions.

from platz._cogs.clients.auth import (
    Request,
    join_url,
)
from platz._cogs.clients.errors import (
    PlatzError,
    LoginError,
    CredentialsNotFoundError,
    CredentialsFormatError,
    EnvVarParseError,
    MountedSecretError,
    ProfileConfigError,
    URLJoinError,
    TransportError,
    APIError,
    APIUnauthorizedError,
    APIForbiddenError,
    APINotFoundError,
    APIConflictError,
    ResponseParseError,
    CardinalityError,
    NoResultsError,
    TooManyResultsError,
)
from platz._cogs.configs.configuration import (
    ClientSettings,
    NetworkingSettings,
    PaginationSettings,
    CredentialsSettings,
)
from platz._cogs.helpers.typedefs import (
    Logger,
)
from platz._cogs.helpers.versions import (
    version as __version__,
)
from platz._cogs.structs.credentials import (
    AuthScheme,
    ConnectionInfo,
    Vault,
)
from platz._cogs.structs.pages import (
    RawPage,
)
from platz._core.engines.loggers import (
    LogFormat,
    configure,
)
from platz._core.intents.piggybacking import (
    DEFAULT_RESOLVERS,
    login_with_envvars,
    login_with_profile,
    login_with_mounted_secret,
    resolve,
)
from platz._kits.client import (
    PlatzClient,
)

__all__ = [
    'PlatzClient',
    'ClientSettings',
    'NetworkingSettings',
    'PaginationSettings',
    'CredentialsSettings',
    'AuthScheme',
    'ConnectionInfo',
    'Vault',
    'RawPage',
    'Request',
    'join_url',
    'DEFAULT_RESOLVERS',
    'login_with_envvars',
    'login_with_profile',
    'login_with_mounted_secret',
    'resolve',
    'LogFormat',
    'configure',
    'Logger',
    'PlatzError',
    'LoginError',
    'CredentialsNotFoundError',
    'CredentialsFormatError',
    'EnvVarParseError',
    'MountedSecretError',
    'ProfileConfigError',
    'URLJoinError',
    'TransportError',
    'APIError',
    'APIUnauthorizedError',
    'APIForbiddenError',
    'APINotFoundError',
    'APIConflictError',
    'ResponseParseError',
    'CardinalityError',
    'NoResultsError',
    'TooManyResultsError',
]
