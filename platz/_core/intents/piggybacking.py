"""
Rudimentary logins from the known sources of credentials.

The library is not an identity provider, and avoids bringing too much logic
for proper authentication. Instead, it piggybacks on what is already there:
the environment variables set by a developer or a CI pipeline, the profile
configuration file written by the CLI tools, and the secret files mounted
and regularly rotated by the Platz deployment platform.

Every login routine looks into its own source only, and has three outcomes:

* the credentials are returned if the source has them;
* ``None`` is returned if the source's inputs are absent entirely;
* an error is raised if the source's inputs are present but malformed.

The first routine to return the credentials wins. An error stops the chain:
the next sources are not consulted, so that a broken configuration is never
silently masked by another one (e.g. by a stale token in a profile file).

.. seealso::
    :mod:`credentials` and :class:`Vault`.
"""
import asyncio
import datetime
import functools
import os
import sys
import tomllib
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

import iso8601
import yarl

from platz._cogs.clients import errors
from platz._cogs.configs import configuration
from platz._cogs.helpers import typedefs
from platz._cogs.structs import credentials

# Keep as constants to make them patchable.
ENV_SERVER_URL = 'PLATZ_URL'
ENV_API_TOKEN = 'PLATZ_API_TOKEN'
ENV_USER_TOKEN = 'PLATZ_USER_TOKEN'
ENV_PROFILE = 'PLATZ_PROFILE'

CONFIG_PATH = os.path.join('platz', 'config.toml')
SECRET_TOKEN_FILE = 'access_token'
SECRET_SERVER_FILE = 'server_url'
SECRET_EXPIRY_FILE = 'expires_at'

# The credential kinds in the profiles, and the schemes they map to.
PROFILE_TOKEN_KEYS: Mapping[str, credentials.AuthScheme] = {
    'access_token': credentials.AuthScheme.BEARER,
    'user_token': credentials.AuthScheme.BEARER,
    'api_token': credentials.AuthScheme.PLATZ_TOKEN,
}

Resolver = Callable[..., credentials.ConnectionInfo | None]


def parse_server_url(value: str) -> str:
    """
    Validate the server's base URL, and normalise it for further joining.

    The URL must be absolute and use HTTP(S). A trailing slash is added so that
    the relative paths are joined to the base path rather than replacing it.
    """
    url = yarl.URL(value.strip())  # raises ValueError on the most broken ones.
    if not url.is_absolute() or url.scheme not in ('http', 'https') or not url.host:
        raise ValueError(f"not an absolute http(s) URL: {value!r}")
    # Always rebuild the path: a host-only URL has the path "/", but renders without it.
    url = url.with_path(url.path if url.path.endswith('/') else url.path + '/')
    return str(url)


def parse_expiry(value: str | datetime.datetime | datetime.date) -> datetime.datetime:
    """
    Parse the expiration time; naive times are assumed to be in UTC.
    """
    if isinstance(value, datetime.datetime):
        parsed = value
    elif isinstance(value, datetime.date):
        parsed = datetime.datetime.combine(value, datetime.time())
    else:
        parsed = iso8601.parse_date(value.strip(), default_timezone=datetime.timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def get_envvar(name: str) -> str | None:
    """
    Get an environment variable as text, or ``None`` if it is unset or empty.

    Undecodable bytes in the environment are smuggled by Python as surrogates;
    such values cannot be used in HTTP headers or URLs, so we fail on them.
    """
    value = os.environ.get(name)
    if not value:
        return None
    try:
        value.encode('utf-8')
    except UnicodeEncodeError:
        raise errors.EnvVarParseError(name, "the value is not a valid text") from None
    return value


def login_with_envvars(
        *,
        logger: typedefs.Logger,
        **_: Any,
) -> credentials.ConnectionInfo | None:
    """
    A login routine that gets the server & token from the environment variables.

    ``$PLATZ_API_TOKEN`` is used with the ``x-platz-token`` header,
    ``$PLATZ_USER_TOKEN`` is used with the ``Authorization: Bearer`` header.
    Both of them require ``$PLATZ_URL``.
    """
    server_url = get_envvar(ENV_SERVER_URL)
    if server_url is not None:
        try:
            server_url = parse_server_url(server_url)
        except ValueError as e:
            raise errors.EnvVarParseError(ENV_SERVER_URL, str(e)) from e

    api_token = get_envvar(ENV_API_TOKEN)
    user_token = get_envvar(ENV_USER_TOKEN)
    if api_token is not None and user_token is not None:
        logger.warning(f"Both ${ENV_API_TOKEN} and ${ENV_USER_TOKEN} are set; "
                       f"${ENV_API_TOKEN} is used.")

    token_var, token, scheme = (
        (ENV_API_TOKEN, api_token, credentials.AuthScheme.PLATZ_TOKEN) if api_token is not None else
        (ENV_USER_TOKEN, user_token, credentials.AuthScheme.BEARER) if user_token is not None else
        (None, None, None)
    )
    if server_url is None or token is None or scheme is None:
        return None

    return credentials.ConnectionInfo(
        server=server_url,
        scheme=scheme,
        token=token,
        source=f"${token_var}",
    )


def login_with_mounted_secret(
        *,
        settings: configuration.ClientSettings,
        logger: typedefs.Logger,
        **_: Any,
) -> credentials.ConnectionInfo | None:
    """
    A login routine that reads the secret files mounted into the deployments.

    The deployment platform maps its credentials secret into the pods,
    and rotates the access token regularly, so the expiration time is read too.
    All three files are needed; if any of them is absent, the source is absent.
    """
    root = settings.credentials.secrets_root
    token_path = os.path.join(root, SECRET_TOKEN_FILE)
    server_path = os.path.join(root, SECRET_SERVER_FILE)
    expiry_path = os.path.join(root, SECRET_EXPIRY_FILE)

    contents: dict[str, str] = {}
    for path in [token_path, server_path, expiry_path]:
        try:
            with open(path, encoding='utf-8') as f:
                contents[path] = f.read().strip()
        except FileNotFoundError:
            if contents:
                logger.debug(f"The mounted secret is incomplete: {path} is absent. Ignoring it.")
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise errors.MountedSecretError(path, str(e)) from e

    token = contents[token_path]
    if not token:
        raise errors.MountedSecretError(token_path, "the token is empty")
    try:
        server_url = parse_server_url(contents[server_path])
    except ValueError as e:
        raise errors.MountedSecretError(server_path, str(e)) from e
    try:
        expires_at = parse_expiry(contents[expiry_path])
    except iso8601.ParseError as e:
        raise errors.MountedSecretError(expiry_path, str(e)) from e

    return credentials.ConnectionInfo(
        server=server_url,
        scheme=credentials.AuthScheme.BEARER,
        token=token,
        expires_at=expires_at,
        source=root,
    )


def get_config_dirs(settings: configuration.ClientSettings) -> Sequence[str]:
    """
    The configuration directories to check, in the order of preference.
    """
    if settings.credentials.config_dirs is not None:
        return list(settings.credentials.config_dirs)

    # The CLI tools write to ~/.config regardless of the platform; try it first.
    dirs = [os.path.expanduser('~/.config')]
    if sys.platform == 'win32':
        platform_dir = os.environ.get('APPDATA')
    elif sys.platform == 'darwin':
        platform_dir = os.path.expanduser('~/Library/Application Support')
    else:
        platform_dir = os.environ.get('XDG_CONFIG_HOME') or os.path.expanduser('~/.config')
    if platform_dir and platform_dir not in dirs:
        dirs.append(platform_dir)
    return dirs


def parse_profiles(path: str, config: Mapping[str, Any]) -> dict[str, tuple[credentials.ConnectionInfo, bool]]:
    """
    Interpret all the profiles of the file; fail on any malformed one.

    Returns the credentials and the "default" flag for every profile by name.
    """
    profiles = config.get('profiles', {})
    if not isinstance(profiles, Mapping):
        raise errors.ProfileConfigError(path, "'profiles' must be a table")

    result: dict[str, tuple[credentials.ConnectionInfo, bool]] = {}
    for name, profile in profiles.items():
        if not isinstance(profile, Mapping):
            raise errors.ProfileConfigError(path, "must be a table", profile=name)

        default = profile.get('default', False)
        if not isinstance(default, bool):
            raise errors.ProfileConfigError(path, "'default' must be a boolean", profile=name)

        server_url = profile.get('server_url')
        if not isinstance(server_url, str):
            raise errors.ProfileConfigError(path, "'server_url' must be a string", profile=name)
        try:
            server_url = parse_server_url(server_url)
        except ValueError as e:
            raise errors.ProfileConfigError(path, str(e), profile=name) from e

        kinds = [key for key in PROFILE_TOKEN_KEYS if key in profile]
        if len(kinds) != 1:
            options = ', '.join(PROFILE_TOKEN_KEYS)
            raise errors.ProfileConfigError(path, f"exactly one of {options} is needed", profile=name)
        kind = kinds[0]
        token = profile[kind]
        if not isinstance(token, str) or not token:
            raise errors.ProfileConfigError(path, f"{kind!r} must be a non-empty string", profile=name)

        expires_at: datetime.datetime | None = None
        if 'expires_at' in profile:
            if kind != 'access_token':
                raise errors.ProfileConfigError(path, f"'expires_at' is not allowed with {kind!r}",
                                                profile=name)
            try:
                expires_at = parse_expiry(profile['expires_at'])
            except (iso8601.ParseError, AttributeError, TypeError) as e:
                raise errors.ProfileConfigError(path, f"'expires_at' is invalid: {e}",
                                                profile=name) from e

        info = credentials.ConnectionInfo(
            server=server_url,
            scheme=PROFILE_TOKEN_KEYS[kind],
            token=token,
            expires_at=expires_at,
            source=f"{path} (profile {name!r})",
        )
        result[name] = (info, default)
    return result


def login_with_profile(
        *,
        settings: configuration.ClientSettings,
        logger: typedefs.Logger,
        **_: Any,
) -> credentials.ConnectionInfo | None:
    """
    A login routine that reads the named profiles from the configuration file.

    The profile is the one requested explicitly (in the settings or via
    ``$PLATZ_PROFILE``), or the one flagged as the default in the file.
    """
    for config_dir in get_config_dirs(settings):
        path = os.path.join(config_dir, CONFIG_PATH)
        try:
            with open(path, 'rb') as f:
                config = tomllib.load(f)
        except FileNotFoundError:
            continue
        except (OSError, tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
            raise errors.ProfileConfigError(path, str(e)) from e
        break
    else:
        return None

    profiles = parse_profiles(path, config)
    requested = settings.credentials.profile or get_envvar(ENV_PROFILE)
    if requested is not None:
        if requested not in profiles:
            raise errors.ProfileConfigError(path, "the requested profile is absent", profile=requested)
        info, _ = profiles[requested]
        return info

    defaults = [name for name, (_, default) in profiles.items() if default]
    if len(defaults) > 1:
        raise errors.ProfileConfigError(path, f"multiple profiles are the default: {defaults!r}")
    if not defaults:
        logger.debug(f"No profile is requested, and none is the default in {path}. Ignoring it.")
        return None
    info, _ = profiles[defaults[0]]
    return info


# The default order of preference: the explicit overrides first, the implicit sources last.
DEFAULT_RESOLVERS: Sequence[Resolver] = (
    login_with_envvars,
    login_with_profile,
    login_with_mounted_secret,
)


def resolve(
        resolvers: Iterable[Resolver] | None = None,
        *,
        settings: configuration.ClientSettings,
        logger: typedefs.Logger,
) -> credentials.ConnectionInfo:
    """
    Walk the resolvers in order, and return the first credentials found.

    The errors of the resolvers are escalated immediately, without trying
    the next ones. If none of the resolvers has found anything, it is an error.
    """
    resolvers = list(resolvers if resolvers is not None else DEFAULT_RESOLVERS)
    for resolver in resolvers:
        info = resolver(settings=settings, logger=logger)
        if info is not None:
            logger.debug(f"Credentials are resolved via {resolver.__name__}: {info.source}")
            return info
    names = ', '.join(getattr(resolver, '__name__', repr(resolver)) for resolver in resolvers)
    raise errors.CredentialsNotFoundError(f"Could not find any Platz credentials (tried: {names}).")


async def authenticate(
        resolvers: Iterable[Resolver] | None = None,
        *,
        settings: configuration.ClientSettings,
        logger: typedefs.Logger,
) -> credentials.ConnectionInfo:
    """
    Resolve the credentials in a thread, so that the file i/o does not block the loop.
    """
    loop = asyncio.get_running_loop()
    fn = functools.partial(resolve, resolvers, settings=settings, logger=logger)
    return await loop.run_in_executor(None, fn)
