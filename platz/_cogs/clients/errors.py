"""
Platz client errors.

The underlying HTTP client library (now, ``aiohttp``) can be replaced in the
future. We cannot rely on embedding its exceptions all over the code and into
the callers' code. Hence, we have our own hierarchy of exceptions, with
:class:`PlatzError` at the root, so that the callers can intercept all the
library's failures with one ``except:`` clause, or only the specific ones.

The original errors of the client library are chained as the causes of our own
specialised errors -- for better explainability of errors in the stack traces.

Every error carries the context to diagnose it without re-running with extra
logging: the environment variable, the file path, the HTTP status, the count.
The secrets (tokens) are never included into the errors.
"""
import aiohttp


class PlatzError(Exception):
    """ The root of all errors raised by the library. """


class LoginError(PlatzError):
    """ Raised when the credentials cannot be resolved from any source. """


class CredentialsNotFoundError(LoginError):
    """ Raised when no credentials source had any inputs at all. """


class CredentialsFormatError(LoginError):
    """
    Raised when a credentials source has its inputs, but they are malformed.

    Such errors abort the whole resolution: the next sources are not consulted,
    so that a broken configuration is never silently masked by another one.
    """

    def __init__(self, message: str, *, source: str) -> None:
        super().__init__(message)
        self.source = source


class EnvVarParseError(CredentialsFormatError):
    def __init__(self, name: str, reason: str | None = None) -> None:
        message = f"Error parsing {name} environment variable"
        super().__init__(f"{message}: {reason}" if reason else message, source=f"${name}")
        self.name = name


class MountedSecretError(CredentialsFormatError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Error reading the mounted secret {path}: {reason}", source=path)
        self.path = path


class ProfileConfigError(CredentialsFormatError):
    def __init__(self, path: str, reason: str, *, profile: str | None = None) -> None:
        where = f"{path} (profile {profile!r})" if profile else path
        super().__init__(f"Error in the profile configuration {where}: {reason}", source=path)
        self.path = path
        self.profile = profile


class URLJoinError(PlatzError):
    def __init__(self, server: str, path: str) -> None:
        super().__init__(f"Error joining URL: {path!r} cannot be joined with {server!r}")
        self.server = server
        self.path = path


class TransportError(PlatzError):
    """
    Raised when the request could not be sent or the response not received.

    E.g. DNS resolution, TLS handshake, connection refusal, timeouts.
    The original error of the client library is in ``__cause__``.
    """

    def __init__(self, method: str, url: str, reason: str) -> None:
        super().__init__(f"Request failed: {method.upper()} {url}: {reason}")
        self.method = method
        self.url = url


class APIError(PlatzError):
    """ Raised for non-2xx HTTP statuses. Keeps the response body as text. """

    def __init__(self, *, status: int, text: str = '', method: str = '', url: str = '') -> None:
        what = f"{method.upper()} {url} -> " if method and url else ""
        annotation = f": {text!r}" if text else ""
        super().__init__(f"{what}HTTP {status}{annotation}")
        self.status = status
        self.text = text
        self.method = method
        self.url = url


class APIUnauthorizedError(APIError):
    pass


class APIForbiddenError(APIError):
    pass


class APINotFoundError(APIError):
    pass


class APIConflictError(APIError):
    pass


class ResponseParseError(PlatzError):
    """ Raised when a successful response has a body of an unexpected shape. """


class CardinalityError(PlatzError):
    """ Raised when the number of results violates an exactly-one expectation. """


class NoResultsError(CardinalityError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Expected exactly one item from {path}, got none.")
        self.path = path
        self.count = 0


class TooManyResultsError(CardinalityError):
    def __init__(self, path: str, count: int) -> None:
        super().__init__(f"Expected exactly one item from {path}, got {count}.")
        self.path = path
        self.count = count


async def check_response(
        response: aiohttp.ClientResponse,
) -> None:
    """
    Check for non-2xx statuses, and raise with extended information.

    The body is read as text on a best-effort basis: if it cannot be read,
    the error is raised with an empty text, never masking the original status.
    """
    if not 200 <= response.status < 300:

        # Read the response's body before it is closed by raise_for_status().
        text: str
        try:
            text = await response.text()
        except (aiohttp.ClientError, UnicodeDecodeError, TimeoutError):
            text = ''

        cls = (
            APIUnauthorizedError if response.status == 401 else
            APIForbiddenError if response.status == 403 else
            APINotFoundError if response.status == 404 else
            APIConflictError if response.status == 409 else
            APIError
        )

        # Raise the library-specific error while keeping the original error in scope.
        # This call also closes the response's body, so it cannot be read afterwards.
        # NB: 1xx/3xx are not errors for aiohttp, so there might be nothing to chain.
        error = cls(
            status=response.status,
            text=text,
            method=response.method,
            url=str(response.url),
        )
        try:
            response.raise_for_status()
        except aiohttp.ClientResponseError as e:
            raise error from e
        response.release()
        raise error


async def parse_response(
        response: aiohttp.ClientResponse,
) -> object:
    """
    Check the response for errors, and either raise or return the parsed data.
    """
    await check_response(response)
    try:
        return await response.json(content_type=None)
    except ValueError as e:  # incl. json.JSONDecodeError
        raise ResponseParseError(f"Cannot parse the response of "
                                 f"{response.method} {response.url}: {e}") from e
    except aiohttp.ClientPayloadError as e:
        raise TransportError(response.method, str(response.url), str(e) or repr(e)) from e

