"""
Logging of the requests: formatting for humans & for log parsers.

Every request is logged via its own request logger, which carries
the request's reference (method & path) alongside the messages.
The reference is rendered either as a prefix in the text logs,
or as a separate field in the JSON logs.

The tokens and other secrets are never logged: only their sources are.
"""
import copy
import enum
import logging
from collections.abc import MutableMapping
from typing import Any

from pythonjsonlogger.core import RESERVED_ATTRS
from pythonjsonlogger.json import JsonFormatter

from platz._cogs.helpers import typedefs

logger = logging.getLogger('platz.clients')

# A key for request references in JSON logs, as seen by the log parsers.
DEFAULT_JSON_REFKEY = 'request'


class LogFormat(enum.Enum):
    """ Log formats, as specified on CLI. """
    PLAIN = '%(message)s'
    FULL = '[%(asctime)s] %(name)-20.20s [%(levelname)-8.8s] %(message)s'
    JSON = '-json-'  # not used for formatting, only for detection


class RequestFormatter(logging.Formatter):
    pass


class RequestTextFormatter(RequestFormatter, logging.Formatter):
    pass


class RequestJsonFormatter(RequestFormatter, JsonFormatter):
    def __init__(
            self,
            *args: Any,
            refkey: str | None = None,
            **kwargs: Any,
    ) -> None:
        # Our own extras are rendered separately (or not at all), never as the plain fields.
        reserved_attrs = kwargs.pop('reserved_attrs', RESERVED_ATTRS)
        reserved_attrs = set(reserved_attrs)
        reserved_attrs |= {'platz_ref'}
        kwargs |= dict(reserved_attrs=reserved_attrs)
        kwargs.setdefault('timestamp', True)
        super().__init__(*args, **kwargs)
        self._refkey: str = refkey or DEFAULT_JSON_REFKEY

    def add_fields(
            self,
            log_record: dict[str, Any],
            record: logging.LogRecord,
            message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if self._refkey and hasattr(record, 'platz_ref'):
            ref = getattr(record, 'platz_ref')
            log_record[self._refkey] = ref

        if 'severity' not in log_record:
            log_record['severity'] = (
                "debug" if record.levelno <= logging.DEBUG else
                "info" if record.levelno <= logging.INFO else
                "warn" if record.levelno <= logging.WARNING else
                "error" if record.levelno <= logging.ERROR else
                "fatal")


class RequestPrefixingMixin(RequestFormatter):
    def format(self, record: logging.LogRecord) -> str:
        if hasattr(record, 'platz_ref'):
            ref = getattr(record, 'platz_ref')
            prefix = f"[{ref.get('method', '')} {ref.get('path', '')}]"
            record = copy.copy(record)  # shallow
            record.msg = f"{prefix} {record.msg}"
        return super().format(record)


class RequestPrefixingTextFormatter(RequestPrefixingMixin, RequestTextFormatter):
    pass


class RequestPrefixingJsonFormatter(RequestPrefixingMixin, RequestJsonFormatter):
    pass


class RequestLogger(typedefs.LoggerAdapter):
    """
    A logger/adapter to carry the request identifiers for formatting.

    Constructed for every logical API call (i.e. once for all pages of a listing).
    The query & payload are not carried, as they can contain sensitive data.
    """

    def __init__(
            self,
            *,
            method: str,
            path: str,
            base: typedefs.Logger | None = None,
    ) -> None:
        super().__init__(base if base is not None else logger, dict(
            platz_ref=dict(
                method=method.upper(),
                path=path,
            ),
        ))

    def process(
            self,
            msg: str,
            kwargs: MutableMapping[str, Any],
    ) -> tuple[str, MutableMapping[str, Any]]:
        # Native logging overwrites the message's extra with the adapter's extra.
        # We merge them, so that both message's & adapter's extras are available.
        kwargs["extra"] = dict(self.extra or {}, **kwargs.get('extra', {}))
        return msg, kwargs


def configure(
        debug: bool | None = None,
        verbose: bool | None = None,
        quiet: bool | None = None,
        log_format: LogFormat = LogFormat.FULL,
        log_prefix: bool | None = False,
        log_refkey: str | None = None,
) -> None:
    log_level = 'DEBUG' if debug or verbose else 'WARNING' if quiet else 'INFO'
    formatter = make_formatter(log_format=log_format, log_prefix=log_prefix, log_refkey=log_refkey)
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logger = logging.getLogger()
    logger.addHandler(handler)
    logger.setLevel(log_level)

    # Prevent the low-level logging unless in the debug mode. Keep only the library's messages.
    # For no-propagation loggers, add a dummy null handler to prevent printing the messages.
    for name in ['asyncio', 'aiohttp']:
        logger = logging.getLogger(name)
        logger.propagate = bool(debug)
        if not debug:
            logger.handlers[:] = [logging.NullHandler()]


def make_formatter(
        log_format: LogFormat | str = LogFormat.FULL,
        log_prefix: bool | None = False,
        log_refkey: str | None = None,
) -> RequestFormatter:
    log_prefix = log_prefix if log_prefix is not None else bool(log_format is not LogFormat.JSON)
    if log_format is LogFormat.JSON:
        if log_prefix:
            return RequestPrefixingJsonFormatter(refkey=log_refkey)
        else:
            return RequestJsonFormatter(refkey=log_refkey)
    elif isinstance(log_format, LogFormat):
        if log_prefix:
            return RequestPrefixingTextFormatter(log_format.value)
        else:
            return RequestTextFormatter(log_format.value)
    elif isinstance(log_format, str):
        if log_prefix:
            return RequestPrefixingTextFormatter(log_format)
        else:
            return RequestTextFormatter(log_format)
    else:
        raise ValueError(f"Unsupported log format: {log_format!r}")
