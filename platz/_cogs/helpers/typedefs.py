"""
Rudimentary type [re-]definitions for mypy.

Some stdlib types are generics in the type-sheds, but not at runtime
(e.g. ``logging.LoggerAdapter``), so they are defined here in a reusable way.
Plus some common plain type definitions used across the codebase.
"""
import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    LoggerAdapter = logging.LoggerAdapter[Any]
else:
    LoggerAdapter = logging.LoggerAdapter

# As publicly exposed: we only promise that it is based on one of the built-in loggable classes.
Logger = Union[logging.Logger, LoggerAdapter]

# Query parameters as accepted from the callers: a mapping or a sequence of pairs.
# The values are stringified when the request is built; None values unset the key.
QueryValue = Union[str, int, float, bool, None]
Query = Union[Mapping[str, QueryValue], Iterable[tuple[str, QueryValue]]]
