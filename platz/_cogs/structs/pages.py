"""
The paginated listings as served by the Platz API.

Every list endpoint responds with an envelope: the requested page number
(1-based), the page size, the items of this page, and the total number
of the items across all the pages. The exact continuation predicate is
``page * per_page < num_total``.
"""
import collections.abc
from typing import Any, Generic, TypeVar

from typing_extensions import TypedDict

_T = TypeVar('_T')


class RawPage(TypedDict, Generic[_T]):
    page: int
    per_page: int
    items: list[_T]
    num_total: int


def is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_page(payload: object, *, requested: int) -> str | None:
    """
    Check that the payload is a page envelope as requested; explain if it is not.
    """
    if not isinstance(payload, collections.abc.Mapping):
        return f"expected a JSON object, got {type(payload).__name__}"
    for key in ['page', 'per_page', 'num_total']:
        if not is_int(payload.get(key)):
            return f"expected an integer in {key!r}, got {payload.get(key)!r}"
    if not isinstance(payload.get('items'), list):
        return f"expected a list in 'items', got {type(payload.get('items')).__name__}"
    if payload['page'] != requested:
        return f"page {requested} was requested, but page {payload['page']} was served"
    if payload['per_page'] <= 0 and has_more(payload):  # type: ignore[arg-type]
        return f"non-positive page size {payload['per_page']} would never advance"
    return None


def has_more(page: RawPage[Any]) -> bool:
    return page['page'] * page['per_page'] < page['num_total']
