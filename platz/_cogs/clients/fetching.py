"""
Paginated listings: page by page, or all at once, or exactly one item.

The pages are fetched strictly sequentially: whether there is a next page
is only known from the previous page's envelope (its page size and total).

The iteration is lazy and restartable: every new iteration starts from
page 1 and re-issues all the requests; no cursor survives across iterations.
"""
from collections.abc import AsyncIterator
from typing import Any

from platz._cogs.clients import api, auth, errors
from platz._cogs.helpers import typedefs
from platz._cogs.structs import pages


async def iter_pages(
        path: str,
        *,
        context: auth.APIContext,
        query: typedefs.Query | None = None,
        logger: typedefs.Logger,
) -> AsyncIterator[pages.RawPage[Any]]:
    """
    Yield the pages of a listing one by one, until the server says there are no more.

    The caller's query (the filters) is kept the same for all pages;
    only the page number (and the configured page size) is overridden.
    """
    page_size = context.settings.pagination.page_size
    if page_size is not None and page_size <= 0:
        raise ValueError(f"The page size must be positive, got {page_size!r}.")

    filters = auth.build_query(query)
    page_number = 1
    while True:
        paging = {'page': page_number} if page_size is None else {'page': page_number,
                                                                  'page_size': page_size}
        payload = await api.get(path, query={**filters, **paging}, context=context, logger=logger)
        problem = pages.validate_page(payload, requested=page_number)
        if problem is not None:
            raise errors.ResponseParseError(f"Unexpected page from {path}: {problem}.")

        page: pages.RawPage[Any] = payload
        logger.debug(f"Fetched page {page['page']} of {path}: {len(page['items'])} items "
                     f"of {page['num_total']} in total, {page['per_page']} per page.")
        yield page

        if not pages.has_more(page):
            break
        page_number = page['page'] + 1


async def list_all(
        path: str,
        *,
        context: auth.APIContext,
        query: typedefs.Query | None = None,
        logger: typedefs.Logger,
) -> list[Any]:
    """
    Fetch all the pages and concatenate their items in the page order.

    If any page fails, the whole listing fails: a partial list is never returned,
    so that it is not mistaken for the complete one.
    """
    items: list[Any] = []
    async for page in iter_pages(path, context=context, query=query, logger=logger):
        items.extend(page['items'])
    return items


async def list_one(
        path: str,
        *,
        context: auth.APIContext,
        query: typedefs.Query | None = None,
        logger: typedefs.Logger,
) -> Any:
    """
    Fetch the only item matching the filters; fail if there are none or many.
    """
    items = await list_all(path, context=context, query=query, logger=logger)
    if not items:
        raise errors.NoResultsError(path)
    if len(items) > 1:
        raise errors.TooManyResultsError(path, len(items))
    return items[0]
