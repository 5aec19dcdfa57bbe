"""Shared HTTP plumbing for upstream adapters."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)

# Upstream answers for modules that are not enabled on the account.
OPTIONAL_MODULE_STATUSES = frozenset({403, 404})


def is_optional_module_error(exc: Exception) -> bool:
    """Return True when an HTTP error means the upstream module is unavailable."""
    return (
        isinstance(exc, httpx.HTTPStatusError)
        and exc.response.status_code in OPTIONAL_MODULE_STATUSES
    )


async def fetch_pages(
    client: httpx.AsyncClient,
    url: str,
    *,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    page_size: int = 100,
) -> AsyncIterator[list[dict[str, Any]]]:
    """Yield successive pages of a ``data`` + ``meta.has_next_page`` envelope.

    Every call starts again from page 1. Iteration stops on the last page or
    on an empty page, whichever comes first. HTTP errors propagate as
    ``httpx.HTTPStatusError``.
    """
    page = 1
    while True:
        query = {**(params or {}), "limit": page_size, "page": page}
        response = await client.get(url, headers=headers, params=query)
        response.raise_for_status()
        body = response.json()
        data = body.get("data") or []
        logger.debug("Fetched page %d of %s (%d items)", page, url, len(data))
        yield data
        meta = body.get("meta") or {}
        if not data or not meta.get("has_next_page"):
            return
        page += 1
