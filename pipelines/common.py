"""Shared utilities for retrieving published feed content over HTTP."""

from __future__ import annotations

import httpx

# Applied by the job and API settings; the pipeline itself imposes no timeout.
DEFAULT_TIMEOUT_SECONDS = 30.0


def build_client(
    *,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the client shared by every fetch of one load cycle."""

    return httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True)


async def fetch_text(client: httpx.AsyncClient, url: str) -> str:
    """GET ``url`` once and return the decoded body.

    Non-success statuses raise ``httpx.HTTPStatusError``. There is no retry: a
    failed source is reported to the caller, which decides how to degrade.
    """

    response = await client.get(url)
    response.raise_for_status()
    return response.text


__all__ = ["build_client", "fetch_text", "DEFAULT_TIMEOUT_SECONDS"]
