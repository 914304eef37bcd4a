"""Upstream product catalog client.

One read-only GET against a fixed URL that answers with a JSON object holding
a ``products`` array. Every failure mode surfaces as FetchFailedError.
"""

import logging

import httpx

from errors import FetchFailedError

logger = logging.getLogger(__name__)


def validate_payload(payload) -> dict:
    """Check the upstream shape: an object with a ``products`` list."""
    if not isinstance(payload, dict) or not isinstance(payload.get("products"), list):
        raise FetchFailedError("Upstream payload has no 'products' array")
    return payload


async def fetch_catalog(
    url: str, timeout: float = 10, client: httpx.AsyncClient | None = None
) -> dict:
    """GET the upstream catalog and return the decoded payload verbatim."""
    logger.info("Fetching product catalog from %s", url)
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout) as owned:
                resp = await owned.get(url)
        else:
            resp = await client.get(url, timeout=timeout)
        resp.raise_for_status()
        payload = resp.json()
    except httpx.HTTPError as e:
        raise FetchFailedError(f"Upstream request to {url} failed: {e}") from e
    except ValueError as e:
        raise FetchFailedError(f"Upstream returned a non-JSON body: {e}") from e

    validate_payload(payload)
    logger.info("Fetched %d products from upstream", len(payload["products"]))
    return payload
