"""Helpers for reading upstream API responses."""
import logging

import httpx

from app.core.errors import UpstreamError

logger = logging.getLogger(__name__)


def decode_json(service: str, response: httpx.Response, required: tuple[str, ...] = ()) -> dict:
    """
    Decode a successful response body as a JSON object.

    Raises:
        UpstreamError: If the body is not a JSON object or lacks a
            ``required`` key, e.g. a proxy error page answered with 200.
    """
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if not isinstance(payload, dict) or any(key not in payload for key in required):
        logger.error(
            f"Unexpected {service} response: {response.status_code} - {response.text[:200]}"
        )
        raise UpstreamError(service, response.status_code, response.text)
    return payload
