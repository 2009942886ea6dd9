"""Airtable REST API access for the guest directory table."""
import logging
from urllib.parse import quote

import httpx

from app.core.config import settings
from app.core.errors import ConfigurationError, UpstreamError
from app.core.http import decode_json

logger = logging.getLogger(__name__)


def has_airtable_config() -> bool:
    """Check if the Airtable key and base are configured."""
    return bool(settings.airtable_api_key and settings.airtable_base_id)


def table_url() -> str:
    """URL of the guest table, e.g. ``.../v0/appXXX/Address%20Collector``."""
    if not has_airtable_config():
        raise ConfigurationError("Missing AIRTABLE_API_KEY or AIRTABLE_BASE_ID")
    table = quote(settings.airtable_table_name, safe="")
    return f"{settings.airtable_api_url}/{settings.airtable_base_id}/{table}"


def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {settings.airtable_api_key}"}


async def airtable_request(
    http: httpx.AsyncClient,
    method: str,
    params: dict | None = None,
    json: dict | None = None,
) -> dict:
    """Send one request to the guest table and return the decoded body.

    Raises:
        ConfigurationError: If the key or base id is missing.
        UpstreamError: On a transport failure, a non-2xx response or a
            body that is not a JSON object.
    """
    url = table_url()
    try:
        response = await http.request(
            method, url, params=params, json=json, headers=auth_headers()
        )
    except httpx.HTTPError as e:
        logger.error(f"Airtable {method} failed: {e}")
        raise UpstreamError("airtable", detail=str(e)) from e

    if not response.is_success:
        logger.error(
            f"Airtable API error: {response.status_code} {response.reason_phrase} - {response.text}"
        )
        raise UpstreamError("airtable", response.status_code, response.text)

    return decode_json("airtable", response)
