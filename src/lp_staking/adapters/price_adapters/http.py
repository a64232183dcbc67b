from __future__ import annotations

import asyncio
from typing import Any

import backoff
import requests

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def _is_permanent(e: Exception) -> bool:
    return (
        isinstance(e, requests.exceptions.HTTPError)
        and e.response is not None
        and e.response.status_code not in RETRYABLE_STATUS_CODES
    )


@backoff.on_exception(
    backoff.expo,
    requests.exceptions.RequestException,
    max_tries=3,
    giveup=_is_permanent,
    jitter=backoff.full_jitter,
)
async def get_json_with_retry(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout: float = 10.0,
) -> Any:
    response = await asyncio.to_thread(
        requests.get, url, params=params, headers=headers, timeout=timeout
    )
    response.raise_for_status()
    return response.json()
