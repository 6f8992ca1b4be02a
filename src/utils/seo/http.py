import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from src.utils.seo.config import REQUEST_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


@dataclass
class HttpResult:
    status_code: int
    body: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


async def make_request(
    method: str,
    url: str,
    json_body: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = REQUEST_TIMEOUT_SECONDS,
) -> HttpResult:
    """
    Perform a single HTTP request and parse the JSON body

    Non-2xx statuses are returned to the caller, not raised. A body that is
    not JSON is returned as None. Transport failures raise httpx.HTTPError.
    """
    request_headers = httpx.Headers({"Content-Type": "application/json"})
    if headers:
        request_headers.update(headers)

    async with httpx.AsyncClient() as client:
        response = await client.request(
            method,
            url,
            json=json_body,
            params=params,
            headers=request_headers,
            timeout=timeout,
        )

    try:
        body = response.json()
    except ValueError:
        logger.warning(
            f"Non-JSON response from {url} (status {response.status_code}): "
            f"{response.text[:200]}"
        )
        body = None

    return HttpResult(status_code=response.status_code, body=body)
