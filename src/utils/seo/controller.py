"""
Controller functions for the SEO tools.

Each controller validates its parameters, applies defaults, calls the
SeoService and wraps the outcome in a ToolResponse. Nothing raised below this
layer escapes it.
"""

import logging
from typing import Any, Dict, Optional

from src.utils.seo.errors import SeoError
from src.utils.seo.service import TRAFFIC_MODES, SeoService
from src.utils.utils import ToolResponse, error_response, success_response

logger = logging.getLogger(__name__)


def _handle_error(
    error: Exception, entity_type: str, context: Dict[str, Any]
) -> ToolResponse:
    details = ", ".join(f"{k}={v}" for k, v in context.items() if v is not None)
    message = f"Error retrieving {entity_type}"
    if details:
        message += f" for {details}"
    message += f": {error}"

    if isinstance(error, SeoError):
        logger.error(message)
    else:
        logger.exception(message)
    return error_response(message)


async def get_backlinks(
    service: SeoService, params: Dict[str, Any]
) -> ToolResponse:
    domain = params.get("domain")
    try:
        if not domain:
            raise ValueError("Domain is required for getting backlinks")

        response = await service.get_backlinks(domain)
        return success_response(response)
    except Exception as e:
        return _handle_error(e, "Backlinks", {"domain": domain})


async def get_keyword_ideas(
    service: SeoService, params: Dict[str, Any]
) -> ToolResponse:
    keyword = params.get("keyword")
    country = params.get("country") or "us"
    search_engine = params.get("searchEngine") or "Google"
    try:
        if not keyword:
            raise ValueError("Keyword is required for getting keyword ideas")

        response = await service.get_keyword_ideas(keyword, country, search_engine)
        return success_response(response)
    except Exception as e:
        return _handle_error(
            e, "Keyword Ideas", {"keyword": keyword, "country": country}
        )


async def get_keyword_difficulty(
    service: SeoService, params: Dict[str, Any]
) -> ToolResponse:
    keyword = params.get("keyword")
    country = params.get("country") or "us"
    try:
        if not keyword:
            raise ValueError("Keyword is required for getting keyword difficulty")

        response = await service.get_keyword_difficulty(keyword, country)
        return success_response(response)
    except Exception as e:
        return _handle_error(
            e, "Keyword Difficulty", {"keyword": keyword, "country": country}
        )


async def get_traffic(
    service: SeoService, params: Dict[str, Any]
) -> ToolResponse:
    domain_or_url: Optional[str] = params.get("domainOrUrl")
    mode = params.get("mode") or "subdomains"
    country = params.get("country") or "None"
    try:
        if not domain_or_url:
            raise ValueError("Domain or URL is required for getting traffic data")
        if mode not in TRAFFIC_MODES:
            raise ValueError('Mode must be either "subdomains" or "exact"')

        response = await service.check_traffic(domain_or_url, mode, country)
        return success_response(response)
    except Exception as e:
        return _handle_error(
            e, "Traffic Data", {"domainOrUrl": domain_or_url, "mode": mode}
        )
