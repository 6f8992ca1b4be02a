import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from src.utils.seo.cache import BaseSignatureCache, FileSignatureCache
from src.utils.seo.captcha import CapSolverClient
from src.utils.seo.config import AHREFS_API_URL, AHREFS_BASE_URL, get_cache_file
from src.utils.seo.credentials import CredentialProvider
from src.utils.seo.errors import CredentialUnavailableError, UpstreamHttpError
from src.utils.seo.http import HttpResult, make_request
from src.utils.seo.responses import (
    normalize_backlinks,
    normalize_keyword_difficulty,
    normalize_keyword_ideas,
    normalize_traffic,
)
from src.utils.seo.signature import QUERY_MODE, SignatureExchangeClient

logger = logging.getLogger(__name__)

TRAFFIC_MODES = ("subdomains", "exact")


def _encode(value: str) -> str:
    # Same escaping as JavaScript's encodeURIComponent
    return quote(value, safe="-_.!~*'()")


class SeoService:
    """
    Fetches backlinks, keyword ideas, keyword difficulty and traffic from the
    free Ahrefs tools.

    Backlinks go through the CredentialProvider and reuse cached signatures.
    The other three tools solve a fresh Turnstile challenge on every call.
    """

    def __init__(
        self,
        solver: CapSolverClient,
        credential_provider: CredentialProvider,
        api_url: str = AHREFS_API_URL,
        site_url: str = AHREFS_BASE_URL,
    ):
        self.solver = solver
        self.credential_provider = credential_provider
        self.api_url = api_url.rstrip("/")
        self.site_url = site_url.rstrip("/")

    async def _request(
        self, method: str, endpoint: str, subject: str, **kwargs: Any
    ) -> HttpResult:
        try:
            result = await make_request(method, f"{self.api_url}/{endpoint}", **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Error calling {endpoint} for {subject}: {e}")
            raise UpstreamHttpError(f"Error communicating with Ahrefs: {e}") from e

        if not result.ok:
            logger.error(f"{endpoint} returned {result.status_code} for {subject}")
            raise UpstreamHttpError(
                f"Ahrefs API error: {result.status_code}", result.status_code
            )
        return result

    async def _solve(self, site_url: str, subject: str) -> str:
        logger.debug(f"Using site URL: {site_url}")
        token = await self.solver.solve(site_url)
        if not token:
            raise CredentialUnavailableError(
                subject, "Failed to get verification token"
            )
        return token

    async def get_backlinks(self, domain: str) -> Dict[str, Any]:
        """
        Get the top backlinks for a domain

        Returns:
            {"overview": <overview data from the signature response>,
             "backlinks": [{anchor, domainRating, title, urlFrom, urlTo, edu, gov}]}
        """
        logger.info(f"Getting backlinks for domain: {domain}")

        site_url = f"{self.site_url}/backlink-checker/?input={domain}&mode={QUERY_MODE}"
        credential = await self.credential_provider.obtain(domain, site_url)

        payload = {
            "reportType": "TopBacklinks",
            "signedInput": {
                "signature": credential.signature,
                "input": {
                    "validUntil": credential.valid_until,
                    "mode": QUERY_MODE,
                    "url": f"{domain}/",
                },
            },
        }
        result = await self._request(
            "POST", "stGetFreeBacklinksList", domain, json_body=payload
        )

        return {
            "overview": credential.overview_data,
            "backlinks": normalize_backlinks(result.body),
        }

    async def get_keyword_ideas(
        self, keyword: str, country: str = "us", search_engine: str = "Google"
    ) -> List[Dict[str, Any]]:
        logger.info(
            f"Getting keyword ideas for: {keyword}, country: {country}, "
            f"search engine: {search_engine}"
        )

        site_url = (
            f"{self.site_url}/keyword-generator/"
            f"?country={country}&input={_encode(keyword)}"
        )
        token = await self._solve(site_url, keyword)

        payload = {
            "withQuestionIdeas": True,
            "captcha": token,
            "searchEngine": search_engine,
            "country": country,
            "keyword": ["Some", keyword],
        }
        result = await self._request(
            "POST", "stGetFreeKeywordIdeas", keyword, json_body=payload
        )
        return normalize_keyword_ideas(result.body)

    async def get_keyword_difficulty(
        self, keyword: str, country: str = "us"
    ) -> Dict[str, Any]:
        logger.info(f"Getting keyword difficulty for: {keyword}, country: {country}")

        site_url = (
            f"{self.site_url}/keyword-difficulty/"
            f"?country={country}&input={_encode(keyword)}"
        )
        token = await self._solve(site_url, keyword)

        payload = {"captcha": token, "country": country, "keyword": keyword}
        headers = {
            "accept": "*/*",
            "content-type": "application/json; charset=utf-8",
            "referer": site_url,
        }
        result = await self._request(
            "POST",
            "stGetFreeSerpOverviewForKeywordDifficultyChecker",
            keyword,
            json_body=payload,
            headers=headers,
        )
        return normalize_keyword_difficulty(result.body)

    async def check_traffic(
        self, domain_or_url: str, mode: str = "subdomains", country: str = "None"
    ) -> Dict[str, Any]:
        logger.info(
            f"Checking traffic for: {domain_or_url}, mode: {mode}, country: {country}"
        )

        site_url = f"{self.site_url}/traffic-checker/?input={domain_or_url}&mode={mode}"
        token = await self._solve(site_url, domain_or_url)

        # The endpoint takes the whole request as one JSON-encoded query value
        params = {
            "input": json.dumps(
                {
                    "captcha": token,
                    "country": country,
                    "protocol": "None",
                    "mode": mode,
                    "url": domain_or_url,
                }
            )
        }
        headers = {
            "accept": "*/*",
            "content-type": "application/json",
            "referer": site_url,
        }
        result = await self._request(
            "GET",
            "stGetFreeTrafficOverview",
            domain_or_url,
            params=params,
            headers=headers,
        )
        return normalize_traffic(result.body)


def create_seo_service(
    capsolver_api_key: Optional[str],
    cache: Optional[BaseSignatureCache] = None,
) -> SeoService:
    """Wire up an SeoService with the default cache file and clients"""
    if cache is None:
        cache = FileSignatureCache(get_cache_file())

    solver = CapSolverClient(capsolver_api_key)
    exchange = SignatureExchangeClient(cache)
    provider = CredentialProvider(cache, solver, exchange)
    return SeoService(solver, provider)
