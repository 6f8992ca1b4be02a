import time
import asyncio
import logging
from typing import Callable, Optional

import httpx

from src.utils.seo.cache import BaseSignatureCache
from src.utils.seo.config import AHREFS_API_URL
from src.utils.seo.errors import (
    InvalidResponseFormatError,
    SignatureExchangeFailedError,
)
from src.utils.seo.http import make_request
from src.utils.seo.models import Credential
from src.utils.seo.responses import decode_signed_overview

logger = logging.getLogger(__name__)

QUERY_MODE = "subdomains"


class SignatureExchangeClient:
    """
    Exchanges a solved Turnstile token for a signed backlinks credential.

    mint() never raises. Failures are logged and reported as None.
    """

    def __init__(
        self,
        cache: BaseSignatureCache,
        api_url: str = AHREFS_API_URL,
        clock: Callable[[], float] = time.time,
    ):
        self.cache = cache
        self.api_url = api_url.rstrip("/")
        self.clock = clock

    async def mint(self, token: str, subject: str) -> Optional[Credential]:
        """
        Request a signature for subject and store it in the cache

        Args:
            token: Solved Turnstile token
            subject: Domain the signature is scoped to

        Returns:
            The new credential, or None if the exchange failed
        """
        try:
            credential = await self._mint(token, subject)
        except SignatureExchangeFailedError as e:
            logger.error(f"Failed to get signature for {subject}: {e}")
            return None
        except httpx.HTTPError as e:
            logger.error(f"Error getting signature and overview for {subject}: {e}")
            return None

        saved = await asyncio.to_thread(self.cache.save, subject, credential)
        if not saved:
            logger.warning(
                f"Signature for {subject} could not be cached, "
                "using it for this call only"
            )
        return credential

    async def _mint(self, token: str, subject: str) -> Credential:
        payload = {"captcha": token, "mode": QUERY_MODE, "url": subject}
        result = await make_request(
            "POST", f"{self.api_url}/stGetFreeBacklinksOverview", json_body=payload
        )

        if not result.ok:
            raise SignatureExchangeFailedError(
                f"overview endpoint returned status {result.status_code}"
            )

        try:
            signature, valid_until, overview_data = decode_signed_overview(result.body)
        except InvalidResponseFormatError as e:
            raise SignatureExchangeFailedError(
                f"Invalid response format from Ahrefs API: {e}"
            ) from e

        return Credential(
            subject=subject,
            signature=signature,
            valid_until=valid_until,
            overview_data=overview_data,
            minted_at=self.clock(),
        )
