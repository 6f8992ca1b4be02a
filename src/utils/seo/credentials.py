import asyncio
import logging

from src.utils.seo.cache import BaseSignatureCache
from src.utils.seo.captcha import CapSolverClient
from src.utils.seo.errors import CredentialUnavailableError
from src.utils.seo.models import Credential
from src.utils.seo.signature import SignatureExchangeClient

logger = logging.getLogger(__name__)


class CredentialProvider:
    """
    Hands out signed credentials for a subject.

    A cached credential is reused while it is valid. Otherwise a Turnstile
    challenge is solved and exchanged for a new signature, which the exchange
    client writes back to the cache. There is no retry beyond the solver's
    own polling.
    """

    def __init__(
        self,
        cache: BaseSignatureCache,
        solver: CapSolverClient,
        exchange: SignatureExchangeClient,
    ):
        self.cache = cache
        self.solver = solver
        self.exchange = exchange

    async def obtain(self, subject: str, site_url: str) -> Credential:
        """
        Return a valid credential for subject

        Args:
            subject: Domain the credential is scoped to (the cache key)
            site_url: Page whose Turnstile challenge is solved on a cache miss

        Raises:
            CredentialUnavailableError: if solving or the exchange failed
        """
        credential = await asyncio.to_thread(self.cache.load, subject)
        if credential is not None:
            logger.info(f"Using cached signature for {subject}")
            return credential

        logger.info(f"No valid signature in cache for {subject}, getting a new one")
        logger.debug(f"Using site URL: {site_url}")

        token = await self.solver.solve(site_url)
        if not token:
            raise CredentialUnavailableError(
                subject, "Failed to get verification token"
            )

        credential = await self.exchange.mint(token, subject)
        if credential is None:
            raise CredentialUnavailableError(subject, "Failed to get signature")

        return credential
