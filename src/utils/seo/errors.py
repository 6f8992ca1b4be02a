from typing import Optional


class SeoError(Exception):
    """Base class for errors raised while fetching SEO data"""


class ConfigurationMissingError(SeoError):
    """Raised when the CapSolver API key is not configured"""


class ChallengeSolveFailedError(SeoError):
    """Raised when a Turnstile task times out, fails or returns a malformed payload"""


class SignatureExchangeFailedError(SeoError):
    """Raised when the overview endpoint does not return a usable signature"""


class CredentialUnavailableError(SeoError):
    """Raised when no signed credential could be obtained for a subject"""

    def __init__(self, subject: str, reason: str):
        self.subject = subject
        self.reason = reason
        super().__init__(f"{reason} for {subject}")


class InvalidResponseFormatError(SeoError):
    """Raised when a response does not have the shape the normalizer expects"""


class UpstreamHttpError(SeoError):
    """Raised when a data endpoint answers with a non-2xx status or cannot be reached"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
