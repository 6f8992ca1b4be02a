import logging
import os
from typing import Optional, Type, TypeVar

from .clients.BaseAuthClient import BaseAuthClient

logger = logging.getLogger("auth-factory")

T = TypeVar("T", bound=BaseAuthClient)


def create_auth_client(client_type: Optional[Type[T]] = None) -> BaseAuthClient:
    """
    Factory function to create the auth client that stores API keys

    Args:
        client_type: Optional specific client class to instantiate

    Returns:
        An instance of the appropriate BaseAuthClient implementation
    """
    if client_type:
        return client_type()

    environment = os.environ.get("ENVIRONMENT", "local").lower()
    if environment != "local":
        logger.warning(
            f"Unknown ENVIRONMENT '{environment}', falling back to local credentials"
        )

    from .clients.LocalAuthClient import LocalAuthClient

    return LocalAuthClient()
