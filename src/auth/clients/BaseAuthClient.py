import abc
from typing import Optional, TypeVar, Generic

# Generic type to represent any type of credentials object
CredentialsT = TypeVar("CredentialsT")


class BaseAuthClient(Generic[CredentialsT], abc.ABC):
    """
    Abstract base class for clients that store third-party API keys,
    such as the CapSolver key used to solve Turnstile challenges.
    """

    @abc.abstractmethod
    def get_user_credentials(
        self, service_name: str, user_id: str
    ) -> Optional[CredentialsT]:
        """
        Retrieves user credentials for a specific service

        Args:
            service_name: Name of the service (e.g., "capsolver")
            user_id: Identifier for the user

        Returns:
            Credentials object if found, None otherwise
        """
        pass

    @abc.abstractmethod
    def save_user_credentials(
        self, service_name: str, user_id: str, credentials: CredentialsT
    ) -> None:
        """
        Saves user credentials for a specific service

        Args:
            service_name: Name of the service (e.g., "capsolver")
            user_id: Identifier for the user
            credentials: Credentials object to save
        """
        pass
