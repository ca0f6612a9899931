"""Base provider interface."""

from abc import ABC, abstractmethod


class BaseProvider(ABC):
    """Abstract base class for external system integrations."""

    @abstractmethod
    async def test_connection(self) -> str:
        """Test the provider connection.

        Returns:
            Human-readable success message

        Raises:
            IntegrationError: If the connection fails
        """
        pass
