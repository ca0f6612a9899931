"""WhatsApp send gateway."""

from typing import Any

import httpx

from onboarding_api.exceptions import WhatsAppGatewayError
from onboarding_api.providers.base import BaseProvider


class WhatsAppProvider(BaseProvider):
    """Relays messages to an HTTP gateway exposing ``send-message``."""

    def __init__(self, api_url: str, timeout: float = 10.0) -> None:
        self.api_url = api_url if api_url.endswith("/") else f"{api_url}/"
        self.timeout = timeout

    async def send_message(self, number: str, message: str) -> Any:
        """Send one message.

        Returns:
            The gateway's JSON payload (or raw text when it is not JSON)

        Raises:
            WhatsAppGatewayError: On transport errors or non-2xx responses
        """
        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    f"{self.api_url}send-message",
                    json={"number": number, "message": message},
                    timeout=self.timeout,
                )
            except httpx.HTTPError as e:
                raise WhatsAppGatewayError("Unable to reach WhatsApp gateway") from e

        try:
            payload: Any = response.json()
        except ValueError:
            payload = response.text

        if not response.is_success:
            raise WhatsAppGatewayError(
                f"WhatsApp gateway returned HTTP {response.status_code}",
                {"status_code": response.status_code},
            )
        return payload

    async def test_connection(self) -> str:
        """Check that the gateway answers HTTP at all."""
        async with httpx.AsyncClient() as client:
            try:
                await client.get(self.api_url, timeout=self.timeout)
            except httpx.HTTPError as e:
                raise WhatsAppGatewayError("Unable to reach WhatsApp gateway") from e
        return "WhatsApp gateway is reachable"
