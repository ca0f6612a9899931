"""Microsoft Graph integration (mail and group membership)."""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from onboarding_api.exceptions import GraphError
from onboarding_api.models.dto.settings import MicrosoftGraphSettings
from onboarding_api.providers.base import BaseProvider

logger = logging.getLogger(__name__)


class MicrosoftGraphProvider(BaseProvider):
    """Client-credentials access to Microsoft Graph."""

    GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
    LOGIN_URL = "https://login.microsoftonline.com"

    def __init__(self, settings: MicrosoftGraphSettings, timeout: float = 10.0) -> None:
        """Initialize Graph provider.

        Args:
            settings: Graph settings with the decrypted client secret
            timeout: Per-request timeout in seconds
        """
        self.settings = settings
        self.timeout = timeout
        self._access_token: str | None = None

    def _token_url(self) -> str:
        authority = (self.settings.authority or "").rstrip("/")
        if not authority:
            authority = f"{self.LOGIN_URL}/{self.settings.tenant_id}"
        return f"{authority}/oauth2/v2.0/token"

    async def _get_access_token(self) -> str:
        """Get an app-only access token.

        Raises:
            GraphError: On missing credentials or a rejected token request
        """
        if self._access_token:
            return self._access_token

        if not (self.settings.client_id and self.settings.client_secret and self.settings.tenant_id):
            raise GraphError(
                "Missing required fields: clientId, clientSecret, and tenantId are required", 400
            )

        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    self._token_url(),
                    data={
                        "grant_type": "client_credentials",
                        "client_id": self.settings.client_id,
                        "client_secret": self.settings.client_secret,
                        "scope": " ".join(self.settings.scope),
                    },
                    timeout=self.timeout,
                )
            except httpx.HTTPError as e:
                raise GraphError("Unable to reach Microsoft identity platform", 502) from e

        if response.status_code != 200:
            raise GraphError("Authentication failed with Microsoft Graph", 401)

        self._access_token = response.json()["access_token"]
        return self._access_token

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Authenticated Graph request. ``path`` may be absolute (paging links)."""
        token = await self._get_access_token()
        url = path if path.startswith("https://") else f"{self.GRAPH_BASE_URL}{path}"
        async with httpx.AsyncClient() as client:
            try:
                response = await client.request(
                    method,
                    url,
                    headers={"Authorization": f"Bearer {token}"},
                    json=json,
                    params=params,
                    timeout=self.timeout,
                )
            except httpx.HTTPError as e:
                raise GraphError("Unable to reach Microsoft Graph", 502) from e

        if response.status_code == 401:
            raise GraphError("Authentication failed with Microsoft Graph", 401)
        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            return response.json().get("error", {}).get("message") or response.reason_phrase
        except ValueError:
            return response.reason_phrase

    async def test_connection(self) -> str:
        """Request a token and read one user."""
        response = await self._request("GET", "/users", params={"$top": 1})
        if response.status_code == 403:
            raise GraphError("Permission denied. Ensure the application has User.Read.All permission", 403)
        if response.status_code != 200:
            raise GraphError(f"Microsoft Graph request failed: {self._error_message(response)}", response.status_code)
        return "Successfully connected to Microsoft Graph"

    async def send_mail(self, sender: str, message: dict[str, Any]) -> None:
        """Send a message as ``sender``.

        Args:
            sender: Mailbox to send from
            message: Graph message resource (subject, body, recipients, attachments)
        """
        response = await self._request(
            "POST",
            f"/users/{quote(sender)}/sendMail",
            json={"message": message, "saveToSentItems": True},
        )
        if response.status_code == 403:
            raise GraphError("Permission denied. Ensure the application has Mail.Send permission", 403)
        if response.status_code not in (200, 202):
            raise GraphError(f"Email sending failed: {self._error_message(response)}", response.status_code)

    async def get_user_id(self, email: str) -> str:
        """Directory object id of a mailbox."""
        response = await self._request("GET", f"/users/{quote(email)}", params={"$select": "id"})
        if response.status_code == 404:
            raise GraphError(f"User {email} not found", 404)
        if response.status_code != 200:
            raise GraphError(f"Failed to look up user: {self._error_message(response)}", response.status_code)
        return response.json()["id"]

    async def get_group_id(self, group_email: str) -> str:
        """Object id of the group with the given mail address."""
        escaped = group_email.replace("'", "''")
        response = await self._request(
            "GET", "/groups", params={"$filter": f"mail eq '{escaped}'", "$select": "id"}
        )
        if response.status_code != 200:
            raise GraphError(f"Failed to look up group: {self._error_message(response)}", response.status_code)
        groups = response.json().get("value", [])
        if not groups:
            raise GraphError(f"Distribution group {group_email} not found", 404)
        return groups[0]["id"]

    async def add_group_member(self, group_id: str, user_id: str) -> bool:
        """Add a user to a group.

        Returns:
            True when the user was already a member
        """
        response = await self._request(
            "POST",
            f"/groups/{group_id}/members/$ref",
            json={"@odata.id": f"{self.GRAPH_BASE_URL}/directoryObjects/{user_id}"},
        )
        if response.status_code == 204:
            return False
        message = self._error_message(response)
        if response.status_code == 400 and "already exist" in message:
            return True
        raise GraphError(f"Failed to add member: {message}", response.status_code)

    async def remove_group_member(self, group_id: str, user_id: str) -> None:
        """Remove a user from a group."""
        response = await self._request("DELETE", f"/groups/{group_id}/members/{user_id}/$ref")
        if response.status_code not in (200, 204):
            raise GraphError(f"Failed to remove member: {self._error_message(response)}", response.status_code)

    async def _collect(self, path: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        """Follow ``@odata.nextLink`` paging."""
        items: list[dict[str, Any]] = []
        next_path: str | None = path
        next_params: dict[str, Any] | None = params
        while next_path:
            response = await self._request("GET", next_path, params=next_params)
            if response.status_code != 200:
                raise GraphError(f"Failed to list groups: {self._error_message(response)}", response.status_code)
            data = response.json()
            items.extend(data.get("value", []))
            next_path = data.get("@odata.nextLink")
            next_params = None
        return items

    async def member_of(self, email: str) -> list[dict[str, Any]]:
        """Mail-enabled groups the mailbox belongs to."""
        groups = await self._collect(
            f"/users/{quote(email)}/memberOf", {"$select": "id,displayName,mail,mailEnabled"}
        )
        return [g for g in groups if g.get("mailEnabled")]

    async def list_groups(self) -> list[dict[str, Any]]:
        """All mail-enabled groups in the tenant."""
        return await self._collect(
            "/groups", {"$filter": "mailEnabled eq true", "$select": "id,displayName,mail", "$top": 999}
        )
