from typing import Optional

import httpx

from hookflow.constants import AUTH_API_SECRET, AUTH_API_URL


class SessionAuth:
    """Resolves bearer tokens to users through the external auth service."""

    def __init__(self, base_url: str = AUTH_API_URL, server_secret: str = AUTH_API_SECRET):
        self.base_url = base_url.rstrip("/")
        self.server_secret = server_secret

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _strip_bearer(self, access_token: str | None) -> str | None:
        """Remove the leading "Bearer " prefix from the token if present."""
        if not access_token:
            return None
        if access_token.startswith("Bearer "):
            return access_token.split(" ", 1)[1]
        return access_token

    async def get_user(self, access_token: str | None) -> Optional[dict]:
        access_token = self._strip_bearer(access_token)
        if not access_token:
            return None

        url = self.base_url + "/api/v1/users/me"
        headers = {
            "x-access-token": access_token,
            "x-server-secret": self.server_secret,
        }

        async with httpx.AsyncClient(timeout=10) as client:
            response = await client.get(url, headers=headers)
            if response.status_code != 200:
                return None
            data = response.json()
            if isinstance(data, dict) and "id" in data:
                return data
            return None


session_auth = SessionAuth()
