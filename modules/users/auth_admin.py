"""Client for the hosted auth provider's admin API.

Only the two calls the hub needs: create a confirmed user and set a
user's password. Authenticated with the service role key.
"""
import logging
from typing import Optional

import httpx

from common.config import AuthConfig, get_config
from common.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)


class AuthAdminClient:
    """Admin API adapter over httpx."""

    def __init__(self, config: Optional[AuthConfig] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or get_config().auth
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.config.admin_url and self.config.service_role_key)

    def _headers(self) -> dict:
        return {
            "apikey": self.config.service_role_key,
            "Authorization": f"Bearer {self.config.service_role_key}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        if not self.is_configured:
            raise ConfigurationError("Server configuration error: Missing environment variables")
        return httpx.AsyncClient(
            base_url=self.config.admin_url.rstrip("/"),
            headers=self._headers(),
            transport=self._transport,
            timeout=30.0,
        )

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        try:
            body = resp.json()
        except ValueError:
            return resp.text
        return body.get("msg") or body.get("message") or body.get("error_description") or resp.text

    async def create_user(self, email: str, password: str, user_metadata: dict) -> dict:
        """Create a confirmed user. Returns the provider's user object."""
        async with self._client() as client:
            resp = await client.post(
                "/admin/users",
                json={
                    "email": email,
                    "password": password,
                    "email_confirm": True,
                    "user_metadata": user_metadata,
                },
            )
        if resp.status_code >= 400:
            raise UpstreamError(f"Failed to create user: {self._error_message(resp)}", resp.status_code)
        user = resp.json()
        if not user.get("id"):
            raise UpstreamError("Failed to create user: No user returned")
        logger.info(f"Auth user created: {user['id']}")
        return user

    async def update_password(self, user_id: str, password: str) -> None:
        async with self._client() as client:
            resp = await client.put(f"/admin/users/{user_id}", json={"password": password})
        if resp.status_code >= 400:
            raise UpstreamError(f"Failed to reset password: {self._error_message(resp)}", resp.status_code)
        logger.info(f"Password updated for {user_id}")
