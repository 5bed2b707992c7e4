"""Identity/session gateway (GoTrue) with stub and live modes."""
import logging
import uuid
from typing import Any, Dict, Optional

import httpx

from taskboard.config import Settings, settings as default_settings
from taskboard.core.exceptions import BackendError
from taskboard.integrations.supabase import BackendMode
from taskboard.schemas.auth import AuthUser, TokenResponse

logger = logging.getLogger(__name__)


class AuthGateway:
    """Password sign-in, token introspection and user metadata updates."""

    def __init__(self, config: Settings = default_settings):
        self.config = config
        self.mode = BackendMode(config.BACKEND_MODE.lower())
        self.base_url = config.SUPABASE_URL.rstrip("/") if config.SUPABASE_URL else None
        self.api_key = config.SUPABASE_ANON_KEY
        # stub mode: email -> (password, user)
        self._stub_accounts: Dict[str, tuple] = {}
        self._stub_users: Dict[str, AuthUser] = {}

    def _auth_url(self, path: str) -> str:
        return f"{self.base_url}/auth/v1/{path}"

    def _build_headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        headers = {"apikey": self.api_key or ""}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    def register_stub_user(
        self,
        email: str,
        password: str,
        *,
        user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuthUser:
        """Create an account in stub mode."""
        user = AuthUser(id=user_id or str(uuid.uuid4()), email=email, user_metadata=metadata or {})
        self._stub_accounts[email.lower()] = (password, user.id)
        self._stub_users[user.id] = user
        return user

    async def sign_in(self, email: str, password: str) -> Optional[TokenResponse]:
        """Exchange credentials for a session; None when they are rejected."""
        if self.mode == BackendMode.STUB:
            account = self._stub_accounts.get(email.lower())
            if account is None or account[0] != password:
                logger.info("Stub sign-in rejected for %s", email)
                return None
            user = self._stub_users[account[1]]
            # Stub tokens are the user id itself.
            return TokenResponse(access_token=user.id, user=user)

        try:
            async with httpx.AsyncClient(timeout=self.config.REQUEST_TIMEOUT) as client:
                response = await client.post(
                    self._auth_url("token"),
                    params={"grant_type": "password"},
                    json={"email": email, "password": password},
                    headers=self._build_headers(),
                )
        except httpx.HTTPError as exc:
            raise BackendError(f"Sign-in request failed: {exc}") from exc

        if response.status_code in (400, 401):
            logger.info("Sign-in rejected for %s: %s", email, response.status_code)
            return None
        if response.is_error:
            raise BackendError(f"Sign-in failed with status {response.status_code}", status_code=response.status_code)
        return TokenResponse(**response.json())

    async def get_user(self, access_token: str) -> Optional[AuthUser]:
        """Resolve a bearer token to the user it belongs to."""
        if not access_token:
            return None
        if self.mode == BackendMode.STUB:
            return self._stub_users.get(access_token) or AuthUser(id=access_token)

        try:
            async with httpx.AsyncClient(timeout=self.config.REQUEST_TIMEOUT) as client:
                response = await client.get(self._auth_url("user"), headers=self._build_headers(access_token))
        except httpx.HTTPError as exc:
            raise BackendError(f"User lookup failed: {exc}") from exc

        if response.status_code in (401, 403):
            return None
        if response.is_error:
            raise BackendError(f"User lookup failed with status {response.status_code}", status_code=response.status_code)
        return AuthUser(**response.json())

    async def update_user_metadata(self, access_token: str, data: Dict[str, Any]) -> AuthUser:
        """Merge ``data`` into the user's metadata."""
        if self.mode == BackendMode.STUB:
            user = self._stub_users.get(access_token) or AuthUser(id=access_token)
            user = user.model_copy(update={"user_metadata": {**user.user_metadata, **data}})
            self._stub_users[user.id] = user
            return user

        try:
            async with httpx.AsyncClient(timeout=self.config.REQUEST_TIMEOUT) as client:
                response = await client.put(
                    self._auth_url("user"),
                    json={"data": data},
                    headers=self._build_headers(access_token),
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise BackendError(f"User metadata update failed: {exc}") from exc
        return AuthUser(**response.json())

    async def sign_out(self, access_token: str) -> None:
        if self.mode == BackendMode.STUB:
            return
        try:
            async with httpx.AsyncClient(timeout=self.config.REQUEST_TIMEOUT) as client:
                response = await client.post(self._auth_url("logout"), headers=self._build_headers(access_token))
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise BackendError(f"Sign-out failed: {exc}") from exc
