"""Canva Connect API client with OAuth 2.0 PKCE authorization."""

import asyncio
import base64
import hashlib
import json
import logging
import secrets
import string
import time
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode

import aiohttp

from ..errors import CanvaAuthError, PublishFailed
from ..models.content import CanvaToken

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://www.canva.com/api/oauth/authorize"
API_BASE = "https://api.canva.com/rest/v1"
TOKEN_URL = f"{API_BASE}/oauth/token"

SCOPES = [
    "design:content:read",
    "design:content:write",
    "asset:read",
    "asset:write",
]

VERIFIER_CHARS = string.ascii_letters + string.digits + "-._~"


def generate_code_verifier(length: int = 64) -> str:
    return "".join(secrets.choice(VERIFIER_CHARS) for _ in range(length))


def code_challenge(verifier: str) -> str:
    """S256 challenge: base64url(sha256(verifier)) without padding."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


class CanvaClient:
    """Thin async wrapper over the Canva Connect REST endpoints we use."""

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        redirect_uri: str,
        timeout: float = 20.0,
        user_agent: str = "Draftflow/1.0",
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout
        self.user_agent = user_agent

    @classmethod
    def from_settings(cls, settings) -> "CanvaClient":
        return cls(
            client_id=settings.canva_client_id,
            client_secret=settings.canva_client_secret,
            redirect_uri=settings.canva_redirect_uri,
            timeout=settings.canva_timeout,
            user_agent=settings.default_user_agent,
        )

    # OAuth -----------------------------------------------------------------

    def authorization_url(self, state: str, challenge: str) -> str:
        if not self.client_id:
            raise CanvaAuthError("Missing CANVA_CLIENT_ID environment variable")

        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "state": state,
            "code_challenge": challenge,
            "code_challenge_method": "S256",
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    async def exchange_code(
        self, code: str, code_verifier: str, user_id: str
    ) -> CanvaToken:
        """Trade an authorization code for tokens."""
        data = await self._token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
                "code_verifier": code_verifier,
            }
        )
        return self._token_from(data, user_id)

    async def refresh(self, token: CanvaToken) -> CanvaToken:
        data = await self._token_request(
            {"grant_type": "refresh_token", "refresh_token": token.refresh_token}
        )
        refreshed = self._token_from(data, token.user_id)
        if not refreshed.refresh_token:
            refreshed.refresh_token = token.refresh_token
        return refreshed

    async def _token_request(self, form: Dict[str, str]) -> Dict[str, Any]:
        if not self.client_id or not self.client_secret:
            raise CanvaAuthError("Missing CANVA_CLIENT_ID or CANVA_CLIENT_SECRET")

        credentials = base64.b64encode(
            f"{self.client_id}:{self.client_secret}".encode()
        ).decode()
        headers = {
            "Authorization": f"Basic {credentials}",
            "Content-Type": "application/x-www-form-urlencoded",
        }

        try:
            status, body = await self._request("POST", TOKEN_URL, headers=headers, data=form)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise CanvaAuthError(f"Token request failed: {e}")

        if status != 200:
            logger.error(f"Canva token request failed: {status} - {body}")
            raise CanvaAuthError(f"Token exchange failed: {body}")

        try:
            return json.loads(body)
        except ValueError:
            raise CanvaAuthError(f"Token endpoint returned invalid JSON: {body[:200]}")

    @staticmethod
    def _token_from(data: Dict[str, Any], user_id: str) -> CanvaToken:
        try:
            return CanvaToken(
                user_id=user_id,
                access_token=data["access_token"],
                refresh_token=data.get("refresh_token", ""),
                expires_at=int(time.time() * 1000) + int(data["expires_in"]) * 1000,
                scope=data.get("scope", ""),
            )
        except (KeyError, ValueError, TypeError) as e:
            raise CanvaAuthError(f"Unexpected token response: {e}")

    # Designs and assets ------------------------------------------------------

    async def create_design(
        self, access_token: str, title: str, width: int, height: int
    ) -> Dict[str, str]:
        """Create a blank custom-size design.

        Returns:
            Dictionary with ``id``, ``edit_url`` and ``view_url``

        Raises:
            PublishFailed: Canva rejected the request or was unreachable
        """
        payload = {
            "design_type": {
                "type": "custom",
                "width": width,
                "height": height,
                "units": "px",
            },
            "title": title,
        }
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

        try:
            status, body = await self._request(
                "POST", f"{API_BASE}/designs", headers=headers, data=json.dumps(payload)
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise PublishFailed(f"Network error creating Canva design: {e}")

        if status not in (200, 201):
            raise PublishFailed(
                f"Failed to create Canva design: {body}", status=status, body=body
            )

        try:
            design = json.loads(body)["design"]
            return {
                "id": design["id"],
                "edit_url": design["urls"]["edit_url"],
                "view_url": design["urls"]["view_url"],
            }
        except (KeyError, ValueError, TypeError) as e:
            raise PublishFailed(
                f"Unexpected design response: {e}", status=status, body=body
            )

    async def upload_asset(self, access_token: str, image: bytes, name: str) -> str:
        """Upload a PNG and return the new asset id."""
        form = aiohttp.FormData()
        form.add_field("asset", image, filename=f"{name}.png", content_type="image/png")
        headers = {"Authorization": f"Bearer {access_token}"}

        try:
            status, body = await self._request(
                "POST", f"{API_BASE}/assets", headers=headers, data=form
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise PublishFailed(f"Network error uploading asset: {e}")

        if status not in (200, 201):
            raise PublishFailed(
                f"Failed to upload asset: {body}", status=status, body=body
            )
        try:
            return json.loads(body)["asset"]["id"]
        except (KeyError, ValueError, TypeError) as e:
            raise PublishFailed(f"Unexpected asset response: {e}", status=status, body=body)

    async def _request(
        self, method: str, url: str, headers: Dict[str, str], data: Any = None
    ) -> Tuple[int, str]:
        """Send one request and return ``(status, body text)``."""
        headers = dict(headers, **{"User-Agent": self.user_agent})
        async with aiohttp.ClientSession() as session:
            async with session.request(
                method,
                url,
                headers=headers,
                data=data,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                return response.status, await response.text()
